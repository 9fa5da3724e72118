from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Connective(str, Enum):
    AND = "AND"
    OR = "OR"

    @property
    def opposite(self) -> Connective:
        return Connective.OR if self is Connective.AND else Connective.AND


@dataclass(frozen=True)
class FormRules:
    """Orientation of a normal form.

    `outer` joins the phrases, `inner` joins the propositions inside a phrase.
    Composing with the outer connective appends phrases (with absorption);
    composing with the inner connective distributes over every phrase pair.

    Constants follow from the empty connective identities: a vacuous AND is
    true and a vacuous OR is false. So for an AND-outer form the empty phrase
    collection is true and a single empty (OR) phrase is false; for an
    OR-outer form it is the other way round.
    """

    name: str
    outer: Connective

    @property
    def inner(self) -> Connective:
        return self.outer.opposite

    def appends(self, op: Connective) -> bool:
        return op is self.outer

    @property
    def true_is_empty(self) -> bool:
        return self.outer is Connective.AND

    def __str__(self) -> str:
        return self.name


CONJUNCTIVE = FormRules(name="CNF", outer=Connective.AND)
DISJUNCTIVE = FormRules(name="DNF", outer=Connective.OR)

_BY_NAME = {rules.name: rules for rules in (CONJUNCTIVE, DISJUNCTIVE)}


def rules_by_name(name: str) -> FormRules:
    key = str(name).strip().upper()
    if key not in _BY_NAME:
        raise ValueError(f"Unknown form kind: {name!r} (expected one of {sorted(_BY_NAME)})")
    return _BY_NAME[key]
