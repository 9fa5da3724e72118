from __future__ import annotations

from typing import Iterable, Iterator, Union

from normalforms.form_rules import CONJUNCTIVE, DISJUNCTIVE, Connective, FormRules
from normalforms.proven_set import ProvenSet


class UnmodifiableFormError(RuntimeError):
    pass


class NormalForm:
    """A set of phrases joined by the outer connective of `rules`.

    Invariant: the phrases form an antichain. No phrase is a subset of
    another, because the superset phrase is implied by the subset one under
    the inner connective and would be redundant.

    Forms are mutable in place through `and_`/`or_`, `insert_with_absorption`
    and the mutex helpers, unless built (or cloned) as unmodifiable.
    """

    __slots__ = ("rules", "_phrases", "_unmodifiable")

    def __init__(
        self,
        rules: FormRules,
        phrases: Iterable[ProvenSet] = (),
        *,
        unmodifiable: bool = False,
    ) -> None:
        self.rules = rules
        # dict as an insertion-ordered set
        self._phrases: dict[ProvenSet, None] = {}
        self._unmodifiable = False
        for phrase in phrases:
            self._insert(phrase.clone())
        self._unmodifiable = unmodifiable

    # Factories

    @classmethod
    def true(cls, rules: FormRules) -> NormalForm:
        if rules.true_is_empty:
            return cls(rules)
        return cls(rules, [ProvenSet()])

    @classmethod
    def false(cls, rules: FormRules) -> NormalForm:
        if rules.true_is_empty:
            return cls(rules, [ProvenSet()])
        return cls(rules)

    @classmethod
    def from_proposition(cls, rules: FormRules, proposition: int) -> NormalForm:
        return cls(rules, [ProvenSet([proposition])])

    @classmethod
    def from_phrase(cls, rules: FormRules, phrase: ProvenSet | None) -> NormalForm:
        """Form holding a single phrase.

        `None` gives the empty form (CNF true, DNF false); an empty phrase
        gives the single-empty-phrase form (CNF false, DNF true).
        """
        if phrase is None:
            return cls(rules)
        return cls(rules, [phrase])

    # Mutability

    @property
    def is_unmodifiable(self) -> bool:
        return self._unmodifiable

    def _check_modifiable(self) -> None:
        if self._unmodifiable:
            raise UnmodifiableFormError(f"{self.rules.name} form is unmodifiable")

    def clone(self, unmodifiable: bool = False) -> NormalForm:
        return NormalForm(self.rules, self._phrases, unmodifiable=unmodifiable)

    # Phrase collection

    def insert_with_absorption(self, phrase: ProvenSet) -> bool:
        """Add `phrase` unless an existing phrase absorbs it.

        Existing supersets of `phrase` are dropped. Returns whether the phrase
        was kept.
        """
        self._check_modifiable()
        return self._insert(phrase)

    def _insert(self, phrase: ProvenSet) -> bool:
        absorbed: list[ProvenSet] = []
        for existing in self._phrases:
            if existing.is_subset_of(phrase):
                return False
            if phrase.is_subset_of(existing):
                absorbed.append(existing)
        for existing in absorbed:
            del self._phrases[existing]
        self._phrases[phrase] = None
        return True

    def remove_phrase(self, phrase: ProvenSet) -> bool:
        self._check_modifiable()
        if phrase in self._phrases:
            del self._phrases[phrase]
            return True
        return False

    def phrases(self) -> list[ProvenSet]:
        return list(self._phrases)

    def __iter__(self) -> Iterator[ProvenSet]:
        return iter(list(self._phrases))

    def __len__(self) -> int:
        return len(self._phrases)

    def __contains__(self, phrase: object) -> bool:
        return phrase in self._phrases

    # Composition

    def and_(self, other: Operand) -> NormalForm:
        return self._compose(Connective.AND, other)

    def or_(self, other: Operand) -> NormalForm:
        return self._compose(Connective.OR, other)

    def _compose(self, op: Connective, other: Operand) -> NormalForm:
        self._check_modifiable()
        operand = self._coerce(other)
        if self.rules.appends(op):
            self._append(operand)
        else:
            self._distribute(operand)
        return self

    def _coerce(self, other: Operand) -> NormalForm:
        if isinstance(other, NormalForm):
            if other.rules != self.rules:
                raise TypeError(f"Cannot combine a {self.rules.name} form with a {other.rules.name} form")
            return other
        if isinstance(other, int) and not isinstance(other, bool):
            return NormalForm.from_proposition(self.rules, other)
        raise TypeError(f"Unsupported operand type: {type(other).__name__}")

    def _append(self, other: NormalForm) -> None:
        # Snapshot first: `other` may be `self`.
        for phrase in list(other._phrases):
            self._insert(phrase.clone())

    def _distribute(self, other: NormalForm) -> None:
        product = NormalForm(self.rules)
        for left in self._phrases:
            for right in other._phrases:
                product._insert(ProvenSet.union(left, right))
        self._phrases = product._phrases

    def __and__(self, other: Operand) -> NormalForm:
        return conjoin(self, other)

    def __rand__(self, other: Operand) -> NormalForm:
        return conjoin(other, self)

    def __or__(self, other: Operand) -> NormalForm:
        return disjoin(self, other)

    def __ror__(self, other: Operand) -> NormalForm:
        return disjoin(other, self)

    # Constants

    def _is_single_empty(self) -> bool:
        return len(self._phrases) == 1 and next(iter(self._phrases)).is_empty()

    def is_true(self) -> bool:
        if self.rules.true_is_empty:
            return not self._phrases
        return self._is_single_empty()

    def is_false(self) -> bool:
        if self.rules.true_is_empty:
            return self._is_single_empty()
        return not self._phrases

    # Comparison and display

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormalForm):
            return NotImplemented
        return self.rules == other.rules and self._phrases.keys() == other._phrases.keys()

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        from normalforms.text_format import to_string

        return to_string(self)

    def __repr__(self) -> str:
        return f"NormalForm({self.rules.name}, {list(self._phrases)!r})"


Operand = Union[NormalForm, int]


def _first_form(left: Operand, right: Operand, rules: FormRules | None) -> NormalForm:
    if isinstance(left, NormalForm):
        return left.clone()
    if isinstance(right, NormalForm):
        rules = rules or right.rules
    if rules is None:
        raise ValueError("rules are required when neither operand is a NormalForm")
    return NormalForm(rules)._coerce(left)


def conjoin(left: Operand, right: Operand, rules: FormRules | None = None) -> NormalForm:
    """AND of two operands as a new form; both inputs are left untouched."""
    return _first_form(left, right, rules).and_(right)


def disjoin(left: Operand, right: Operand, rules: FormRules | None = None) -> NormalForm:
    """OR of two operands as a new form; both inputs are left untouched."""
    return _first_form(left, right, rules).or_(right)


def cnf(*propositions: int) -> NormalForm:
    """CNF with one single-proposition phrase per argument (their AND)."""
    return NormalForm(CONJUNCTIVE, [ProvenSet([p]) for p in propositions])


def dnf(*propositions: int) -> NormalForm:
    """DNF with one single-proposition phrase per argument (their OR)."""
    return NormalForm(DISJUNCTIVE, [ProvenSet([p]) for p in propositions])
