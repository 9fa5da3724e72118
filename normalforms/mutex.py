from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator

from normalforms.form_rules import Connective
from normalforms.normal_form import NormalForm
from normalforms.proven_set import ProvenSet

logger = logging.getLogger(__name__)


def _require_disjunctive(form: NormalForm) -> None:
    if form.rules.outer is not Connective.OR:
        raise TypeError(f"Mutex reduction needs an OR-of-ANDs form, got {form.rules.name}")


@contextmanager
def _debug_logging(enabled: bool) -> Iterator[None]:
    if not enabled:
        yield
        return
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    try:
        yield
    finally:
        logger.setLevel(previous)


def simplify_with_mutex_nodes(
    form: NormalForm,
    mutex_nodes: ProvenSet,
    join_points: ProvenSet,
    *,
    debug: bool = False,
    log_extra: dict[str, str] | None = None,
) -> int:
    """Merge phrase pairs that differ only by the two mutex propositions.

    Two phrases {X, A} and {X, B}, where {A, B} = `mutex_nodes`, are replaced
    by one phrase {X, J} for each J in `join_points`. Only pairs are handled:
    for any other size of `mutex_nodes` this is a no-op.

    Returns the number of merged pairs.

    Special logs:
    - MUTEX_GROUPS / MUTEX_MERGE (DEBUG)
    """
    _require_disjunctive(form)
    form._check_modifiable()
    if mutex_nodes.cardinality() != 2:
        return 0

    extra = log_extra or {}
    with _debug_logging(debug):
        # Equal cardinality is necessary for the xor of two phrases to be
        # exactly `mutex_nodes`, so only same-size phrases are compared.
        groups: dict[int, list[ProvenSet]] = defaultdict(list)
        for phrase in form.phrases():
            if mutex_nodes.intersects(phrase):
                groups[phrase.cardinality()].append(phrase)

        logger.debug(
            "MUTEX_GROUPS: groups=%d sizes=%s",
            len(groups),
            {card: len(group) for card, group in sorted(groups.items())},
            extra=extra,
        )

        merged = 0
        for phrases in groups.values():
            i = 0
            while i < len(phrases):
                first = phrases[i]
                assert_no_forbidden_siblings(first, mutex_nodes)
                for j in range(i + 1, len(phrases)):
                    second = phrases[j]
                    if ProvenSet.xor(first, second) != mutex_nodes:
                        continue

                    form.remove_phrase(first)
                    form.remove_phrase(second)
                    shared = ProvenSet.intersect(first, second)
                    for join in join_points:
                        form.insert_with_absorption(shared.with_element(join))
                    merged += 1
                    logger.debug(
                        "MUTEX_MERGE: mutex=%s join=%s phrases=%s,%s shared=%s",
                        mutex_nodes,
                        join_points,
                        first,
                        second,
                        shared,
                        extra=extra,
                    )

                    # Neither phrase can match anything else: no two phrases
                    # are equal and no phrase holds both mutex nodes.
                    del phrases[j]
                    break
                i += 1

    return merged


def remove_forbidden_phrases(form: NormalForm, forbidden_siblings: ProvenSet) -> int:
    """Drop every phrase holding two or more of `forbidden_siblings`.

    Returns the number of phrases removed.
    """
    _require_disjunctive(form)
    form._check_modifiable()
    removed = 0
    for phrase in form.phrases():
        if ProvenSet.intersects_more_than_once(phrase, forbidden_siblings):
            form.remove_phrase(phrase)
            removed += 1
    return removed


def contains_forbidden_siblings(target: NormalForm | ProvenSet, forbidden_siblings: ProvenSet) -> bool:
    """True iff the phrase (or any phrase of the form) holds two or more of `forbidden_siblings`."""
    if isinstance(target, ProvenSet):
        return ProvenSet.intersects_more_than_once(target, forbidden_siblings)
    return any(ProvenSet.intersects_more_than_once(phrase, forbidden_siblings) for phrase in target)


def assert_no_forbidden_siblings(target: NormalForm | ProvenSet, forbidden_siblings: ProvenSet) -> None:
    if isinstance(target, ProvenSet):
        assert not ProvenSet.intersects_more_than_once(target, forbidden_siblings), (
            f"Phrase {target} contains more than one mutex element from {forbidden_siblings}"
        )
        return
    for phrase in target:
        assert_no_forbidden_siblings(phrase, forbidden_siblings)
