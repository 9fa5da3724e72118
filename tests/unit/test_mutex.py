import logging

import pytest

from normalforms.form_rules import CONJUNCTIVE, DISJUNCTIVE
from normalforms.mutex import (
    assert_no_forbidden_siblings,
    contains_forbidden_siblings,
    remove_forbidden_phrases,
    simplify_with_mutex_nodes,
)
from normalforms.normal_form import NormalForm, UnmodifiableFormError
from normalforms.proven_set import ProvenSet


def _dnf(*phrases):
    return NormalForm(DISJUNCTIVE, [ProvenSet(p) for p in phrases])


def _phrase_sets(form):
    return {frozenset(phrase) for phrase in form}


MUTEX = ProvenSet([5, 6])
JOIN = ProvenSet([9])


def test_merges_pair_differing_by_mutex_nodes():
    form = _dnf([1, 5], [1, 6])
    merged = simplify_with_mutex_nodes(form, MUTEX, JOIN)
    assert merged == 1
    assert form == _dnf([1, 9])


def test_one_phrase_per_join_point():
    form = _dnf([1, 2, 5], [1, 2, 6])
    simplify_with_mutex_nodes(form, MUTEX, ProvenSet([9, 10]))
    assert _phrase_sets(form) == {frozenset({1, 2, 9}), frozenset({1, 2, 10})}


@pytest.mark.parametrize("mutex", [[5], [5, 6, 7], []])
def test_non_pair_mutex_group_is_noop(mutex):
    form = _dnf([1, 5], [1, 6], [1, 7])
    before = form.clone()
    assert simplify_with_mutex_nodes(form, ProvenSet(mutex), JOIN) == 0
    assert form == before


def test_phrases_differing_elsewhere_are_kept():
    form = _dnf([1, 5], [2, 6], [3, 4])
    assert simplify_with_mutex_nodes(form, MUTEX, JOIN) == 0
    assert form == _dnf([1, 5], [2, 6], [3, 4])


def test_a_phrase_matches_at_most_one_partner():
    form = _dnf([1, 5], [1, 6], [2, 5])
    assert simplify_with_mutex_nodes(form, MUTEX, JOIN) == 1
    assert _phrase_sets(form) == {frozenset({2, 5}), frozenset({1, 9})}


def test_independent_pairs_in_different_groups():
    form = _dnf([1, 5], [1, 6], [2, 3, 5], [2, 3, 6])
    assert simplify_with_mutex_nodes(form, MUTEX, JOIN) == 2
    assert _phrase_sets(form) == {frozenset({1, 9}), frozenset({2, 3, 9})}


def test_merged_phrase_absorbs_supersets():
    form = _dnf([1, 5], [1, 6], [1, 3, 9])
    simplify_with_mutex_nodes(form, MUTEX, JOIN)
    assert form == _dnf([1, 9])


def test_requires_disjunctive_form():
    form = NormalForm(CONJUNCTIVE, [ProvenSet([1, 5]), ProvenSet([1, 6])])
    with pytest.raises(TypeError):
        simplify_with_mutex_nodes(form, MUTEX, JOIN)
    with pytest.raises(TypeError):
        remove_forbidden_phrases(form, MUTEX)


def test_unmodifiable_form_is_rejected():
    form = _dnf([1, 5], [1, 6]).clone(unmodifiable=True)
    with pytest.raises(UnmodifiableFormError):
        simplify_with_mutex_nodes(form, MUTEX, JOIN)
    with pytest.raises(UnmodifiableFormError):
        remove_forbidden_phrases(form, MUTEX)


def test_phrase_holding_both_mutex_nodes_trips_assertion():
    form = _dnf([1, 5, 6], [2, 5, 7])
    with pytest.raises(AssertionError):
        simplify_with_mutex_nodes(form, MUTEX, JOIN)


def test_debug_flag_logs_merges(caplog):
    logger = logging.getLogger("normalforms.mutex")
    previous = logger.level
    with caplog.at_level(logging.DEBUG):
        simplify_with_mutex_nodes(_dnf([1, 5], [1, 6]), MUTEX, JOIN, debug=True)
    assert "MUTEX_GROUPS" in caplog.text
    assert "MUTEX_MERGE" in caplog.text
    assert logger.level == previous


def test_remove_forbidden_phrases():
    forbidden = ProvenSet([5, 6, 7])
    form = _dnf([1, 5, 6], [1, 5], [2, 6, 7], [3])
    assert contains_forbidden_siblings(form, forbidden)
    assert remove_forbidden_phrases(form, forbidden) == 2
    assert form == _dnf([1, 5], [3])
    assert not contains_forbidden_siblings(form, forbidden)


@pytest.mark.parametrize(
    "phrases,forbidden",
    [
        ([], [5, 6]),
        ([[]], [5, 6]),
        ([[1, 5], [2, 6], [3]], [5, 6]),
        ([[5, 6]], [5, 6]),
        ([[1, 5, 6], [1, 5, 7], [1, 6, 7], [5, 8]], [5, 6, 7]),
        ([[63, 64], [64, 130], [63, 1], [2]], [63, 64, 130]),
        ([[1, 2], [3, 4]], []),
        ([[1, 2], [2, 3]], [2]),
    ],
)
def test_purge_leaves_no_forbidden_siblings(phrases, forbidden):
    forbidden = ProvenSet(forbidden)
    form = _dnf(*phrases)
    clean = [p for p in form if len(ProvenSet.intersect(p, forbidden)) < 2]

    removed = remove_forbidden_phrases(form, forbidden)

    assert removed == len(_dnf(*phrases)) - len(clean)
    assert _phrase_sets(form) == {frozenset(p) for p in clean}
    assert not contains_forbidden_siblings(form, forbidden)
    assert_no_forbidden_siblings(form, forbidden)


def test_contains_forbidden_siblings_on_phrase():
    forbidden = ProvenSet([5, 6])
    assert contains_forbidden_siblings(ProvenSet([1, 5, 6]), forbidden)
    assert not contains_forbidden_siblings(ProvenSet([1, 5]), forbidden)


def test_assert_no_forbidden_siblings():
    forbidden = ProvenSet([5, 6])
    assert_no_forbidden_siblings(_dnf([1, 5], [2, 6]), forbidden)
    with pytest.raises(AssertionError):
        assert_no_forbidden_siblings(_dnf([1, 5], [5, 6]), forbidden)
    with pytest.raises(AssertionError):
        assert_no_forbidden_siblings(ProvenSet([5, 6]), forbidden)
