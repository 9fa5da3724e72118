import logging

import pytest

from normalforms.connectives import load_connectives_config
from normalforms.form_rules import CONJUNCTIVE, DISJUNCTIVE
from normalforms.normal_form import NormalForm, cnf, dnf
from normalforms.proven_set import ProvenSet
from normalforms.text_format import (
    FormParseError,
    format_form,
    from_csv_string,
    from_string,
    parse_form,
    to_csv_string,
    to_string,
    tokenize,
)


@pytest.mark.parametrize("rules", [CONJUNCTIVE, DISJUNCTIVE])
def test_constants_round_trip(rules):
    for form in (NormalForm.true(rules), NormalForm.false(rules)):
        text = to_string(form, sort=True)
        parsed = from_string(text, rules)
        assert to_string(parsed, sort=True) == text
        assert parsed.is_true() == form.is_true()
        assert parsed.is_false() == form.is_false()


def test_cnf_constant_texts():
    assert to_string(NormalForm.true(CONJUNCTIVE)) == "<>"
    assert to_string(NormalForm.false(CONJUNCTIVE)) == "<()>"
    assert from_string("<>", CONJUNCTIVE).is_true()
    assert from_string("<()>", CONJUNCTIVE).is_false()


def test_sorted_output_is_stable():
    text = (
        "<(19766|57990)&(19938|57990)&(53437|57990)&(53500|57990)&(56892|57990)&(56914|57990)"
        "&(57990|58949)&(57990|59043)&(57990|59118)&(57990|60847)&(57990|120810)>"
    )
    assert to_string(from_string(text, CONJUNCTIVE), sort=True) == text


@pytest.mark.parametrize(
    "text,expected",
    [
        ("<(2|5)&(4|7|7)&(5)>", "<(5)&(4|7)>"),
        ("<(2|5)&(4|7)&(5)&()>", "<()>"),
        ("<(2|5)&(4|7)&(5|7)&>", "<(2|5)&(4|7)&(5|7)>"),
        ("<(2|5)&&(4|7)>", "<(2|5)&(4|7)>"),
        ("<(2|5)&(4|7)&(5|)>", "<(5)&(4|7)>"),
        ("<(|2||5)&(4||||||7)&(5|)>", "<(5)&(4|7)>"),
        ("(2|5)&(4|7)&(5)", "<(5)&(4|7)>"),
        ("<(2|5)&(4|7)&(5)", "<(5)&(4|7)>"),
        ("(2|5)&(4|7)&(5)>", "<(5)&(4|7)>"),
        ("< (2 | 5) & (4) >", "<(4)&(2|5)>"),
        ("<&(3)>", "<(3)>"),
        ("", "<>"),
    ],
)
def test_lenient_cnf_parsing(text, expected):
    assert to_string(from_string(text, CONJUNCTIVE), sort=True) == expected


@pytest.mark.parametrize(
    "text",
    [
        "<(2|5)&(4|7)(5)>",
        "<(2|5)+(4|7)+(5)>",
        "<2|5 4|7 5>",
        "<)2|5(&(4|7)&(5)>",
        "<2|5&4|7&5>",
        "<(2 5)>",
        "<(2|5>",
        "<(2&5)>",
        "<((2))>",
        "<(-2)>",
        "<(2)|(5)>",
        "<(²)>",
        "<(٣)>",
        "<(1|2³)>",
    ],
)
def test_invalid_cnf_text_fails(text):
    with pytest.raises(FormParseError):
        from_string(text, CONJUNCTIVE)


def test_only_ascii_digits_are_propositions():
    with pytest.raises(FormParseError) as exc:
        from_string("<(٣)>", CONJUNCTIVE)
    assert "TOKENIZE_FAILED" in str(exc.value)
    assert "'٣'" in str(exc.value)


def test_missing_connective_error_names_the_spot():
    with pytest.raises(FormParseError) as exc:
        from_string("<(2|5)&(4|7)(5)>", CONJUNCTIVE)
    message = str(exc.value)
    assert "missing connective between phrases" in message
    assert "pos=12" in message
    assert "near=" in message


def test_unknown_character_fails_in_tokenizer():
    with pytest.raises(FormParseError) as exc:
        from_string("<(2|5)+(4|7)>", CONJUNCTIVE)
    assert "TOKENIZE_FAILED" in str(exc.value)
    assert "'+'" in str(exc.value)


def test_wrapper_mismatch_is_a_warning(caplog):
    with caplog.at_level(logging.WARNING):
        from_string("(2|5)&(4|7)", CONJUNCTIVE)
    assert "FORM_WRAPPER_MISMATCH" in caplog.text


def test_dnf_standard_style():
    form = from_string("<(1&2)|(3)|(3&4)>", DISJUNCTIVE)
    assert {frozenset(p) for p in form} == {frozenset({1, 2}), frozenset({3})}
    assert to_string(form, sort=True) == "<(3)|(1&2)>"
    with pytest.raises(FormParseError):
        from_string("<(1|2)>", DISJUNCTIVE)


def test_csv_style():
    form = NormalForm(CONJUNCTIVE, [ProvenSet([2, 5]), ProvenSet([4, 7])])
    text = to_csv_string(form, sort=True)
    assert text == "(2;5),(4;7)"
    assert from_csv_string(text, CONJUNCTIVE) == form
    assert to_csv_string(from_csv_string("(1;2),,(3),", DISJUNCTIVE), sort=True) == "(3),(1;2)"
    with pytest.raises(FormParseError):
        from_csv_string("(1;2)(3)", DISJUNCTIVE)


@pytest.mark.parametrize(
    "form",
    [
        (cnf(1, 2) | cnf(3, 4)) & 70,
        (dnf(1, 2) & dnf(3, 4)) | 120810,
        dnf(0) & 64 & 65,
        NormalForm.true(DISJUNCTIVE),
    ],
)
def test_round_trip(form):
    assert from_string(to_string(form, sort=True), form.rules) == form
    assert from_csv_string(to_csv_string(form, sort=True), form.rules) == form
    assert from_string(to_string(form), form.rules) == form


def test_tokenize_reports_positions():
    style = load_connectives_config().style("CNF_STD")
    tokens = tokenize("(12|3)", style)
    assert [(t.type, t.value, t.pos) for t in tokens] == [
        ("PHRASE_OPEN", "(", 0),
        ("ELEMENT", "12", 1),
        ("INNER", "|", 3),
        ("ELEMENT", "3", 4),
        ("PHRASE_CLOSE", ")", 5),
    ]


def test_format_form_unsorted_keeps_insertion_order():
    style = load_connectives_config().style("DNF_STD")
    form = NormalForm(DISJUNCTIVE, [ProvenSet([9, 1]), ProvenSet([3])])
    assert format_form(form, style) == "<(1&9)|(3)>"
    assert format_form(form, style, sort=True) == "<(3)|(1&9)>"


def test_parse_form_logs_events(caplog):
    style = load_connectives_config().style("CNF_STD")
    with caplog.at_level(logging.INFO):
        parse_form("<(1)>", CONJUNCTIVE, style)
    assert "PARSE_START" in caplog.text
    assert "PARSE_OK" in caplog.text
