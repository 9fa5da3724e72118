from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from normalforms.connectives import ConnectivesConfig, PrintingConnectives, load_connectives_config
from normalforms.form_rules import FormRules
from normalforms.normal_form import NormalForm
from normalforms.proven_set import ProvenSet

logger = logging.getLogger(__name__)


class FormParseError(ValueError):
    pass


@dataclass(frozen=True)
class Token:
    type: str
    value: str
    pos: int


def _near(text: str, pos: int, *, window: int = 40) -> str:
    start = max(0, pos - window)
    end = min(len(text), pos + window)
    snippet = text[start:end]
    return snippet.replace("\n", " ").replace("\r", " ").replace("\t", " ")


def _strip_form_wrapper(
    text: str,
    connectives: PrintingConnectives,
    log_extra: dict[str, str] | None,
) -> tuple[str, int]:
    """Peel the outer wrapper off `text`; return the body and its offset.

    A missing or one-sided wrapper is tolerated with a warning.
    """
    if not connectives.form_open and not connectives.form_close:
        return text, 0

    body = text
    offset = 0
    has_open = bool(connectives.form_open) and body.startswith(connectives.form_open)
    if has_open:
        body = body[len(connectives.form_open):]
        offset = len(connectives.form_open)
    has_close = bool(connectives.form_close) and body.endswith(connectives.form_close)
    if has_close:
        body = body[: len(body) - len(connectives.form_close)]

    if has_open != has_close or (not has_open and text):
        logger.warning(
            "FORM_WRAPPER_MISMATCH: expected '%s...%s' open=%s close=%s near='%s'",
            connectives.form_open,
            connectives.form_close,
            has_open,
            has_close,
            _near(text, 0),
            extra=log_extra or {},
        )
    return body, offset


def _is_element_char(ch: str) -> bool:
    # ASCII digits only
    return "0" <= ch <= "9"


def tokenize(text: str, connectives: PrintingConnectives, *, offset: int = 0, source: str | None = None) -> list[Token]:
    """Split `text` into OUTER / INNER / PHRASE_OPEN / PHRASE_CLOSE / ELEMENT tokens.

    Token positions are reported relative to `source` (the full input), of
    which `text` starts at `offset`.
    """
    source = text if source is None else source
    ops = connectives.token_types
    tokens: list[Token] = []
    i = 0
    while i < len(text):
        if text[i].isspace():
            i += 1
            continue

        # Connectives and delimiters (longest-match-first)
        for op_token, op_type in ops:
            if text.startswith(op_token, i):
                tokens.append(Token(op_type, op_token, offset + i))
                i += len(op_token)
                break
        else:
            if not _is_element_char(text[i]):
                pos = offset + i
                raise FormParseError(
                    f"TOKENIZE_FAILED: unknown character '{text[i]}' at pos={pos} "
                    f"near='{_near(source, pos)}' expected={connectives.summary()}"
                )
            start = i
            while i < len(text) and _is_element_char(text[i]):
                i += 1
            tokens.append(Token("ELEMENT", text[start:i], offset + start))

    return tokens


class _State(Enum):
    EXPECT_PHRASE = "expect-phrase"
    IN_PHRASE = "in-phrase"
    AFTER_PHRASE = "after-phrase"


_SKIP = "skip"
_OPEN = "open"
_ELEMENT = "element"
_SEPARATOR = "separator"
_CLOSE = "close"

# (state, token type) -> (next state, action). Missing pairs are errors.
_TRANSITIONS: dict[tuple[_State, str], tuple[_State, str]] = {
    (_State.EXPECT_PHRASE, "OUTER"): (_State.EXPECT_PHRASE, _SKIP),
    (_State.EXPECT_PHRASE, "PHRASE_OPEN"): (_State.IN_PHRASE, _OPEN),
    (_State.IN_PHRASE, "ELEMENT"): (_State.IN_PHRASE, _ELEMENT),
    (_State.IN_PHRASE, "INNER"): (_State.IN_PHRASE, _SEPARATOR),
    (_State.IN_PHRASE, "PHRASE_CLOSE"): (_State.AFTER_PHRASE, _CLOSE),
    (_State.AFTER_PHRASE, "OUTER"): (_State.EXPECT_PHRASE, _SKIP),
}

_EXPECTED = {
    _State.EXPECT_PHRASE: "phrase start",
    _State.IN_PHRASE: "proposition, inner connective or phrase end",
    _State.AFTER_PHRASE: "outer connective or end of input",
}

_ACCEPTING = {_State.EXPECT_PHRASE, _State.AFTER_PHRASE}


class FormParser:
    def __init__(self, tokens: list[Token], text: str):
        self.tokens = tokens
        self.text = text

    def _error(self, message: str, pos: int) -> FormParseError:
        return FormParseError(f"PARSE_FAILED: {message} at pos={pos} near='{_near(self.text, pos)}'")

    def parse(self) -> list[ProvenSet]:
        phrases: list[ProvenSet] = []
        current: list[int] = []
        previous: Token | None = None
        state = _State.EXPECT_PHRASE

        for token in self.tokens:
            transition = _TRANSITIONS.get((state, token.type))
            if transition is None:
                if state is _State.AFTER_PHRASE and token.type == "PHRASE_OPEN":
                    raise self._error("missing connective between phrases", token.pos)
                raise self._error(
                    f"expected {_EXPECTED[state]} but got {token.type} ('{token.value}')",
                    token.pos,
                )
            state, action = transition

            if action == _OPEN:
                current = []
            elif action == _ELEMENT:
                if previous is not None and previous.type == "ELEMENT":
                    raise self._error("missing connective between propositions", token.pos)
                current.append(int(token.value))
            elif action == _CLOSE:
                phrases.append(ProvenSet(current))
            previous = token

        if state not in _ACCEPTING:
            raise self._error("unexpected end of input inside a phrase", len(self.text))
        return phrases


def parse_form(
    text: str,
    rules: FormRules,
    connectives: PrintingConnectives,
    *,
    log_extra: dict[str, str] | None = None,
) -> NormalForm:
    """Parse `text` in the given style into a form with absorption applied.

    Special logs:
    - PARSE_START / PARSE_OK / PARSE_FAILED
    """
    extra = log_extra or {}
    logger.info("PARSE_START: style=%s len=%d", connectives.name, len(text), extra=extra)

    stripped = text.strip()
    lead = len(text) - len(text.lstrip())
    body, offset = _strip_form_wrapper(stripped, connectives, log_extra)

    try:
        tokens = tokenize(body, connectives, offset=lead + offset, source=text)
    except FormParseError as exc:
        logger.error("%s", exc, extra=extra)
        raise

    try:
        phrases = FormParser(tokens, text).parse()
    except FormParseError as exc:
        token_dump = " ".join(f"{t.type}:{t.value}@{t.pos}" for t in tokens[:200])
        if len(tokens) > 200:
            token_dump += " ... (truncated)"
        logger.error("%s token_dump=%s", exc, token_dump, extra=extra)
        raise

    form = NormalForm(rules, phrases)
    logger.info("PARSE_OK: tokens=%d phrases=%d kept=%d", len(tokens), len(phrases), len(form), extra=extra)
    return form


def phrase_sort_key(phrase: ProvenSet) -> tuple[int, tuple[int, ...]]:
    return phrase.cardinality(), tuple(phrase)


def format_phrase(phrase: ProvenSet, connectives: PrintingConnectives) -> str:
    return connectives.phrase_open + connectives.inner.join(str(p) for p in phrase) + connectives.phrase_close


def format_form(form: NormalForm, connectives: PrintingConnectives, *, sort: bool = False) -> str:
    """Render `form` in the given style.

    Propositions are always ascending. With `sort`, phrases are ordered by
    size, then element-wise, so equal forms render identically.
    """
    phrases = form.phrases()
    if sort:
        phrases.sort(key=phrase_sort_key)
    body = connectives.outer.join(format_phrase(phrase, connectives) for phrase in phrases)
    return connectives.form_open + body + connectives.form_close


def _config(config: ConnectivesConfig | None) -> ConnectivesConfig:
    return config or load_connectives_config()


def to_string(form: NormalForm, *, sort: bool = False, config: ConnectivesConfig | None = None) -> str:
    return format_form(form, _config(config).style_for(form.rules), sort=sort)


def from_string(text: str, rules: FormRules, *, config: ConnectivesConfig | None = None) -> NormalForm:
    return parse_form(text, rules, _config(config).style_for(rules))


def to_csv_string(form: NormalForm, *, sort: bool = False, config: ConnectivesConfig | None = None) -> str:
    return format_form(form, _config(config).style_for(form.rules, csv=True), sort=sort)


def from_csv_string(text: str, rules: FormRules, *, config: ConnectivesConfig | None = None) -> NormalForm:
    return parse_form(text, rules, _config(config).style_for(rules, csv=True))
