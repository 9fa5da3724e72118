from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from normalforms.form_rules import FormRules

logger = logging.getLogger(__name__)


class ConnectivesConfigError(ValueError):
    pass


REQUIRED_STYLES = {"CNF_STD", "DNF_STD", "CNF_CSV", "DNF_CSV"}
REQUIRED_KEYS = {"OUTER", "INNER", "PHRASE_OPEN", "PHRASE_CLOSE"}
WRAPPER_KEYS = {"FORM_OPEN", "FORM_CLOSE"}


def _default_config_path() -> Path:
    # normalforms/connectives.py -> normalforms/config/connectives.json
    return Path(__file__).resolve().parent / "config" / "connectives.json"


@dataclass(frozen=True)
class PrintingConnectives:
    """Token set for one text style of a normal form.

    `outer` separates phrases, `inner` separates propositions inside a phrase.
    Empty `form_open`/`form_close` mean the style has no outer wrapper.
    """

    name: str
    outer: str
    inner: str
    phrase_open: str
    phrase_close: str
    form_open: str = ""
    form_close: str = ""

    @property
    def token_types(self) -> list[tuple[str, str]]:
        """Return [(token, type)] sorted by longest-match-first."""
        ops = [
            (self.outer, "OUTER"),
            (self.inner, "INNER"),
            (self.phrase_open, "PHRASE_OPEN"),
            (self.phrase_close, "PHRASE_CLOSE"),
        ]
        ops.sort(key=lambda item: len(item[0]), reverse=True)
        return ops

    def summary(self) -> dict[str, str]:
        # For logging/debugging only.
        return {
            "OUTER": self.outer,
            "INNER": self.inner,
            "PHRASE": self.phrase_open + self.phrase_close,
            "FORM": self.form_open + self.form_close,
        }


@dataclass(frozen=True)
class ConnectivesConfig:
    styles: dict[str, PrintingConnectives]
    source_path: Path

    def style(self, name: str) -> PrintingConnectives:
        try:
            return self.styles[name]
        except KeyError:
            raise ConnectivesConfigError(
                f"Unknown connectives style '{name}' (available: {sorted(self.styles)})"
            ) from None

    def style_for(self, rules: FormRules, csv: bool = False) -> PrintingConnectives:
        return self.style(f"{rules.name}_{'CSV' if csv else 'STD'}")


def _validate_token(style: str, key: str, value: Any, *, required: bool) -> str:
    if not isinstance(value, str):
        raise ConnectivesConfigError(f"CONFIG_LOAD_FAILED: '{style}.{key}' must be a string")
    if required and not value:
        raise ConnectivesConfigError(f"CONFIG_LOAD_FAILED: '{style}.{key}' must not be empty")
    if any(ch.isdigit() or ch.isspace() for ch in value):
        raise ConnectivesConfigError(
            f"CONFIG_LOAD_FAILED: '{style}.{key}' must not contain digits or whitespace (got {value!r})"
        )
    return value


def _build_style(name: str, raw: Any) -> PrintingConnectives:
    if not isinstance(raw, dict):
        raise ConnectivesConfigError(f"CONFIG_LOAD_FAILED: style '{name}' must be an object/dict")
    missing = REQUIRED_KEYS.difference(raw.keys())
    if missing:
        raise ConnectivesConfigError(f"CONFIG_LOAD_FAILED: style '{name}' missing required keys: {sorted(missing)}")

    tokens = {key: _validate_token(name, key, raw[key], required=True) for key in REQUIRED_KEYS}
    for key in WRAPPER_KEYS:
        tokens[key] = _validate_token(name, key, raw.get(key, ""), required=False)

    seen: dict[str, str] = {}
    for key in sorted(REQUIRED_KEYS):
        token = tokens[key]
        if token in seen:
            raise ConnectivesConfigError(
                f"CONFIG_LOAD_FAILED: duplicate token '{token}' in '{name}.{key}' and '{name}.{seen[token]}'"
            )
        seen[token] = key

    return PrintingConnectives(
        name=name,
        outer=tokens["OUTER"],
        inner=tokens["INNER"],
        phrase_open=tokens["PHRASE_OPEN"],
        phrase_close=tokens["PHRASE_CLOSE"],
        form_open=tokens["FORM_OPEN"],
        form_close=tokens["FORM_CLOSE"],
    )


_CACHE: dict[str, ConnectivesConfig] = {}


def load_connectives_config(path: Path | None = None, *, log_extra: dict[str, str] | None = None) -> ConnectivesConfig:
    """Load and validate the connectives config.

    Special logs:
    - CONFIG_LOAD_START / CONFIG_LOAD_OK / CONFIG_LOAD_FAILED
    """
    resolved = (path or _default_config_path()).resolve()
    cache_key = str(resolved)
    if cache_key in _CACHE:
        return _CACHE[cache_key]

    if log_extra:
        logger.info("CONFIG_LOAD_START: path=%s", resolved, extra=log_extra)
    else:
        logger.info("CONFIG_LOAD_START: path=%s", resolved)

    try:
        raw = json.loads(resolved.read_text(encoding="utf-8"))
    except Exception as exc:
        if log_extra:
            logger.error("CONFIG_LOAD_FAILED: path=%s error=%s", resolved, exc, exc_info=True, extra=log_extra)
        else:
            logger.error("CONFIG_LOAD_FAILED: path=%s error=%s", resolved, exc, exc_info=True)
        raise ConnectivesConfigError(f"CONFIG_LOAD_FAILED: could not load connectives config at {resolved}") from exc

    try:
        if not isinstance(raw, dict):
            raise ConnectivesConfigError("CONFIG_LOAD_FAILED: connectives config JSON must be an object/dict")
        missing = REQUIRED_STYLES.difference(raw.keys())
        if missing:
            raise ConnectivesConfigError(f"CONFIG_LOAD_FAILED: missing required styles: {sorted(missing)}")
        styles = {name: _build_style(name, value) for name, value in raw.items()}
    except ConnectivesConfigError as exc:
        if log_extra:
            logger.error("CONFIG_LOAD_FAILED: path=%s error=%s", resolved, exc, extra=log_extra)
        else:
            logger.error("CONFIG_LOAD_FAILED: path=%s error=%s", resolved, exc)
        raise

    config = ConnectivesConfig(styles=styles, source_path=resolved)
    _CACHE[cache_key] = config

    summary = {name: style.summary() for name, style in styles.items()}
    if log_extra:
        logger.info("CONFIG_LOAD_OK: path=%s styles=%s", resolved, summary, extra=log_extra)
    else:
        logger.info("CONFIG_LOAD_OK: path=%s styles=%s", resolved, summary)

    return config
