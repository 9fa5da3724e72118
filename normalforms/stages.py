from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    RUN = "RUN"
    LOAD_CONNECTIVES_CONFIG = "LOAD_CONNECTIVES_CONFIG"
    LOAD_PROPOSITION_LABELS = "LOAD_PROPOSITION_LABELS"
    LOAD_WORKBOOK = "LOAD_WORKBOOK"
    READ_ROWS = "READ_ROWS"
    ROW_VALIDATE = "ROW_VALIDATE"
    ROW_PARSE = "ROW_PARSE"
    ROW_REMOVE_FORBIDDEN = "ROW_REMOVE_FORBIDDEN"
    ROW_MUTEX_SIMPLIFY = "ROW_MUTEX_SIMPLIFY"
    ROW_MAX_PHRASES = "ROW_MAX_PHRASES"
    EXPORT_WORKBOOK = "EXPORT_WORKBOOK"
    EXPORT_DOCS = "EXPORT_DOCS"
    NORMALIZE = "NORMALIZE"
