from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


FormStyle = Literal["STD", "CSV"]


@dataclass(frozen=True)
class FormRow:
    row_number: int
    kind: str | None
    style: str | None
    formula: str | None
    mutex_nodes: str | None
    join_points: str | None
    forbidden_siblings: str | None


@dataclass
class FormResult:
    row: FormRow
    sheet_name: str | None
    kind: str | None
    style: FormStyle
    normalized: str | None
    phrases: list[list[int]] = field(default_factory=list)
    forbidden_removed: int = 0
    mutex_merges: int = 0
    is_true: bool = False
    is_false: bool = False
    status: str = "OK"
    error: str | None = None
