from __future__ import annotations

from datetime import datetime
from pathlib import Path
import re

from normalforms.proven_set import ProvenSet


def sanitize_excel_sheet_name(name: str) -> str:
    cleaned = re.sub(r"[\[\]\*\?/\\:]", "", name)
    cleaned = cleaned.replace("'", "")
    return cleaned.strip()


def ensure_unique_sheet_name(name: str, used: set[str]) -> str:
    base = sanitize_excel_sheet_name(name)
    trimmed = base[:31]
    candidate = trimmed
    if candidate not in used:
        used.add(candidate)
        return candidate
    suffix = 1
    while True:
        suffix_text = f"_{suffix}"
        candidate = (trimmed[: 31 - len(suffix_text)] + suffix_text).rstrip()
        if candidate not in used:
            used.add(candidate)
            return candidate
        suffix += 1


def create_run_output_dir(output_root: str) -> Path:
    """Create a per-run output directory under the user-selected root folder.

    Folder name format: "YYYY-MM-DD HH-mm-ss-fff" (Windows-safe; no ":")
    If the folder already exists, suffixes "_1", "_2", ... are appended.
    """
    root = Path(output_root).expanduser()
    root.mkdir(parents=True, exist_ok=True)

    now = datetime.now()
    ms = now.microsecond // 1000
    base_name = f"{now.strftime('%Y-%m-%d %H-%M-%S')}-{ms:03d}"

    candidate = root / base_name
    if not candidate.exists():
        candidate.mkdir()
        return candidate.resolve()

    suffix = 1
    while True:
        candidate = root / f"{base_name}_{suffix}"
        if not candidate.exists():
            candidate.mkdir()
            return candidate.resolve()
        suffix += 1


_PROPOSITION_LIST_RE = re.compile(r"^\s*\d+(\s*[,;\s]\s*\d+)*\s*$")


def parse_proposition_list(value: object) -> ProvenSet:
    """Parse "3, 7" / "3;7" / "3 7" (or a bare int from a spreadsheet cell)."""
    if value is None:
        return ProvenSet()
    if isinstance(value, int) and not isinstance(value, bool):
        return ProvenSet([value])
    if isinstance(value, float) and value.is_integer():
        return ProvenSet([int(value)])
    text = str(value).strip()
    if not text:
        return ProvenSet()
    if not _PROPOSITION_LIST_RE.match(text):
        raise ValueError(f"Invalid proposition list: {text!r} (expected non-negative ints separated by ',')")
    return ProvenSet(int(piece) for piece in re.split(r"[,;\s]+", text) if piece)
