from __future__ import annotations

import csv
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_HEADER_ID_MARKERS = {"id", "proposition", "proposition id", "proposition_id"}
_HEADER_LABEL_MARKERS = {"label", "name"}


class PropositionLabelsError(ValueError):
    pass


def _normalize(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _is_id(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _is_header_row(id_value: str, label: str) -> bool:
    return id_value.casefold() in _HEADER_ID_MARKERS or label.casefold() in _HEADER_LABEL_MARKERS


def label_for(labels: dict[int, str], proposition: int) -> str:
    return labels.get(proposition) or str(proposition)


def load_proposition_labels_tsv(
    path: str | Path,
    *,
    log_extra: dict[str, str] | None = None,
) -> dict[int, str]:
    """Load proposition labels from a UTF-8 TSV file.

    Required format:
    - TAB-delimited, UTF-8
    - columns (1-based): 1=proposition id (non-negative int), 2=label
    - an optional header row is skipped
    """
    labels_path = Path(path).expanduser().resolve()
    extra = log_extra or {}

    logger.info("CONFIG_LOAD_START: labels_path=%s", labels_path, extra=extra)

    labels: dict[int, str] = {}
    duplicate_ids: list[int] = []
    try:
        with labels_path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.reader(handle, delimiter="\t")
            for row_index, row in enumerate(reader, start=1):
                if not row:
                    continue

                padded = row + [""] * max(0, 2 - len(row))
                id_value = _normalize(padded[0])
                label = _normalize(padded[1])

                if row_index == 1 and (_is_header_row(id_value, label) or (id_value and not _is_id(id_value))):
                    continue
                if not id_value:
                    continue
                if not _is_id(id_value):
                    raise PropositionLabelsError(
                        f"row {row_index}: proposition id must be a non-negative int (got {id_value!r})"
                    )

                proposition = int(id_value)
                if proposition in labels:
                    duplicate_ids.append(proposition)
                labels[proposition] = label
    except Exception as exc:
        logger.error(
            "CONFIG_LOAD_FAILED: labels_path=%s error=%s",
            labels_path,
            exc,
            exc_info=True,
            extra=extra,
        )
        raise PropositionLabelsError(f"CONFIG_LOAD_FAILED: could not read labels file '{labels_path}'") from exc

    if duplicate_ids:
        unique_duplicate_ids = list(dict.fromkeys(duplicate_ids))
        logger.warning(
            "DUPLICATE_PROPOSITION_LABEL: duplicates=%d sample=%s",
            len(unique_duplicate_ids),
            unique_duplicate_ids[:20],
            extra=extra,
        )

    logger.info("CONFIG_LOAD_OK: labels_path=%s labels=%d", labels_path, len(labels), extra=extra)
    return labels
