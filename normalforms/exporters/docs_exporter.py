from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from normalforms.exporters.xlsx_exporter import constant_label, phrase_to_text
from normalforms.models import FormResult


DOC_COLUMNS = [
    "Row",
    "SheetName",
    "Kind",
    "Style",
    "PhraseName",
    "PhraseText",
    "PropositionCount",
    "Input",
    "Normalized",
    "Status",
    "ErrorMessage",
]


def _result_rows(result: FormResult, labels: dict[int, str]) -> list[list[object]]:
    base = [result.row.row_number, result.sheet_name, result.kind, result.style]
    tail = [result.row.formula, result.normalized, result.status, result.error]
    if result.status != "OK" or not result.phrases:
        # Failed rows and constant-false/true forms without phrases get one line.
        return [base + ["", constant_label(result), 0] + tail]
    return [
        base + [f"Phrase {idx}", phrase_to_text(result, phrase, labels), len(phrase)] + tail
        for idx, phrase in enumerate(result.phrases, start=1)
    ]


def _result_json(result: FormResult, labels: dict[int, str]) -> dict[str, object]:
    return {
        "row": result.row.row_number,
        "sheetName": result.sheet_name,
        "kind": result.kind,
        "style": result.style,
        "input": result.row.formula,
        "normalized": result.normalized,
        "phrases": result.phrases,
        "labels": {str(p): labels[p] for phrase in result.phrases for p in phrase if p in labels},
        "forbiddenRemoved": result.forbidden_removed,
        "mutexMerges": result.mutex_merges,
        "constant": constant_label(result) or None,
        "status": result.status,
        "error": result.error,
    }


def write_docs_files(folder: Path, results: list[FormResult], labels: dict[int, str]) -> None:
    rows: list[list[object]] = []
    for result in results:
        rows.extend(_result_rows(result, labels))

    csv_path = folder / "normalized.csv"
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(DOC_COLUMNS)
        writer.writerows(rows)

    json_path = folder / "normalized.json"
    data = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "forms": [_result_json(result, labels) for result in results],
        "summary": {
            "rowsTotal": len(results),
            "rowsSucceeded": len([r for r in results if r.status == "OK"]),
            "rowsFailed": len([r for r in results if r.status != "OK"]),
        },
    }
    json_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
