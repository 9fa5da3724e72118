from __future__ import annotations

from pathlib import Path

from normalforms.form_rules import rules_by_name
from normalforms.models import FormResult
from normalforms.proposition_labels import label_for


SUMMARY_SHEET = "Summary"
SUMMARY_COLUMNS = [
    "Row",
    "Kind",
    "Style",
    "Input",
    "Normalized",
    "Phrases",
    "ForbiddenRemoved",
    "MutexMerges",
    "Constant",
    "Status",
    "ErrorMessage",
]
HEADER_ROWS = 5


def constant_label(result: FormResult) -> str:
    if result.is_true:
        return "TRUE"
    if result.is_false:
        return "FALSE"
    return ""


def phrase_to_text(result: FormResult, phrase: list[int], labels: dict[int, str]) -> str:
    inner = rules_by_name(result.kind or "").inner.value
    return f" {inner} ".join(label_for(labels, p) for p in phrase)


def write_summary_sheet(sheet, results: list[FormResult]) -> None:
    sheet.append(SUMMARY_COLUMNS)
    for result in results:
        sheet.append(
            [
                result.row.row_number,
                result.kind,
                result.style,
                result.row.formula,
                result.normalized,
                len(result.phrases),
                result.forbidden_removed,
                result.mutex_merges,
                constant_label(result),
                result.status,
                result.error,
            ]
        )


def write_form_sheet(workbook, result: FormResult, labels: dict[int, str]) -> None:
    sheet = workbook.create_sheet(result.sheet_name)
    sheet["A1"] = "Kind"
    sheet["B1"] = result.kind
    sheet["A2"] = "Input"
    sheet["B2"] = result.row.formula
    sheet["A3"] = "Normalized"
    sheet["B3"] = result.normalized
    sheet["A4"] = "Constant"
    sheet["B4"] = constant_label(result)

    start_row = HEADER_ROWS + 1
    sheet.cell(row=start_row, column=1, value="Phrase")
    sheet.cell(row=start_row, column=2, value="Propositions")
    sheet.cell(row=start_row, column=3, value="Labels")
    for offset, phrase in enumerate(result.phrases, start=1):
        row_index = start_row + offset
        sheet.cell(row=row_index, column=1, value=f"Phrase {offset}")
        sheet.cell(row=row_index, column=2, value=", ".join(str(p) for p in phrase))
        sheet.cell(row=row_index, column=3, value=phrase_to_text(result, phrase, labels))


def write_results_workbook(path: Path, results: list[FormResult], labels: dict[int, str]) -> None:
    from openpyxl import Workbook

    workbook = Workbook()
    summary = workbook.active
    summary.title = SUMMARY_SHEET
    write_summary_sheet(summary, results)
    for result in results:
        if result.status == "OK" and result.sheet_name:
            write_form_sheet(workbook, result, labels)
    workbook.save(path)
