from __future__ import annotations

import json
from pathlib import Path

from openpyxl import Workbook, load_workbook

from normalforms.pipeline import RESULTS_WORKBOOK, process_workbook


def _write_workbook(path: Path, rows: list[dict[str, str | None]]) -> None:
    wb = Workbook()
    ws = wb.active
    ws.append(["Kind", "Style", "Formula", "Mutex", "Joins", "Forbidden"])
    for row in rows:
        ws.append([row.get("A"), row.get("B"), row.get("C"), row.get("D"), row.get("E"), row.get("F")])
    wb.save(path)


def _by_row(results):
    return {result.row.row_number: result for result in results}


def test_process_workbook_happy_path_creates_outputs(tmp_path):
    input_path = tmp_path / "input.xlsx"
    _write_workbook(
        input_path,
        [
            {"A": "CNF", "C": "<(2|5)&(4|7|7)&(5)>"},
            {"A": "dnf", "B": "STD", "C": "<(1&5)|(1&6)|(3)>", "D": "5,6", "E": "9"},
            {"A": "CNF", "B": "csv", "C": "(2;5),(5)"},
        ],
    )

    output_root = tmp_path / "out"
    results = _by_row(process_workbook(input_path, output_root, 2000))

    assert all(result.status == "OK" for result in results.values())
    assert results[2].normalized == "<(5)&(4|7)>"
    assert results[2].phrases == [[5], [4, 7]]
    assert results[3].normalized == "<(3)|(1&9)>"
    assert results[3].mutex_merges == 1
    assert results[4].normalized == "(5)"
    assert results[4].style == "CSV"

    wb = load_workbook(output_root / RESULTS_WORKBOOK)
    assert wb.sheetnames == ["Summary", "R2_CNF", "R3_DNF", "R4_CNF"]
    assert wb["Summary"]["E2"].value == "<(5)&(4|7)>"
    assert wb["R3_DNF"]["C8"].value == "1 AND 9"

    assert (output_root / "normalized.csv").exists()
    data = json.loads((output_root / "normalized.json").read_text(encoding="utf-8"))
    assert data["summary"] == {"rowsTotal": 3, "rowsSucceeded": 3, "rowsFailed": 0}


def test_failed_rows_do_not_stop_the_run(tmp_path):
    input_path = tmp_path / "input.xlsx"
    _write_workbook(
        input_path,
        [
            {"A": "CNF", "C": "<(2|5)&(4|7)(5)>"},
            {"A": "XNF", "C": "<(1)>"},
            {"A": "CNF", "C": "<(1|5)>", "D": "5,6", "E": "9"},
            {"A": "DNF", "C": "<(1&5)>", "D": "5,6"},
            {"A": "DNF", "C": "<(1)|(2)>", "D": "5,x", "E": "9"},
            {"A": "CNF"},
            {"A": "DNF", "C": "<(1)>"},
        ],
    )

    output_root = tmp_path / "out"
    results = _by_row(process_workbook(input_path, output_root, 2000))

    assert results[2].status == "FAILED"
    assert "missing connective between phrases" in results[2].error
    assert "Unknown form kind" in results[3].error
    assert "only apply to DNF rows" in results[4].error
    assert "without join points" in results[5].error
    assert "Column D" in results[6].error
    assert "Missing formula" in results[7].error
    assert results[8].status == "OK"

    wb = load_workbook(output_root / RESULTS_WORKBOOK)
    assert wb.sheetnames == ["Summary", "R8_DNF"]


def test_process_workbook_enforces_max_phrases(tmp_path):
    input_path = tmp_path / "input.xlsx"
    _write_workbook(input_path, [{"A": "DNF", "C": "<(1)|(2)|(3)>"}])

    results = process_workbook(input_path, tmp_path / "out", 2)

    assert results[0].status == "FAILED"
    assert "Phrase limit exceeded" in results[0].error


def test_forbidden_siblings_are_purged_before_mutex_merge(tmp_path):
    input_path = tmp_path / "input.xlsx"
    _write_workbook(
        input_path,
        [{"A": "DNF", "C": "<(1&5)|(1&6)|(5&6&7)>", "D": "5,6", "E": "9", "F": "5,6"}],
    )

    result = process_workbook(input_path, tmp_path / "out", 2000)[0]

    assert result.status == "OK"
    assert result.forbidden_removed == 1
    assert result.mutex_merges == 1
    assert result.normalized == "<(1&9)>"


def test_constant_forms_are_reported(tmp_path):
    input_path = tmp_path / "input.xlsx"
    _write_workbook(
        input_path,
        [
            {"A": "CNF", "C": "<>"},
            {"A": "CNF", "C": "<(1|2)&()>"},
        ],
    )

    output_root = tmp_path / "out"
    results = _by_row(process_workbook(input_path, output_root, 2000))

    assert results[2].is_true
    assert results[3].is_false
    assert results[3].normalized == "<()>"
    wb = load_workbook(output_root / RESULTS_WORKBOOK)
    assert wb["Summary"]["I2"].value == "TRUE"
    assert wb["Summary"]["I3"].value == "FALSE"
