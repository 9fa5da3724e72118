from __future__ import annotations

import logging
from pathlib import Path

from normalforms.connectives import ConnectivesConfig, ConnectivesConfigError, load_connectives_config
from normalforms.exporters.docs_exporter import write_docs_files
from normalforms.exporters.xlsx_exporter import write_results_workbook
from normalforms.form_rules import DISJUNCTIVE, FormRules, rules_by_name
from normalforms.models import FormResult, FormRow, FormStyle
from normalforms.mutex import remove_forbidden_phrases, simplify_with_mutex_nodes
from normalforms.normal_form import NormalForm
from normalforms.proposition_labels import PropositionLabelsError, load_proposition_labels_tsv
from normalforms.proven_set import ProvenSet
from normalforms.stages import Stage
from normalforms.text_format import FormParseError, format_form, parse_form, phrase_sort_key
from normalforms.utils import ensure_unique_sheet_name, parse_proposition_list

logger = logging.getLogger(__name__)

RESULTS_WORKBOOK = "normalized.xlsx"
STYLES: tuple[FormStyle, ...] = ("STD", "CSV")


class RowFailure(Exception):
    pass


def _extra(stage: Stage, section: str | None) -> dict[str, str]:
    return {"stage": stage.value, "section": section or "-"}


def _mark_logged(exc: BaseException) -> None:
    try:
        setattr(exc, "_normalforms_logged", True)
    except AttributeError:
        pass


def _is_logged(exc: BaseException) -> bool:
    return bool(getattr(exc, "_normalforms_logged", False))


def _run_stage(stage: Stage, section: str | None, func, expected_exceptions: tuple[type[BaseException], ...] = ()):
    logger.info("START", extra=_extra(stage, section))
    try:
        value = func()
    except expected_exceptions as exc:
        logger.error("FAILED: %s", exc, exc_info=True, extra=_extra(stage, section))
        _mark_logged(exc)
        raise
    except Exception as exc:
        logger.exception("FAILED: unexpected error", extra=_extra(stage, section))
        _mark_logged(exc)
        raise
    else:
        logger.info("OK", extra=_extra(stage, section))
        return value


def _cell_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _format_row_ref(row: FormRow) -> str:
    formula = row.formula or ""
    formula_short = formula if len(formula) <= 60 else (formula[:57] + "...")
    return f"row={row.row_number} kind={row.kind or ''} formula={formula_short}"


def build_sheet_name(row: FormRow) -> str:
    return f"R{row.row_number}_{(row.kind or 'FORM').upper()}"


def read_form_rows(sheet) -> list[FormRow]:
    """Rows 2.. of the sheet; columns A-F = kind, style, formula, mutex, joins, forbidden."""
    rows: list[FormRow] = []
    for row_number, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2):
        cells = list(row) + [None] * max(0, 6 - len(row))
        if all(_cell_text(cell) is None for cell in cells[:6]):
            continue
        rows.append(
            FormRow(
                row_number=row_number,
                kind=_cell_text(cells[0]),
                style=_cell_text(cells[1]),
                formula=_cell_text(cells[2]),
                mutex_nodes=_cell_text(cells[3]),
                join_points=_cell_text(cells[4]),
                forbidden_siblings=_cell_text(cells[5]),
            )
        )
    return rows


def _validate_row(row: FormRow) -> tuple[FormRules, FormStyle]:
    if not row.kind:
        raise RowFailure("Missing form kind (expected CNF or DNF)")
    try:
        rules = rules_by_name(row.kind)
    except ValueError as exc:
        raise RowFailure(str(exc)) from exc
    style = (row.style or "STD").upper()
    if style not in STYLES:
        raise RowFailure(f"Unknown style: {row.style!r} (expected STD or CSV)")
    if row.formula is None:
        raise RowFailure("Missing formula")
    if rules is not DISJUNCTIVE and (row.mutex_nodes or row.forbidden_siblings):
        raise RowFailure("Mutex and forbidden-sibling columns only apply to DNF rows")
    if row.mutex_nodes and not row.join_points:
        raise RowFailure("Mutex pair given without join points")
    return rules, style  # type: ignore[return-value]


def _proposition_list(value: str | None, column: str) -> ProvenSet:
    try:
        return parse_proposition_list(value)
    except ValueError as exc:
        raise RowFailure(f"Column {column}: {exc}") from exc


def normalize_row(
    row: FormRow,
    config: ConnectivesConfig,
    max_phrases: int,
    sheet_name: str,
) -> FormResult:
    row_ref = _format_row_ref(row)
    rules, style = _run_stage(Stage.ROW_VALIDATE, row_ref, lambda: _validate_row(row), expected_exceptions=(RowFailure,))
    connectives = config.style_for(rules, csv=style == "CSV")

    form: NormalForm = _run_stage(
        Stage.ROW_PARSE,
        row_ref,
        lambda: parse_form(str(row.formula), rules, connectives, log_extra=_extra(Stage.ROW_PARSE, row_ref)),
        expected_exceptions=(FormParseError,),
    )

    forbidden_removed = 0
    if row.forbidden_siblings:
        forbidden = _proposition_list(row.forbidden_siblings, "F")
        forbidden_removed = _run_stage(
            Stage.ROW_REMOVE_FORBIDDEN,
            row_ref,
            lambda: remove_forbidden_phrases(form, forbidden),
        )

    mutex_merges = 0
    if row.mutex_nodes:
        mutex_nodes = _proposition_list(row.mutex_nodes, "D")
        join_points = _proposition_list(row.join_points, "E")
        if mutex_nodes.cardinality() != 2:
            logger.warning(
                "MUTEX_SKIPPED: only mutex pairs are supported, got %s",
                mutex_nodes,
                extra=_extra(Stage.ROW_MUTEX_SIMPLIFY, row_ref),
            )
        mutex_merges = _run_stage(
            Stage.ROW_MUTEX_SIMPLIFY,
            row_ref,
            lambda: simplify_with_mutex_nodes(
                form,
                mutex_nodes,
                join_points,
                log_extra=_extra(Stage.ROW_MUTEX_SIMPLIFY, row_ref),
            ),
        )

    def _check_phrase_limit() -> None:
        if len(form) > max_phrases:
            raise RowFailure(f"Phrase limit exceeded ({len(form)} > {max_phrases})")

    _run_stage(Stage.ROW_MAX_PHRASES, row_ref, _check_phrase_limit, expected_exceptions=(RowFailure,))

    return FormResult(
        row=row,
        sheet_name=sheet_name,
        kind=rules.name,
        style=style,
        normalized=format_form(form, connectives, sort=True),
        phrases=[list(phrase) for phrase in sorted(form.phrases(), key=phrase_sort_key)],
        forbidden_removed=forbidden_removed,
        mutex_merges=mutex_merges,
        is_true=form.is_true(),
        is_false=form.is_false(),
    )


def _failed_result(row: FormRow, exc: BaseException) -> FormResult:
    return FormResult(
        row=row,
        sheet_name=None,
        kind=row.kind,
        style="CSV" if (row.style or "").upper() == "CSV" else "STD",
        normalized=None,
        status="FAILED",
        error=str(exc),
    )


def process_workbook(
    input_path: Path,
    output_root: Path,
    max_phrases: int,
    labels_path: Path | None = None,
) -> list[FormResult]:
    from openpyxl import load_workbook

    logger.info("START processing", extra=_extra(Stage.RUN, None))
    logger.info(
        "Input=%s Output=%s max_phrases=%s", input_path, output_root, max_phrases, extra=_extra(Stage.RUN, None)
    )

    config = _run_stage(
        Stage.LOAD_CONNECTIVES_CONFIG,
        None,
        lambda: load_connectives_config(log_extra=_extra(Stage.LOAD_CONNECTIVES_CONFIG, None)),
        expected_exceptions=(ConnectivesConfigError,),
    )

    labels: dict[int, str] = {}
    if labels_path is None:
        logger.info("NO_LABELS_CONFIGURED", extra=_extra(Stage.LOAD_PROPOSITION_LABELS, None))
    else:
        try:
            labels = _run_stage(
                Stage.LOAD_PROPOSITION_LABELS,
                None,
                lambda: load_proposition_labels_tsv(labels_path, log_extra=_extra(Stage.LOAD_PROPOSITION_LABELS, None)),
                expected_exceptions=(PropositionLabelsError,),
            )
        except PropositionLabelsError:
            # Already logged with stacktrace; continue with bare proposition ids.
            pass

    workbook = _run_stage(Stage.LOAD_WORKBOOK, None, lambda: load_workbook(input_path, data_only=True))
    rows = _run_stage(Stage.READ_ROWS, None, lambda: read_form_rows(workbook.active))
    logger.info("Rows=%d", len(rows), extra=_extra(Stage.READ_ROWS, None))

    results: list[FormResult] = []
    used_sheet_names: set[str] = set()
    for row in rows:
        try:
            sheet_name = ensure_unique_sheet_name(build_sheet_name(row), used_sheet_names)
            result = normalize_row(row, config, max_phrases, sheet_name)
        except (RowFailure, FormParseError) as exc:
            result = _failed_result(row, exc)
        except Exception as exc:
            if not _is_logged(exc):
                logger.exception("FAILED: hard fail while processing row", extra=_extra(Stage.RUN, _format_row_ref(row)))
            result = _failed_result(row, exc)
        results.append(result)

    output_root.mkdir(parents=True, exist_ok=True)
    try:
        _run_stage(
            Stage.EXPORT_WORKBOOK,
            None,
            lambda: write_results_workbook(output_root / RESULTS_WORKBOOK, results, labels),
        )
    except Exception:
        # Keep going: docs export may still be helpful.
        pass

    try:
        _run_stage(Stage.EXPORT_DOCS, None, lambda: write_docs_files(output_root, results, labels))
    except Exception:
        pass

    failed = len([r for r in results if r.status != "OK"])
    logger.info("DONE processing: rows=%d failed=%d", len(results), failed, extra=_extra(Stage.RUN, None))
    return results
