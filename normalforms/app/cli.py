from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from normalforms.connectives import load_connectives_config
from normalforms.form_rules import DISJUNCTIVE, rules_by_name
from normalforms.logging_conf import setup_console_logging, setup_run_logging
from normalforms.mutex import remove_forbidden_phrases, simplify_with_mutex_nodes
from normalforms.pipeline import process_workbook
from normalforms.stages import Stage
from normalforms.text_format import FormParseError, format_form, parse_form
from normalforms.utils import create_run_output_dir, parse_proposition_list

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _run_batch(args: argparse.Namespace) -> int:
    level = getattr(logging, args.log_level)
    run_output_dir = create_run_output_dir(str(args.output))
    log_path = setup_run_logging(output_root=run_output_dir, level=level)
    print(f"Output directory: {run_output_dir}")
    print(f"Log file: {log_path}")

    logger.info("CLI start", extra={"stage": Stage.RUN.value, "section": "-"})
    logger.info("Log file: %s", log_path, extra={"stage": Stage.RUN.value, "section": "-"})

    try:
        results = process_workbook(args.input, run_output_dir, args.max_phrases, labels_path=args.labels_file)
    except Exception:
        logger.exception("Pipeline failed", extra={"stage": Stage.RUN.value, "section": "-"})
        return 2

    total = len(results)
    succeeded = len([r for r in results if r.status == "OK"])
    failed = total - succeeded
    logger.info(
        "Summary: total=%s succeeded=%s failed=%s", total, succeeded, failed, extra={"stage": Stage.RUN.value, "section": "-"}
    )
    print(f"Summary: total={total} succeeded={succeeded} failed={failed}")
    return 0


def _run_normalize(args: argparse.Namespace) -> int:
    setup_console_logging(getattr(logging, args.log_level))
    extra = {"stage": Stage.NORMALIZE.value, "section": "-"}

    try:
        rules = rules_by_name(args.kind)
        mutex_nodes = parse_proposition_list(args.mutex)
        join_points = parse_proposition_list(args.join)
        forbidden = parse_proposition_list(args.forbidden)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if rules is not DISJUNCTIVE and (mutex_nodes or forbidden):
        print("Error: --mutex and --forbidden only apply to DNF forms", file=sys.stderr)
        return 1
    if mutex_nodes and not join_points:
        print("Error: --mutex given without --join points", file=sys.stderr)
        return 1

    connectives = load_connectives_config(log_extra=extra).style_for(rules, csv=args.csv)
    try:
        form = parse_form(args.formula, rules, connectives, log_extra=extra)
    except FormParseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if forbidden:
        remove_forbidden_phrases(form, forbidden)
    if mutex_nodes:
        simplify_with_mutex_nodes(form, mutex_nodes, join_points, log_extra=extra)

    print(format_form(form, connectives, sort=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Normalize propositional CNF/DNF formulas.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    batch = subparsers.add_parser("batch", help="Normalize every row of an input workbook (.xlsx).")
    batch.add_argument("--input", required=True, type=Path, help="Path to input Excel (.xlsx).")
    batch.add_argument("--output", default=Path("output"), type=Path, help="Output root folder.")
    batch.add_argument(
        "--labels-file",
        default=None,
        type=Path,
        help="Optional proposition labels file (TAB-delimited, UTF-8; columns id/label).",
    )
    batch.add_argument("--max-phrases", default=2000, type=int, help="Max phrases per normalized form.")
    batch.add_argument("--log-level", default="INFO", choices=LOG_LEVELS, help="Logging verbosity.")
    batch.set_defaults(func=_run_batch)

    normalize = subparsers.add_parser("normalize", help="Normalize a single formula and print it sorted.")
    normalize.add_argument("formula", help='Formula text, e.g. "<(2|5)&(5)>".')
    normalize.add_argument("--kind", default="CNF", choices=["CNF", "DNF"], help="Form orientation.")
    normalize.add_argument("--csv", action="store_true", help="Read and write the CSV style.")
    normalize.add_argument("--mutex", default=None, help="Mutex pair for DNF simplification, e.g. '3,4'.")
    normalize.add_argument("--join", default=None, help="Join points for the mutex merge, e.g. '9'.")
    normalize.add_argument("--forbidden", default=None, help="Forbidden siblings to purge (DNF), e.g. '3,4'.")
    normalize.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS, help="Logging verbosity.")
    normalize.set_defaults(func=_run_normalize)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
