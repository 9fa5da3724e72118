from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path


LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(stage)s | %(section)s | %(name)s | %(message)s"


class DefaultFieldsFilter(logging.Filter):
    """Ensure formatter fields exist even if a logger forgets to set them via `extra=`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "stage"):
            record.stage = "-"
        if not hasattr(record, "section"):
            record.section = "-"
        return True


def _make_run_log_path(output_root: Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    base = output_root / f"run_{ts}.log"
    if not base.exists():
        return base
    # Very fast reruns can collide within the same second.
    suffix = 1
    while True:
        candidate = output_root / f"run_{ts}_{suffix}.log"
        if not candidate.exists():
            return candidate
        suffix += 1


def _remove_previous_run_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        if getattr(handler, "_normalforms_run_handler", False):
            root.removeHandler(handler)
            handler.close()


def _add_handler(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(DefaultFieldsFilter())
    handler._normalforms_run_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def setup_console_logging(level: int = logging.WARNING) -> None:
    """Log to stderr only (single-formula commands that write no run folder)."""
    root = logging.getLogger()
    root.setLevel(level)
    _remove_previous_run_handlers(root)
    _add_handler(root, logging.StreamHandler(sys.stderr), level)


def setup_run_logging(
    *,
    output_root: Path,
    level: int = logging.INFO,
    console: bool = False,
) -> Path:
    """Configure standard logging for one run.

    - File log: `output_root/run_YYYYmmdd_HHMMSS.log`
    - Optional stderr handler via `console`
    """
    output_root.mkdir(parents=True, exist_ok=True)
    log_path = _make_run_log_path(output_root)

    root = logging.getLogger()
    root.setLevel(level)
    _remove_previous_run_handlers(root)

    _add_handler(root, logging.FileHandler(log_path, mode="w", encoding="utf-8"), level)
    if console:
        _add_handler(root, logging.StreamHandler(sys.stderr), level)

    return log_path
