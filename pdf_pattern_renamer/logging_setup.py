"""Logging configuration: rotating log file plus optional stderr output."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

APP_NAME = "pdf_pattern_renamer"
_FILE_HANDLER_NAME = "pdf_renamer_file"
_STREAM_HANDLER_NAME = "pdf_renamer_stderr"


def log_dir() -> Path:
    # PDF_RENAMER_LOG_DIR overrides the default ~/.pdf-renamer/logs
    base = Path(os.getenv("PDF_RENAMER_LOG_DIR") or (Path.home() / ".pdf-renamer" / "logs"))
    base.mkdir(parents=True, exist_ok=True)
    return base


def log_file_path() -> Path:
    return log_dir() / "app.log"


def configure_logging(level: int | None = None, to_stderr: bool = False) -> logging.Logger:
    """Attach the application's handlers to the root logger once.

    ``PDF_RENAMER_LOG_LEVEL`` (e.g. ``DEBUG``) takes precedence over *level*.
    """
    level_name = (os.getenv("PDF_RENAMER_LOG_LEVEL") or "").upper()
    lvl = getattr(logging, level_name, None) if level_name else None
    lvl = lvl or level or logging.INFO

    root = logging.getLogger()
    root.setLevel(lvl)
    target = os.path.abspath(log_file_path())

    # A file handler left over from a different log directory is replaced.
    for h in list(root.handlers):
        if h.name == _FILE_HANDLER_NAME and getattr(h, "baseFilename", None) != target:
            root.removeHandler(h)
            h.close()
    names = {getattr(h, "name", "") for h in root.handlers}

    if _FILE_HANDLER_NAME not in names:
        fmt = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s:%(lineno)d | %(message)s"
        )
        fh = RotatingFileHandler(
            target, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        fh.setFormatter(fmt)
        fh.name = _FILE_HANDLER_NAME
        root.addHandler(fh)

    if to_stderr and _STREAM_HANDLER_NAME not in names:
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(logging.Formatter("%(levelname).1s %(name)s: %(message)s"))
        sh.name = _STREAM_HANDLER_NAME
        root.addHandler(sh)

    return logging.getLogger(APP_NAME)
