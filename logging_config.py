"""
Logging setup for the Measurement Editor.

Everything goes to logs/measure_editor.log (rotating); only warnings and
errors reach the console. Call setup_logging() once, before the QApplication
is created.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOGGING_INITIALIZED = False

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DIR = Path(__file__).resolve().parent / "logs"


def setup_logging(level: int = logging.INFO, log_dir: Path | None = None) -> Path:
    global _LOGGING_INITIALIZED
    log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
    log_file = log_dir / "measure_editor.log"
    if _LOGGING_INITIALIZED:
        return log_file

    os.makedirs(log_dir, exist_ok=True)
    root = logging.getLogger()
    root.setLevel(level)

    file_handler = RotatingFileHandler(log_file, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setLevel(logging.WARNING)
    console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root.addHandler(console)

    _LOGGING_INITIALIZED = True
    logging.getLogger(__name__).info("Logging to %s", log_file)
    return log_file
