"""Logging configuration for the command-line client."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure the notecompanion logger.

    Args:
        verbose: Log DEBUG and above instead of WARNING and above.
        log_file: Optional file receiving the same records.
    """
    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger("notecompanion")
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Remove handlers from a previous invocation (CliRunner reuses the process)
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
