"""
Consistent logging setup for the ASEC-ML pipeline.

Library modules use ``logging.getLogger(__name__)``; only CLI entrypoints
attach handlers through ``setup_logger``.
"""

import logging
import sys
from pathlib import Path

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"


def setup_logger(
    name: str = "asec_ml",
    level: int = logging.INFO,
    log_file: Path | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Setup a logger with console and optional file output.

    USAGE PATTERN:
        - CLI entrypoints: Call this function to create a logger with handlers
        - Library modules: Use logging.getLogger(__name__) directly (no handlers)
        - Child loggers automatically propagate to parent logger with handlers

    Args:
        name: Logger name (typically "asec_ml" for the CLI)
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        format_string: Custom format string (default: timestamp + level + message)

    Returns:
        Configured logger instance with handlers attached
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    # Handlers live on this logger only; children propagate up to it.
    logger.propagate = False

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a handler-less library logger under the ``asec_ml`` namespace."""
    if not name.startswith("asec_ml"):
        name = f"asec_ml.{name}"
    return logging.getLogger(name)


def level_from_verbosity(verbose: int) -> int:
    """Map a ``-v`` count to a logging level (0 -> INFO, 1+ -> DEBUG)."""
    return logging.DEBUG if verbose and verbose > 0 else logging.INFO


def auto_log_path(command: str, outdir: Path | str = "results", run_id: str | None = None) -> Path:
    """Build a log file path as a ``logs/`` sibling of the results directory.

    Layout:
        logs/{command}/run_{ID}.log
    """
    outdir = Path(outdir).resolve()
    logs_root = outdir.parent / "logs" if outdir.name != "logs" else outdir
    return logs_root / command / f"run_{run_id or 'unknown'}.log"


def log_section(logger: logging.Logger, title: str, width: int = 80, char: str = "="):
    """Log a section header."""
    logger.info(char * width)
    logger.info(title)
    logger.info(char * width)
