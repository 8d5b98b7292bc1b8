# -*- coding: utf-8 -*-
"""
Centralized logging configuration for the consolidation pipeline

Provides one logging setup for every module with optional file output. The CLI
calls setup_logging() once at the entry point, then each module uses
logger = logging.getLogger(__name__).

Examples:
# In the entry point
    from notefold.utils.logger import setup_logging
    setup_logging(log_file="data/logs/consolidation.log")

    # In any module
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Resolved question")

"""
# Standard library
import logging
import sys
from pathlib import Path
from typing import Optional

# Config
from config.consolidation_config import LOGGING_CONFIG

_logging_configured = False


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    format_string: str = LOGGING_CONFIG['format']
) -> None:
    """
    Configure logging for the application.

    Sets up console output and optional file output with consistent formatting.
    Safe to call multiple times (only the first call configures).

    Args:
        level: Logging level (default: logging.INFO)
        log_file: Optional path to log file; parent directories are created
        format_string: Log message format
    """
    global _logging_configured

    if _logging_configured:
        return

    formatter = logging.Formatter(format_string)
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True
    )

    # Unbuffered output so progress shows up while long runs are in flight
    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(line_buffering=True)
        sys.stderr.reconfigure(line_buffering=True)

    # Model clients are chatty at INFO
    for noisy in ('httpx', 'sentence_transformers', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _logging_configured = True
