"""Centralized logging configuration for artifact-cli.

All modules log under the "artifact_cli" namespace so a single call to
configure_cli_logging() controls console verbosity and optional file output.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

# Environment variables
DEBUG_MODE = os.getenv("ARTIFACT_CLI_DEBUG", "0") == "1"
LOG_LEVEL = os.getenv("ARTIFACT_CLI_LOG_LEVEL", "DEBUG" if DEBUG_MODE else "INFO")
LOG_DIR = os.getenv("ARTIFACT_CLI_LOG_DIR", "")

ROOT_LOGGER_NAME = "artifact_cli"

DETAILED_FORMAT = (
    "[%(asctime)s] [%(levelname)-8s] [%(name)s] [%(filename)s:%(lineno)d] %(message)s"
)
SIMPLE_FORMAT = "%(message)s"

# Use detailed format in debug mode
LOG_FORMAT = DETAILED_FORMAT if DEBUG_MODE else SIMPLE_FORMAT


def _get_file_handler(log_file: Path, level: int) -> logging.FileHandler:
    """Create a rotating file handler for the given log file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
    return handler


def _get_console_handler(level: int) -> logging.StreamHandler:
    """Create a console handler for streaming logs."""
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_cli_logging(
    log_level: Optional[str] = None,
    verbose: bool = False,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the artifact-cli package.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        verbose: Force DEBUG on the console regardless of log_level
        log_dir: Directory for the rotating log file (default: ARTIFACT_CLI_LOG_DIR)

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = LOG_LEVEL
    if verbose:
        log_level = "DEBUG"

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    logger.addHandler(_get_console_handler(level))

    log_dir = log_dir if log_dir is not None else LOG_DIR
    if log_dir:
        logger.addHandler(_get_file_handler(Path(log_dir) / "artifact-cli.log", level))

    return logger


def configure_module_logging(module_name: str) -> logging.Logger:
    """
    Get the logger for a specific module.

    This creates a child logger under the "artifact_cli" namespace that
    inherits the handlers installed by configure_cli_logging().

    Args:
        module_name: Module name (e.g., "publisher", "sync")

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_name}")

