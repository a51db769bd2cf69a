"""
Logging Configuration for the Feedback DSL engine.

Provides centralized setup for the ``feedback_dsl`` logger hierarchy.
Library modules only create module loggers; handlers are attached here,
once, by the CLI or by the embedding application.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .config import EngineConfig

ROOT_LOGGER_NAME = "feedback_dsl"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _create_file_handler(log_file: str) -> Optional[logging.FileHandler]:
    """
    Create a file handler for the given log file path.

    Args:
        log_file: Path of the log file; parent directories are created

    Returns:
        Configured FileHandler, or None if the file cannot be opened
    """
    try:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        return handler
    except OSError:
        return None


class FlushingStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def _create_stderr_handler() -> logging.StreamHandler:
    """Create a stderr handler for console output with auto-flush."""
    handler = FlushingStreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def _resolve_level(level: Optional[str]) -> int:
    if not level:
        return logging.WARNING
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> logging.Logger:
    """
    Configure the ``feedback_dsl`` logger.

    Explicit arguments win over ``config``; ``config`` defaults to
    :meth:`EngineConfig.from_env`. Handlers are installed only once, later
    calls just adjust the level.

    Returns:
        The configured package logger
    """
    config = config or EngineConfig.from_env()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(_resolve_level(level or config.log_level))

    # Only configure once
    if not logger.handlers:
        logger.propagate = False

        logger.addHandler(_create_stderr_handler())

        file_handler = None
        target = log_file or config.log_file
        if target:
            file_handler = _create_file_handler(target)
        if file_handler:
            logger.addHandler(file_handler)

    return logger
