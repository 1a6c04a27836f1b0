"""Module to create a logger instance."""

import logging
import sys
from logging import FileHandler, Formatter, Logger, StreamHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class LevelRangeFilter(logging.Filter):
    """Accept only records with a level in the closed range [min_level, max_level]."""

    def __init__(self, min_level: int = logging.NOTSET, max_level: int = 100) -> None:
        super().__init__()
        self.min_level = min_level
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        """Keep the record if its level falls in the range."""
        return self.min_level <= record.levelno <= self.max_level


def create_logger(
    name: str, level: str | int | None = None, *, log_file: Path | None = None
) -> Logger:
    """Create a logger splitting records between stdout and stderr.

    Records with level lower or equal then WARNING go to stdout, the others to
    stderr. Handlers are attached only the first time a logger with the given name
    is created. When `log_file` is given, every record is also appended to it.

    Args:
        name (str): logger name.
        level (str | int | None): logging level. Invalid values are reported and
            ignored.
        log_file (Path | None): optional file receiving a copy of every record.

    Returns:
        Logger: the configured logger.

    """
    logger = logging.getLogger(name)
    error_msg = None
    if level is not None:
        try:
            logger.setLevel(level)
        except (ValueError, TypeError):
            error_msg = f"Invalid log level: {level}"

    if not logger.handlers:
        formatter = Formatter(LOG_FORMAT)

        stdout_handler = StreamHandler(sys.stdout)
        stdout_handler.setFormatter(formatter)
        stdout_handler.addFilter(LevelRangeFilter(max_level=logging.WARNING))
        logger.addHandler(stdout_handler)

        stderr_handler = StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        stderr_handler.addFilter(LevelRangeFilter(min_level=logging.ERROR))
        logger.addHandler(stderr_handler)

        if log_file is not None:
            file_handler = FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if error_msg is not None:
        logger.error(error_msg)

    return logger
