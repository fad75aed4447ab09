"""This module defines custom logging records and handlers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from collections import deque
from typing import Sequence

from .utils import sanitize_string


__all__ = [
    "CachedHandler",
    "EncodingSafeLogRecord",
    "LOG_FMT_LONG",
    "LOG_FMT_SHORT",
    "setup_logging",
]

LOG_FMT_LONG = logging.Formatter(
    fmt="%(asctime)s %(module)s %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
LOG_FMT_SHORT = logging.Formatter(fmt="%(message)s")


class EncodingSafeLogRecord(logging.LogRecord):
    """A log record which ensures that messages contain only unicode characters

    This is useful when log messages contain SQL text or database paths. In Python,
    such strings may contain surrogate escapes and will therefore raise a
    :exc:`UnicodeEncodeError` under many circumstances (printing to stdout, etc.).
    """

    def getMessage(self) -> str:
        """
        Formats the log message and replaces all surrogate escapes with "�".
        """
        msg = super().getMessage()
        return sanitize_string(msg)


logging.setLogRecordFactory(EncodingSafeLogRecord)


class CachedHandler(logging.Handler):
    """Handler which stores past records

    This can be used to keep the most recent statement trace around for diagnostics,
    for instance to show which statements ran before a failure.

    :param level: Initial log level. Defaults to NOTSET.
    :param maxlen: Maximum number of records to store. If ``None``, all records will be
        stored. Defaults to ``None``.
    """

    cached_records: deque[logging.LogRecord]

    def __init__(self, level: int = logging.NOTSET, maxlen: int | None = None) -> None:
        super().__init__(level=level)
        self.cached_records = deque([], maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        """
        Logs the specified log record and saves it to the cache.

        :param record: Log record.
        """
        self.cached_records.append(record)

    def get_last_message(self) -> str:
        """
        :returns: The log message of the last record or an empty string.
        """
        try:
            last_record = self.cached_records[-1]
            return last_record.getMessage()
        except IndexError:
            return ""

    def get_all_messages(self) -> list[str]:
        """
        :returns: A list of all record messages.
        """
        return [r.getMessage() for r in self.cached_records]

    def clear(self) -> None:
        """
        Clears all cached records.
        """
        self.cached_records.clear()


def setup_logging(
    level: int = logging.INFO,
    file: str | None = None,
    stderr: bool = True,
    cache: int | None = None,
) -> Sequence[logging.Handler]:
    """
    Sets up logging for all sqlitewrap loggers. Statement traces are logged at DEBUG
    level, connection and savepoint events at INFO level.

    :param level: Log level for all handlers.
    :param file: Path of a log file. Files are rotated at 10 MB.
    :param stderr: Whether to log to stderr.
    :param cache: If given, keep the last ``cache`` records in a :class:`CachedHandler`.
    :returns: Log handlers.
    """
    root_logger = logging.getLogger("sqlitewrap")
    root_logger.setLevel(level)

    handlers: list[logging.Handler] = []

    # Log to file.
    if file:
        log_handler_file = RotatingFileHandler(file, maxBytes=10**7, backupCount=1)
        log_handler_file.setFormatter(LOG_FMT_LONG)
        log_handler_file.setLevel(level)
        root_logger.addHandler(log_handler_file)
        handlers.append(log_handler_file)

    # Keep recent records in memory.
    if cache is not None:
        log_handler_cache = CachedHandler(maxlen=cache)
        log_handler_cache.setFormatter(LOG_FMT_SHORT)
        log_handler_cache.setLevel(level)
        root_logger.addHandler(log_handler_cache)
        handlers.append(log_handler_cache)

    # Log to stderr if requested.
    if stderr:
        log_handler_stream = logging.StreamHandler()
        log_handler_stream.setFormatter(LOG_FMT_LONG)
        log_handler_stream.setLevel(level)
        root_logger.addHandler(log_handler_stream)
        handlers.append(log_handler_stream)

    return handlers
