"""
This module contains methods to convert exceptions raised by the :mod:`sqlite3` engine
to instances of :exc:`sqlitewrap.errors.SQLiteError` and the fail-fast primitive used
where continuing after a failure would leave a transaction in an unknown state.
"""

from __future__ import annotations

# system imports
import os
import sqlite3
import logging
import contextlib
from typing import Iterator, Union, NoReturn

# local imports
from .constants import (
    SQLITE_ERROR,
    SQLITE_INTERNAL,
    SQLITE_CONSTRAINT,
    SQLITE_MISMATCH,
    SQLITE_MISUSE,
)
from .errors import SQLiteError, FatalStorageFault


__all__ = [
    "sqlite_error_code",
    "sqlite_to_wrapper_error",
    "convert_sqlite_errors",
    "fail_fast",
]

logger = logging.getLogger(__name__)

EngineError = Union[sqlite3.Error, sqlite3.Warning]

# Result codes for interpreters which do not attach them to exceptions. Subclasses
# must come before their base classes.
_CODES_BY_CLASS = (
    (sqlite3.IntegrityError, SQLITE_CONSTRAINT),
    (sqlite3.DataError, SQLITE_MISMATCH),
    (sqlite3.InternalError, SQLITE_INTERNAL),
    (sqlite3.ProgrammingError, SQLITE_MISUSE),
    (sqlite3.NotSupportedError, SQLITE_MISUSE),
    (sqlite3.InterfaceError, SQLITE_MISUSE),
    (sqlite3.Warning, SQLITE_MISUSE),
)


def sqlite_error_code(exc: EngineError) -> int:
    """
    Returns the SQLite result code for an exception raised by :mod:`sqlite3`.

    Python 3.11 and later attach the extended result code reported by the engine. For
    errors raised by the :mod:`sqlite3` module itself, or by older interpreters, the
    code is derived from the exception type.

    :param exc: Exception raised by the engine.
    :returns: Extended result code if available, primary result code otherwise.
    """
    code = getattr(exc, "sqlite_errorcode", None)

    if code is not None:
        return code

    for exc_type, code in _CODES_BY_CLASS:
        if isinstance(exc, exc_type):
            return code

    return SQLITE_ERROR


def sqlite_to_wrapper_error(
    exc: EngineError, err_cls: type[SQLiteError] = SQLiteError, sql: str | None = None
) -> SQLiteError:
    """
    Converts an exception raised by :mod:`sqlite3` to an instance of ``err_cls``.

    :param exc: Original exception.
    :param err_cls: Error class to create.
    :param sql: SQL text associated with the error.
    :returns: Converted exception.
    """
    return err_cls(sqlite_error_code(exc), str(exc), sql=sql)


@contextlib.contextmanager
def convert_sqlite_errors(
    err_cls: type[SQLiteError] = SQLiteError, sql: str | None = None
) -> Iterator[None]:
    """
    A context manager that catches exceptions raised by the :mod:`sqlite3` engine and
    re-raises them as ``err_cls``.

    :param err_cls: Error class to raise.
    :param sql: SQL text associated with the error.
    """
    try:
        yield
    except (sqlite3.Error, sqlite3.Warning) as exc:
        raise sqlite_to_wrapper_error(exc, err_cls, sql) from exc


def fail_fast(fault: FatalStorageFault) -> NoReturn:
    """
    Logs a fatal fault and aborts the process.

    This is reserved for failures after which executing any further statement could
    operate on a transaction in an indeterminate state, for instance a failing
    rollback of a savepoint while an exception propagates.

    :param fault: Description of the failure.
    """
    logger.critical("Critical SQL statement failed: %s", fault, exc_info=fault)
    os.abort()
