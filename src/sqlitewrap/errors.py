"""
This module defines sqlitewrap's error classes. It should be kept free of memory heavy
imports.

All errors inherit from :class:`SQLiteError` which carries the SQLite result code
together with title and message attributes to display the error to the user. The
title is the engine's description of the result code and the message contains details
reported for the failing call, if any.
"""

from __future__ import annotations

from typing import Optional

from .constants import errstr, SQLITE_ROW


class SQLiteError(Exception):
    """Base class for sqlitewrap errors

    :param code: Primary or extended SQLite result code.
    :param message: A more verbose description of the failure, typically the message
        reported by the engine.
    :param sql: SQL text of the statement that caused the error, if any.
    """

    def __init__(self, code: int, message: str = "", sql: Optional[str] = None) -> None:
        super().__init__(code, message)
        self.code = code
        self.title = errstr(code)
        self.message = message
        self.sql = sql

    @property
    def primary_code(self) -> int:
        """The primary result code, with any extended information stripped."""
        return self.code & 0xFF

    def __str__(self) -> str:
        if self.message and self.message != self.title:
            return ". ".join([self.title, self.message])
        return self.title


class OpenError(SQLiteError):
    """Raised when opening a database connection fails."""


class PrepareError(SQLiteError):
    """Raised when compiling an SQL statement fails, for instance because of a syntax
    error or a reference to a table which does not exist. The offending SQL is
    available as :attr:`sql`."""


class BindingError(SQLiteError):
    """Raised when binding a value to a statement parameter fails. This typically
    indicates a parameter index which the statement does not have, a value which
    does not fit the requested column type or an attempt to bind to a statement that
    has not been reset."""


class StepError(SQLiteError):
    """Raised when stepping a statement reports a status other than a new row or
    completion."""


class UnexpectedResultError(SQLiteError):
    """Raised when a statement which should not return data produced a row."""

    def __init__(self, message: str = "", sql: Optional[str] = None) -> None:
        super().__init__(SQLITE_ROW, message, sql)


class FatalStorageFault(SQLiteError):
    """A failure of a statement whose success is required to keep transaction
    bookkeeping consistent. Instances are never raised, they are handed to
    :func:`sqlitewrap.errorhandling.fail_fast` which terminates the process."""
