"""
This module defines the database connection, the entry point to sqlitewrap. A
:class:`Connection` exclusively owns one engine handle. Statements and savepoints
derived from it keep a reference to the connection but never close it.
"""

from __future__ import annotations

import os
import enum
import logging
import pathlib
import sqlite3
import urllib.parse
import urllib.request
from types import TracebackType
from typing import Optional, Type

from .constants import (
    SQLITE_OPEN_READONLY,
    SQLITE_OPEN_READWRITE,
    SQLITE_OPEN_CREATE,
    SQLITE_OPEN_EXCLUSIVE,
    SQLITE_OPEN_URI,
    SQLITE_OPEN_NOMUTEX,
    SQLITE_OPEN_FULLMUTEX,
    SQLITE_CANTOPEN,
    SQLITE_MISUSE,
    VALID_ACCESS_MODES,
    MEMORY_TARGET,
    TEMPORARY_TARGET,
)
from .errors import OpenError, SQLiteError
from .errorhandling import convert_sqlite_errors


__all__ = ["OpenDisposition", "OpenFlags", "Connection"]

logger = logging.getLogger(__name__)

_ACCESS_MASK = SQLITE_OPEN_READONLY | SQLITE_OPEN_READWRITE | SQLITE_OPEN_CREATE


class OpenDisposition(enum.IntEnum):
    """How to treat the database file when opening a connection"""

    OpenExisting = 0
    """Open an existing database, fail if there is none."""
    OpenOrCreate = SQLITE_OPEN_CREATE
    """Open an existing database or create a new one."""
    CreateNew = SQLITE_OPEN_CREATE | SQLITE_OPEN_EXCLUSIVE
    """Create a new database, fail if the file already exists."""


class OpenFlags(enum.IntFlag):
    """Modifiers for opening a connection, values are those of the engine"""

    NONE = 0
    ReadOnly = SQLITE_OPEN_READONLY
    ReadWrite = SQLITE_OPEN_READWRITE
    MultiThreaded = SQLITE_OPEN_NOMUTEX
    Serialized = SQLITE_OPEN_FULLMUTEX
    InterpretAsUri = SQLITE_OPEN_URI


def _with_mode(uri: str, mode: str) -> str:
    if "mode=" in uri:
        return uri
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}mode={mode}"


def _uri_path(uri: str) -> Optional[pathlib.Path]:
    """
    Returns the file path of a ``file:`` URI or ``None`` if the URI does not refer
    to a file, for instance an in-memory database.
    """
    parts = urllib.parse.urlsplit(uri)
    query = urllib.parse.parse_qs(parts.query)

    if parts.scheme != "file" or "memory" in query.get("mode", []):
        return None
    if parts.path in ("", MEMORY_TARGET):
        return None

    return pathlib.Path(os.path.abspath(urllib.request.url2pathname(parts.path)))


def _open(target: str, open_flags: int) -> sqlite3.Connection:
    """
    Opens an engine handle with the given combination of open flags. Invalid
    combinations are rejected the same way as by ``sqlite3_open_v2``.

    :param target: Path, URI or one of the special in-memory and temporary targets.
    :param open_flags: Bitwise combination of disposition and flags.
    :returns: Engine handle in autocommit mode.
    """
    access = open_flags & _ACCESS_MASK

    if access not in VALID_ACCESS_MODES:
        raise OpenError(SQLITE_MISUSE, f"Invalid access mode 0x{access:x}")

    if access == SQLITE_OPEN_READONLY:
        mode = "ro"
    elif access & SQLITE_OPEN_CREATE:
        mode = "rwc"
    else:
        mode = "rw"

    if open_flags & SQLITE_OPEN_URI:
        path = _uri_path(target)
        database = _with_mode(target, mode)
        uri = True
    elif target in (MEMORY_TARGET, TEMPORARY_TARGET):
        path = None
        database = target
        uri = False
    else:
        path = pathlib.Path(os.path.abspath(target))
        database = _with_mode(path.as_uri(), mode)
        uri = True

    if open_flags & SQLITE_OPEN_EXCLUSIVE and path is not None and path.exists():
        raise OpenError(SQLITE_CANTOPEN, f"Database already exists: '{target}'")

    with convert_sqlite_errors(OpenError):
        return sqlite3.connect(
            database,
            uri=uri,
            isolation_level=None,
            check_same_thread=not open_flags & SQLITE_OPEN_NOMUTEX,
        )


class Connection:
    """
    A connection to a database, owning exactly one engine handle.

    Create instances with :meth:`create`. The handle is closed by :meth:`close` or
    when leaving the ``with`` block which uses the connection as context manager. The
    connection runs in autocommit mode. Use :class:`sqlitewrap.savepoint.Savepoint`
    to group statements into transactions.

    A connection, and all statements and savepoints derived from it, must not be used
    from several threads at the same time.

    :param handle: Open engine handle. Ownership is transferred to the connection.
    :param target: Target that the handle was opened with.
    :param disposition: Disposition that the handle was opened with.
    :param flags: Flags that the handle was opened with.
    """

    def __init__(
        self,
        handle: sqlite3.Connection,
        target: str,
        disposition: OpenDisposition,
        flags: OpenFlags,
    ) -> None:
        self._handle = handle
        self._closed = False
        self.target = target
        self.disposition = disposition
        self.flags = flags

    @classmethod
    def create(
        cls,
        target: str,
        disposition: OpenDisposition = OpenDisposition.OpenOrCreate,
        flags: OpenFlags = OpenFlags.ReadWrite,
    ) -> Connection:
        """
        Opens a connection to a database.

        The disposition and flags are combined into a single bitmask and handed to the
        engine without further validation.

        :param target: Path of the database file, ``":memory:"`` for an in-memory
            database, ``""`` for a temporary database or a ``file:`` URI if
            :attr:`OpenFlags.InterpretAsUri` is set.
        :param disposition: Whether to open an existing database, create a new one or
            either.
        :param flags: Access mode and other modifiers.
        :returns: Open connection.
        :raises OpenError: if the database cannot be opened.
        """
        logger.info(
            "Opening SQLite connection: '%s' [%x, %x]",
            target,
            int(disposition),
            int(flags),
        )
        handle = _open(target, int(disposition) | int(flags))
        return cls(handle, target, disposition, flags)

    @property
    def handle(self) -> sqlite3.Connection:
        """The engine handle. Must not be closed by the caller."""
        return self._handle

    @property
    def closed(self) -> bool:
        """Whether the connection has been closed."""
        return self._closed

    @property
    def in_transaction(self) -> bool:
        """Whether a transaction, for instance a savepoint, is open."""
        return self._handle.in_transaction

    @property
    def total_changes(self) -> int:
        """Number of rows changed since the connection was opened."""
        return self._handle.total_changes

    def _query_int(self, sql: str) -> int:
        with convert_sqlite_errors(SQLiteError, sql):
            row = self._handle.execute(sql).fetchone()
        return row[0]

    def get_last_insert_row_id(self) -> int:
        """
        :returns: The row ID of the most recent successful insert on this connection,
            or zero if there was none.
        """
        return self._query_int("SELECT last_insert_rowid()")

    def get_changes(self) -> int:
        """
        :returns: Number of rows changed by the most recently completed insert, update
            or delete statement.
        """
        return self._query_int("SELECT changes()")

    def set_busy_timeout(self, milliseconds: int) -> None:
        """
        Sets how long to wait for locks held by other connections before failing with
        SQLITE_BUSY.

        :param milliseconds: Timeout in milliseconds. Zero or negative values disable
            waiting.
        """
        sql = f"PRAGMA busy_timeout = {int(milliseconds)}"
        with convert_sqlite_errors(SQLiteError, sql):
            self._handle.execute(sql).close()

    def close(self) -> None:
        """Closes the engine handle. Calling this more than once has no effect."""
        if not self._closed:
            logger.debug("Closing SQLite connection: '%s'", self.target)
            self._handle.close()
            self._closed = True

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<{self.__class__.__name__}({self.target!r}, {state})>"
