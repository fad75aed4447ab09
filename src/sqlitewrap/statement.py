"""
This module defines prepared statements. A :class:`Statement` is compiled once against
a :class:`sqlitewrap.connection.Connection` and can then be bound, stepped through its
result rows and reset any number of times.
"""

from __future__ import annotations

import re
import enum
import logging
import sqlite3
import itertools
import threading
import contextlib
from types import TracebackType
from typing import Any, List, Optional, Tuple, Type, TYPE_CHECKING

from .constants import SQLITE_ERROR, SQLITE_MISUSE, SQLITE_RANGE
from .errors import (
    SQLiteError,
    PrepareError,
    BindingError,
    StepError,
    UnexpectedResultError,
    FatalStorageFault,
)
from .errorhandling import convert_sqlite_errors, sqlite_to_wrapper_error, fail_fast
from .types import SqlType, SqlValue, sql_type_for_value, resolve_sql_type
from .utils import truncate

if TYPE_CHECKING:
    from .connection import Connection


__all__ = ["State", "Statement", "next_statement_id"]

logger = logging.getLogger(__name__)

_statement_ids = itertools.count(1)
_statement_id_lock = threading.Lock()

# Message of the error raised when a statement is run without its parameters.
_PARAMETER_COUNT = re.compile(r"statement uses (\d+)")


def next_statement_id() -> int:
    """
    Returns a new process-wide unique statement ID. IDs increase monotonically and are
    used to correlate log records only.
    """
    with _statement_id_lock:
        return next(_statement_ids)


def _compile(handle: sqlite3.Connection, sql: str) -> Tuple[int, int]:
    """
    Compiles the given SQL without running it.

    :param handle: Engine handle.
    :param sql: SQL text of a single statement.
    :returns: Number of parameters and number of result columns of the compiled
        statement.
    """
    explain = sql.lstrip()[:7].upper() == "EXPLAIN"
    probe = sql if explain else f"EXPLAIN {sql}"

    try:
        cursor = handle.execute(probe)
        parameter_count = 0
    except sqlite3.ProgrammingError as exc:
        # Parameters are checked only after the statement compiled successfully.
        match = _PARAMETER_COUNT.search(str(exc))
        if not match:
            raise
        parameter_count = int(match.group(1))
        cursor = handle.execute(probe, [None] * parameter_count)

    try:
        if explain:
            column_count = len(cursor.description)
        else:
            # The ResultRow opcode outputs P2 registers as one row.
            column_count = max(
                (row[3] for row in cursor if row[1] == "ResultRow"), default=0
            )
    finally:
        cursor.close()

    return parameter_count, column_count


class State(enum.Enum):
    """Step cycle phase of a statement"""

    Prepared = "prepared"
    HasRow = "has row"
    Completed = "completed"
    Error = "error"


class Statement:
    """
    A compiled SQL statement with its parameter bindings and execution state.

    Create instances with :meth:`create`. Parameters are bound with :meth:`bind` using
    1-based indices, the statement is advanced with :meth:`step` and columns of the
    current row are read with 0-based indices. :meth:`reset` rewinds the statement
    while keeping all bound values.

    :param connection: Connection to compile the statement against. The statement is
        tied to this connection for its whole lifetime.
    :param sql: SQL text of a single statement.
    :param persistent: Hint that the statement will be kept and reused many times.
    """

    def __init__(
        self, connection: Connection, sql: str, persistent: bool = False
    ) -> None:
        self.id = next_statement_id()
        self.connection = connection
        self.sql = sql
        self.persistent = persistent
        self.state = State.Prepared

        self._cursor: Optional[sqlite3.Cursor] = None
        self._row: Optional[Tuple[SqlValue, ...]] = None
        self._columns: Tuple[str, ...] = ()
        self._closed = False

        logger.debug("Preparing statement #%d: %s", self.id, sql)

        with convert_sqlite_errors(PrepareError, sql):
            counts = _compile(connection.handle, sql)

        self.parameter_count, self._column_count = counts

        self._bindings: List[SqlValue] = [None] * self.parameter_count

    @classmethod
    def create(
        cls,
        connection: Connection,
        sql: str | bytes | bytearray | memoryview,
        persistent: bool = False,
    ) -> Statement:
        """
        Compiles a statement.

        :param connection: Connection to compile the statement against.
        :param sql: SQL text. Bytes-like objects must contain UTF-8 encoded text and
            are copied before compiling, the buffer may be reused afterwards.
        :param persistent: Hint that the statement will be kept and reused.
        :returns: Compiled statement in state :attr:`State.Prepared`.
        :raises PrepareError: if the SQL cannot be compiled.
        """
        if not isinstance(sql, str):
            try:
                sql = bytes(sql).decode("utf-8")
            except UnicodeDecodeError as exc:
                message = f"SQL is not valid UTF-8: {exc}"
                raise PrepareError(SQLITE_ERROR, message) from exc

        return cls(connection, sql, persistent)

    @property
    def closed(self) -> bool:
        """Whether the statement has been finalized."""
        return self._closed

    def _check_open(self, err_cls: Type[SQLiteError]) -> None:
        if self._closed:
            raise err_cls(
                SQLITE_MISUSE, f"Statement #{self.id} is finalized", self.sql
            )

    # ==== binding =====================================================================

    def bind(
        self, index: int, value: Any, sql_type: SqlType[Any] | type | None = None
    ) -> None:
        """
        Binds a value to a parameter. The column type is chosen from the type of the
        value unless given explicitly, for instance :data:`sqlitewrap.types.INT32`.

        :param index: 1-based parameter index.
        :param value: Value to bind.
        :param sql_type: Column type to bind the value as.
        :raises BindingError: if the index is out of range, the value does not fit the
            column type or the statement was stepped without a subsequent reset.
        :raises TypeError: if the value type is not supported.
        """
        self._check_open(BindingError)

        if self.state is not State.Prepared:
            raise BindingError(
                SQLITE_MISUSE, "Statement must be reset before binding", self.sql
            )

        if not 1 <= index <= self.parameter_count:
            raise BindingError(
                SQLITE_RANGE,
                f"Parameter {index} is not in 1..{self.parameter_count}",
                self.sql,
            )

        if sql_type is None:
            resolved = sql_type_for_value(value)
        else:
            resolved = resolve_sql_type(sql_type)

        try:
            self._bindings[index - 1] = resolved.bind(value)
        except BindingError as exc:
            exc.sql = self.sql
            raise

    # ==== execution ===================================================================

    def _release_cursor(self) -> None:
        if self._cursor is not None:
            # A failing reset only repeats the error of the last step.
            with contextlib.suppress(sqlite3.Error):
                self._cursor.close()
            self._cursor = None

    def _start(self) -> None:
        self._release_cursor()
        self._cursor = self.connection.handle.cursor()
        self._cursor.execute(self.sql, self._bindings)

        if self._cursor.description is not None:
            self._columns = tuple(d[0] for d in self._cursor.description)
            self._column_count = len(self._columns)

    def step(self, fail_fast_on_error: bool = False) -> bool:
        """
        Advances the statement by one row. Stepping a completed or failed statement
        starts a new execution with the current bindings.

        :param fail_fast_on_error: Abort the process instead of raising an exception
            on failure. Reserved for statements whose failure leaves transaction
            bookkeeping in an unknown state, see
            :func:`sqlitewrap.errorhandling.fail_fast`.
        :returns: ``True`` if a row is available, ``False`` if the statement completed.
        :raises StepError: if the engine reports a failure.
        """
        self._check_open(StepError)

        logger.debug("Stepping statement #%d", self.id)

        try:
            if self._cursor is None or self.state is not State.HasRow:
                self._start()
            row = self._cursor.fetchone()  # type: ignore[union-attr]
        except (sqlite3.Error, sqlite3.Warning) as exc:
            self.state = State.Error
            self._row = None
            if fail_fast_on_error:
                fail_fast(sqlite_to_wrapper_error(exc, FatalStorageFault, self.sql))
            raise sqlite_to_wrapper_error(exc, StepError, self.sql) from exc

        if row is not None:
            logger.debug("Statement #%d has data", self.id)
            self.state = State.HasRow
            self._row = row
            return True
        else:
            logger.debug("Statement #%d has completed", self.id)
            self.state = State.Completed
            self._row = None
            return False

    def execute(self, fail_fast_on_error: bool = False) -> None:
        """
        Steps a statement which is not expected to return data, such as DDL or an
        insert, update or delete.

        :param fail_fast_on_error: See :meth:`step`.
        :raises UnexpectedResultError: if the statement produced a row.
        :raises StepError: if the engine reports a failure.
        """
        if self.step(fail_fast_on_error):
            raise UnexpectedResultError("Statement produced a row", self.sql)

    def reset(self) -> None:
        """
        Rewinds the statement so that it can be stepped again from the start. Pending
        results are discarded, bound values are kept.
        """
        logger.debug("Reset statement #%d", self.id)
        self._release_cursor()
        self._row = None
        self.state = State.Prepared

    # ==== columns =====================================================================

    def _column_value(self, column: int) -> SqlValue:
        if self._row is None:
            raise IndexError(f"Statement #{self.id} has no current row")
        if not 0 <= column < len(self._row):
            raise IndexError(f"Column {column} is not in 0..{len(self._row) - 1}")
        return self._row[column]

    def get_column_count(self) -> int:
        """
        :returns: Number of columns in the result rows, zero for statements without
            results. Available right after compiling, column names only once the
            statement has been stepped.
        """
        return self._column_count

    def get_column_name(self, column: int) -> str:
        """
        :param column: 0-based column index.
        :returns: Name of the result column.
        """
        return self._columns[column]

    def get_column_is_null(self, column: int) -> bool:
        """
        Checks a column of the current row for NULL. Nullable columns must be checked
        before reading them as text.

        :param column: 0-based column index.
        :returns: Whether the value is SQL NULL.
        """
        return self._column_value(column) is None

    def get_column(self, column: int, sql_type: SqlType[Any] | type) -> Any:
        """
        Reads a column of the current row. The engine's conversion rules apply if the
        stored value has a different type, e.g., text is read as integer.

        :param column: 0-based column index.
        :param sql_type: Column type such as :data:`sqlitewrap.types.TEXT` or one of
            the Python types ``str`` and ``int``.
        :returns: Converted column value.
        :raises IndexError: if there is no current row or no such column.
        """
        return resolve_sql_type(sql_type).get_column(self._column_value(column), column)

    def get_columns(self, *sql_types: SqlType[Any] | type, start: int = 0) -> tuple:
        """
        Reads consecutive columns of the current row.

        :param sql_types: Column types, one per column to read.
        :param start: 0-based index of the first column to read.
        :returns: Tuple of converted column values.
        """
        return tuple(
            self.get_column(start + offset, sql_type)
            for offset, sql_type in enumerate(sql_types)
        )

    # ==== lifecycle ===================================================================

    def close(self) -> None:
        """Finalizes the statement. Calling this more than once has no effect."""
        if not self._closed:
            logger.debug("Finalizing statement #%d", self.id)
            self._release_cursor()
            self._row = None
            self._closed = True

    def __enter__(self) -> Statement:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        sql = truncate(self.sql, 40)
        return f"<{self.__class__.__name__}(#{self.id}, {sql!r}, {self.state.name})>"
