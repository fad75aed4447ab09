"""
Statement parameter and column types, including conversion rules from / to Python
types.

Each supported column type is represented by a :class:`SqlType` instance which knows
how to bind a Python value to a statement parameter and how to extract a column value
again. The set of types is closed: values are dispatched by their exact Python type
and anything else is rejected.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Generic, TypeVar, Union

from .constants import (
    SQLITE_MISMATCH,
    INT32_MIN,
    INT32_MAX,
    INT64_MIN,
    INT64_MAX,
)
from .errors import BindingError


__all__ = [
    "SqlValue",
    "SqlType",
    "SqlNull",
    "SqlText",
    "SqlTextView",
    "SqlInt32",
    "SqlInt64",
    "NULL",
    "TEXT",
    "TEXT_VIEW",
    "INT32",
    "INT64",
    "sql_type_for_value",
    "resolve_sql_type",
]

T = TypeVar("T")

SqlValue = Union[str, int, float, bytes, None]
"""Values exchanged with the engine."""

_NUMERIC_PREFIX = re.compile(
    r"\s*(?P<int>[+-]?\d+)(?P<frac>\.\d*)?(?P<exp>[eE][+-]?\d+)?"
    r"|\s*(?P<float>[+-]?\.\d+(?:[eE][+-]?\d+)?)"
)


def _clamp_int64(value: int) -> int:
    return max(INT64_MIN, min(INT64_MAX, value))


def _to_integer(value: SqlValue) -> int:
    """Applies SQLite's conversion of a stored value to an integer."""
    if value is None:
        return 0
    elif isinstance(value, int):
        return value
    elif isinstance(value, float):
        try:
            return _clamp_int64(int(value))
        except (OverflowError, ValueError):
            # infinity and NaN
            return 0 if value != value else (INT64_MAX if value > 0 else INT64_MIN)

    if isinstance(value, bytes):
        value = value.decode(errors="replace")

    match = _NUMERIC_PREFIX.match(value)

    if not match:
        return 0
    elif match.group("int") is not None and not (
        match.group("frac") or match.group("exp")
    ):
        return _clamp_int64(int(match.group("int")))
    else:
        return _to_integer(float(match.group(0)))


def _check_type(
    value: Any, expected: tuple[type, ...], sql_type: SqlType[Any]
) -> None:
    if type(value) not in expected:
        raise TypeError(f"Cannot bind {type(value).__name__} as {sql_type.sql_type}")


def _to_text(value: SqlValue, column: int) -> str:
    """Applies SQLite's conversion of a stored value to text."""
    if value is None:
        raise TypeError(f"Column {column} is NULL and cannot be read as text")
    elif isinstance(value, str):
        return value
    elif isinstance(value, bytes):
        return value.decode(errors="replace")
    else:
        return str(value)


class SqlType(Generic[T]):
    """Base class to bind Python values to statement parameters and read them back
    from result columns"""

    sql_type = "BLOB"

    def bind(self, value: T) -> SqlValue:
        """
        Converts a Python value to the value handed to the engine for a parameter.

        :param value: Python value.
        :returns: Value accepted by the engine.
        :raises BindingError: if the value cannot be represented.
        """
        raise NotImplementedError()

    def get_column(self, value: SqlValue, column: int = 0) -> T:
        """
        Converts a value returned by the engine to the Python type.

        :param value: Raw column value.
        :param column: Column index, used for error messages only.
        :returns: Converted value.
        """
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class SqlNull(SqlType[None]):
    """Represents SQL NULL"""

    sql_type = "NULL"

    def bind(self, value: None) -> None:
        _check_type(value, (type(None),), self)
        return None

    def get_column(self, value: SqlValue, column: int = 0) -> None:
        return None


class SqlText(SqlType[str]):
    """Represents Python strings as UTF-8 text"""

    sql_type = "TEXT"

    def bind(self, value: str) -> str:
        _check_type(value, (str,), self)
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            message = f"Text is not valid UTF-8: {exc}"
            raise BindingError(SQLITE_MISMATCH, message) from exc
        return value

    def get_column(self, value: SqlValue, column: int = 0) -> str:
        return _to_text(value, column)


class SqlTextView(SqlType[bytes]):
    """
    Represents UTF-8 encoded text held in a bytes-like buffer

    The buffer is decoded into an independent string at bind time. The caller's buffer
    therefore does not need to outlive the call.
    """

    sql_type = "TEXT"

    def bind(self, value: bytes | bytearray | memoryview) -> str:
        _check_type(value, (bytes, bytearray, memoryview), self)
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            message = f"Text is not valid UTF-8: {exc}"
            raise BindingError(SQLITE_MISMATCH, message) from exc

    def get_column(self, value: SqlValue, column: int = 0) -> bytes:
        return _to_text(value, column).encode("utf-8", errors="surrogateescape")


class SqlInt32(SqlType[int]):
    """Represents Python integers in the signed 32-bit range"""

    sql_type = "INTEGER"

    def bind(self, value: int) -> int:
        _check_type(value, (int,), self)
        if not INT32_MIN <= value <= INT32_MAX:
            raise BindingError(SQLITE_MISMATCH, f"{value} exceeds the 32-bit range")
        return value

    def get_column(self, value: SqlValue, column: int = 0) -> int:
        # Keeps the low 32 bits, as a C int cast of the 64-bit value would.
        return (_to_integer(value) - INT32_MIN) % 2**32 + INT32_MIN


class SqlInt64(SqlType[int]):
    """
    Represents Python integers in SQLite table

    SQLite supports up to 64-bit signed integers (-2**63 <= int <= 2**63 - 1)
    """

    sql_type = "INTEGER"

    def bind(self, value: int) -> int:
        _check_type(value, (int,), self)
        if not INT64_MIN <= value <= INT64_MAX:
            raise BindingError(SQLITE_MISMATCH, f"{value} exceeds the 64-bit range")
        return value

    def get_column(self, value: SqlValue, column: int = 0) -> int:
        return _to_integer(value)


NULL = SqlNull()
TEXT = SqlText()
TEXT_VIEW = SqlTextView()
INT32 = SqlInt32()
INT64 = SqlInt64()

_TYPES_BY_PY_TYPE: Dict[type, SqlType[Any]] = {
    type(None): NULL,
    str: TEXT,
    bytes: TEXT_VIEW,
    bytearray: TEXT_VIEW,
    memoryview: TEXT_VIEW,
    int: INT64,
}


def sql_type_for_value(value: Any) -> SqlType[Any]:
    """
    Returns the column type used to bind the given value. Dispatch is on the exact
    type, subclasses such as :class:`bool` are not accepted.

    :param value: Value to bind.
    :returns: Matching column type.
    :raises TypeError: for unsupported value types.
    """
    try:
        return _TYPES_BY_PY_TYPE[type(value)]
    except KeyError:
        raise TypeError(f"Cannot bind values of type {type(value).__name__}")


def resolve_sql_type(spec: SqlType[T] | type) -> SqlType[Any]:
    """
    Resolves a column type given either as :class:`SqlType` instance or as one of the
    Python types ``str``, ``int``, ``bytes`` or ``type(None)``.

    :param spec: Column type or Python type.
    :returns: Column type.
    """
    if isinstance(spec, SqlType):
        return spec

    try:
        return _TYPES_BY_PY_TYPE[spec]
    except (KeyError, TypeError):
        raise TypeError(f"Unsupported column type: {spec!r}")
