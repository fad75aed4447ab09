# -*- coding: utf-8 -*-

import pytest

from sqlitewrap.constants import SQLITE_MISMATCH, INT64_MAX, INT64_MIN
from sqlitewrap.errors import BindingError
from sqlitewrap.types import (
    NULL,
    TEXT,
    TEXT_VIEW,
    INT32,
    INT64,
    sql_type_for_value,
    resolve_sql_type,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, NULL),
        ("text", TEXT),
        (b"text", TEXT_VIEW),
        (bytearray(b"text"), TEXT_VIEW),
        (memoryview(b"text"), TEXT_VIEW),
        (42, INT64),
    ],
)
def test_type_for_value(value, expected):
    assert sql_type_for_value(value) is expected


@pytest.mark.parametrize("value", [True, 1.5, object(), [1]])
def test_unsupported_value_types(value):
    with pytest.raises(TypeError):
        sql_type_for_value(value)


def test_resolve_python_types():
    assert resolve_sql_type(str) is TEXT
    assert resolve_sql_type(int) is INT64
    assert resolve_sql_type(bytes) is TEXT_VIEW
    assert resolve_sql_type(type(None)) is NULL
    assert resolve_sql_type(INT32) is INT32

    with pytest.raises(TypeError):
        resolve_sql_type(float)


def test_bind_checks_exact_type():
    with pytest.raises(TypeError):
        INT64.bind(True)

    with pytest.raises(TypeError):
        TEXT.bind(b"bytes")

    with pytest.raises(TypeError):
        NULL.bind(0)


def test_bind_int32_range():
    assert INT32.bind(2**31 - 1) == 2**31 - 1
    assert INT32.bind(-(2**31)) == -(2**31)

    with pytest.raises(BindingError) as exc_info:
        INT32.bind(2**31)

    assert exc_info.value.code == SQLITE_MISMATCH


def test_bind_int64_range():
    assert INT64.bind(INT64_MAX) == INT64_MAX

    with pytest.raises(BindingError):
        INT64.bind(INT64_MAX + 1)


def test_bind_text_view_copies_buffer():
    buffer = bytearray("grüße".encode())
    value = TEXT_VIEW.bind(memoryview(buffer))
    buffer[:] = b"xxxxxxx"

    assert value == "grüße"


def test_bind_invalid_utf8():
    with pytest.raises(BindingError) as exc_info:
        TEXT_VIEW.bind(b"\xff\xfe")

    assert exc_info.value.code == SQLITE_MISMATCH
    assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    with pytest.raises(BindingError) as exc_info:
        TEXT.bind("\udcff")

    assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, 0),
        (7, 7),
        (3.9, 3),
        (-3.9, -3),
        ("12abc", 12),
        ("  -4", -4),
        ("1.5e2", 150),
        ("abc", 0),
        (b"31", 31),
        (float("inf"), INT64_MAX),
        (float("-inf"), INT64_MIN),
        (float("nan"), 0),
        ("99999999999999999999", INT64_MAX),
    ],
)
def test_integer_column_conversion(raw, expected):
    assert INT64.get_column(raw) == expected


def test_int32_column_keeps_low_bits():
    assert INT32.get_column(2**32 + 5) == 5
    assert INT32.get_column(2**31) == -(2**31)
    assert INT32.get_column(-1) == -1


def test_text_column_conversion():
    assert TEXT.get_column("abc") == "abc"
    assert TEXT.get_column(42) == "42"
    assert TEXT.get_column(b"abc") == "abc"
    assert TEXT_VIEW.get_column("grüße") == "grüße".encode()


def test_text_column_null():
    with pytest.raises(TypeError):
        TEXT.get_column(None, 3)

    assert NULL.get_column(None) is None
