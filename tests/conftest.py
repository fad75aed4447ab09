# -*- coding: utf-8 -*-

import os
import logging

import pytest

from sqlitewrap import Connection, Statement


logging.getLogger("sqlitewrap").setLevel(logging.DEBUG)


class Aborted(Exception):
    """Raised in place of aborting the process."""


@pytest.fixture
def connection():
    with Connection.create(":memory:") as conn:
        yield conn


@pytest.fixture
def table(connection):
    sql = "CREATE TABLE t(id INTEGER PRIMARY KEY, name TEXT)"
    with Statement.create(connection, sql) as create:
        create.execute()
    return "t"


@pytest.fixture
def count_rows():
    def count(connection, table="t"):
        with Statement.create(connection, f"SELECT count(*) FROM {table}") as stmt:
            stmt.step()
            return stmt.get_column(0, int)

    return count


@pytest.fixture
def insert_name():
    def insert(connection, name, table="t"):
        sql = f"INSERT INTO {table}(name) VALUES (?)"
        with Statement.create(connection, sql) as stmt:
            stmt.bind(1, name)
            stmt.execute()

    return insert


@pytest.fixture
def abort(monkeypatch):
    """Replaces process termination with raising :class:`Aborted`."""

    def fake_abort():
        raise Aborted()

    monkeypatch.setattr(os, "abort", fake_abort)
    return Aborted


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")
