# -*- coding: utf-8 -*-

import logging

import pytest

from sqlitewrap import Connection, Savepoint, Statement, PrepareError


def test_commit(connection, table, count_rows, insert_name):
    with Savepoint.create(connection, "s1") as savepoint:
        assert savepoint.in_progress
        assert connection.in_transaction

        insert_name(connection, "a")
        savepoint.commit()

        assert not savepoint.in_progress

    assert count_rows(connection) == 1
    assert not connection.in_transaction


def test_implicit_rollback(connection, table, count_rows, insert_name):
    insert_name(connection, "a")

    with Savepoint.create(connection, "s1"):
        insert_name(connection, "b")
        assert count_rows(connection) == 2

    assert count_rows(connection) == 1
    assert not connection.in_transaction


def test_rollback_on_exception(connection, table, count_rows, insert_name):
    with pytest.raises(RuntimeError):
        with Savepoint.create(connection, "s1"):
            insert_name(connection, "a")
            raise RuntimeError("failure")

    assert count_rows(connection) == 0
    assert not connection.in_transaction


def test_explicit_rollback(connection, table, count_rows, insert_name):
    with Savepoint.create(connection, "s1") as savepoint:
        insert_name(connection, "a")
        savepoint.rollback()

        assert not savepoint.in_progress
        assert not connection.in_transaction

    assert count_rows(connection) == 0


def test_end_is_idempotent(connection, table, count_rows, insert_name):
    with Savepoint.create(connection, "s1") as savepoint:
        insert_name(connection, "a")
        savepoint.commit()
        savepoint.commit()
        savepoint.rollback()

    assert count_rows(connection) == 1

    with Savepoint.create(connection, "s2") as savepoint:
        insert_name(connection, "b")
        savepoint.rollback()
        savepoint.commit()

    assert count_rows(connection) == 1


def test_nested_inner_commit_outer_rollback(
    connection, table, count_rows, insert_name
):
    with Savepoint.create(connection, "outer"):
        with Savepoint.create(connection, "inner") as inner:
            insert_name(connection, "a")
            inner.commit()

        assert connection.in_transaction
        assert count_rows(connection) == 1

    assert count_rows(connection) == 0


def test_nested_inner_rollback_outer_commit(
    connection, table, count_rows, insert_name
):
    with Savepoint.create(connection, "outer") as outer:
        insert_name(connection, "a")

        with Savepoint.create(connection, "inner"):
            insert_name(connection, "b")

        assert connection.in_transaction
        outer.commit()

    with Statement.create(connection, "SELECT name FROM t") as stmt:
        assert stmt.step()
        assert stmt.get_column(0, str) == "a"
        assert not stmt.step()


def test_statement_reused_across_savepoints(connection, table, count_rows):
    with Statement.create(connection, "INSERT INTO t(name) VALUES (?)") as insert:
        insert.bind(1, "a")

        with Savepoint.create(connection, "s1") as savepoint:
            insert.execute()
            insert.reset()
            savepoint.commit()

        with Savepoint.create(connection, "s2"):
            insert.execute()
            insert.reset()

    assert count_rows(connection) == 1


def test_durable_commit(db_path, count_rows, insert_name):
    with Connection.create(db_path) as connection:
        sql = "CREATE TABLE t(id INTEGER PRIMARY KEY, name TEXT)"
        with Statement.create(connection, sql) as stmt:
            stmt.execute()

        with Savepoint.create(connection, "committed") as savepoint:
            insert_name(connection, "a")
            savepoint.commit()

        with Savepoint.create(connection, "abandoned"):
            insert_name(connection, "b")

    with Connection.create(db_path) as connection:
        assert count_rows(connection) == 1


def test_invalid_name(connection):
    with pytest.raises(PrepareError):
        Savepoint.create(connection, "bad]name")

    assert not connection.in_transaction


def test_commit_fail_fast(connection, abort, caplog):
    savepoint = Savepoint.create(connection, "s1")

    with Statement.create(connection, "RELEASE [s1]") as release:
        release.execute()

    with pytest.raises(abort):
        savepoint.commit()

    assert "Critical SQL statement failed" in caplog.text
    assert "no such savepoint: s1" in caplog.text


def test_rollback_fail_fast(connection, abort):
    savepoint = Savepoint.create(connection, "s1")

    with Statement.create(connection, "RELEASE [s1]") as release:
        release.execute()

    with pytest.raises(abort):
        savepoint.rollback()


def test_logging(connection, caplog):
    with caplog.at_level(logging.INFO, logger="sqlitewrap"):
        with Savepoint.create(connection, "s1") as savepoint:
            savepoint.commit()

        with Savepoint.create(connection, "s2"):
            pass

    assert "Begin savepoint: s1" in caplog.text
    assert "Commit savepoint: s1" in caplog.text
    assert "Roll back savepoint: s2" in caplog.text


def test_repr(connection):
    with Savepoint.create(connection, "s1") as savepoint:
        assert repr(savepoint) == "<Savepoint('s1', in progress)>"
        savepoint.commit()
        assert repr(savepoint) == "<Savepoint('s1', ended)>"
