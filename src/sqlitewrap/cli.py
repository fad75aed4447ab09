"""
This module contains the command line interface of sqlitewrap. It runs single
statements against a database, mostly for inspection and debugging of databases
written through sqlitewrap.
"""

from __future__ import annotations

import re
import sys
import logging
import contextlib
from typing import Any, Iterator, Optional, cast

import click

from . import __version__
from .config import WrapperConfig
from .connection import Connection, OpenDisposition, OpenFlags
from .errors import SQLiteError
from .logging import CachedHandler, setup_logging
from .savepoint import Savepoint
from .statement import Statement
from .types import TEXT


_INTEGER = re.compile(r"[+-]?\d+")

# Number of log records shown when a statement fails.
TRACE_LENGTH = 10


# ==== printing messages to console ====================================================


def warn(message: str, nl: bool = True) -> None:
    """
    Print a warning to stdout. Will be prefixed with an exclamation mark.

    :param message: The string to output.
    :param nl: Whether to end with a new line.
    """
    click.echo(click.style("!", fg="red") + " " + message, nl=nl)


@contextlib.contextmanager
def convert_api_errors(trace: CachedHandler) -> Iterator[None]:
    """
    Context manager that catches a SQLiteError and prints a formatted error message
    to stdout, followed by the most recent statement trace. Calls ``sys.exit(1)``
    after printing the error to stdout.

    :param trace: Handler which caches the statement trace.
    """
    try:
        yield
    except SQLiteError as exc:
        warn(str(exc))

        messages = trace.get_all_messages()
        if messages:
            click.echo("Statement trace:")
            for message in messages:
                click.echo(click.style(f"  {message}", dim=True))

        sys.exit(1)


# ==== custom parameter types ==========================================================


class SqlParameter(click.ParamType):
    """A statement parameter given on the command line

    Integers are bound as integers and the literal ``NULL`` as SQL NULL. Everything
    else is bound as text.
    """

    name = "parameter"

    def convert(
        self,
        value: Any,
        param: Optional[click.Parameter],
        ctx: Optional[click.Context],
    ) -> Any:
        if not isinstance(value, str):
            return value
        if value == "NULL":
            return None
        if _INTEGER.fullmatch(value):
            return int(value)
        return value


@contextlib.contextmanager
def _logging(
    verbose: bool, log_file: Optional[str], level: int
) -> Iterator[CachedHandler]:
    handlers = []

    if log_file:
        handlers += setup_logging(level, file=log_file, stderr=False)
    if verbose:
        handlers += setup_logging(logging.DEBUG, stderr=True)

    # Set up last, it lowers the logger level to DEBUG.
    trace_handlers = setup_logging(logging.DEBUG, stderr=False, cache=TRACE_LENGTH)
    trace = cast(CachedHandler, trace_handlers[0])
    handlers += trace_handlers

    try:
        yield trace
    finally:
        root_logger = logging.getLogger("sqlitewrap")
        for handler in handlers:
            root_logger.removeHandler(handler)
            handler.close()


def _format_column(statement: Statement, column: int) -> str:
    if statement.get_column_is_null(column):
        return "NULL"
    return statement.get_column(column, TEXT)


def _run(connection: Connection, statement: Statement) -> None:
    while statement.step():
        columns = range(statement.get_column_count())
        click.echo("\t".join(_format_column(statement, c) for c in columns))

    if statement.get_column_count() == 0:
        click.echo(f"Rows changed: {connection.get_changes()}")
        click.echo(f"Last insert row ID: {connection.get_last_insert_row_id()}")


# ==== commands ========================================================================


@click.group(help="Run SQL statements against SQLite databases.")
@click.version_option(version=__version__, message="%(version)s")
def main() -> None:
    pass


@main.command(
    name="exec",
    help="""
Run a single SQL statement.

Positional PARAMS are bound to the statement's parameters in order. Integers are bound
as integers and NULL as SQL NULL, all other values as text. Rows are printed with
tab-separated columns.
""",
)
@click.argument("database")
@click.argument("sql")
@click.argument("params", nargs=-1, type=SqlParameter())
@click.option(
    "--read-only", is_flag=True, default=False, help="Open the database read-only."
)
@click.option(
    "--must-exist",
    "disposition",
    flag_value=OpenDisposition.OpenExisting.name,
    help="Fail if the database does not exist.",
)
@click.option(
    "--new",
    "disposition",
    flag_value=OpenDisposition.CreateNew.name,
    help="Fail if the database already exists.",
)
@click.option(
    "--savepoint",
    metavar="NAME",
    help="Run the statement in a savepoint which is committed on success.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Configuration file with connection defaults.",
)
@click.option(
    "--log-file", type=click.Path(dir_okay=False), help="Append log records to file."
)
@click.option("--verbose", "-v", is_flag=True, help="Print statement trace to stderr.")
def exec_(
    database: str,
    sql: str,
    params: tuple,
    read_only: bool,
    disposition: Optional[str],
    savepoint: Optional[str],
    config_path: Optional[str],
    log_file: Optional[str],
    verbose: bool,
) -> None:
    config = WrapperConfig(config_path or "", load=bool(config_path))

    try:
        default_disposition, flags = config.open_options()
    except ValueError as exc:
        raise click.ClickException(str(exc))

    if read_only:
        # The engine only opens existing databases read-only.
        default_disposition = OpenDisposition.OpenExisting
        flags = (flags & ~OpenFlags.ReadWrite) | OpenFlags.ReadOnly
    if disposition:
        default_disposition = OpenDisposition[disposition]

    busy_timeout = config.get("connection", "busy_timeout")
    log_level = config.get("app", "log_level")

    with _logging(verbose, log_file, log_level) as trace, convert_api_errors(trace):
        with Connection.create(database, default_disposition, flags) as connection:
            if busy_timeout > 0:
                connection.set_busy_timeout(busy_timeout)

            with Statement.create(connection, sql) as statement:
                for index, value in enumerate(params, start=1):
                    statement.bind(index, value)

                if savepoint:
                    with Savepoint.create(connection, savepoint) as sp:
                        _run(connection, statement)
                        statement.reset()
                        sp.commit()
                else:
                    _run(connection, statement)
