"""
This module defines savepoints, named and nestable transaction scopes. A savepoint is
rolled back when its scope is left without an explicit commit, including when an
exception propagates.

Example::

    with Savepoint.create(connection, "insert_item") as savepoint:
        insert.execute()
        savepoint.commit()
"""

from __future__ import annotations

import logging
import contextlib
from types import TracebackType
from typing import Optional, Type, TYPE_CHECKING

from .statement import Statement

if TYPE_CHECKING:
    from .connection import Connection


__all__ = ["Savepoint"]

logger = logging.getLogger(__name__)


class Savepoint:
    """
    A transaction scope which either commits or rolls back exactly once.

    Create instances with :meth:`create`, which begins the savepoint. Savepoints on
    the same connection may be nested but must be given unique names, this is not
    checked. Nested savepoints must end before the savepoint that encloses them.

    :param connection: Connection to begin the savepoint on.
    :param name: Savepoint name. It is quoted with square brackets in SQL and must
        therefore not contain a closing bracket.
    """

    def __init__(self, connection: Connection, name: str) -> None:
        self.name = name
        self.connection = connection
        self._in_progress = False

        with contextlib.ExitStack() as stack:
            begin = stack.enter_context(
                Statement.create(connection, f"SAVEPOINT [{name}]")
            )
            self._rollback = stack.enter_context(
                Statement.create(connection, f"ROLLBACK TO [{name}]", persistent=True)
            )
            self._commit = stack.enter_context(
                Statement.create(connection, f"RELEASE [{name}]", persistent=True)
            )

            logger.info("Begin savepoint: %s", name)
            begin.step()

            # The rollback and commit statements live as long as the savepoint.
            stack.pop_all()

        begin.close()
        self._in_progress = True

    @classmethod
    def create(cls, connection: Connection, name: str) -> Savepoint:
        """
        Begins a savepoint.

        :param connection: Connection to begin the savepoint on.
        :param name: Savepoint name, unique among the open savepoints of the
            connection.
        :returns: Savepoint in progress.
        :raises PrepareError: if any of the savepoint statements cannot be compiled.
        :raises StepError: if beginning the savepoint fails.
        """
        return cls(connection, name)

    @property
    def in_progress(self) -> bool:
        """Whether the savepoint has been neither committed nor rolled back."""
        return self._in_progress

    def rollback(self) -> None:
        """
        Reverts all changes made since the savepoint began and ends it. Does nothing
        if the savepoint already ended.

        A failure aborts the process since the state of the enclosing transaction is
        unknown afterwards.
        """
        if self._in_progress:
            logger.info("Roll back savepoint: %s", self.name)
            self._rollback.step(fail_fast_on_error=True)
            # Remove the savepoint from the transaction stack, ending the transaction
            # if this is the outermost savepoint.
            self._commit.step(fail_fast_on_error=True)
            self._in_progress = False

    def commit(self) -> None:
        """
        Keeps all changes made since the savepoint began and ends it. Changes become
        durable once the outermost savepoint commits. Does nothing if the savepoint
        already ended.

        A failure aborts the process since the state of the enclosing transaction is
        unknown afterwards.
        """
        if self._in_progress:
            logger.info("Commit savepoint: %s", self.name)
            self._commit.step(fail_fast_on_error=True)
            self._in_progress = False

    def close(self) -> None:
        """Rolls back the savepoint if in progress and finalizes its statements."""
        try:
            self.rollback()
        finally:
            self._rollback.close()
            self._commit.close()

    def __enter__(self) -> Savepoint:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "in progress" if self._in_progress else "ended"
        return f"<{self.__class__.__name__}({self.name!r}, {state})>"
