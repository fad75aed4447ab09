# -*- coding: utf-8 -*-
"""
Typed, exception safe access to SQLite connections, prepared statements and nested
transactions.
"""

__version__ = "1.0.0"

from .constants import ROW_ID_NAME
from .connection import Connection, OpenDisposition, OpenFlags
from .statement import State, Statement
from .savepoint import Savepoint
from .errors import (
    SQLiteError,
    OpenError,
    PrepareError,
    BindingError,
    StepError,
    UnexpectedResultError,
    FatalStorageFault,
)

__all__ = [
    "ROW_ID_NAME",
    "Connection",
    "OpenDisposition",
    "OpenFlags",
    "State",
    "Statement",
    "Savepoint",
    "SQLiteError",
    "OpenError",
    "PrepareError",
    "BindingError",
    "StepError",
    "UnexpectedResultError",
    "FatalStorageFault",
]
