"""
This module provides constants used throughout sqlitewrap: SQLite result codes, their
human-readable descriptions and the bits accepted by the engine's open call. It should
be kept free of memory heavy imports.
"""

# result codes
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_NOTICE = 27
SQLITE_WARNING = 28
SQLITE_ROW = 100
SQLITE_DONE = 101

SQLITE_ABORT_ROLLBACK = SQLITE_ABORT | (2 << 8)

# open flags
SQLITE_OPEN_READONLY = 0x00000001
SQLITE_OPEN_READWRITE = 0x00000002
SQLITE_OPEN_CREATE = 0x00000004
SQLITE_OPEN_EXCLUSIVE = 0x00000010
SQLITE_OPEN_URI = 0x00000040
SQLITE_OPEN_MEMORY = 0x00000080
SQLITE_OPEN_NOMUTEX = 0x00008000
SQLITE_OPEN_FULLMUTEX = 0x00010000

# Access modes accepted by sqlite3_open_v2, all other combinations of the low three
# bits are API misuse.
VALID_ACCESS_MODES = frozenset(
    [
        SQLITE_OPEN_READONLY,
        SQLITE_OPEN_READWRITE,
        SQLITE_OPEN_READWRITE | SQLITE_OPEN_CREATE,
    ]
)

# special open targets
MEMORY_TARGET = ":memory:"
TEMPORARY_TARGET = ""

# Name of the implicit row identifier column of every ordinary table.
ROW_ID_NAME = "rowid"

# integer ranges
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_ERROR_STRINGS = {
    SQLITE_OK: "not an error",
    SQLITE_ERROR: "SQL logic error",
    SQLITE_PERM: "access permission denied",
    SQLITE_ABORT: "query aborted",
    SQLITE_BUSY: "database is locked",
    SQLITE_LOCKED: "database table is locked",
    SQLITE_NOMEM: "out of memory",
    SQLITE_READONLY: "attempt to write a readonly database",
    SQLITE_INTERRUPT: "interrupted",
    SQLITE_IOERR: "disk I/O error",
    SQLITE_CORRUPT: "database disk image is malformed",
    SQLITE_NOTFOUND: "unknown operation",
    SQLITE_FULL: "database or disk is full",
    SQLITE_CANTOPEN: "unable to open database file",
    SQLITE_PROTOCOL: "locking protocol",
    SQLITE_SCHEMA: "database schema has changed",
    SQLITE_TOOBIG: "string or blob too big",
    SQLITE_CONSTRAINT: "constraint failed",
    SQLITE_MISMATCH: "datatype mismatch",
    SQLITE_MISUSE: "bad parameter or other API misuse",
    SQLITE_AUTH: "authorization denied",
    SQLITE_RANGE: "column index out of range",
    SQLITE_NOTADB: "file is not a database",
    SQLITE_NOTICE: "notification message",
    SQLITE_WARNING: "warning message",
}


def errstr(code: int) -> str:
    """
    Returns the English-language description of a result code, mirroring
    ``sqlite3_errstr``. Extended result codes are described by their primary code.

    :param code: Primary or extended SQLite result code.
    :returns: Description of the result code.
    """
    if code == SQLITE_ABORT_ROLLBACK:
        return "abort due to ROLLBACK"
    elif code == SQLITE_ROW:
        return "another row available"
    elif code == SQLITE_DONE:
        return "no more rows available"

    return _ERROR_STRINGS.get(code & 0xFF, "unknown error")
