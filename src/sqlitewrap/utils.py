"""Utility functions"""

from __future__ import annotations

import os


def sanitize_string(string: str) -> str:
    """
    Converts a string which may contain surrogate escapes for bytes with unknown
    encoding, such as file paths or text read from a database, to a string which can
    always be displayed or printed. This is done by replacing invalid characters with
    "�".

    :param string: Original string.
    :returns: Sanitised string where all surrogate escapes have been replaced with "�".
    """
    return os.fsencode(string).decode(errors="replace")


def truncate(string: str, max_length: int, placeholder: str = "...") -> str:
    """
    Shortens a string to at most ``max_length`` characters, marking omitted text with
    a placeholder.

    :param string: Original string.
    :param max_length: Maximum length of the returned string.
    :param placeholder: Text appended to truncated strings.
    :returns: Truncated string.
    """
    if len(string) <= max_length:
        return string
    return string[: max(max_length - len(placeholder), 0)] + placeholder
