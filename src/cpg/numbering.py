# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Numbering and code formatting helpers shared by pipeline stages."""


def pad2(value: int) -> str:
    """Zero-pad a number to at least two digits."""
    return str(value).rjust(2, "0")


def index_to_alpha(index: int) -> str:
    """Convert a one-based item index to its two-character alpha code.

    Args:
        index: One-based maintainable item index.

    Returns:
        ``0A`` to ``0Z`` for 1-26, then ``AA``, ``AB``, ... above 26.

    Raises:
        ValueError: If ``index`` is not positive.
    """
    if index <= 0:
        raise ValueError("index must be > 0")
    if index <= 26:
        return "0" + chr(64 + index)
    first = chr(64 + (index - 1) // 26)
    second = chr(65 + (index - 1) % 26)
    return first + second


def format_number_code(index: int) -> str:
    """Format a library index as its three-character number code.

    Indices up to 999 are zero-padded digits. From 1000 on, the thousands
    become a letter (``A`` for 1000-1999) followed by the residue padded to
    two digits, so 1001 formats as ``A01``.

    Args:
        index: One-based library index.

    Returns:
        Formatted number code.
    """
    if index <= 9:
        return "00" + str(index)
    if index <= 99:
        return "0" + str(index)
    if index <= 999:
        return str(index)
    letter = chr(64 + index // 1000)
    return letter + str(index % 1000).rjust(2, "0")


def last_chars(value: str, count: int) -> str:
    """Return the trailing ``count`` characters of a value."""
    if count <= 0:
        return ""
    return value[-count:]
