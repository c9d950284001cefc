"""Time formatting and descriptor helpers."""

import time
from itertools import takewhile

INVALID_SOCK = -1
DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S+00"


def formatted_gmtime(fmt=None) -> str:
    """Format the current UTC time; defaults to PostgreSQL's timestamptz style."""
    return time.strftime(fmt or DEFAULT_TIME_FORMAT, time.gmtime())


def _fileno(value) -> int:
    return value if isinstance(value, int) else value.fileno()


def fd_max(*args) -> int:
    """Return the largest descriptor, reading up to the first INVALID_SOCK after the first."""
    if not args:
        raise TypeError("fd_max() needs at least one descriptor")
    first, *rest = (_fileno(arg) for arg in args)
    return max([first, *takewhile(lambda fd: fd != INVALID_SOCK, rest)])