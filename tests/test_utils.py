import socket
from datetime import datetime, timezone

import pytest

from pgversiond.utils import INVALID_SOCK, fd_max, formatted_gmtime

DEFAULT_FORMAT = "%Y-%m-%d %H:%M:%S+00"


def test_default_format_shape():
    stamp = formatted_gmtime()
    assert len(stamp) == 22
    assert datetime.strptime(stamp, DEFAULT_FORMAT).strftime(DEFAULT_FORMAT) == stamp


def test_default_format_is_current_utc():
    stamp = formatted_gmtime()
    parsed = datetime.strptime(stamp, DEFAULT_FORMAT)
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    assert abs((now - parsed).total_seconds()) < 5


def test_custom_format():
    year = formatted_gmtime("%Y")
    assert year == str(datetime.now(timezone.utc).year)


def test_fd_max_picks_largest():
    assert fd_max(3, 7, 5, INVALID_SOCK) == 7


def test_fd_max_stops_at_sentinel():
    assert fd_max(3, INVALID_SOCK, 10) == 3


def test_fd_max_single():
    assert fd_max(4) == 4


def test_fd_max_without_sentinel_uses_all():
    assert fd_max(2, 9, 4) == 9


def test_fd_max_accepts_sockets():
    a, b = socket.socketpair()
    with a, b:
        assert fd_max(a, b, INVALID_SOCK) == max(a.fileno(), b.fileno())


def test_fd_max_requires_argument():
    with pytest.raises(TypeError):
        fd_max()