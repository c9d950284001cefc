import select
import socket

import pytest

from pgversiond.netsetup import ServerConfig, ServerSockets, port_init
from pgversiond.status import ServerError, Status


class _Log:
    def __init__(self):
        self.lines = []

    def write(self, fmt, *args):
        self.lines.append(fmt % args if args else fmt)


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_port_init_default():
    assert port_init({}) == ServerConfig(port_http=8080)


def test_port_init_http():
    assert port_init({"HTTP_PORT": "9000"}).port_http == 9000


def test_port_init_leading_digits():
    assert port_init({"HTTP_PORT": "12abc"}).port_http == 12


def test_port_init_out_of_range_falls_back():
    assert port_init({"HTTP_PORT": "70000"}).port_http == 8080


def test_https_needs_cert_and_key():
    config = port_init({"HTTPS_PORT": "8443"})
    assert (config.port_http, config.port_https) == (8080, 0)
    config = port_init({"HTTPS_PORT": "8443", "CERT_FILE": "c", "KEY_FILE": "k"})
    assert (config.port_http, config.port_https) == (0, 8443)


def test_setup_listens_and_wakes():
    port = _free_port()
    log = _Log()
    with ServerSockets(ServerConfig(port_http=port), log).setup() as sockets:
        with socket.create_connection(("127.0.0.1", port), timeout=5):
            readable, _, _ = select.select([sockets.sock_http], [], [], 5)
            assert readable == [sockets.sock_http]
        sockets.wake()
        readable, _, _ = select.select([sockets.listener], [], [], 5)
        assert readable == [sockets.listener]
        assert log.lines == [f"[INFO] HTTP server started on port {port}"]
    assert sockets.sock_http is None and sockets.listener is None


def test_missing_certificate(tmp_path):
    config = ServerConfig(
        port_https=_free_port(),
        cert_file=str(tmp_path / "missing.pem"),
        key_file=str(tmp_path / "key.pem"),
    )
    with ServerSockets(config, _Log()) as sockets:
        with pytest.raises(ServerError) as info:
            sockets.setup()
    assert info.value.status is Status.ERROR_LOADING_CERT