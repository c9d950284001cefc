import ssl

from pgversiond.handler import Client, client_addr_info, handle_client, log_ssl_error
from pgversiond.pgclient import PgError


class _Log:
    def __init__(self):
        self.lines = []

    def write(self, fmt, *args):
        self.lines.append(fmt % args if args else fmt)


class _Sock:
    def __init__(self):
        self.data = b""
        self.closed = False
        self.timeout = None

    def settimeout(self, value):
        self.timeout = value

    def send(self, data):
        self.data += bytes(data)
        return len(data)

    def close(self):
        self.closed = True


class _Pg:
    def __init__(self, version="PG 1", connected=True, fail=False):
        self.version = version
        self.connected = connected
        self.fail = fail
        self.resets = 0
        self.error_message = "boom"

    def reset(self):
        self.resets += 1
        self.connected = True

    def execute(self, sql):
        if self.fail:
            raise PgError("boom")
        return [(self.version,)]


def test_plain_response():
    sock = _Sock()
    client = Client(sock=sock, pg=_Pg())
    handle_client(client, None, _Log())
    assert sock.data == (
        b"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n"
        b"Content-Length: 4\r\nConnection: close\r\n\r\nPG 1"
    )
    assert sock.closed
    assert sock.timeout == 10.0


def test_reset_when_disconnected():
    pg = _Pg(connected=False)
    handle_client(Client(sock=_Sock(), pg=pg), None, _Log())
    assert pg.resets == 1


def test_query_error_logged():
    sock = _Sock()
    log = _Log()
    handle_client(Client(sock=sock, pg=_Pg(fail=True)), None, log)
    assert log.lines == ["[ERROR] PostgreSQL: boom"]
    assert b"Content-Length: 0\r\n" in sock.data


def test_response_truncated():
    sock = _Sock()
    handle_client(Client(sock=sock, pg=_Pg(version="v" * 500)), None, _Log())
    assert len(sock.data) == 255


def test_tls_failure_logs_and_closes():
    class _Ctx:
        def wrap_socket(self, sock, server_side):
            raise ssl.SSLError("handshake failed")

    sock = _Sock()
    log = _Log()
    handle_client(Client(sock=sock, pg=_Pg(), is_https=True), _Ctx(), log)
    assert sock.data == b""
    assert sock.closed
    assert log.lines[0].startswith("[WARN]")


def test_client_addr_info():
    client = Client()
    client_addr_info(client, ("10.0.0.1", 5000))
    assert client.ip == "10.0.0.1"
    other = Client()
    client_addr_info(other, ("::1", 5000, 0, 0))
    assert other.ip == ""


def test_log_ssl_error():
    log = _Log()
    log_ssl_error(log, "bad")
    assert log.lines == ["[WARN] bad"]