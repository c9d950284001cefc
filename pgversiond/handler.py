"""Serving a single client: TLS handshake, PostgreSQL query and reply."""

import contextlib
import ssl
from dataclasses import dataclass
from typing import Any, Optional

from .http import send_all
from .pgclient import PgError

SOCK_TIMEOUT = 10.0
MAX_RESPONSE = 255
VERSION_QUERY = "SELECT version();"


@dataclass
class Client:
    """State of one accepted connection."""

    ip: str = ""
    port: int = 0
    is_https: bool = False
    ssl: Optional[Any] = None
    sock: Optional[Any] = None
    pg: Optional[Any] = None


def log_ssl_error(log, exc):
    """Record a TLS failure as a warning."""
    log.write("[WARN] %s", exc)


def _query_version(client, log) -> str:
    pg = client.pg
    if not pg.connected:
        with contextlib.suppress(PgError):
            pg.reset()
    try:
        rows = pg.execute(VERSION_QUERY)
    except PgError:
        log.write("[ERROR] PostgreSQL: %s", pg.error_message)
        return ""
    if not rows or rows[0][0] is None:
        return ""
    return rows[0][0]


def _response(version: str) -> bytes:
    body = version.encode("utf-8")
    head = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: text/html\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n\r\n"
    ).encode("ascii")
    return (head + body)[:MAX_RESPONSE]


def handle_client(client, ssl_context, log):
    """Answer the client with the PostgreSQL server version, then close it."""
    client.sock.settimeout(SOCK_TIMEOUT)
    try:
        if client.is_https:
            try:
                client.ssl = ssl_context.wrap_socket(client.sock, server_side=True)
            except (ssl.SSLError, OSError) as exc:
                log_ssl_error(log, exc)
                return
        send_all(client, _response(_query_version(client, log)))
    finally:
        if client.is_https and client.ssl is not None:
            with contextlib.suppress(OSError, ValueError):
                client.ssl.unwrap()
            with contextlib.suppress(OSError):
                client.ssl.close()
            client.ssl = None
        with contextlib.suppress(OSError):
            client.sock.close()


def client_addr_info(client, addr):
    """Store the peer's IPv4 address on the client; other families are ignored."""
    if isinstance(addr, tuple) and len(addr) == 2:
        client.ip = addr[0]