"""Listening sockets, TLS context and the shutdown wake-up channel."""

import contextlib
import os
import re
import socket
import ssl
from dataclasses import dataclass
from typing import Optional

from .status import ServerError, Status

DEFAULT_HTTP_PORT = 8080


def _atoi(text) -> int:
    match = re.match(r"\s*([+-]?\d+)", text or "")
    return int(match.group(1)) if match else 0


def _valid_port(text) -> int:
    port = _atoi(text)
    return port if 0 < port <= 65535 else 0


@dataclass
class ServerConfig:
    """Listening numbers and TLS files of the server; zero disables a listener."""

    port_http: int = 0
    port_https: int = 0
    cert_file: Optional[str] = None
    key_file: Optional[str] = None


def port_init(environ=None) -> ServerConfig:
    """Read HTTP_PORT, HTTPS_PORT, CERT_FILE and KEY_FILE; default to HTTP on 8080."""
    env = os.environ if environ is None else environ
    config = ServerConfig(cert_file=env.get("CERT_FILE"), key_file=env.get("KEY_FILE"))
    if env.get("HTTP_PORT") is not None:
        config.port_http = _valid_port(env["HTTP_PORT"])
    if config.cert_file and config.key_file and env.get("HTTPS_PORT") is not None:
        config.port_https = _valid_port(env["HTTPS_PORT"])
    if not config.port_http and not config.port_https:
        config.port_http = DEFAULT_HTTP_PORT
    return config


def _load_context(cert_file, key_file) -> ssl.SSLContext:
    try:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    except ssl.SSLError as exc:
        raise ServerError(Status.COULD_NOT_CREATE_SSL_CTX) from exc
    try:
        with open(cert_file, "rb") as handle:
            if b"-----BEGIN CERTIFICATE-----" not in handle.read():
                raise ServerError(Status.ERROR_LOADING_CERT)
    except OSError as exc:
        raise ServerError(Status.ERROR_LOADING_CERT) from exc
    try:
        context.load_cert_chain(cert_file, key_file)
    except (ssl.SSLError, OSError) as exc:
        raise ServerError(Status.ERROR_LOADING_KEY) from exc
    return context


def _listen(port) -> socket.socket:
    try:
        sock = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
        with contextlib.suppress(OSError, AttributeError):
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        address = ("::", port)
    except OSError:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            raise ServerError(Status.ERROR_CREATING_SOCK) from exc
        address = ("0.0.0.0", port)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind(address)
    except OSError as exc:
        sock.close()
        raise ServerError(Status.ERROR_ASSOCIATING_SOCK_WITH_PORT) from exc
    try:
        sock.listen(socket.SOMAXCONN)
    except OSError as exc:
        sock.close()
        raise ServerError(Status.ERROR_LISTENING_SOCK_FOR_CONNECTIONS) from exc
    return sock


class ServerSockets:
    """Owns the server's listening sockets and its UDP loopback wake-up pair."""

    def __init__(self, config, log):
        self.config = config
        self.log = log
        self.listener = None
        self.writer = None
        self.sock_http = None
        self.sock_https = None
        self.ssl_context = None

    def setup(self):
        """Open every configured socket; raises ServerError on failure."""
        if self.config.port_http > 0:
            self.sock_http = _listen(self.config.port_http)
            self.log.write("[INFO] HTTP server started on port %d", self.config.port_http)
        if self.config.port_https > 0:
            self.ssl_context = _load_context(self.config.cert_file, self.config.key_file)
            self.sock_https = _listen(self.config.port_https)
            self.log.write("[INFO] HTTPS server started on port %d", self.config.port_https)
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.listener.bind(("127.0.0.1", 0))
        self.writer = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.writer.connect(self.listener.getsockname())
        return self

    def wake(self):
        """Make the listener readable so a blocked select returns."""
        if self.writer is not None:
            with contextlib.suppress(OSError):
                self.writer.send(b"x")

    def close(self):
        for sock in (self.listener, self.writer, self.sock_http, self.sock_https):
            if sock is not None:
                with contextlib.suppress(OSError):
                    sock.close()
        self.listener = self.writer = self.sock_http = self.sock_https = None
        self.ssl_context = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()