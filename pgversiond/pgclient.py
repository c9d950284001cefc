"""Minimal PostgreSQL client speaking the version 3 wire protocol."""

import base64
import binascii
import contextlib
import getpass
import hashlib
import hmac
import os
import secrets
import socket
import struct

PROTOCOL_VERSION = 196608
DEFAULT_PORT = "5432"

_ENV_MAP = {
    "PGHOST": "host",
    "PGHOSTADDR": "hostaddr",
    "PGPORT": "port",
    "PGDATABASE": "dbname",
    "PGUSER": "user",
    "PGPASSWORD": "password",
    "PGAPPNAME": "application_name",
    "PGCONNECT_TIMEOUT": "connect_timeout",
    "PGOPTIONS": "options",
    "PGCLIENTENCODING": "client_encoding",
}


class PgError(Exception):
    """A PostgreSQL connection or query failure."""


def _default_host() -> str:
    if os.name == "nt":
        return "localhost"
    return "/var/run/postgresql" if os.path.isdir("/var/run/postgresql") else "/tmp"


def conninfo_from_env(environ=None) -> dict:
    """Build connection parameters from PG* environment variables and defaults."""
    env = os.environ if environ is None else environ
    params = {key: env[var] for var, key in _ENV_MAP.items() if env.get(var)}
    params.setdefault("user", getpass.getuser())
    params.setdefault("dbname", params["user"])
    params.setdefault("port", DEFAULT_PORT)
    if "host" not in params and "hostaddr" not in params:
        params["host"] = _default_host()
    return params


def _cstring(value: str) -> bytes:
    return value.encode("utf-8") + b"\0"


def _error_text(body: bytes) -> str:
    fields = {chr(part[0]): part[1:].decode("utf-8", "replace") for part in body.split(b"\0") if part}
    severity = fields.get("S") or "ERROR"
    return f"{severity}:  {fields.get('M', 'unknown error')}"


def _parse_row(body: bytes) -> tuple:
    (count,) = struct.unpack_from("!h", body, 0)
    offset = 2
    values = []
    for _ in range(count):
        (length,) = struct.unpack_from("!i", body, offset)
        offset += 4
        if length < 0:
            values.append(None)
        else:
            values.append(body[offset:offset + length].decode("utf-8", "replace"))
            offset += length
    return tuple(values)


def _scram_attrs(text: str) -> dict:
    return dict(part.split("=", 1) for part in text.split(",") if "=" in part)


def _hmac(key: bytes, message: bytes) -> bytes:
    return hmac.new(key, message, hashlib.sha256).digest()


class PgConnection:
    """A single connection to a PostgreSQL server."""

    def __init__(self, params):
        self.params = dict(params)
        self.server_parameters = {}
        self.backend_key = None
        self.error_message = ""
        self._sock = None
        self._reader = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self):
        """Open the connection and authenticate; raises PgError on failure."""
        self.close()
        self.server_parameters = {}
        try:
            self._sock = self._open_socket()
            self._reader = self._sock.makefile("rb")
            self._startup()
        except PgError as exc:
            self._fail(str(exc))
            raise
        except (OSError, ValueError) as exc:
            message = f"connection to server failed: {exc}"
            self._fail(message)
            raise PgError(message) from exc
        self.error_message = ""

    def reset(self):
        """Close the connection and open it again with the same parameters."""
        self.connect()

    def execute(self, sql):
        """Run a simple query and return its rows as tuples of text or None."""
        if self._sock is None:
            raise PgError(self.error_message or "no connection to the server")
        try:
            rows, error = self._run_query(sql)
        except (OSError, PgError) as exc:
            message = f"server closed the connection unexpectedly: {exc}"
            self._fail(message)
            raise PgError(message) from exc
        if error:
            self.error_message = error
            raise PgError(error)
        return rows

    def close(self):
        if self._sock is None:
            return
        with contextlib.suppress(OSError):
            self._send(b"X", b"")
        self._drop()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _fail(self, message):
        self.error_message = message
        self._drop()

    def _drop(self):
        for resource in (self._reader, self._sock):
            if resource is not None:
                with contextlib.suppress(OSError):
                    resource.close()
        self._reader = None
        self._sock = None

    def _open_socket(self):
        host = self.params.get("hostaddr") or self.params.get("host") or _default_host()
        port = int(self.params.get("port") or DEFAULT_PORT)
        raw_timeout = self.params.get("connect_timeout")
        timeout = float(raw_timeout) if raw_timeout and float(raw_timeout) > 0 else None
        if host.startswith("/"):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(timeout)
            try:
                sock.connect(os.path.join(host, f".s.PGSQL.{port}"))
            except OSError:
                sock.close()
                raise
        else:
            sock = socket.create_connection((host, port), timeout=timeout)
        sock.settimeout(None)
        return sock

    def _send(self, kind: bytes, payload: bytes):
        self._sock.sendall(kind + struct.pack("!i", len(payload) + 4) + payload)

    def _read_message(self):
        header = self._reader.read(5)
        if len(header) < 5:
            raise PgError("server closed the connection unexpectedly")
        (length,) = struct.unpack("!i", header[1:])
        body = self._reader.read(length - 4)
        if len(body) < length - 4:
            raise PgError("server closed the connection unexpectedly")
        return header[:1], body

    def _handle_async(self, kind, body):
        if kind == b"S":
            name, value, *_ = body.split(b"\0")
            self.server_parameters[name.decode()] = value.decode("utf-8", "replace")
        elif kind == b"K":
            self.backend_key = struct.unpack("!ii", body[:8])

    def _startup(self):
        user = self.params.get("user") or getpass.getuser()
        options = {"user": user, "database": self.params.get("dbname") or user}
        for key in ("application_name", "options", "client_encoding"):
            if self.params.get(key):
                options[key] = self.params[key]
        payload = struct.pack("!i", PROTOCOL_VERSION)
        payload += b"".join(_cstring(k) + _cstring(v) for k, v in options.items()) + b"\0"
        self._sock.sendall(struct.pack("!i", len(payload) + 4) + payload)
        while True:
            kind, body = self._read_message()
            if kind == b"R":
                self._authenticate(body, user)
            elif kind == b"E":
                raise PgError(_error_text(body))
            elif kind == b"Z":
                return
            else:
                self._handle_async(kind, body)

    def _password(self) -> str:
        secret_value = self.params.get("password")
        if not secret_value:
            raise PgError("fe_sendauth: no password supplied")
        return secret_value

    def _authenticate(self, body, user):
        (code,) = struct.unpack("!i", body[:4])
        if code == 0:
            return
        if code == 3:
            self._send(b"p", _cstring(self._password()))
        elif code == 5:
            salt = body[4:8]
            inner = hashlib.md5((self._password() + user).encode()).hexdigest()
            outer = hashlib.md5(inner.encode() + salt).hexdigest()
            self._send(b"p", _cstring("md5" + outer))
        elif code == 10:
            mechanisms = body[4:].split(b"\0")
            if b"SCRAM-SHA-256" not in mechanisms:
                raise PgError("none of the server's SASL authentication mechanisms are supported")
            self._scram(self._password())
        else:
            raise PgError(f"authentication method {code} not supported")

    def _expect_sasl(self, code) -> bytes:
        while True:
            kind, body = self._read_message()
            if kind == b"E":
                raise PgError(_error_text(body))
            if kind == b"R":
                if struct.unpack("!i", body[:4])[0] != code:
                    raise PgError("unexpected authentication message")
                return body[4:]
            self._handle_async(kind, body)

    def _scram(self, secret_value):
        client_nonce = base64.b64encode(secrets.token_bytes(18)).decode()
        first_bare = f"n=,r={client_nonce}"
        first = ("n,," + first_bare).encode()
        self._send(b"p", _cstring("SCRAM-SHA-256") + struct.pack("!i", len(first)) + first)
        server_first = self._expect_sasl(11).decode()
        attrs = _scram_attrs(server_first)
        nonce = attrs.get("r", "")
        if not nonce.startswith(client_nonce):
            raise PgError("invalid SCRAM nonce from server")
        try:
            salt = base64.b64decode(attrs["s"])
            iterations = int(attrs["i"])
        except (KeyError, ValueError, binascii.Error) as exc:
            raise PgError("malformed SCRAM message from server") from exc
        salted = hashlib.pbkdf2_hmac("sha256", secret_value.encode(), salt, iterations)
        client_key = _hmac(salted, b"Client Key")
        stored_key = hashlib.sha256(client_key).digest()
        without_proof = f"c=biws,r={nonce}"
        auth_message = f"{first_bare},{server_first},{without_proof}".encode()
        signature = _hmac(stored_key, auth_message)
        proof = bytes(a ^ b for a, b in zip(client_key, signature))
        final = f"{without_proof},p={base64.b64encode(proof).decode()}"
        self._send(b"p", final.encode())
        server_final = _scram_attrs(self._expect_sasl(12).decode())
        if "e" in server_final:
            raise PgError(f"SCRAM authentication failed: {server_final['e']}")
        expected = _hmac(_hmac(salted, b"Server Key"), auth_message)
        try:
            received = base64.b64decode(server_final.get("v", ""))
        except binascii.Error as exc:
            raise PgError("malformed SCRAM message from server") from exc
        if not hmac.compare_digest(received, expected):
            raise PgError("incorrect server signature")

    def _run_query(self, sql):
        self._send(b"Q", _cstring(sql))
        rows, error = [], None
        while True:
            kind, body = self._read_message()
            if kind == b"D":
                rows.append(_parse_row(body))
            elif kind == b"E":
                error = _error_text(body)
            elif kind == b"Z":
                return rows, error
            elif kind not in (b"T", b"C", b"I"):
                self._handle_async(kind, body)