"""Fixed-size pool of worker threads, each with its own PostgreSQL connection."""

import contextlib
import os
import threading

from .handler import Client, client_addr_info, handle_client
from .netsetup import _atoi
from .pgclient import PgConnection, PgError, conninfo_from_env
from .status import ServerError, Status

DEFAULT_POOL_LEN = 10


def pool_len_init(environ=None) -> int:
    """Return POOL_LEN if it is between 1 and 999, else the default of 10."""
    env = os.environ if environ is None else environ
    value = env.get("POOL_LEN")
    if value is not None:
        size = _atoi(value)
        if 0 < size <= 999:
            return size
    return DEFAULT_POOL_LEN


def _connect_from_env():
    connection = PgConnection(conninfo_from_env())
    connection.connect()
    return connection


class _Slot:
    def __init__(self, client):
        self.client = client
        self.is_free = True
        self.cond = threading.Condition()


class ThreadPool:
    """Hands accepted clients to idle worker threads."""

    def __init__(self, size, log, connect=None, ssl_context=None):
        self.size = size
        self.log = log
        self.ssl_context = ssl_context
        self._connect = connect or _connect_from_env
        self._cond = threading.Condition()
        self._slots = []
        self._threads = []
        self._free = 0
        self._stop = False

    def start(self):
        """Connect every slot to PostgreSQL and start its worker; raises ServerError."""
        for _ in range(self.size):
            try:
                pg = self._connect()
            except PgError as exc:
                self.log.write("[ERROR] %s", exc)
                raise ServerError(Status.PG_ERROR) from exc
            slot = _Slot(Client(pg=pg))
            self._slots.append(slot)
            with self._cond:
                self._free += 1
            thread = threading.Thread(target=self._work, args=(slot,), daemon=True)
            self._threads.append(thread)
            thread.start()
        return self

    def _work(self, slot):
        while True:
            with slot.cond:
                while slot.is_free and not self._stop:
                    slot.cond.wait()
                if self._stop:
                    return
                handle_client(slot.client, self.ssl_context, self.log)
                slot.is_free = True
            with self._cond:
                self._free += 1
                self._cond.notify_all()

    def put(self, sock, is_https):
        """Accept one connection from sock into a free slot, waiting for one if needed."""
        with self._cond:
            while self._free == 0 and not self._stop:
                self._cond.wait()
            if self._stop:
                return
            slot = next(s for s in self._slots if s.is_free)
            with slot.cond:
                try:
                    conn, addr = sock.accept()
                except OSError as exc:
                    raise ServerError(Status.CLIENT_ACCEPT_FAILURE) from exc
                slot.client.sock = conn
                slot.client.ssl = None
                slot.client.is_https = bool(is_https)
                client_addr_info(slot.client, addr)
                slot.is_free = False
                self._free -= 1
                slot.cond.notify_all()

    def destroy(self):
        """Stop the workers, close their connections and wait for them."""
        with self._cond:
            self._stop = True
            self._cond.notify_all()
        for slot in self._slots:
            with slot.cond:
                slot.cond.notify_all()
                with contextlib.suppress(Exception):
                    slot.client.pg.close()
        for thread in self._threads:
            thread.join()
        self._slots = []
        self._threads = []