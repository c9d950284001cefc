"""Server entry point: signal handling and the accept loop."""

import os
import select
import signal
import threading

from .log import ServerLog
from .netsetup import ServerSockets, port_init
from .status import ServerError, Status, status_msg
from .tpool import ThreadPool, pool_len_init

_SIGNALS = ("SIGINT", "SIGTERM", "SIGABRT", "SIGHUP", "SIGQUIT")


def _install_signals(handler) -> dict:
    previous = {}
    if threading.current_thread() is not threading.main_thread():
        return previous
    for name in _SIGNALS:
        signum = getattr(signal, name, None)
        if signum is not None:
            previous[signum] = signal.signal(signum, handler)
    return previous


def _serve(sockets, pool, log, running) -> Status:
    status = Status.STATUS_OK
    while running.is_set():
        readers = [s for s in (sockets.listener, sockets.sock_http, sockets.sock_https) if s is not None]
        try:
            readable, _, _ = select.select(readers, [], [])
        except (OSError, ValueError):
            if running.is_set():
                log.write("[INFO] Error select client")
            continue
        try:
            if sockets.sock_http is not None and sockets.sock_http in readable:
                pool.put(sockets.sock_http, False)
            elif sockets.sock_https is not None and sockets.sock_https in readable:
                pool.put(sockets.sock_https, True)
            elif running.is_set():
                log.write("[INFO] Unknown client")
            status = Status.STATUS_OK
        except ServerError as exc:
            status = exc.status
            log.write("[ERROR] %s", status_msg(status))
    return status


def server_start(environ=None) -> Status:
    """Run the server until a termination signal arrives; return the final status."""
    env = os.environ if environ is None else environ
    running = threading.Event()
    running.set()
    log = ServerLog()
    sockets = ServerSockets(port_init(env), log)
    pool = ThreadPool(pool_len_init(env), log)

    def on_signal(signum, frame):
        running.clear()
        sockets.wake()

    previous = _install_signals(on_signal)
    try:
        try:
            pool.start()
            sockets.setup()
            pool.ssl_context = sockets.ssl_context
        except ServerError as exc:
            status = exc.status
            log.write("[FATAL] %s", status_msg(status))
        else:
            status = _serve(sockets, pool, log, running)
        sockets.close()
        pool.destroy()
        log.write("[INFO] Server closed")
        log.close()
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    return status


def main(argv=None) -> int:
    return int(server_start())