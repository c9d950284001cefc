"""Thread-safe append-only server log."""

import os
import sys
import threading

from .utils import formatted_gmtime


class ServerLog:
    """Timestamped log file; writes are serialised with a lock."""

    def __init__(self, path="server.log"):
        self.path = os.fspath(path)
        self._lock = threading.Lock()
        try:
            self._file = open(self.path, "a", encoding="utf-8")
        except OSError:
            print(f"Error opening {self.path}", file=sys.stderr)
            self._file = None

    def write(self, fmt, *args):
        """Append one line, formatting printf-style when arguments are given."""
        message = fmt % args if args else fmt
        with self._lock:
            if self._file is None:
                return
            self._file.write(f"[{formatted_gmtime()}] {message}\n")
            self._file.flush()

    def close(self):
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()