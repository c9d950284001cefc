"""Server status codes and their messages."""

from enum import IntEnum


class Status(IntEnum):
    """Outcome of a server operation."""

    STATUS_OK = 0
    ERROR_INIT_WINSOCKET = 1
    ERROR_CREATING_SOCK = 2
    ERROR_ASSOCIATING_SOCK_WITH_PORT = 3
    ERROR_LISTENING_SOCK_FOR_CONNECTIONS = 4
    COULD_NOT_CREATE_SSL_CTX = 5
    ERROR_LOADING_CERT = 6
    ERROR_LOADING_KEY = 7
    CLIENT_ACCEPT_FAILURE = 8
    FAILED_ALLOC = 9
    PG_ERROR = 10

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    Status.STATUS_OK: "OK",
    Status.ERROR_INIT_WINSOCKET: "Error initializing WinSock",
    Status.ERROR_CREATING_SOCK: "Error creating sock",
    Status.ERROR_ASSOCIATING_SOCK_WITH_PORT: "Error associating sock with port",
    Status.ERROR_LISTENING_SOCK_FOR_CONNECTIONS: "Error listening sock for connections",
    Status.COULD_NOT_CREATE_SSL_CTX: "Could not create SSL context",
    Status.ERROR_LOADING_CERT: "Error loading certificate",
    Status.ERROR_LOADING_KEY: "Error loading private key",
    Status.CLIENT_ACCEPT_FAILURE: "Client accept failure",
    Status.FAILED_ALLOC: "Memory allocation failed",
    Status.PG_ERROR: "Failed to connect to PostgreSQL",
}


def status_msg(code) -> str:
    """Return the message for a status code, or "Unknown status"."""
    try:
        return Status(code).message
    except ValueError:
        return "Unknown status"


class ServerError(Exception):
    """Raised when a server operation fails with a non-OK status."""

    def __init__(self, status):
        self.status = Status(status)
        super().__init__(status_msg(self.status))