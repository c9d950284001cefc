import pytest

from pgversiond.status import ServerError, Status, status_msg


def test_ok_message():
    assert status_msg(Status.STATUS_OK) == "OK"


@pytest.mark.parametrize(
    ("code", "message"),
    [
        (Status.ERROR_CREATING_SOCK, "Error creating sock"),
        (Status.ERROR_LOADING_CERT, "Error loading certificate"),
        (Status.ERROR_LOADING_KEY, "Error loading private key"),
        (Status.CLIENT_ACCEPT_FAILURE, "Client accept failure"),
        (Status.PG_ERROR, "Failed to connect to PostgreSQL"),
    ],
)
def test_known_messages(code, message):
    assert status_msg(code) == message
    assert status_msg(int(code)) == message


@pytest.mark.parametrize("code", [-1, len(Status), 1000])
def test_unknown_status(code):
    assert status_msg(code) == "Unknown status"


def test_integer_codes_start_at_zero_and_end_at_last_status():
    assert status_msg(0) == "OK"
    assert status_msg(len(Status) - 1) == "Failed to connect to PostgreSQL"
    assert status_msg(len(Status)) == "Unknown status"


def test_every_status_has_message():
    messages = {status_msg(s) for s in Status}
    assert messages == {
        "OK",
        "Error initializing WinSock",
        "Error creating sock",
        "Error associating sock with port",
        "Error listening sock for connections",
        "Could not create SSL context",
        "Error loading certificate",
        "Error loading private key",
        "Client accept failure",
        "Memory allocation failed",
        "Failed to connect to PostgreSQL",
    }


def test_server_error_carries_status():
    err = ServerError(Status.ERROR_ASSOCIATING_SOCK_WITH_PORT)
    assert err.status is Status.ERROR_ASSOCIATING_SOCK_WITH_PORT
    assert str(err) == "Error associating sock with port"


def test_server_error_rejects_unknown_code():
    with pytest.raises(ValueError):
        ServerError(1000)