# pgversiond

`pgversiond` is a small threaded HTTP and HTTPS server. Every connection it
accepts gets one answer: a `200 OK` response whose body is the result of
`SELECT version();` run against a PostgreSQL server. After that the
connection is closed. The server does not read or parse the request.

Connections are handed to a fixed-size pool of worker threads. Each worker
keeps its own PostgreSQL connection and tries to open it again when it has
been lost. The package has no third-party runtime dependencies; it talks to
PostgreSQL through its own small wire-protocol client.

## Installation

```
pip install .
```

## Running

```
pgversiond
```

The server runs until it receives `SIGINT`, `SIGTERM` or `SIGABRT` (and,
where the platform has them, `SIGHUP` or `SIGQUIT`). It then stops taking
clients, closes its sockets, stops its workers, closes their PostgreSQL
connections and exits.

The same can be done from Python:

```python
from pgversiond.server import server_start

status = server_start({"HTTP_PORT": "8000", "POOL_LEN": "4"})
```

`server_start(environ)` reads its settings from the mapping given (or from
`os.environ` when it is `None`) and returns a `pgversiond.status.Status`.
Signal handlers are only installed when it is called from the main thread.

## Configuration

The server's settings are read from the environment.

| Variable      | Meaning                                                               |
|---------------|-----------------------------------------------------------------------|
| `HTTP_PORT`   | Port for plain HTTP (1–65535).                                        |
| `HTTPS_PORT`  | Port for HTTPS (1–65535); used only when `CERT_FILE` and `KEY_FILE` are both set. |
| `CERT_FILE`   | PEM certificate for HTTPS.                                            |
| `KEY_FILE`    | PEM private key for HTTPS.                                            |
| `POOL_LEN`    | Number of worker threads (1–999, default 10).                         |

Numbers are read the way C's `atoi` reads them (leading digits, anything
after them ignored). If neither an HTTP nor an HTTPS port ends up set, the
server listens for HTTP on port 8080. Listening sockets are dual-stack where
the system allows it, accepting both IPv6 and IPv4 clients.

Client sockets have a 10-second timeout. A response is cut to at most 255
bytes, headers included.

### PostgreSQL connection

Each worker connects when the pool starts; if any connection fails, the
error is logged and the server exits. Connection parameters come from these
variables:

`PGHOST`, `PGHOSTADDR`, `PGPORT`, `PGDATABASE`, `PGUSER`, `PGPASSWORD`,
`PGAPPNAME`, `PGCONNECT_TIMEOUT`, `PGOPTIONS`, `PGCLIENTENCODING`.

Without them the user is the current login name, the database has the same
name as the user, the port is 5432, and the host is the Unix socket
directory `/var/run/postgresql` (or `/tmp` if that does not exist;
`localhost` on Windows). A host that starts with `/` is taken as a Unix
socket directory. Trust, clear-text password, MD5 and SCRAM-SHA-256
authentication are supported.

If the query fails, the error is logged and the response body is empty.

## Example

```
export PGHOST=localhost PGUSER=postgres PGDATABASE=postgres
export HTTP_PORT=8000 POOL_LEN=4
pgversiond
```

Any connection to `http://localhost:8000/` is answered with the PostgreSQL
version string, for example `PostgreSQL 16.2 on x86_64-pc-linux-gnu, ...`.

## Logging

Messages are appended to `server.log` in the working directory. Each line
starts with a UTC timestamp in the form `YYYY-MM-DD HH:MM:SS+00` and carries
a level tag such as `[INFO]`, `[WARN]`, `[ERROR]` or `[FATAL]`. Failed TLS
handshakes are logged as `[WARN]`. If the file cannot be opened, the server
prints `Error opening server.log` to standard error and logs nothing.

`pgversiond.log.ServerLog` can be used on its own; it is thread-safe and
works as a context manager:

```python
from pgversiond.log import ServerLog

with ServerLog("app.log") as log:
    log.write("[INFO] listening on port %d", 8000)
```

## Exit status

`pgversiond` exits with `0` after a clean shutdown. If startup fails, the
reason is logged as `[FATAL]` and the exit status is the number of the
matching `pgversiond.status.Status` member, for example:

| Status                                 | Code | Message                               |
|----------------------------------------|------|---------------------------------------|
| `ERROR_CREATING_SOCK`                  | 2    | Error creating sock                   |
| `ERROR_ASSOCIATING_SOCK_WITH_PORT`     | 3    | Error associating sock with port      |
| `ERROR_LISTENING_SOCK_FOR_CONNECTIONS` | 4    | Error listening sock for connections  |
| `ERROR_LOADING_CERT`                   | 6    | Error loading certificate             |
| `ERROR_LOADING_KEY`                    | 7    | Error loading private key             |
| `PG_ERROR`                             | 10   | Failed to connect to PostgreSQL       |

`pgversiond.status.status_msg(code)` gives the message for any code, and
`Unknown status` for codes it does not know.

## What it does not do

- It serves only the version string; there are no routes, request parsing
  or other content.
- The PostgreSQL client does not use TLS, and does not read `.pgpass`,
  service files or `PGSSLMODE`.

## Development

```
pip install -e ".[test]"
pytest
```