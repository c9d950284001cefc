"""Threaded HTTP/HTTPS server that answers with the PostgreSQL server version."""

__version__ = "0.1.0"