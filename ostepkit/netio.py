"""Socket and line-reading helpers shared by the web server and client."""

from __future__ import annotations

import re
import socket
from typing import BinaryIO

LISTEN_BACKLOG = 1024

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Parse a leading decimal integer, yielding 0 when there is none."""
    found = _LEADING_INT.match(text)
    return int(found.group(1)) if found else 0


def readline(stream: BinaryIO, maxlen: int) -> bytes:
    """Read one line of at most ``maxlen - 1`` bytes, newline included.

    Returns ``b""`` once the stream is exhausted.
    """
    if maxlen < 2:
        raise ValueError("maxlen must be at least 2")
    return stream.readline(maxlen - 1)


def open_client(hostname: str, port: int) -> socket.socket:
    """Resolve ``hostname`` and return a TCP socket connected to it."""
    address = socket.gethostbyname(hostname)
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((address, port))
    except OSError:
        sock.close()
        raise
    return sock


def open_listen(port: int) -> socket.socket:
    """Return a TCP socket listening on ``port`` on every local address."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen(LISTEN_BACKLOG)
    except OSError:
        sock.close()
        raise
    return sock