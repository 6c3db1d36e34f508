"""A minimal HTTP client that sends one request and prints the response."""

from __future__ import annotations

import socket
import sys
from typing import BinaryIO, TextIO

from ostepkit.netio import _atoi, open_client, readline

MAXBUF = 8192


def _decode(data: bytes) -> str:
    return data.decode("utf-8", "replace")


def send_request(wfile: BinaryIO, filename: str, hostname: str) -> None:
    """Send a GET request for ``filename``."""
    wfile.write(f"GET {filename} HTTP/1.1\nhost: {hostname}\n\r\n".encode("utf-8"))
    wfile.flush()


def print_response(rfile: BinaryIO, out: TextIO) -> None:
    """Copy the response to ``out``, marking each header line."""
    line = readline(rfile, MAXBUF)
    while line and line != b"\r\n":
        out.write("Header: " + _decode(line))
        line = readline(rfile, MAXBUF)
    for line in iter(lambda: readline(rfile, MAXBUF), b""):
        out.write(_decode(line))


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``wclient <host> <port> <filename>``."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 3:
        print("Usage: wclient <host> <port> <filename>", file=sys.stderr)
        return 1
    host, port, filename = args[0], _atoi(args[1]), args[2]
    try:
        with open_client(host, port) as sock, \
                sock.makefile("rb") as rfile, sock.makefile("wb") as wfile:
            send_request(wfile, filename, socket.gethostname())
            print_response(rfile, sys.stdout)
    except OSError as exc:
        print(f"wclient: {exc}", file=sys.stderr)
        return 1
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())