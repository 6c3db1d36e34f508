"""Handling of a single HTTP/1.0 request: static files and CGI programs."""

from __future__ import annotations

import os
import socket
import stat
import subprocess
from typing import BinaryIO, NamedTuple

from ostepkit.netio import readline

MAXBUF = 8192
SERVER_NAME = "OSTEP WebServer"

_ERROR_BODY = (
    "<!doctype html>\r\n"
    "<head>\r\n"
    "  <title>OSTEP WebServer Error</title>\r\n"
    "</head>\r\n"
    "<body>\r\n"
    "  <h2>{errnum}: {shortmsg}</h2>\r\n"
    "  <p>{longmsg}: {cause}</p>\r\n"
    "</body>\r\n"
    "</html>\r\n"
)


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _decode(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


class ParsedUri(NamedTuple):
    """Result of mapping a request URI onto the file system."""

    is_static: bool
    filename: str
    cgiargs: str


def send_error(wfile: BinaryIO, cause: str, errnum: str, shortmsg: str, longmsg: str) -> None:
    """Write a complete HTML error response."""
    body = _encode(
        _ERROR_BODY.format(errnum=errnum, shortmsg=shortmsg, longmsg=longmsg, cause=cause)
    )
    header = _encode(
        f"HTTP/1.0 {errnum} {shortmsg}\r\n"
        "Content-Type: text/html\r\n"
        f"Content-Length: {len(body)}\r\n\r\n"
    )
    wfile.write(header + body)


def read_headers(rfile: BinaryIO) -> list[bytes]:
    """Consume header lines up to the blank line; return the lines consumed."""
    headers = []
    while True:
        line = readline(rfile, MAXBUF)
        if line in (b"\r\n", b""):
            return headers
        headers.append(line)


def parse_uri(uri: str) -> ParsedUri:
    """Map ``uri`` to a file name and, for CGI requests, its query arguments."""
    if "cgi" not in uri:
        filename = f".{uri}"
        if uri.endswith("/"):
            filename += "index.html"
        return ParsedUri(True, filename, "")
    path, mark, query = uri.partition("?")
    return ParsedUri(False, f".{path}", query if mark else "")


def get_filetype(filename: str) -> str:
    """Guess the content type of ``filename`` from its name."""
    if ".html" in filename:
        return "text/html"
    if ".gif" in filename:
        return "image/gif"
    if ".jpg" in filename:
        return "image/jpeg"
    return "text/plain"


def serve_dynamic(conn: socket.socket, filename: str, cgiargs: str) -> int:
    """Run the CGI program with its output going to the connection.

    The server writes only the status line and the Server header; the
    program finishes the headers. Returns the program's exit status.
    """
    conn.sendall(_encode(f"HTTP/1.0 200 OK\r\nServer: {SERVER_NAME}\r\n"))
    env = dict(os.environ, QUERY_STRING=cgiargs)
    completed = subprocess.run([filename], stdout=conn.fileno(), env=env, check=False)
    return completed.returncode


def serve_static(wfile: BinaryIO, filename: str, filesize: int) -> None:
    """Send ``filesize`` bytes of ``filename`` with a full header."""
    with open(filename, "rb") as source:
        content = source.read(filesize)
    header = _encode(
        "HTTP/1.0 200 OK\r\n"
        f"Server: {SERVER_NAME}\r\n"
        f"Content-Length: {filesize}\r\n"
        f"Content-Type: {get_filetype(filename)}\r\n\r\n"
    )
    wfile.write(header + content)


def handle_request(conn: socket.socket) -> int:
    """Answer one request on ``conn``, relative to the working directory.

    Returns the HTTP status code that was sent.
    """
    with conn.makefile("rb") as rfile, conn.makefile("wb") as wfile:
        return _respond(conn, rfile, wfile)


def _respond(conn: socket.socket, rfile: BinaryIO, wfile: BinaryIO) -> int:
    line = _decode(readline(rfile, MAXBUF))
    method, uri, version = (line.split() + ["", "", ""])[:3]
    print(f"method:{method} uri:{uri} version:{version}", flush=True)

    if method.upper() != "GET":
        send_error(wfile, method, "501", "Not Implemented",
                   "server does not implement this method")
        return 501
    read_headers(rfile)

    parsed = parse_uri(uri)
    try:
        info = os.stat(parsed.filename)
    except OSError:
        send_error(wfile, parsed.filename, "404", "Not found",
                   "server could not find this file")
        return 404

    regular = stat.S_ISREG(info.st_mode)
    if parsed.is_static:
        if not regular or not info.st_mode & stat.S_IRUSR:
            send_error(wfile, parsed.filename, "403", "Forbidden",
                       "server could not read this file")
            return 403
        serve_static(wfile, parsed.filename, info.st_size)
        return 200

    if not regular or not info.st_mode & stat.S_IXUSR:
        send_error(wfile, parsed.filename, "403", "Forbidden",
                   "server could not run this CGI program")
        return 403
    wfile.flush()
    serve_dynamic(conn, parsed.filename, parsed.cgiargs)
    return 200