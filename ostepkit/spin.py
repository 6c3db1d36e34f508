"""A CGI program that sleeps for the number of seconds in its query string."""

from __future__ import annotations

import os
import re
import sys
import time

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    found = _LEADING_INT.match(text)
    return int(found.group(1)) if found else 0


def spin(seconds: float) -> float:
    """Sleep in one-second steps until ``seconds`` have passed; return the time taken."""
    start = time.time()
    while time.time() - start < seconds:
        time.sleep(1)
    return time.time() - start


def render(query: str | None, elapsed: float) -> str:
    """Build the CGI output: the remaining headers and the HTML body."""
    shown = "(null)" if query is None else query
    content = (
        f"<p>Welcome to the CGI program ({shown})</p>\r\n"
        "<p>My only purpose is to waste time on the server!</p>\r\n"
        f"<p>I spun for {elapsed:.2f} seconds</p>\r\n"
    )
    length = len(content.encode("utf-8"))
    return f"Content-length: {length}\r\nContent-type: text/html\r\n\r\n{content}"


def main(argv: list[str] | None = None) -> int:
    """CGI entry point; the duration comes from ``QUERY_STRING``."""
    query = os.environ.get("QUERY_STRING")
    seconds = float(_atoi(query)) if query is not None else 0.0
    elapsed = spin(seconds)
    sys.stdout.write(render(query, elapsed))
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())