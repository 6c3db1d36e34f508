"""A small grep supporting the ``^ . * $`` regular-expression operators."""

from __future__ import annotations

import os
import sys
from typing import BinaryIO

BUFSIZE = 1024


def match(pattern: str, text: str) -> bool:
    """Return whether ``pattern`` matches anywhere in ``text``."""
    if pattern.startswith("^"):
        return _match_here(pattern, 1, text, 0)
    return any(_match_here(pattern, 0, text, start) for start in range(len(text) + 1))


def _match_here(pattern: str, pi: int, text: str, ti: int) -> bool:
    while True:
        if pi == len(pattern):
            return True
        if pi + 1 < len(pattern) and pattern[pi + 1] == "*":
            return _match_star(pattern[pi], pattern, pi + 2, text, ti)
        if pattern[pi] == "$" and pi + 1 == len(pattern):
            return ti == len(text)
        if ti < len(text) and pattern[pi] in (".", text[ti]):
            pi += 1
            ti += 1
            continue
        return False


def _match_star(c: str, pattern: str, pi: int, text: str, ti: int) -> bool:
    while True:
        if _match_here(pattern, pi, text, ti):
            return True
        if ti < len(text) and (text[ti] == c or c == "."):
            ti += 1
            continue
        return False


def grep_stream(pattern: str, stream: BinaryIO, out: BinaryIO) -> None:
    """Write the newline-terminated lines of ``stream`` that match ``pattern``.

    Lines are matched as Latin-1 text. A trailing line without a newline is
    never printed, and a line that does not fit the read buffer is dropped.
    """
    pending = b""
    while True:
        chunk = stream.read(BUFSIZE - 1 - len(pending))
        if not chunk:
            return
        pending += chunk
        *lines, rest = pending.split(b"\n")
        for line in lines:
            if match(pattern, line.decode("latin-1")):
                out.write(line + b"\n")
        pending = rest if lines else b""


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``grep pattern [file ...]``."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("usage: grep pattern [file ...]", file=sys.stderr)
        return 1
    pattern = os.fsencode(args[0]).decode("latin-1")
    out = sys.stdout.buffer

    if len(args) == 1:
        grep_stream(pattern, sys.stdin.buffer, out)
        out.flush()
        return 0

    for path in args[1:]:
        try:
            source = open(path, "rb")
        except OSError:
            out.flush()
            print(f"grep: cannot open {path}", flush=True)
            return 1
        with source:
            grep_stream(pattern, source, out)
    out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())