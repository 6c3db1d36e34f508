"""Print the lines that contain a search term."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Iterator
from typing import AnyStr


def grep_lines(term: AnyStr, lines: Iterable[AnyStr]) -> Iterator[AnyStr]:
    """Yield the lines that contain ``term`` as a plain substring."""
    return (line for line in lines if term in line)


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``wgrep searchterm [file ...]``."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("wgrep: searchterm [file ...]", flush=True)
        return 1

    term = os.fsencode(args[0])
    out = sys.stdout.buffer
    if len(args) == 1:
        out.writelines(grep_lines(term, sys.stdin.buffer))
        out.flush()
        return 0

    for path in args[1:]:
        try:
            source = open(path, "rb")
        except OSError:
            out.flush()
            print("wgrep: cannot open file", flush=True)
            return 1
        with source:
            out.writelines(grep_lines(term, source))
    out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())