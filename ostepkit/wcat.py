"""Concatenate files to standard output."""

from __future__ import annotations

import shutil
import sys
from collections.abc import Iterable
from typing import BinaryIO


def cat_files(paths: Iterable[str], out: BinaryIO) -> None:
    """Copy each file in ``paths`` to ``out`` in order.

    Raises ``OSError`` for a file that cannot be opened; the files before it
    have already been copied by then.
    """
    for path in paths:
        with open(path, "rb") as source:
            shutil.copyfileobj(source, out)


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``wcat [file ...]``."""
    args = sys.argv[1:] if argv is None else argv
    out = sys.stdout.buffer
    try:
        cat_files(args, out)
    except OSError:
        out.flush()
        print("wcat: cannot open file", flush=True)
        return 1
    out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())