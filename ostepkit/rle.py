"""Run-length encoding: each run is a 4-byte little-endian count and the byte."""

from __future__ import annotations

import struct
import sys
from collections.abc import Iterable, Iterator

_RECORD = struct.Struct("<IB")
_MAX_RUN = 0xFFFFFFFF


def compress(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Yield encoded runs for the concatenation of ``chunks``.

    Runs continue across chunk boundaries, so several files compress as one
    stream.
    """
    prev: int | None = None
    count = 0
    for chunk in chunks:
        for byte in chunk:
            if byte == prev and count < _MAX_RUN:
                count += 1
                continue
            if prev is not None:
                yield _RECORD.pack(count, prev)
            prev, count = byte, 1
    if prev is not None:
        yield _RECORD.pack(count, prev)


def decompress(data: bytes) -> bytes:
    """Expand a sequence of encoded runs."""
    if len(data) % _RECORD.size:
        raise ValueError("compressed data is not a whole number of records")
    return b"".join(bytes([byte]) * count for count, byte in _RECORD.iter_unpack(data))


def _read_files(paths: Iterable[str]) -> Iterator[bytes]:
    for path in paths:
        with open(path, "rb") as source:
            yield source.read()


def zip_main(argv: list[str] | None = None) -> int:
    """Command entry point: ``wzip file1 [file2 ...]``."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("wzip: file1 [file2 ...]", flush=True)
        return 1
    out = sys.stdout.buffer
    try:
        for record in compress(_read_files(args)):
            out.write(record)
    except OSError:
        out.flush()
        print("wzip: cannot open file", flush=True)
        return 1
    out.flush()
    return 0


def unzip_main(argv: list[str] | None = None) -> int:
    """Command entry point: ``wunzip file1 [file2 ...]``."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("wunzip: file1 [file2 ...]", flush=True)
        return 1
    out = sys.stdout.buffer
    for path in args:
        try:
            with open(path, "rb") as source:
                data = source.read()
        except OSError:
            out.flush()
            print("wunzip: cannot open file", flush=True)
            return 1
        try:
            out.write(decompress(data))
        except ValueError as exc:
            out.flush()
            print(f"wunzip: {exc}", flush=True)
            return 1
    out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(zip_main())