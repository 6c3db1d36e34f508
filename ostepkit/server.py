"""A sequential web server: one connection at a time, served from a root."""

from __future__ import annotations

import getopt
import os
import sys

from ostepkit.netio import _atoi, open_listen
from ostepkit.request import handle_request

USAGE = "usage: wserver [-d basedir] [-p port]"
DEFAULT_ROOT = "."
DEFAULT_PORT = 10000


def serve_forever(root: str, port: int) -> None:
    """Change into ``root`` and answer connections on ``port`` forever."""
    os.chdir(root)
    with open_listen(port) as listener:
        while True:
            conn, _ = listener.accept()
            with conn:
                handle_request(conn)


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``wserver [-d basedir] [-p port]``."""
    args = sys.argv[1:] if argv is None else argv
    try:
        options, _ = getopt.getopt(args, "d:p:")
    except getopt.GetoptError:
        print(USAGE, file=sys.stderr)
        return 1

    root, port = DEFAULT_ROOT, DEFAULT_PORT
    for option, value in options:
        if option == "-d":
            root = value
        else:
            port = _atoi(value)

    try:
        serve_forever(root, port)
    except OSError as exc:
        print(f"wserver: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())