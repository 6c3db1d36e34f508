"""Build a file system image holding a root directory and a set of files."""

from __future__ import annotations

import os
import struct
import sys
from collections.abc import Iterable
from typing import TextIO

from ostepkit.layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    Dinode,
    Dirent,
    InodeType,
    Superblock,
    iblock,
)

NINODES = 200
DEFAULT_FSSIZE = 1000
DEFAULT_NLOG = 30

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


class ImageWriter:
    """Writes a fresh image: boot block, superblock, log, inodes, bitmap, data."""

    def __init__(self, path: str | os.PathLike, *, fssize: int = DEFAULT_FSSIZE,
                 nlog: int = DEFAULT_NLOG, ninodes: int = NINODES,
                 out: TextIO | None = None) -> None:
        nbitmap = fssize // BPB + 1
        ninodeblocks = ninodes // IPB + 1
        self.nmeta = 2 + nlog + ninodeblocks + nbitmap
        self.nblocks = fssize - self.nmeta
        if self.nblocks <= 0:
            raise ValueError("image too small for its metadata")
        self.sb = Superblock(
            size=fssize,
            nblocks=self.nblocks,
            ninodes=ninodes,
            nlog=nlog,
            logstart=2,
            inodestart=2 + nlog,
            bmapstart=2 + nlog + ninodeblocks,
        )
        self._out = out
        self._report(
            f"nmeta {self.nmeta} (boot, super, log blocks {nlog} inode blocks "
            f"{ninodeblocks}, bitmap blocks {nbitmap}) blocks {self.nblocks} total {fssize}"
        )
        self.freeblock = self.nmeta
        self.freeinode = 1
        self._file = open(path, "w+b")
        self._file.write(bytes(BSIZE * fssize))
        self._wsect(1, self.sb.pack().ljust(BSIZE, b"\0"))

    def __enter__(self) -> ImageWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._file.close()

    def _report(self, message: str) -> None:
        if self._out is not None:
            print(message, file=self._out)

    def _wsect(self, sec: int, data: bytes) -> None:
        self._file.seek(sec * BSIZE)
        self._file.write(data)

    def _rsect(self, sec: int) -> bytearray:
        self._file.seek(sec * BSIZE)
        data = self._file.read(BSIZE)
        if len(data) != BSIZE:
            raise ValueError(f"sector {sec} is outside the image")
        return bytearray(data)

    def _winode(self, inum: int, din: Dinode) -> None:
        block = iblock(inum, self.sb)
        buf = self._rsect(block)
        start = (inum % IPB) * DINODE_SIZE
        buf[start:start + DINODE_SIZE] = din.pack()
        self._wsect(block, buf)

    def _rinode(self, inum: int) -> Dinode:
        buf = self._rsect(iblock(inum, self.sb))
        start = (inum % IPB) * DINODE_SIZE
        return Dinode.unpack(buf[start:start + DINODE_SIZE])

    def _take_block(self) -> int:
        block = self.freeblock
        self.freeblock += 1
        return block

    def ialloc(self, itype: int) -> int:
        """Allocate the next inode with the given type and one link."""
        inum = self.freeinode
        if inum >= self.sb.ninodes:
            raise ValueError("out of inodes")
        self.freeinode += 1
        self._winode(inum, Dinode(type=int(itype), nlink=1, size=0))
        return inum

    def iappend(self, inum: int, data: bytes) -> None:
        """Append ``data`` to the contents of inode ``inum``."""
        din = self._rinode(inum)
        off = din.size
        view = memoryview(data)
        pos = 0
        while pos < len(view):
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError("file too large")
            if fbn < NDIRECT:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._take_block()
                target = din.addrs[fbn]
            else:
                if din.addrs[NDIRECT] == 0:
                    din.addrs[NDIRECT] = self._take_block()
                indirect = list(_INDIRECT.unpack(self._rsect(din.addrs[NDIRECT])))
                slot = fbn - NDIRECT
                if indirect[slot] == 0:
                    indirect[slot] = self._take_block()
                    self._wsect(din.addrs[NDIRECT], _INDIRECT.pack(*indirect))
                target = indirect[slot]
            n1 = min(len(view) - pos, (fbn + 1) * BSIZE - off)
            buf = self._rsect(target)
            start = off - fbn * BSIZE
            buf[start:start + n1] = view[pos:pos + n1]
            self._wsect(target, buf)
            pos += n1
            off += n1
        din.size = off
        self._winode(inum, din)

    def finish(self) -> None:
        """Round the root directory size up and write the free-block bitmap."""
        root = self._rinode(ROOTINO)
        root.size = (root.size // BSIZE + 1) * BSIZE
        self._winode(ROOTINO, root)
        self._write_bitmap(self.freeblock)
        self._file.flush()

    def _write_bitmap(self, used: int) -> None:
        self._report(f"balloc: first {used} blocks have been allocated")
        if used >= BPB:
            raise ValueError("too many blocks for one bitmap block")
        full, extra = divmod(used, 8)
        bitmap = bytearray(BSIZE)
        bitmap[:full] = b"\xff" * full
        if extra:
            bitmap[full] = (1 << extra) - 1
        self._report(f"balloc: write bitmap block at sector {self.sb.bmapstart}")
        self._wsect(self.sb.bmapstart, bitmap)


def make_image(path: str | os.PathLike, files: Iterable[str]) -> Superblock:
    """Create an image at ``path`` with ``files`` in its root directory.

    File names must not contain ``/``; one leading ``_`` is dropped from the
    stored name. Returns the image's superblock.
    """
    with ImageWriter(path, out=sys.stdout) as writer:
        root = writer.ialloc(InodeType.DIR)
        writer.iappend(root, Dirent(root, b".").pack())
        writer.iappend(root, Dirent(root, b"..").pack())

        for name in files:
            if "/" in name:
                raise ValueError(f"{name}: file names must not contain '/'")
            with open(name, "rb") as source:
                entry = os.fsencode(name)
                if entry.startswith(b"_"):
                    entry = entry[1:]
                inum = writer.ialloc(InodeType.FILE)
                writer.iappend(root, Dirent(inum, entry).pack())
                for chunk in iter(lambda: source.read(BSIZE), b""):
                    writer.iappend(inum, chunk)

        writer.finish()
        return writer.sb


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``mkfs fs.img files...``."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1
    try:
        make_image(args[0], args[1:])
    except OSError as exc:
        print(f"{exc.filename}: {exc.strerror}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"mkfs: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())