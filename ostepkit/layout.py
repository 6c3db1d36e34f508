"""On-disk file system format: block layout, superblock, inodes, directories."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

ROOTINO = 1
BSIZE = 512
NDIRECT = 12
NINDIRECT = BSIZE // 4
MAXFILE = NDIRECT + NINDIRECT
DIRSIZ = 14
BPB = BSIZE * 8

_SUPERBLOCK = struct.Struct("<7I")
_DINODE = struct.Struct(f"<4hI{NDIRECT + 1}I")
_DIRENT = struct.Struct(f"<H{DIRSIZ}s")

SUPERBLOCK_SIZE = _SUPERBLOCK.size
DINODE_SIZE = _DINODE.size
DIRENT_SIZE = _DIRENT.size
IPB = BSIZE // DINODE_SIZE


class InodeType(enum.IntEnum):
    """Values of the inode ``type`` field."""

    FREE = 0
    DIR = 1
    FILE = 2
    DEV = 3


def _unpack(layout: struct.Struct, data: bytes, what: str) -> tuple:
    try:
        return layout.unpack_from(data)
    except struct.error as exc:
        raise ValueError(f"{what}: {exc}") from None


def _pack(layout: struct.Struct, what: str, *values) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise ValueError(f"{what}: {exc}") from None


@dataclass
class Superblock:
    """Describes the disk layout; stored in block 1."""

    size: int = 0
    nblocks: int = 0
    ninodes: int = 0
    nlog: int = 0
    logstart: int = 0
    inodestart: int = 0
    bmapstart: int = 0

    def pack(self) -> bytes:
        return _pack(_SUPERBLOCK, "superblock", self.size, self.nblocks, self.ninodes,
                     self.nlog, self.logstart, self.inodestart, self.bmapstart)

    @classmethod
    def unpack(cls, data: bytes) -> Superblock:
        return cls(*_unpack(_SUPERBLOCK, data, "superblock"))


@dataclass
class Dinode:
    """An inode as stored on disk."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))

    def pack(self) -> bytes:
        if len(self.addrs) != NDIRECT + 1:
            raise ValueError(f"inode needs {NDIRECT + 1} block addresses")
        return _pack(_DINODE, "inode", self.type, self.major, self.minor,
                     self.nlink, self.size, *self.addrs)

    @classmethod
    def unpack(cls, data: bytes) -> Dinode:
        fields = _unpack(_DINODE, data, "inode")
        return cls(*fields[:5], addrs=list(fields[5:]))


@dataclass
class Dirent:
    """A directory entry; inode number 0 marks a free slot."""

    inum: int = 0
    name: bytes = b""

    def pack(self) -> bytes:
        return _pack(_DIRENT, "directory entry", self.inum, self.name[:DIRSIZ])

    @classmethod
    def unpack(cls, data: bytes) -> Dirent:
        inum, raw = _unpack(_DIRENT, data, "directory entry")
        return cls(inum, raw.split(b"\0", 1)[0])


def iblock(inum: int, sb: Superblock) -> int:
    """Block holding inode ``inum``."""
    return inum // IPB + sb.inodestart


def bblock(b: int, sb: Superblock) -> int:
    """Block of the free map holding the bit for block ``b``."""
    return b // BPB + sb.bmapstart