"""Inodes, directories and path names on top of the buffer cache and log.

Layers, bottom up: a block allocator over the free bitmap, an inode cache
with reference counts and per-inode locks, inode contents addressed through
direct and indirect blocks, directories as files of entries, and path
lookup. Every change to disk goes through the log, so callers wrap
modifying operations in ``fs.log.transaction()``.
"""

from __future__ import annotations

import os
import struct
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import AnyStr, NamedTuple, Union

from ostepkit.bcache import BufferCache, Panic, _SleepLock
from ostepkit.fslog import Log
from ostepkit.layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    Dinode,
    Dirent,
    InodeType,
    Superblock,
    bblock,
    iblock,
)

NINODE = 50
NDEV = 10
CONSOLE = 1

_ADDR = struct.Struct("<I")
_INDIRECT = struct.Struct(f"<{NINDIRECT}I")

PathLike = Union[str, bytes]


class FsError(Exception):
    """A file system request that cannot be carried out."""


@dataclass(eq=False)
class Inode:
    """The in-memory copy of an inode, plus cache bookkeeping."""

    dev: int = 0
    inum: int = 0
    ref: int = 0
    valid: bool = False
    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))
    lock: _SleepLock = field(default_factory=lambda: _SleepLock("inode"), repr=False)

    def _load(self, din: Dinode) -> None:
        self.type = din.type
        self.major = din.major
        self.minor = din.minor
        self.nlink = din.nlink
        self.size = din.size
        self.addrs = list(din.addrs)

    def _dinode(self) -> Dinode:
        return Dinode(self.type, self.major, self.minor, self.nlink, self.size,
                      list(self.addrs))


@dataclass(frozen=True)
class Stat:
    """Metadata reported for an inode."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int


@dataclass
class Device:
    """Handlers for a device inode, selected by its major number."""

    read: Callable[[Inode, int], bytes] | None = None
    write: Callable[[Inode, bytes], int] | None = None


class DirLookup(NamedTuple):
    """A directory entry found by ``dirlookup``."""

    inode: Inode
    offset: int


def _as_bytes(name: PathLike) -> bytes:
    return os.fsencode(name)


def _cname(name: PathLike) -> bytes:
    return _as_bytes(name)[:DIRSIZ].split(b"\0", 1)[0]


def namecmp(s: PathLike, t: PathLike) -> int:
    """Compare two names on their first ``DIRSIZ`` bytes: negative, zero or positive."""
    a, b = _cname(s), _cname(t)
    return (a > b) - (a < b)


def skipelem(path: AnyStr) -> tuple[AnyStr, AnyStr] | None:
    """Split off the first path element.

    Returns the element, cut to ``DIRSIZ``, and the rest of the path without
    leading slashes; ``None`` when there is no element left.
    """
    sep = "/" if isinstance(path, str) else b"/"
    rest = path.lstrip(sep)
    if not rest:
        return None
    elem, _, rest = rest.partition(sep)
    return elem[:DIRSIZ], rest.lstrip(sep)


def fmtname(path: str) -> str:
    """The last element of ``path``, blank-padded to ``DIRSIZ`` when shorter."""
    name = path.rpartition("/")[2]
    return name if len(name) >= DIRSIZ else name.ljust(DIRSIZ)


class FileSystem:
    """One file system on one device."""

    def __init__(self, cache: BufferCache, dev: int = 1, *, log: Log | None = None,
                 ninode: int = NINODE, devices: Mapping[int, Device] | None = None) -> None:
        if ninode < 1:
            raise ValueError("the inode cache needs at least one entry")
        self.cache = cache
        self.dev = dev
        self.devices = dict(devices or {})
        self._lock = threading.Lock()
        self._inodes = [Inode() for _ in range(ninode)]
        self.sb = self._readsb()
        self.log = log if log is not None else Log(cache, dev)

    # Blocks.

    def _readsb(self) -> Superblock:
        bp = self.cache.bread(self.dev, 1)
        try:
            return Superblock.unpack(bp.data)
        finally:
            self.cache.brelse(bp)

    def _bzero(self, bno: int) -> None:
        bp = self.cache.bread(self.dev, bno)
        bp.data[:] = bytes(BSIZE)
        self.log.log_write(bp)
        self.cache.brelse(bp)

    def _balloc(self) -> int:
        for base in range(0, self.sb.size, BPB):
            bp = self.cache.bread(self.dev, bblock(base, self.sb))
            for bi in range(min(BPB, self.sb.size - base)):
                byte, mask = bi // 8, 1 << (bi % 8)
                if not bp.data[byte] & mask:
                    bp.data[byte] |= mask
                    self.log.log_write(bp)
                    self.cache.brelse(bp)
                    self._bzero(base + bi)
                    return base + bi
            self.cache.brelse(bp)
        raise Panic("balloc: out of blocks")

    def _bfree(self, b: int) -> None:
        bp = self.cache.bread(self.dev, bblock(b, self.sb))
        bi = b % BPB
        byte, mask = bi // 8, 1 << (bi % 8)
        if not bp.data[byte] & mask:
            self.cache.brelse(bp)
            raise Panic("freeing free block")
        bp.data[byte] &= ~mask & 0xFF
        self.log.log_write(bp)
        self.cache.brelse(bp)

    # Inodes.

    def _inode_slot(self, inum: int) -> tuple[int, int]:
        return iblock(inum, self.sb), (inum % IPB) * DINODE_SIZE

    def ialloc(self, itype: int) -> Inode:
        """Allocate a free inode of type ``itype``; return it referenced, unlocked."""
        for inum in range(1, self.sb.ninodes):
            block, start = self._inode_slot(inum)
            bp = self.cache.bread(self.dev, block)
            din = Dinode.unpack(bp.data[start:start + DINODE_SIZE])
            if din.type == InodeType.FREE:
                bp.data[start:start + DINODE_SIZE] = Dinode(type=int(itype)).pack()
                self.log.log_write(bp)
                self.cache.brelse(bp)
                return self.iget(inum)
            self.cache.brelse(bp)
        raise Panic("ialloc: no inodes")

    def iupdate(self, ip: Inode) -> None:
        """Copy a modified in-memory inode to disk. Caller holds its lock."""
        block, start = self._inode_slot(ip.inum)
        bp = self.cache.bread(ip.dev, block)
        bp.data[start:start + DINODE_SIZE] = ip._dinode().pack()
        self.log.log_write(bp)
        self.cache.brelse(bp)

    def iget(self, inum: int) -> Inode:
        """Return the cached inode ``inum``, neither locked nor read from disk."""
        with self._lock:
            empty = None
            for ip in self._inodes:
                if ip.ref > 0 and ip.dev == self.dev and ip.inum == inum:
                    ip.ref += 1
                    return ip
                if empty is None and ip.ref == 0:
                    empty = ip
            if empty is None:
                raise Panic("iget: no inodes")
            empty.dev = self.dev
            empty.inum = inum
            empty.ref = 1
            empty.valid = False
            return empty

    def idup(self, ip: Inode) -> Inode:
        """Add a reference to ``ip`` and return it."""
        with self._lock:
            ip.ref += 1
        return ip

    def ilock(self, ip: Inode) -> None:
        """Lock ``ip``, reading it from disk if necessary."""
        if ip is None or ip.ref < 1:
            raise Panic("ilock")
        ip.lock.acquire()
        if not ip.valid:
            block, start = self._inode_slot(ip.inum)
            bp = self.cache.bread(ip.dev, block)
            ip._load(Dinode.unpack(bp.data[start:start + DINODE_SIZE]))
            self.cache.brelse(bp)
            ip.valid = True
            if ip.type == InodeType.FREE:
                raise Panic("ilock: no type")

    def iunlock(self, ip: Inode) -> None:
        """Unlock ``ip``."""
        if ip is None or not ip.lock.holding() or ip.ref < 1:
            raise Panic("iunlock")
        ip.lock.release()

    def iput(self, ip: Inode) -> None:
        """Drop a reference; free the inode on disk if it was the last and unlinked.

        Must run inside a transaction when it may free the inode.
        """
        ip.lock.acquire()
        try:
            if ip.valid and ip.nlink == 0:
                with self._lock:
                    refs = ip.ref
                if refs == 1:
                    self._itrunc(ip)
                    ip.type = InodeType.FREE
                    self.iupdate(ip)
                    ip.valid = False
        finally:
            ip.lock.release()
        with self._lock:
            ip.ref -= 1

    def _iunlockput(self, ip: Inode) -> None:
        self.iunlock(ip)
        self.iput(ip)

    # Inode contents.

    def _bmap(self, ip: Inode, bn: int) -> int:
        if bn < NDIRECT:
            if ip.addrs[bn] == 0:
                ip.addrs[bn] = self._balloc()
            return ip.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if ip.addrs[NDIRECT] == 0:
                ip.addrs[NDIRECT] = self._balloc()
            bp = self.cache.bread(ip.dev, ip.addrs[NDIRECT])
            (addr,) = _ADDR.unpack_from(bp.data, bn * _ADDR.size)
            if addr == 0:
                addr = self._balloc()
                _ADDR.pack_into(bp.data, bn * _ADDR.size, addr)
                self.log.log_write(bp)
            self.cache.brelse(bp)
            return addr
        raise Panic("bmap: out of range")

    def _itrunc(self, ip: Inode) -> None:
        for i, addr in enumerate(ip.addrs[:NDIRECT]):
            if addr:
                self._bfree(addr)
                ip.addrs[i] = 0
        if ip.addrs[NDIRECT]:
            bp = self.cache.bread(ip.dev, ip.addrs[NDIRECT])
            for addr in _INDIRECT.unpack_from(bp.data):
                if addr:
                    self._bfree(addr)
            self.cache.brelse(bp)
            self._bfree(ip.addrs[NDIRECT])
            ip.addrs[NDIRECT] = 0
        ip.size = 0
        self.iupdate(ip)

    def stati(self, ip: Inode) -> Stat:
        """Metadata of ``ip``. Caller holds its lock."""
        return Stat(dev=ip.dev, ino=ip.inum, type=ip.type, nlink=ip.nlink, size=ip.size)

    def _device(self, ip: Inode, op: str) -> Callable:
        device = self.devices.get(ip.major) if 0 <= ip.major < NDEV else None
        handler = getattr(device, op, None) if device is not None else None
        if handler is None:
            raise FsError(f"no {op} handler for device {ip.major}")
        return handler

    def readi(self, ip: Inode, off: int, n: int) -> bytes:
        """Read up to ``n`` bytes at ``off``. Caller holds the inode's lock."""
        if ip.type == InodeType.DEV:
            return self._device(ip, "read")(ip, n)
        if off < 0 or n < 0 or off > ip.size:
            raise FsError(f"read at offset {off} of {n} bytes is out of range")
        end = min(off + n, ip.size)
        chunks = []
        pos = off
        while pos < end:
            bp = self.cache.bread(ip.dev, self._bmap(ip, pos // BSIZE))
            start = pos % BSIZE
            m = min(end - pos, BSIZE - start)
            chunks.append(bytes(bp.data[start:start + m]))
            self.cache.brelse(bp)
            pos += m
        return b"".join(chunks)

    def writei(self, ip: Inode, data: bytes, off: int) -> int:
        """Write ``data`` at ``off``, growing the file if needed; return its length.

        Caller holds the inode's lock and runs inside a transaction.
        """
        if ip.type == InodeType.DEV:
            return self._device(ip, "write")(ip, bytes(data))
        view = memoryview(data).cast("B")
        n = len(view)
        if off < 0 or off > ip.size:
            raise FsError(f"write at offset {off} is past the end of the file")
        if off + n > MAXFILE * BSIZE:
            raise FsError("write would exceed the largest file size")
        pos, end = off, off + n
        while pos < end:
            bp = self.cache.bread(ip.dev, self._bmap(ip, pos // BSIZE))
            start = pos % BSIZE
            m = min(end - pos, BSIZE - start)
            bp.data[start:start + m] = view[pos - off:pos - off + m]
            self.log.log_write(bp)
            self.cache.brelse(bp)
            pos += m
        if n > 0 and end > ip.size:
            ip.size = end
            self.iupdate(ip)
        return n

    # Directories.

    def dirlookup(self, dp: Inode, name: PathLike) -> DirLookup | None:
        """Find ``name`` in directory ``dp``; the inode comes back referenced."""
        if dp.type != InodeType.DIR:
            raise Panic("dirlookup not DIR")
        for off in range(0, dp.size, DIRENT_SIZE):
            raw = self.readi(dp, off, DIRENT_SIZE)
            if len(raw) != DIRENT_SIZE:
                raise Panic("dirlookup read")
            entry = Dirent.unpack(raw)
            if entry.inum and namecmp(name, entry.name) == 0:
                return DirLookup(self.iget(entry.inum), off)
        return None

    def dirlink(self, dp: Inode, name: PathLike, inum: int) -> None:
        """Add the entry ``name`` -> ``inum`` to directory ``dp``.

        Raises ``FileExistsError`` if the name is already present.
        """
        found = self.dirlookup(dp, name)
        if found is not None:
            self.iput(found.inode)
            raise FileExistsError(os.fsdecode(_as_bytes(name)))

        for off in range(0, dp.size, DIRENT_SIZE):
            raw = self.readi(dp, off, DIRENT_SIZE)
            if len(raw) != DIRENT_SIZE:
                raise Panic("dirlink read")
            if Dirent.unpack(raw).inum == 0:
                break
        else:
            off = dp.size

        entry = Dirent(inum, _as_bytes(name)[:DIRSIZ])
        if self.writei(dp, entry.pack(), off) != DIRENT_SIZE:
            raise Panic("dirlink")

    # Paths.

    def _namex(self, path: PathLike, parent: bool, cwd: Inode | None):
        rest = _as_bytes(path)
        if rest.startswith(b"/") or cwd is None:
            ip = self.iget(ROOTINO)
        else:
            ip = self.idup(cwd)

        while (step := skipelem(rest)) is not None:
            name, rest = step
            self.ilock(ip)
            if ip.type != InodeType.DIR:
                self._iunlockput(ip)
                return None
            if parent and not rest:
                self.iunlock(ip)
                return ip, name
            found = self.dirlookup(ip, name)
            if found is None:
                self._iunlockput(ip)
                return None
            self._iunlockput(ip)
            ip = found.inode

        if parent:
            self.iput(ip)
            return None
        return ip

    def namei(self, path: PathLike, cwd: Inode | None = None) -> Inode | None:
        """Look up ``path``; relative paths start at ``cwd``, or the root if none."""
        return self._namex(path, False, cwd)

    def nameiparent(self, path: PathLike,
                    cwd: Inode | None = None) -> tuple[Inode, bytes] | None:
        """Return the parent directory of ``path`` and the final element's name."""
        return self._namex(path, True, cwd)