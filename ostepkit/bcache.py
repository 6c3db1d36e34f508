"""Block buffer cache over an in-memory disk.

Buffers hold cached copies of disk blocks. ``bread`` returns a locked
buffer, ``bwrite`` writes it back, and ``brelse`` unlocks it and makes it
the most recently used. Only one thread at a time can hold a buffer.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field

from ostepkit.layout import BSIZE

MAXOPBLOCKS = 10
NBUF = MAXOPBLOCKS * 3


class Panic(RuntimeError):
    """An unrecoverable consistency failure in the storage layer."""


class BufFlag(enum.IntFlag):
    """State bits of a buffer."""

    VALID = 0x2  # data has been read from disk
    DIRTY = 0x4  # data must be written to disk


class _SleepLock:
    """A lock that remembers which thread holds it."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._owner: int | None = None

    def acquire(self) -> None:
        self._lock.acquire()
        self._owner = threading.get_ident()

    def release(self) -> None:
        self._owner = None
        self._lock.release()

    def holding(self) -> bool:
        return self._lock.locked() and self._owner == threading.get_ident()


@dataclass(eq=False)
class Buf:
    """A cached disk block."""

    dev: int = 0
    blockno: int = 0
    flags: BufFlag = BufFlag(0)
    refcnt: int = 0
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE), repr=False)
    lock: _SleepLock = field(default_factory=lambda: _SleepLock("buffer"), repr=False)


class MemDisk:
    """A disk whose blocks live in memory."""

    def __init__(self, image: bytes | bytearray, dev: int = 1) -> None:
        if len(image) % BSIZE:
            raise ValueError("disk image is not a whole number of blocks")
        self.image = bytearray(image)
        self.dev = dev

    @property
    def disksize(self) -> int:
        return len(self.image) // BSIZE

    def iderw(self, buf: Buf) -> None:
        """Write a dirty buffer to disk, or read an invalid one from it."""
        if not buf.lock.holding():
            raise Panic("iderw: buf not locked")
        if buf.flags & (BufFlag.VALID | BufFlag.DIRTY) == BufFlag.VALID:
            raise Panic("iderw: nothing to do")
        if buf.dev != self.dev:
            raise Panic(f"iderw: request not for disk {self.dev}")
        if not 0 <= buf.blockno < self.disksize:
            raise Panic("iderw: block out of range")

        start = buf.blockno * BSIZE
        if buf.flags & BufFlag.DIRTY:
            buf.flags &= ~BufFlag.DIRTY
            self.image[start:start + BSIZE] = buf.data
        else:
            buf.data[:] = self.image[start:start + BSIZE]
        buf.flags |= BufFlag.VALID


class BufferCache:
    """A fixed set of buffers kept in most-recently-used order."""

    def __init__(self, disk: MemDisk, nbuf: int = NBUF) -> None:
        if nbuf < 1:
            raise ValueError("the cache needs at least one buffer")
        self.disk = disk
        self._lock = threading.Lock()
        self._bufs = [Buf() for _ in range(nbuf)]

    def _claim(self, dev: int, blockno: int) -> Buf:
        with self._lock:
            for buf in self._bufs:
                if buf.dev == dev and buf.blockno == blockno and (
                        buf.refcnt or buf.flags):
                    buf.refcnt += 1
                    return buf
            for buf in reversed(self._bufs):
                if buf.refcnt == 0 and not buf.flags & BufFlag.DIRTY:
                    buf.dev = dev
                    buf.blockno = blockno
                    buf.flags = BufFlag(0)
                    buf.refcnt = 1
                    return buf
        raise Panic("bget: no buffers")

    def bread(self, dev: int, blockno: int) -> Buf:
        """Return a locked buffer holding the contents of the block."""
        buf = self._claim(dev, blockno)
        buf.lock.acquire()
        if not buf.flags & BufFlag.VALID:
            self.disk.iderw(buf)
        return buf

    def bwrite(self, buf: Buf) -> None:
        """Write a locked buffer's contents to disk."""
        if not buf.lock.holding():
            raise Panic("bwrite")
        buf.flags |= BufFlag.DIRTY
        self.disk.iderw(buf)

    def brelse(self, buf: Buf) -> None:
        """Unlock a buffer; once unreferenced it becomes most recently used."""
        if not buf.lock.holding():
            raise Panic("brelse")
        buf.lock.release()
        with self._lock:
            buf.refcnt -= 1
            if buf.refcnt == 0:
                self._bufs.remove(buf)
                self._bufs.insert(0, buf)