"""A redo log that makes groups of block writes atomic.

Operations bracket their writes with ``begin_op``/``end_op``. Modified
blocks are recorded with ``log_write``; when the last outstanding operation
ends, the blocks are copied to the log, the header is written (the commit
point), and the blocks are installed at their home locations.
"""

from __future__ import annotations

import struct
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ostepkit.bcache import MAXOPBLOCKS, Buf, BufferCache, BufFlag, Panic
from ostepkit.layout import BSIZE, Superblock

LOGSIZE = MAXOPBLOCKS * 3


class Log:
    """The log of one device, recovered from disk when created."""

    def __init__(self, cache: BufferCache, dev: int, *, logsize: int = LOGSIZE,
                 maxopblocks: int = MAXOPBLOCKS) -> None:
        self._header = struct.Struct(f"<i{logsize}i")
        if self._header.size >= BSIZE:
            raise Panic("initlog: too big logheader")
        self.cache = cache
        self.dev = dev
        self.logsize = logsize
        self.maxopblocks = maxopblocks
        self._cond = threading.Condition()
        self.outstanding = 0
        self.committing = False
        self.blocks: list[int] = []

        sb = self._read_superblock()
        self.start = sb.logstart
        self.size = sb.nlog
        self._recover()

    def _read_superblock(self) -> Superblock:
        buf = self.cache.bread(self.dev, 1)
        try:
            return Superblock.unpack(buf.data)
        finally:
            self.cache.brelse(buf)

    def _install_trans(self) -> None:
        for tail, home in enumerate(self.blocks):
            lbuf = self.cache.bread(self.dev, self.start + tail + 1)
            dbuf = self.cache.bread(self.dev, home)
            dbuf.data[:] = lbuf.data
            self.cache.bwrite(dbuf)
            self.cache.brelse(lbuf)
            self.cache.brelse(dbuf)

    def _read_head(self) -> None:
        buf = self.cache.bread(self.dev, self.start)
        try:
            values = self._header.unpack_from(buf.data)
        finally:
            self.cache.brelse(buf)
        n = values[0]
        if not 0 <= n <= self.logsize:
            raise Panic("log header corrupt")
        self.blocks = list(values[1:1 + n])

    def _write_head(self) -> None:
        buf = self.cache.bread(self.dev, self.start)
        values = list(self._header.unpack_from(buf.data))
        values[0] = len(self.blocks)
        values[1:1 + len(self.blocks)] = self.blocks
        self._header.pack_into(buf.data, 0, *values)
        self.cache.bwrite(buf)
        self.cache.brelse(buf)

    def _recover(self) -> None:
        self._read_head()
        self._install_trans()
        self.blocks = []
        self._write_head()

    def _write_log(self) -> None:
        for tail, home in enumerate(self.blocks):
            to = self.cache.bread(self.dev, self.start + tail + 1)
            source = self.cache.bread(self.dev, home)
            to.data[:] = source.data
            self.cache.bwrite(to)
            self.cache.brelse(source)
            self.cache.brelse(to)

    def _commit(self) -> None:
        if self.blocks:
            self._write_log()
            self._write_head()
            self._install_trans()
            self.blocks = []
            self._write_head()

    def begin_op(self) -> None:
        """Start an operation, waiting while a commit runs or space is short."""
        with self._cond:
            while self.committing or (
                    len(self.blocks) + (self.outstanding + 1) * self.maxopblocks
                    > self.logsize):
                self._cond.wait()
            self.outstanding += 1

    def end_op(self) -> None:
        """End an operation; the last one out commits the log."""
        with self._cond:
            self.outstanding -= 1
            if self.committing:
                raise Panic("log.committing")
            do_commit = self.outstanding == 0
            if do_commit:
                self.committing = True
            else:
                self._cond.notify_all()

        if do_commit:
            try:
                self._commit()
            finally:
                with self._cond:
                    self.committing = False
                    self._cond.notify_all()

    def log_write(self, buf: Buf) -> None:
        """Record a modified buffer in the current transaction."""
        if len(self.blocks) >= self.logsize or len(self.blocks) >= self.size - 1:
            raise Panic("too big a transaction")
        if self.outstanding < 1:
            raise Panic("log_write outside of trans")
        with self._cond:
            if buf.blockno not in self.blocks:
                self.blocks.append(buf.blockno)
            buf.flags |= BufFlag.DIRTY

    @contextmanager
    def transaction(self) -> Iterator[Log]:
        """Run the enclosed block as one operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()