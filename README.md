# ostepkit

Small tools for operating-system coursework, with no third-party
dependencies:

- a sequential HTTP/1.0 web server that serves static files and runs CGI
  programs, a matching command-line client, and a CGI program that spins for
  a while
- the text utilities `wcat`, `wgrep`, `wzip` and `wunzip`
- a grep that understands only the `^ . * $` operators
- two small `printf` formatters, one in the user-space style and one in the
  kernel-console style
- a builder for file-system images, and an in-memory model of a simple Unix
  file system: memory-backed disk, buffer cache, redo log, inodes,
  directories and path lookup

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

### Web server and client

```
wserver [-d basedir] [-p port]
```

Changes into `basedir` (default `.`) and listens on `port` (default `10000`)
on every local address. Connections are answered one after another. For each
request the server prints `method:... uri:... version:...` to standard
output.

- Only `GET` is supported (in any letter case); other methods get
  `501 Not Implemented`.
- A URI that contains `cgi` names a CGI program. Text after `?` is passed in
  the `QUERY_STRING` environment variable. The server sends the status line
  and a `Server` header; the program's standard output goes straight to the
  connection and must finish the headers itself.
- Any other URI names a static file, relative to the server's directory. A
  URI ending in `/` gets `index.html` appended. The content type is
  `text/html`, `image/gif`, `image/jpeg` or `text/plain`, judged by whether
  the name contains `.html`, `.gif` or `.jpg`.
- A missing file gets `404 Not found`. A file that is not a regular file, or
  that lacks the owner read bit (static) or owner execute bit (CGI), gets
  `403 Forbidden`.

```
wclient <host> <port> <filename>
```

Sends one `GET` request for `filename` and prints the response. Each header
line gets the prefix `Header: `; the body follows as received.

```
wspin
```

A CGI program for testing the server. It reads a whole number of seconds
from `QUERY_STRING`, sleeps in one-second steps until that much time has
passed, and writes a short HTML page saying how long it spun. Install it
where the server can run it, under a name that contains `cgi`.

### Text utilities

```
wcat [file ...]
wgrep searchterm [file ...]
wzip file1 [file2 ...] > out.z
wunzip out.z [more.z ...]
```

- `wcat` copies its files to standard output in order; with no files it does
  nothing.
- `wgrep` prints the lines that contain the search term as a plain
  substring. It reads standard input when no file is given.
- `wzip` writes a run-length encoding of all its input files taken together
  as one stream: each run is a 4-byte little-endian count followed by the
  byte.
- `wunzip` expands that format. Input that is not a whole number of 5-byte
  records is reported as an error.

When a file cannot be opened, each tool prints `<tool>: cannot open file` to
standard output and exits with status 1. Called without the arguments they
need, `wgrep`, `wzip` and `wunzip` print a usage line and exit with status 1.

```
kpgrep pattern [file ...]
```

Prints lines that match the pattern, reading standard input when no file is
given. Patterns may use `^` (start of line), `$` (end of line), `.` (any
character) and `*` (zero or more of the previous character). Only lines
ending in a newline are printed, and a line longer than the 1024-byte read
buffer is dropped. A file that cannot be opened prints
`grep: cannot open <file>`.

### File-system images

```
mkfs-xv6 fs.img [file ...]
```

Builds a 1000-block image with a root directory holding the given files. File
names must not contain `/`; one leading `_` is removed from each stored name.
Progress is printed to standard output.

## Library use

```python
from ostepkit.kpgrep import match
from ostepkit.rle import compress, decompress
from ostepkit.xprintf import format_kernel, format_user

assert match("^ab*c$", "abbbc")
assert decompress(b"".join(compress([b"aaab"]))) == b"aaab"
assert format_user("%d %x %s", -5, 255, "ok") == "-5 FF ok"
assert format_kernel("%x", 255) == "ff"
```

`format_user` accepts `%d %x %p %s %c %%`; `format_kernel` accepts the same
without `%c`. Integers are treated as 32-bit values, and unknown sequences
are copied through.

### File-system model

The model is built in layers:

- `ostepkit.layout`: the on-disk records `Superblock`, `Dinode` and `Dirent`
  (each with `pack()` and `unpack()`), the `InodeType` values, and the block
  arithmetic `iblock()` and `bblock()`.
- `ostepkit.mkfs`: `ImageWriter` (`ialloc`, `iappend`, `finish`) and
  `make_image(path, files)`, which returns the superblock.
- `ostepkit.bcache`: `MemDisk`, which holds an image in memory, and
  `BufferCache` with `bread`, `bwrite` and `brelse`. Consistency failures
  raise `Panic`.
- `ostepkit.fslog`: `Log`, recovered from disk when created, with
  `begin_op`, `end_op`, `log_write` and a `transaction()` context manager.
- `ostepkit.fs`: `FileSystem` with inode operations (`ialloc`, `iget`,
  `idup`, `ilock`, `iunlock`, `iput`, `iupdate`, `stati`, `readi`,
  `writei`), directories (`dirlookup`, `dirlink`) and paths (`namei`,
  `nameiparent`), plus the helpers `skipelem`, `namecmp` and `fmtname`.
  Device inodes are served by `Device` handlers passed in by major number.

```python
from ostepkit.bcache import BufferCache, MemDisk
from ostepkit.fs import FileSystem
from ostepkit.layout import InodeType
from ostepkit.mkfs import make_image

make_image("fs.img", [])
with open("fs.img", "rb") as image:
    disk = MemDisk(image.read())
fs = FileSystem(BufferCache(disk))

with fs.log.transaction():
    ip = fs.ialloc(InodeType.FILE)
    fs.ilock(ip)
    ip.nlink = 1
    fs.iupdate(ip)
    fs.writei(ip, b"hello", 0)
    fs.iunlock(ip)
    root = fs.namei("/")
    fs.ilock(root)
    fs.dirlink(root, "hello", ip.inum)
    fs.iunlock(root)
    fs.iput(root)
    fs.iput(ip)

ip = fs.namei("/hello")
fs.ilock(ip)
assert fs.readi(ip, 0, ip.size) == b"hello"
fs.iunlock(ip)
```

## What the package does not do

- The web server handles one connection at a time; there is no thread pool
  or request scheduling.
- The file-system model stops at inodes, directories and path lookup. It has
  no open-file table, file descriptors, pipes or system calls such as open,
  mkdir or unlink, and there is no command for listing or editing an image.
- Changes made through `FileSystem` stay in `MemDisk.image`; saving that
  buffer back to a file is left to the caller.
- There is no kernel, process model or shell to run programs inside an
  image.