import struct

import pytest

from ostepkit.layout import (
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
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
from ostepkit.mkfs import DEFAULT_FSSIZE, ImageWriter, main, make_image


def _block(image, n):
    return image[n * BSIZE:(n + 1) * BSIZE]


def _inode(image, sb, inum):
    block = _block(image, iblock(inum, sb))
    start = (inum % IPB) * DINODE_SIZE
    return Dinode.unpack(block[start:start + DINODE_SIZE])


def _block_numbers(image, din):
    numbers = [a for a in din.addrs[:NDIRECT] if a]
    if din.addrs[NDIRECT]:
        indirect = struct.unpack(f"<{NINDIRECT}I", _block(image, din.addrs[NDIRECT]))
        numbers.extend(a for a in indirect if a)
    return numbers


def _contents(image, din):
    data = b"".join(_block(image, n) for n in _block_numbers(image, din))
    return data[:din.size]


def _entries(image, sb):
    data = _contents(image, _inode(image, sb, ROOTINO))
    entries = (Dirent.unpack(data[i:i + DIRENT_SIZE]) for i in range(0, len(data), DIRENT_SIZE))
    return [e for e in entries if e.inum]


@pytest.fixture
def built(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "_cat").write_bytes(b"meow\n")
    big = bytes(range(256)) * ((NDIRECT * BSIZE + 700) // 256 + 1)
    (tmp_path / "big").write_bytes(big)
    sb = make_image("fs.img", ["_cat", "big"])
    return sb, (tmp_path / "fs.img").read_bytes(), big


def test_image_size_and_superblock(built):
    sb, image, _ = built
    assert len(image) == DEFAULT_FSSIZE * BSIZE
    assert Superblock.unpack(_block(image, 1)) == sb
    assert sb.size == DEFAULT_FSSIZE


def test_root_directory(built):
    sb, image, _ = built
    root = _inode(image, sb, ROOTINO)
    assert root.type == InodeType.DIR
    assert root.size % BSIZE == 0
    names = [(e.name, e.inum) for e in _entries(image, sb)]
    assert names[:2] == [(b".", ROOTINO), (b"..", ROOTINO)]
    assert [name for name, _ in names[2:]] == [b"cat", b"big"]


def test_file_contents_round_trip(built):
    sb, image, big = built
    by_name = {e.name: e.inum for e in _entries(image, sb)}
    cat = _inode(image, sb, by_name[b"cat"])
    assert cat.type == InodeType.FILE
    assert cat.nlink == 1
    assert _contents(image, cat) == b"meow\n"
    large = _inode(image, sb, by_name[b"big"])
    assert large.addrs[NDIRECT] != 0
    assert _contents(image, large) == big


def test_bitmap_marks_used_blocks(built):
    sb, image, _ = built
    bitmap = _block(image, sb.bmapstart)
    used = set()
    for entry in _entries(image, sb):
        din = _inode(image, sb, entry.inum)
        used.update(_block_numbers(image, din))
        if din.addrs[NDIRECT]:
            used.add(din.addrs[NDIRECT])
    assert len(used) > NDIRECT
    expected = sorted(used | set(range(sb.bmapstart + 1)))
    unmarked = [b for b in expected if not bitmap[b // 8] & (1 << (b % 8))]
    assert unmarked == []


def test_writer_allocates_blocks_in_order(tmp_path):
    with ImageWriter(tmp_path / "x.img") as writer:
        first_free = writer.freeblock
        assert first_free == writer.nmeta
        root = writer.ialloc(InodeType.DIR)
        assert root == ROOTINO
        writer.iappend(root, b"x" * (BSIZE + 1))
        assert writer.freeblock == first_free + 2
        writer.finish()


def test_file_too_large(tmp_path):
    with ImageWriter(tmp_path / "x.img", fssize=2000) as writer:
        inum = writer.ialloc(InodeType.FILE)
        with pytest.raises(ValueError):
            writer.iappend(inum, bytes(MAXFILE * BSIZE + 1))


def test_name_with_slash_rejected(tmp_path):
    with pytest.raises(ValueError):
        make_image(tmp_path / "x.img", ["dir/file"])


def test_missing_input_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        make_image("x.img", ["absent"])


def test_main_usage(capsys):
    assert main([]) == 1
    assert "Usage: mkfs fs.img files..." in capsys.readouterr().err


def test_main_reports_missing_file(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["x.img", "absent"]) == 1
    assert "absent" in capsys.readouterr().err