import struct

import pytest

from ostepkit.rle import compress, decompress, unzip_main, zip_main


def test_compress_record_format():
    encoded = b"".join(compress([b"aaab"]))
    assert encoded == struct.pack("<I", 3) + b"a" + struct.pack("<I", 1) + b"b"


def test_runs_continue_across_chunks():
    records = list(compress([b"aa", b"ab"]))
    assert len(records) == 2
    assert decompress(b"".join(records)) == b"aaab"


def test_empty_input_compresses_to_nothing():
    assert b"".join(compress([b"", b""])) == b""


@pytest.mark.parametrize(
    "data",
    [b"a", b"abc", b"\x00\x00\x01", b"zzzzzzzzzzzzzzzz\n\n", bytes(range(256)) * 3],
)
def test_round_trip(data):
    assert decompress(b"".join(compress([data]))) == data


def test_every_record_is_five_bytes():
    records = list(compress([b"hello world"]))
    assert all(len(record) == 5 for record in records)


def test_decompress_rejects_truncated_data():
    with pytest.raises(ValueError):
        decompress(b"\x01\x00\x00")


def test_zip_main_usage(capsysbinary):
    assert zip_main([]) == 1
    assert b"wzip: file1 [file2 ...]" in capsysbinary.readouterr().out


def test_unzip_main_usage(capsysbinary):
    assert unzip_main([]) == 1
    assert b"wunzip: file1 [file2 ...]" in capsysbinary.readouterr().out


def test_zip_then_unzip(tmp_path, capsysbinary):
    first = tmp_path / "one"
    second = tmp_path / "two"
    first.write_bytes(b"aaaabbb")
    second.write_bytes(b"bbcc\n")
    assert zip_main([str(first), str(second)]) == 0
    packed = capsysbinary.readouterr().out
    archive = tmp_path / "archive.z"
    archive.write_bytes(packed)
    assert unzip_main([str(archive)]) == 0
    assert capsysbinary.readouterr().out == b"aaaabbbbbcc\n"


def test_zip_main_reports_unopenable_file(tmp_path, capsysbinary):
    assert zip_main([str(tmp_path / "missing")]) == 1
    assert b"wzip: cannot open file\n" in capsysbinary.readouterr().out


def test_unzip_main_reports_unopenable_file(tmp_path, capsysbinary):
    assert unzip_main([str(tmp_path / "missing")]) == 1
    assert b"wunzip: cannot open file\n" in capsysbinary.readouterr().out