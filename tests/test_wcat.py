import io

import pytest

from ostepkit.wcat import cat_files, main


@pytest.fixture
def two_files(tmp_path):
    first = tmp_path / "first.txt"
    second = tmp_path / "second.txt"
    first.write_bytes(b"one\ntwo\n")
    second.write_bytes(b"three\n")
    return first, second


def test_cat_files_concatenates_in_order(two_files):
    first, second = two_files
    out = io.BytesIO()
    cat_files([str(first), str(second)], out)
    assert out.getvalue() == b"one\ntwo\n" + b"three\n"


def test_cat_files_missing_file_raises_after_earlier_output(two_files, tmp_path):
    first, _ = two_files
    out = io.BytesIO()
    with pytest.raises(FileNotFoundError):
        cat_files([str(first), str(tmp_path / "missing")], out)
    assert out.getvalue() == b"one\ntwo\n"


def test_main_without_arguments_prints_nothing(capsysbinary):
    assert main([]) == 0
    assert capsysbinary.readouterr().out == b""


def test_main_prints_files(two_files, capsysbinary):
    first, second = two_files
    assert main([str(first), str(second)]) == 0
    assert capsysbinary.readouterr().out == b"one\ntwo\nthree\n"


def test_main_reports_unopenable_file(tmp_path, capsysbinary):
    assert main([str(tmp_path / "missing")]) == 1
    assert b"wcat: cannot open file\n" in capsysbinary.readouterr().out