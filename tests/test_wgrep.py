import io
import sys

from ostepkit.wgrep import grep_lines, main


def test_grep_lines_keeps_matching_lines():
    lines = ["a foo\n", "bar\n", "foo\n"]
    assert list(grep_lines("foo", lines)) == ["a foo\n", "foo\n"]


def test_grep_lines_empty_term_matches_everything():
    lines = [b"x\n", b"y\n"]
    assert list(grep_lines(b"", lines)) == lines


def test_grep_lines_is_case_sensitive():
    assert list(grep_lines("Foo", ["foo\n"])) == []


def test_main_without_arguments_prints_usage(capsysbinary):
    assert main([]) == 1
    assert b"wgrep: searchterm [file ...]" in capsysbinary.readouterr().out


def test_main_searches_files(tmp_path, capsysbinary):
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    first.write_bytes(b"apple\nbanana\n")
    second.write_bytes(b"cherry\npineapple\n")
    assert main(["apple", str(first), str(second)]) == 0
    assert capsysbinary.readouterr().out == b"apple\npineapple\n"


def test_main_reads_standard_input(monkeypatch, capsysbinary):
    stdin = io.TextIOWrapper(io.BytesIO(b"red\ngreen\nblue\n"))
    monkeypatch.setattr(sys, "stdin", stdin)
    assert main(["e"]) == 0
    assert capsysbinary.readouterr().out == b"red\ngreen\nblue\n"


def test_main_reports_unopenable_file(tmp_path, capsysbinary):
    assert main(["x", str(tmp_path / "missing")]) == 1
    assert b"wgrep: cannot open file\n" in capsysbinary.readouterr().out