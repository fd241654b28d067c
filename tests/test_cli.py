import sys

import pytest

from docsift import cli
from docsift.runtime import RuntimeConfig, get_global_config


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["docsift", *argv])
    return cli.main()


def test_extract_text_file(tmp_path, monkeypatch, capsys):
    path = tmp_path / "notes.txt"
    path.write_text("hello from the notes file\n", encoding="utf-8")

    assert run(monkeypatch, "extract", str(path), "--no-images") == 0

    assert capsys.readouterr().out.strip() == "hello from the notes file"


def test_extract_missing_file(tmp_path, monkeypatch, capsys):
    assert run(monkeypatch, "extract", str(tmp_path / "nope.txt")) == 1

    assert "File not found" in capsys.readouterr().err


def test_extract_unsupported_extension(tmp_path, monkeypatch, capsys):
    path = tmp_path / "archive.zip"
    path.write_bytes(b"PK\x03\x04")

    assert run(monkeypatch, "extract", str(path)) == 1

    assert "Unsupported" in capsys.readouterr().err


def test_ingest_info_and_show(tmp_path, monkeypatch, capsys):
    path = tmp_path / "notes.md"
    path.write_text("# Title\n\nsome markdown words", encoding="utf-8")
    db = tmp_path / "library.db"

    assert run(monkeypatch, "ingest", str(path), "--db", str(db), "--no-images") == 0
    assert "Document 1: 1 chunks" in capsys.readouterr().out

    assert run(monkeypatch, "info", str(db)) == 0
    out = capsys.readouterr().out
    assert "Documents: 1" in out
    assert "[1] notes.md (text/markdown" in out

    assert run(monkeypatch, "show", str(db), "1") == 0
    assert capsys.readouterr().out.strip() == "# Title some markdown words"

    assert run(monkeypatch, "show", str(db), "2") == 1
    assert "not found" in capsys.readouterr().err


def test_insights(tmp_path, monkeypatch, capsys):
    path = tmp_path / "essay.txt"
    path.write_text("word " * 400, encoding="utf-8")

    assert run(monkeypatch, "insights", str(path), "--no-images") == 0

    out = capsys.readouterr().out
    assert "Words: 400" in out
    assert "Reading time: ~2 min" in out


def test_no_command_prints_help(monkeypatch, capsys):
    assert run(monkeypatch) == 0
    assert "usage: docsift" in capsys.readouterr().out


@pytest.mark.parametrize("command", ["info", "show"])
def test_missing_database(tmp_path, monkeypatch, capsys, command):
    args = [command, str(tmp_path / "missing.db")]
    if command == "show":
        args.append("1")

    assert run(monkeypatch, *args) == 1
    assert "File not found" in capsys.readouterr().err


def test_keywords(tmp_path, monkeypatch, capsys):
    path = tmp_path / "notes.txt"
    path.write_text("parser parser tokens and the parser tokens lexer", encoding="utf-8")

    assert run(monkeypatch, "keywords", str(path), "--no-images", "-n", "2") == 0

    lines = capsys.readouterr().out.splitlines()
    assert [line.split() for line in lines] == [["3", "parser"], ["2", "tokens"]]


def test_bookmarks(tmp_path, monkeypatch, capsys):
    path = tmp_path / "notes.md"
    path.write_text("# 1.\n\nGetting Started\n\nbody", encoding="utf-8")

    assert run(monkeypatch, "bookmarks", str(path), "--no-images") == 0

    assert capsys.readouterr().out.split(None, 1) == ["1", "Getting Started\n"]


def test_cli_options_do_not_become_process_defaults(tmp_path, monkeypatch, capsys):
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    assert run(monkeypatch, "extract", str(path), "--no-images", "--max-pages", "1") == 0

    assert get_global_config() == RuntimeConfig()
