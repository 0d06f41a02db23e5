from __future__ import annotations

import pytest

from filedrop import __version__
from filedrop.cli import parse_args


def test_defaults(monkeypatch):
    monkeypatch.delenv("FILEDROP_PORT", raising=False)
    args = parse_args(["./file.zip"])
    assert args.file == "./file.zip"
    assert args.port == 8000
    assert not args.debug
    assert not args.tunnel


def test_flags():
    args = parse_args(["-p", "3000", "-d", "-t", "image.jpg"])
    assert (args.port, args.debug, args.tunnel, args.file) == (3000, True, True, "image.jpg")
    args = parse_args(["--port", "3001", "--debug", "--tunnel", "image.jpg"])
    assert (args.port, args.debug, args.tunnel) == (3001, True, True)


def test_port_default_from_env(monkeypatch):
    monkeypatch.setenv("FILEDROP_PORT", "9090")
    assert parse_args(["a.txt"]).port == 9090


@pytest.mark.parametrize("port", ["abc", "0", "70000", "-1", ""])
def test_invalid_port_exits_non_zero(port, capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["-p", port, "a.txt"])
    assert exc_info.value.code != 0
    assert "port" in capsys.readouterr().err


def test_missing_file_exits_non_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args([])
    assert exc_info.value.code != 0
    assert "missing file path" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [["help"], ["-h"]])
def test_help(argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(argv)
    assert exc_info.value.code == 0
    out = capsys.readouterr().out
    assert "--tunnel" in out
    assert "--port" in out


@pytest.mark.parametrize("argv", [["version"], ["-v"], ["--version"]])
def test_version(argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(argv)
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out
