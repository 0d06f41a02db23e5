from __future__ import annotations

import asyncio
import os
import signal
import socket
import time
from pathlib import Path

import pytest

from filedrop.domain.errors import TunnelUnavailable
from filedrop.domain.files import ServedFile
from filedrop.main import FileServer
from filedrop.serve import INSTALL_URL, ask_for_tunnel, install_instructions, main, open_tunnel, run
from filedrop.service.tunnel import TunnelProcess

from .conftest import fake_tunnel

RESOLVES = """
import time
print("INF |  https://shared-file.trycloudflare.com  |", flush=True)
time.sleep(60)
"""

NEVER_RESOLVES = """
import time
time.sleep(60)
"""


@pytest.mark.parametrize(
    "platform, hint",
    [
        ("darwin", "brew install cloudflared"),
        ("win32", "winget install --id Cloudflare.cloudflared"),
        ("linux", "On Linux"),
    ],
)
def test_install_instructions(platform, hint):
    text = install_instructions(platform)
    assert hint in text
    assert INSTALL_URL in text


def test_open_tunnel_prints_public_links(served: ServedFile, capsys):
    async def scenario():
        tunnel = fake_tunnel(RESOLVES)
        tunnel.probe_available = _always(True)
        try:
            return await open_tunnel(tunnel, 8000, served, required=True)
        finally:
            await tunnel.aclose()

    url = asyncio.run(scenario())
    assert url == "https://shared-file.trycloudflare.com"
    out = capsys.readouterr().out
    assert f"https://shared-file.trycloudflare.com/{served.access_token}" in out
    assert f"https://shared-file.trycloudflare.com/download/{served.access_token}" in out


def test_open_tunnel_timeout_keeps_serving_locally(served: ServedFile, capsys):
    async def scenario():
        tunnel = fake_tunnel(NEVER_RESOLVES, timeout=0.5)
        tunnel.probe_available = _always(True)
        return await open_tunnel(tunnel, 8000, served, required=True)

    assert asyncio.run(scenario()) is None
    assert "still served locally" in capsys.readouterr().err


def test_missing_tunnel_binary_is_fatal_only_when_requested(served: ServedFile, capsys):
    missing = TunnelProcess(["filedrop-no-such-tunnel-binary"], timeout=1.0)

    assert asyncio.run(open_tunnel(missing, 8000, served, required=False)) is None
    assert INSTALL_URL in capsys.readouterr().err

    with pytest.raises(TunnelUnavailable):
        asyncio.run(open_tunnel(missing, 8000, served, required=True))


def test_run_exits_1_when_requested_tunnel_is_missing(served: ServedFile, monkeypatch):
    monkeypatch.setenv("FILEDROP_HOST", "127.0.0.1")
    missing = TunnelProcess(["filedrop-no-such-tunnel-binary"], timeout=1.0)
    assert asyncio.run(run(served, 0, missing, want_tunnel=True, tunnel_required=True)) == 1


def test_main_exits_1_on_missing_file(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([str(tmp_path / "nope.txt")])
    assert exc_info.value.code == 1
    assert "can't read file" in capsys.readouterr().err


def test_main_exits_1_on_busy_port(shared_file: Path, monkeypatch, capsys):
    monkeypatch.setenv("FILEDROP_HOST", "127.0.0.1")
    with socket.create_server(("127.0.0.1", 0)) as blocker:
        port = blocker.getsockname()[1]
        with pytest.raises(SystemExit) as exc_info:
            main(["-p", str(port), str(shared_file)])
    assert exc_info.value.code == 1
    assert "cannot listen" in capsys.readouterr().err


def _always(value: bool):
    async def check() -> bool:
        return value

    return check


class _Terminal:
    def isatty(self) -> bool:
        return True


def test_prompt_answers(monkeypatch):
    monkeypatch.setattr("sys.stdin", _Terminal())
    monkeypatch.setattr("builtins.input", lambda prompt: " Yes ")
    assert ask_for_tunnel()
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert not ask_for_tunnel()


def test_prompt_is_skipped_without_a_terminal(monkeypatch):
    def unexpected(prompt):
        raise AssertionError("prompted without a terminal")

    monkeypatch.setattr("builtins.input", unexpected)
    with open(os.devnull) as devnull:
        monkeypatch.setattr("sys.stdin", devnull)
        assert not ask_for_tunnel()


def test_ctrl_c_at_the_tunnel_prompt_exits_promptly(shared_file: Path, monkeypatch):
    started = []

    async def record_start(self, port):
        started.append(port)
        raise AssertionError("server started after Ctrl-C")

    def interrupted_input(prompt):
        os.kill(os.getpid(), signal.SIGINT)
        time.sleep(10)  # the user never answers
        return "y"

    monkeypatch.setattr(FileServer, "start", record_start)
    monkeypatch.setattr("sys.stdin", _Terminal())
    monkeypatch.setattr("builtins.input", interrupted_input)
    previous = signal.signal(signal.SIGINT, signal.default_int_handler)
    try:
        begin = time.monotonic()
        with pytest.raises(SystemExit) as exc_info:
            main([str(shared_file)])
        elapsed = time.monotonic() - begin
    finally:
        signal.signal(signal.SIGINT, previous)

    assert exc_info.value.code == 130
    assert elapsed < 5
    assert started == []
