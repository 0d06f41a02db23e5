from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filedrop.domain.files import ServedFile, load_served_file
from filedrop.main import create_app
from filedrop.service.ledger import ClientLedger
from filedrop.service.tunnel import TunnelProcess

# 1.5 MiB, so the info page shows "1.50 MB".
SHARED_SIZE = 1_572_864


@pytest.fixture
def shared_file(tmp_path: Path) -> Path:
    path = tmp_path / "nested" / "report.pdf"
    path.parent.mkdir()
    path.write_bytes(bytes(range(256)) * (SHARED_SIZE // 256))
    return path


@pytest.fixture
def served(shared_file: Path) -> ServedFile:
    return load_served_file(shared_file)


@pytest.fixture
def ledger() -> ClientLedger:
    return ClientLedger()


@pytest.fixture
def client(served: ServedFile, ledger: ClientLedger) -> TestClient:
    return TestClient(create_app(served, ledger))


def fake_tunnel(script: str, *, timeout: float = 10.0) -> TunnelProcess:
    """A TunnelProcess whose "executable" is a Python snippet.

    The snippet receives the usual `tunnel --url ...` arguments in sys.argv.
    """
    return TunnelProcess([sys.executable, "-c", textwrap.dedent(script)], timeout=timeout)
