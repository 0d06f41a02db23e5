from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from filedrop.api.pages import FILE_UNAVAILABLE_BODY, NOT_FOUND_BODY
from filedrop.domain.files import ServedFile, load_served_file
from filedrop.main import create_app
from filedrop.service.ledger import ClientLedger

from .conftest import SHARED_SIZE


def test_download_sends_exact_bytes_as_attachment(client: TestClient, served: ServedFile, shared_file: Path):
    r = client.get(f"/download/{served.access_token}")

    assert r.status_code == 200
    assert r.content == shared_file.read_bytes()
    assert len(r.content) == SHARED_SIZE
    assert r.headers["content-length"] == str(SHARED_SIZE)
    assert r.headers["content-type"] == "application/octet-stream"
    assert r.headers["content-disposition"] == 'attachment; filename="report.pdf"'


def test_download_disposition_encodes_non_ascii_names(tmp_path: Path):
    path = tmp_path / "résumé.pdf"
    path.write_bytes(b"%PDF-1.7 cv")
    served = load_served_file(str(path))

    r = TestClient(create_app(served)).get(f"/download/{served.access_token}")

    assert r.status_code == 200
    assert r.content == b"%PDF-1.7 cv"
    assert r.headers["content-disposition"] == "attachment; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"


def test_download_disposition_never_carries_directories(client: TestClient, served: ServedFile):
    r = client.get(f"/download/{served.access_token}")
    assert "nested" not in r.headers["content-disposition"]
    assert "/" not in r.headers["content-disposition"]


def test_head_download_reports_length_without_body(client: TestClient, served: ServedFile):
    r = client.head(f"/download/{served.access_token}")
    assert r.status_code == 200
    assert r.headers["content-length"] == str(SHARED_SIZE)
    assert r.content == b""


def test_info_page_shows_name_size_and_link(client: TestClient, served: ServedFile):
    r = client.get(f"/{served.access_token}")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "report.pdf" in r.text
    assert f"{round(SHARED_SIZE / 1048576, 2):.2f} MB" in r.text
    assert "1.50 MB" in r.text
    assert f'href="/download/{served.access_token}"' in r.text


def test_info_page_escapes_file_name(tmp_path: Path):
    from filedrop.domain.files import load_served_file
    from filedrop.main import create_app

    path = tmp_path / "a<b>&c.txt"
    path.write_text("x")
    served = load_served_file(path)
    r = TestClient(create_app(served)).get(f"/{served.access_token}")
    assert "a<b>&c.txt" not in r.text
    assert "a&lt;b&gt;&amp;c.txt" in r.text


def test_unknown_paths_get_static_404(client: TestClient, served: ServedFile):
    token = served.access_token
    paths = [
        "/",
        "/anything-else",
        "/download",
        "/download/",
        "/download/wrongtoken",
        f"/{token}/",
        f"/{token.upper()}",
        f"/download/{token}/extra",
        f"/{token}/download",
        "/docs",
        "/openapi.json",
        "/report.pdf",
    ]
    for path in paths:
        r = client.get(path, follow_redirects=False)
        assert r.status_code == 404, path
        assert r.text == NOT_FOUND_BODY
        assert token not in r.text
        assert r.headers["content-type"].startswith("text/plain")


def test_download_of_vanished_file_is_500_and_server_keeps_going(
    client: TestClient, served: ServedFile, shared_file: Path
):
    shared_file.unlink()

    r = client.get(f"/download/{served.access_token}")
    assert r.status_code == 500
    assert r.text == FILE_UNAVAILABLE_BODY

    # Other routes still answer.
    assert client.get(f"/{served.access_token}").status_code == 200
    assert client.get("/elsewhere").status_code == 404


def test_download_of_directory_replacing_file_is_500(client: TestClient, served: ServedFile, shared_file: Path):
    shared_file.unlink()
    shared_file.mkdir()
    assert client.get(f"/download/{served.access_token}").status_code == 500


def test_every_request_counts_for_its_client(client: TestClient, served: ServedFile, ledger: ClientLedger):
    headers = {"user-agent": "Mozilla/5.0 (X11; Linux x86_64)"}
    client.get(f"/{served.access_token}", headers=headers)
    client.get(f"/download/{served.access_token}", headers=headers)
    client.get("/nope", headers=headers)

    # TestClient connects as host "testclient".
    assert ledger.count_for("testclient", "Mozilla/5.0 (X11; Linux x86_64)") == 3
    assert len(ledger) == 1


def test_missing_user_agent_counts_as_unknown(client: TestClient, ledger: ClientLedger):
    client.get("/nope", headers={"user-agent": ""})
    assert ledger.count_for("testclient", "unknown") == 1


def test_other_methods_are_rejected(client: TestClient, served: ServedFile):
    r = client.post(f"/download/{served.access_token}")
    assert r.status_code == 405
