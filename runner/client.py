from __future__ import annotations

import asyncio
import time

import httpx

from filedrop.logging_conf import get_logger
from runner.types import Check, FetchError, NotReadyError
from runner.utils import random_path

logger = get_logger("runner.client")


async def wait_for_server(base_url: str, token: str, timeout_s: float = 20.0) -> None:
    """Request the info page until it returns 200 or raise after a timeout.

    - Tries repeatedly for `timeout_s` seconds
    - Logs a concise status when the server answers
    """
    deadline = time.monotonic() + timeout_s
    async with httpx.AsyncClient(base_url=base_url, timeout=5.0) as client:
        while time.monotonic() < deadline:
            try:
                r = await client.get(f"/{token}")
                if r.status_code == 200:
                    logger.info("server.ready", extra={"event": "server_ready"})
                    return
            except httpx.TransportError:
                pass
            await asyncio.sleep(0.25)
    raise NotReadyError("info page did not answer 200 within timeout")


async def _get(client: httpx.AsyncClient, path: str, *, retries: int = 3) -> httpx.Response:
    """GET `path`, retrying transport failures a few times."""
    last_err: Exception | None = None
    for attempt in range(retries):
        try:
            return await client.get(path)
        except httpx.TransportError as e:  # pragma: no cover - network flakiness
            last_err = e
            logger.warning(
                "get.retry",
                extra={"event": "get_retry", "path": path, "attempt": attempt + 1, "error": str(e)},
            )
    raise FetchError(f"GET {path} failed: {last_err}")


async def check_info_page(client: httpx.AsyncClient, token: str) -> Check:
    """The info page is HTML and links to the download route."""
    start = time.perf_counter()
    r = await _get(client, f"/{token}")
    problems = []
    if r.status_code != 200:
        problems.append(f"status {r.status_code}")
    if not r.headers.get("content-type", "").startswith("text/html"):
        problems.append(f"content-type {r.headers.get('content-type')!r}")
    if f"/download/{token}" not in r.text:
        problems.append("no download link")
    return Check("info_page", not problems, "; ".join(problems), (time.perf_counter() - start) * 1000.0)


async def check_download(client: httpx.AsyncClient, token: str, expected_size: int | None = None) -> Check:
    """The download streams exactly Content-Length bytes as an attachment.

    - Counts the body while streaming instead of holding it in memory
    - Compares with the local file size when one is known
    """
    start = time.perf_counter()
    problems = []
    received = 0
    async with client.stream("GET", f"/download/{token}") as r:
        async for chunk in r.aiter_bytes():
            received += len(chunk)
        headers = r.headers
        status_code = r.status_code

    if status_code != 200:
        problems.append(f"status {status_code}")
    if headers.get("content-type") != "application/octet-stream":
        problems.append(f"content-type {headers.get('content-type')!r}")
    if not headers.get("content-disposition", "").startswith("attachment;"):
        problems.append("not sent as attachment")
    declared = headers.get("content-length")
    if declared is None or int(declared) != received:
        problems.append(f"content-length {declared} but received {received} bytes")
    if expected_size is not None and received != expected_size:
        problems.append(f"expected {expected_size} bytes, received {received}")

    logger.info(
        "download.checked",
        extra={"event": "download_checked", "bytes": received, "ok": not problems},
    )
    return Check("download", not problems, "; ".join(problems), (time.perf_counter() - start) * 1000.0)


async def check_not_found(client: httpx.AsyncClient) -> Check:
    """Any path other than the two token routes answers 404."""
    start = time.perf_counter()
    path = random_path()
    r = await _get(client, path)
    ok = r.status_code == 404
    detail = "" if ok else f"{path} answered {r.status_code}"
    return Check("not_found", ok, detail, (time.perf_counter() - start) * 1000.0)
