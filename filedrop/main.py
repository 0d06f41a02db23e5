"""FastAPI app factory and the FileServer that runs it under uvicorn."""
from __future__ import annotations

import asyncio
import os
import socket
import time
from collections.abc import Callable

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import router as api_router
from .api.pages import FILE_UNAVAILABLE_BODY, NOT_FOUND_BODY
from .domain.errors import ConfigError, FileAccessError
from .domain.files import ServedFile
from .logging_conf import get_logger
from .service.ledger import UNKNOWN, ClientLedger

logger = get_logger("filedrop")

DEFAULT_HOST = "0.0.0.0"


def get_host_from_env() -> str:
    """Return FILEDROP_HOST, defaulting to every interface."""
    return os.getenv("FILEDROP_HOST") or DEFAULT_HOST


def create_app(served: ServedFile, ledger: ClientLedger | None = None) -> FastAPI:
    """Build the app serving `served`; hits are counted in `ledger`."""
    # Only the two token routes exist: no docs, no schema, no slash redirects.
    app = FastAPI(
        title="filedrop",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )
    app.state.served_file = served
    app.state.ledger = ledger if ledger is not None else ClientLedger()

    @app.middleware("http")
    async def count_clients(request: Request, call_next: Callable[[Request], Response]):
        """Record a ledger hit for every request, whatever the route.

        Also logs a debug start/end pair with method/path/status/elapsed_ms.
        """
        ip = request.client.host if request.client and request.client.host else UNKNOWN
        user_agent = request.headers.get("user-agent") or UNKNOWN
        request.app.state.ledger.record_hit(ip, user_agent)

        start = time.perf_counter()
        logger.debug(
            "request.start",
            extra={"event": "request_start", "method": request.method, "path": request.url.path},
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "request.error",
                extra={"event": "request_error", "method": request.method, "path": request.url.path},
            )
            raise exc
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        logger.debug(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
            },
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        # Unknown paths and wrong tokens look the same to the client.
        if exc.status_code == 404:
            return PlainTextResponse(NOT_FOUND_BODY, status_code=404)
        return PlainTextResponse(f"{exc.detail}\n", status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(FileAccessError)
    async def file_unavailable(request: Request, exc: FileAccessError) -> PlainTextResponse:
        logger.error(
            "cannot serve file: %s",
            exc,
            extra={"event": "file_unavailable", "code": exc.code, "cause": repr(exc.__cause__)},
        )
        return PlainTextResponse(FILE_UNAVAILABLE_BODY, status_code=500)

    app.include_router(api_router)
    return app


class FileServer:
    """Runs the app for one ServedFile on a socket this object owns."""

    def __init__(self, served: ServedFile, ledger: ClientLedger | None = None, *, host: str | None = None):
        self.served = served
        self.ledger = ledger if ledger is not None else ClientLedger()
        self.host = host or get_host_from_env()
        self.app = create_app(served, self.ledger)
        self.socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def port(self) -> int:
        if self.socket is None:
            raise RuntimeError("server not started")
        return self.socket.getsockname()[1]

    @property
    def local_url(self) -> str:
        return f"http://localhost:{self.port}{self.served.info_path}"

    async def start(self, port: int) -> socket.socket:
        """Bind `port` and start serving; returns once connections are accepted.

        Raises:
            ConfigError: if the port cannot be bound.
        """
        if self._task is not None:
            raise RuntimeError("server already started")
        try:
            sock = socket.create_server((self.host, port))
        except OSError as e:
            raise ConfigError(f"cannot listen on {self.host}:{port}: {e.strerror or e}") from e

        config = uvicorn.Config(self.app, log_config=None, access_log=False, lifespan="off")
        self._server = uvicorn.Server(config)
        self.socket = sock
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]), name="file-server")

        while not self._server.started:
            if self._task.done():
                sock.close()
                self._task.result()
                raise ConfigError(f"server on port {port} stopped during startup")
            await asyncio.sleep(0.05)

        logger.info(
            "serving %s on port %d",
            self.served.display_name,
            self.port,
            extra={"event": "server_started", "port": self.port, "size": self.served.size_bytes},
        )
        return sock

    async def wait_closed(self) -> None:
        """Wait until the server stops on its own (e.g. Ctrl-C)."""
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        """Stop accepting connections and release the socket."""
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            await self._task
            self._task = None
        if self.socket is not None:
            self.socket.close()
        logger.debug("server stopped", extra={"event": "server_stopped"})
