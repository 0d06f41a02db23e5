"""Launch a quick tunnel and scrape its public URL from the process output.

`cloudflared tunnel --url http://localhost:PORT` prints the URL of the quick
tunnel on one of its output streams a few seconds after start. Discovery races
three conditions, and the first one to happen decides the outcome:

- a URL shows up on stdout or stderr  -> resolved (tunnel keeps running)
- the timeout elapses                 -> timed out (process is terminated)
- the process exits on its own        -> process exited

Both streams are read by independent tasks for the whole life of the process.
Once the outcome is settled the readers stop scanning but keep discarding
output, otherwise a chatty long-lived tunnel would block on a full pipe.
"""
from __future__ import annotations

import asyncio
import codecs
import os
import re
from collections.abc import Sequence

from ..domain.errors import TunnelUnavailable
from ..domain.outcome import OutcomeKind, OutcomeSlot, TunnelOutcome
from ..logging_conf import get_logger

__all__ = [
    "TUNNEL_URL_RE",
    "DEFAULT_TUNNEL_BIN",
    "DEFAULT_TIMEOUT_S",
    "get_tunnel_command_from_env",
    "get_tunnel_timeout_from_env",
    "find_tunnel_url",
    "TunnelProcess",
]

logger = get_logger(__name__)

TUNNEL_URL_RE = re.compile(r"https://[A-Za-z0-9-]+\.trycloudflare\.com")
DEFAULT_TUNNEL_BIN = "cloudflared"
DEFAULT_TIMEOUT_S = 30.0

_READ_SIZE = 4096
# How long readers get to hand over the last output once the process is gone.
_DRAIN_GRACE_S = 1.0
_TERMINATE_GRACE_S = 5.0
# Consecutive failed reads after which a stream is treated as broken.
_MAX_READ_ERRORS = 10


def get_tunnel_command_from_env() -> list[str]:
    """Return the tunnel executable from FILEDROP_TUNNEL_BIN (default cloudflared)."""
    return [os.getenv("FILEDROP_TUNNEL_BIN") or DEFAULT_TUNNEL_BIN]


def get_tunnel_timeout_from_env() -> float:
    """Return FILEDROP_TUNNEL_TIMEOUT in seconds, defaulting to 30."""
    raw = os.getenv("FILEDROP_TUNNEL_TIMEOUT")
    if raw is None:
        return DEFAULT_TIMEOUT_S
    try:
        val = float(raw)
    except ValueError as e:
        raise ValueError("FILEDROP_TUNNEL_TIMEOUT must be a number") from e
    if val <= 0:
        raise ValueError("FILEDROP_TUNNEL_TIMEOUT must be positive")
    return val


def find_tunnel_url(text: str) -> str | None:
    match = TUNNEL_URL_RE.search(text)
    return match.group(0) if match else None


def _close_transport(proc: asyncio.subprocess.Process) -> None:
    """Release the pipes of an exited process while the loop is still alive.

    asyncio only closes a subprocess transport on garbage collection, which
    may happen after the event loop is gone.
    """
    transport = getattr(proc, "_transport", None)
    if transport is not None and proc.returncode is not None:
        transport.close()


class TunnelProcess:
    """One external tunnel process and the discovery of its public URL."""

    def __init__(self, command: Sequence[str] | None = None, *, timeout: float | None = None):
        self.command = list(command) if command else get_tunnel_command_from_env()
        self.timeout = get_tunnel_timeout_from_env() if timeout is None else timeout
        self.process: asyncio.subprocess.Process | None = None
        self.outcome: TunnelOutcome | None = None
        # Output seen so far per stream, kept only until the outcome is known.
        self._buffers: dict[str, str] = {}
        self._tasks: list[asyncio.Task[None]] = []
        self._closing = False

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    def tunnel_args(self, port: int) -> list[str]:
        return [*self.command, "tunnel", "--url", f"http://localhost:{port}"]

    async def probe_available(self) -> bool:
        """Run `<executable> --version` and report whether it exited with 0."""
        logger.debug("checking for %s", self.command[0], extra={"event": "tunnel_probe"})
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug(
                "%s could not be launched: %s",
                self.command[0],
                e,
                extra={"event": "tunnel_probe_error"},
            )
            return False

        try:
            code = await asyncio.wait_for(proc.wait(), self.timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            code = None
        _close_transport(proc)
        available = code == 0
        logger.debug(
            "%s %s",
            self.command[0],
            "installed" if available else "not installed",
            extra={"event": "tunnel_probe_result", "exit_code": code},
        )
        return available

    async def resolve_url(self, port: int, timeout: float | None = None) -> TunnelOutcome:
        """Start the tunnel for `port` and wait for its public URL.

        Returns the first outcome among URL found, timeout and process exit.
        On timeout the process is terminated; on success it keeps running
        until `aclose()`.

        Raises:
            TunnelUnavailable: if the executable cannot be launched at all.
        """
        if self.process is not None:
            raise RuntimeError("tunnel process already started")

        limit = self.timeout if timeout is None else timeout
        args = self.tunnel_args(port)
        logger.debug("starting %s", " ".join(args), extra={"event": "tunnel_start", "port": port})
        try:
            self.process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TunnelUnavailable(f"could not start {self.command[0]}: {e}") from e

        proc = self.process
        slot = OutcomeSlot()
        assert proc.stdout is not None and proc.stderr is not None
        readers = [
            asyncio.create_task(self._drain(proc.stdout, "stdout", slot), name="tunnel-stdout"),
            asyncio.create_task(self._drain(proc.stderr, "stderr", slot), name="tunnel-stderr"),
        ]
        watcher = asyncio.create_task(self._watch_exit(proc, readers, slot), name="tunnel-exit")
        self._tasks = [*readers, watcher]
        logger.debug("tunnel spawned, waiting for URL", extra={"event": "tunnel_spawned", "pid": proc.pid})

        try:
            outcome = await slot.wait(limit)
        except TimeoutError:
            slot.settle(TunnelOutcome.timed_out(limit))
            outcome = slot.result()
        except asyncio.CancelledError:
            await self.aclose()
            raise

        self.outcome = outcome
        if outcome.kind is OutcomeKind.resolved:
            logger.info("tunnel URL: %s", outcome.url, extra={"event": "tunnel_resolved", "url": outcome.url})
        else:
            logger.debug(
                "tunnel output so far: %r",
                self._buffers,
                extra={"event": "tunnel_output", "outcome": outcome.kind.value},
            )
            if outcome.kind is OutcomeKind.timed_out:
                logger.warning(
                    "no tunnel URL after %gs, stopping %s",
                    limit,
                    self.command[0],
                    extra={"event": "tunnel_timeout"},
                )
                await self.aclose()
            else:
                logger.warning(
                    "%s exited with code %s before printing a URL",
                    self.command[0],
                    outcome.exit_code,
                    extra={"event": "tunnel_exited", "exit_code": outcome.exit_code},
                )
                await self._reap()
        self._buffers.clear()
        return outcome

    async def aclose(self) -> None:
        """Terminate the tunnel process (if still running) and its readers."""
        self._closing = True
        proc = self.process
        if proc is not None and proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(proc.wait(), _TERMINATE_GRACE_S)
            except TimeoutError:
                proc.kill()
                await proc.wait()
            logger.debug("tunnel process stopped", extra={"event": "tunnel_stopped", "exit_code": proc.returncode})
        await self._reap()
        if proc is not None:
            _close_transport(proc)

    async def _reap(self) -> None:
        tasks, self._tasks = self._tasks, []
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=_DRAIN_GRACE_S)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _drain(self, stream: asyncio.StreamReader, name: str, slot: OutcomeSlot) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffers[name] = ""
        errors = 0
        while True:
            # A failed read must not leave the pipe without a reader.
            try:
                chunk = await stream.read(_READ_SIZE)
            except Exception:
                errors += 1
                logger.debug(
                    "error reading tunnel %s",
                    name,
                    exc_info=True,
                    extra={"event": "tunnel_read_error", "stream": name, "errors": errors},
                )
                if stream.at_eof():
                    break
                if errors >= _MAX_READ_ERRORS:
                    logger.warning(
                        "giving up on tunnel %s after %d read errors",
                        name,
                        errors,
                        extra={"event": "tunnel_reader_stopped", "stream": name},
                    )
                    break
                continue
            errors = 0
            if not chunk:
                break
            if slot.done():
                continue

            text = decoder.decode(chunk)
            logger.debug("tunnel %s: %s", name, text.rstrip(), extra={"event": "tunnel_chunk"})
            # The URL may straddle two chunks, so match against everything seen.
            self._buffers[name] = self._buffers.get(name, "") + text
            url = find_tunnel_url(self._buffers[name])
            if url and slot.settle(TunnelOutcome.resolved(url)):
                logger.debug("URL found on %s", name, extra={"event": "tunnel_match", "stream": name})

    async def _watch_exit(
        self,
        proc: asyncio.subprocess.Process,
        readers: list[asyncio.Task[None]],
        slot: OutcomeSlot,
    ) -> None:
        code = await proc.wait()
        # Give the readers the chance to scan whatever was printed last.
        await asyncio.wait(readers, timeout=_DRAIN_GRACE_S)
        if all(r.done() for r in readers):
            _close_transport(proc)
        if slot.settle(TunnelOutcome.process_exited(code)):
            return
        if slot.result().ok and not self._closing:
            logger.warning(
                "tunnel process exited with code %s, the public URL no longer works",
                code,
                extra={"event": "tunnel_died", "exit_code": code},
            )
