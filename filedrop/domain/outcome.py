from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

from .errors import TunnelProcessExited, TunnelTimeout

__all__ = [
    "OutcomeKind",
    "TunnelOutcome",
    "OutcomeSlot",
]


class OutcomeKind(str, Enum):
    resolved = "resolved"
    timed_out = "timed_out"
    process_exited = "process_exited"


@dataclass(frozen=True)
class TunnelOutcome:
    """How one tunnel URL discovery ended.

    Exactly one of the three kinds; `url` is set only for `resolved`,
    `exit_code` only for `process_exited`, `timeout` only for `timed_out`.
    """

    kind: OutcomeKind
    url: str | None = None
    exit_code: int | None = None
    timeout: float | None = None

    @classmethod
    def resolved(cls, url: str) -> TunnelOutcome:
        return cls(OutcomeKind.resolved, url=url)

    @classmethod
    def timed_out(cls, timeout: float) -> TunnelOutcome:
        return cls(OutcomeKind.timed_out, timeout=timeout)

    @classmethod
    def process_exited(cls, exit_code: int | None) -> TunnelOutcome:
        return cls(OutcomeKind.process_exited, exit_code=exit_code)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.resolved

    def unwrap(self) -> str:
        """Return the public URL or raise the error matching the outcome."""
        if self.kind is OutcomeKind.resolved:
            assert self.url is not None
            return self.url
        if self.kind is OutcomeKind.timed_out:
            raise TunnelTimeout(self.timeout or 0.0)
        raise TunnelProcessExited(self.exit_code)


class OutcomeSlot:
    """Single-assignment holder for a TunnelOutcome.

    The first `settle()` wins; later calls are no-ops returning False. All
    writers run on one event loop, so `done()` + `set_result()` cannot race.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[TunnelOutcome] = asyncio.get_running_loop().create_future()

    def settle(self, outcome: TunnelOutcome) -> bool:
        if self._future.done():
            return False
        self._future.set_result(outcome)
        return True

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> TunnelOutcome:
        return self._future.result()

    async def wait(self, timeout: float | None = None) -> TunnelOutcome:
        """Wait for the outcome; raises TimeoutError if `timeout` elapses first.

        The slot itself is shielded, so a timeout here leaves it open for
        the caller to settle.
        """
        return await asyncio.wait_for(asyncio.shield(self._future), timeout)
