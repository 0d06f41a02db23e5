from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Check:
    """Result of one smoke check against a running instance."""

    name: str
    ok: bool
    detail: str = ""
    elapsed_ms: float = 0.0


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed (e.g., server never ready)."""


class NotReadyError(SmokeError):
    """Raised when the info page never answers 200 within the timeout."""


class FetchError(SmokeError):
    """Raised when a request keeps failing after retries."""
