from __future__ import annotations

import secrets
from pathlib import Path

from runner.types import Check, SmokeError


def random_path() -> str:
    """A path no filedrop instance serves (tokens are lowercase base-36)."""
    return f"/not-a-token-{secrets.token_hex(4).upper()}"


def expected_size(path: str | None) -> int | None:
    """Return the size of the local copy of the shared file, if given."""
    if path is None:
        return None
    p = Path(path)
    if not p.is_file():
        raise SmokeError(f"local file not found: {p}")
    return p.stat().st_size


def summarize(checks: list[Check]) -> tuple[dict, int]:
    """Compute summary dict and an exit code from the check results."""
    failures = [{"check": c.name, "detail": c.detail} for c in checks if not c.ok]
    summary = {
        "component": "runner",
        "event": "summary",
        "checks": len(checks),
        "passed": len(checks) - len(failures),
        "failed": len(failures),
        "timings_ms": {c.name: round(c.elapsed_ms, 2) for c in checks},
        "failures": failures,
    }
    exit_code = 0 if (checks and not failures) else 1
    return summary, exit_code
