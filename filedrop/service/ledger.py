from __future__ import annotations

import re
import threading

from pydantic import BaseModel, ConfigDict

from ..logging_conf import get_logger

__all__ = [
    "UNKNOWN",
    "UA_LOG_LIMIT",
    "ClientRecord",
    "ClientLedger",
    "shorten_user_agent",
]

logger = get_logger(__name__)

UNKNOWN = "unknown"
UA_LOG_LIMIT = 60
_WS_RE = re.compile(r"\s+")


class ClientRecord(BaseModel):
    """How many requests one (address, user-agent) pair has made."""

    model_config = ConfigDict(frozen=True)

    ip: str
    user_agent: str
    request_count: int


def shorten_user_agent(user_agent: str, limit: int = UA_LOG_LIMIT) -> str:
    """Collapse whitespace runs to single spaces and cut to `limit` chars."""
    return _WS_RE.sub(" ", user_agent).strip()[:limit]


class ClientLedger:
    """In-memory per-client request counter.

    Lives as long as the process; there is no eviction since a share is
    expected to be short-lived with few recipients. Every mutation happens
    under one lock so concurrent hits from the same client never lose counts.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], ClientRecord] = {}

    def record_hit(self, ip: str | None, user_agent: str | None) -> int:
        """Count one request and return the running total for that client."""
        key = (ip or UNKNOWN, user_agent or UNKNOWN)
        with self._lock:
            existing = self._records.get(key)
            if existing is None:
                record = ClientRecord(ip=key[0], user_agent=key[1], request_count=1)
            else:
                record = existing.model_copy(update={"request_count": existing.request_count + 1})
            self._records[key] = record
        logger.info(
            "%s (%s) -> connection #%d",
            record.ip,
            shorten_user_agent(record.user_agent),
            record.request_count,
            extra={
                "event": "client_hit",
                "ip": record.ip,
                "user_agent": shorten_user_agent(record.user_agent),
                "count": record.request_count,
            },
        )
        return record.request_count

    def count_for(self, ip: str, user_agent: str) -> int:
        with self._lock:
            record = self._records.get((ip, user_agent))
        return record.request_count if record else 0

    def snapshot(self) -> list[ClientRecord]:
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
