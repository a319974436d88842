"""
Domain records produced by a monitoring cycle.

A ``Snapshot`` is the immutable outcome of one cycle: one ``ProbeResult``
per configured endpoint (in configuration order) plus the log inspection
verdict. ``to_document`` / ``from_document`` define the persisted layout::

    {"timestamp": ..., "pingResults": [{"endpoint", "status", "responseTime"}],
     "logCheck": {"success", "foundEntries", "error"}}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

# Sentinels for a probe that never reached its endpoint
UNREACHABLE_STATUS = 0
UNREACHABLE_RESPONSE_TIME = -1


@dataclass(frozen=True)
class ProbeResult:
    endpoint: str
    status_code: int
    response_time_ms: int

    @classmethod
    def unreachable(cls, endpoint: str) -> ProbeResult:
        return cls(endpoint, UNREACHABLE_STATUS, UNREACHABLE_RESPONSE_TIME)

    @property
    def reached(self) -> bool:
        return self.status_code != UNREACHABLE_STATUS

    def to_document(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "status": self.status_code,
            "responseTime": self.response_time_ms,
        }

    @classmethod
    def from_document(cls, doc: dict) -> ProbeResult:
        return cls(doc["endpoint"], int(doc["status"]), int(doc["responseTime"]))


@dataclass(frozen=True)
class LogCheckResult:
    success: bool
    found_entries: int = 0
    error: str | None = None

    def to_document(self) -> dict:
        return {
            "success": self.success,
            "foundEntries": self.found_entries,
            "error": self.error,
        }

    @classmethod
    def from_document(cls, doc: dict) -> LogCheckResult:
        return cls(bool(doc["success"]), int(doc.get("foundEntries", 0)), doc.get("error"))


@dataclass(frozen=True)
class Snapshot:
    timestamp: datetime
    ping_results: tuple[ProbeResult, ...]
    log_check: LogCheckResult
    id: str | None = field(default=None, compare=False)

    @classmethod
    def capture(
        cls,
        ping_results,
        log_check: LogCheckResult,
        timestamp: datetime | None = None,
    ) -> Snapshot:
        """Build a snapshot stamped with the current UTC time."""
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            ping_results=tuple(ping_results),
            log_check=log_check,
        )

    def with_id(self, snapshot_id: str) -> Snapshot:
        return replace(self, id=snapshot_id)

    def to_document(self) -> dict:
        return {
            "timestamp": to_utc(self.timestamp).isoformat(),
            "pingResults": [r.to_document() for r in self.ping_results],
            "logCheck": self.log_check.to_document(),
        }

    @classmethod
    def from_document(cls, doc: dict, snapshot_id: str | None = None) -> Snapshot:
        return cls(
            timestamp=to_utc(datetime.fromisoformat(doc["timestamp"])),
            ping_results=tuple(ProbeResult.from_document(r) for r in doc["pingResults"]),
            log_check=LogCheckResult.from_document(doc["logCheck"]),
            id=snapshot_id,
        )


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
