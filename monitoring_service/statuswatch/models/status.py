"""Response models for the status API (camelCase on the wire)."""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from statuswatch.aggregation import OverallStatus
from statuswatch.snapshots import LogCheckResult, ProbeResult, Snapshot

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    """Standard envelope shared by every JSON status endpoint."""

    success: bool
    data: T | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PingResultModel(_WireModel):
    endpoint: str
    status: int = Field(description="HTTP status code, 0 when unreachable")
    response_time: int = Field(alias="responseTime", description="Milliseconds, -1 when unreachable")

    @classmethod
    def from_result(cls, result: ProbeResult) -> "PingResultModel":
        return cls(endpoint=result.endpoint, status=result.status_code, response_time=result.response_time_ms)


class LogCheckModel(_WireModel):
    success: bool
    found_entries: int = Field(alias="foundEntries")
    error: str | None = None

    @classmethod
    def from_result(cls, result: LogCheckResult) -> "LogCheckModel":
        return cls(success=result.success, found_entries=result.found_entries, error=result.error)


class PingStatus(_WireModel):
    timestamp: datetime
    ping_results: list[PingResultModel] = Field(alias="pingResults")

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "PingStatus":
        return cls(
            timestamp=snapshot.timestamp,
            ping_results=[PingResultModel.from_result(r) for r in snapshot.ping_results],
        )


class PingListItem(PingStatus):
    id: str

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "PingListItem":
        return cls(
            id=snapshot.id,
            timestamp=snapshot.timestamp,
            ping_results=[PingResultModel.from_result(r) for r in snapshot.ping_results],
        )


class LogCheckStatus(_WireModel):
    timestamp: datetime
    log_check: LogCheckModel = Field(alias="logCheck")

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "LogCheckStatus":
        return cls(timestamp=snapshot.timestamp, log_check=LogCheckModel.from_result(snapshot.log_check))


class LogCheckListItem(LogCheckStatus):
    id: str

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "LogCheckListItem":
        return cls(
            id=snapshot.id,
            timestamp=snapshot.timestamp,
            log_check=LogCheckModel.from_result(snapshot.log_check),
        )


class FullStatus(_WireModel):
    id: str
    timestamp: datetime
    ping_results: list[PingResultModel] = Field(alias="pingResults")
    log_check: LogCheckModel = Field(alias="logCheck")
    status: OverallStatus = Field(description="up, partiallyUp or down; computed on read")

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, status: OverallStatus) -> "FullStatus":
        return cls(
            id=snapshot.id,
            timestamp=snapshot.timestamp,
            ping_results=[PingResultModel.from_result(r) for r in snapshot.ping_results],
            log_check=LogCheckModel.from_result(snapshot.log_check),
            status=status,
        )


class HealthChecks(BaseModel):
    server: bool
    database: bool


class HealthResponse(BaseModel):
    success: bool
    status: str
    checks: HealthChecks
    timestamp: datetime = Field(default_factory=_utcnow)
