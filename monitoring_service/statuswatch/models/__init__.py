from .status import (
    ApiResponse,
    FullStatus,
    HealthChecks,
    HealthResponse,
    LogCheckListItem,
    LogCheckModel,
    LogCheckStatus,
    PingListItem,
    PingResultModel,
    PingStatus,
)
from .config import ConfigUpdate

__all__ = [
    "ApiResponse",
    "FullStatus",
    "HealthChecks",
    "HealthResponse",
    "LogCheckListItem",
    "LogCheckModel",
    "LogCheckStatus",
    "PingListItem",
    "PingResultModel",
    "PingStatus",
    "ConfigUpdate",
]
