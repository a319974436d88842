"""
Status routes — latest results and paginated history.

  GET /api/pingstatus    — latest ping results
  GET /api/pinglist      — ping results, newest first, paginated
  GET /api/steadystatus  — latest log check
  GET /api/steadylist    — log checks, newest first, paginated
  GET /api/fullstatus    — latest snapshot with its overall status

List endpoints take ``limit`` and ``startAfter`` (the timestamp of the last
item already seen). A page shorter than ``limit`` is the last one.
"""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query

from statuswatch.aggregation import aggregate
from statuswatch.database import get_latest_snapshot, list_snapshots
from statuswatch.models.status import (
    ApiResponse,
    FullStatus,
    LogCheckListItem,
    LogCheckStatus,
    PingListItem,
    PingStatus,
)
from statuswatch.snapshots import Snapshot

router = APIRouter(prefix="/api", tags=["Status"])

NO_SNAPSHOTS = "No status logs found"


def _latest_or_404() -> Snapshot:
    snapshot = get_latest_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=404, detail=NO_SNAPSHOTS)
    return snapshot


@router.get("/pingstatus", response_model=ApiResponse[PingStatus])
def ping_status():
    return ApiResponse(success=True, data=PingStatus.from_snapshot(_latest_or_404()))


@router.get("/pinglist", response_model=ApiResponse[list[PingListItem]])
def ping_list(
    limit: int = Query(default=10, ge=1, le=100),
    start_after: datetime | None = Query(default=None, alias="startAfter"),
):
    snapshots = list_snapshots(limit, start_after)
    return ApiResponse(success=True, data=[PingListItem.from_snapshot(s) for s in snapshots])


@router.get("/steadystatus", response_model=ApiResponse[LogCheckStatus])
def log_check_status():
    return ApiResponse(success=True, data=LogCheckStatus.from_snapshot(_latest_or_404()))


@router.get("/steadylist", response_model=ApiResponse[list[LogCheckListItem]])
def log_check_list(
    limit: int = Query(default=10, ge=1, le=100),
    start_after: datetime | None = Query(default=None, alias="startAfter"),
):
    snapshots = list_snapshots(limit, start_after)
    return ApiResponse(success=True, data=[LogCheckListItem.from_snapshot(s) for s in snapshots])


@router.get("/fullstatus", response_model=ApiResponse[FullStatus])
def full_status():
    snapshot = _latest_or_404()
    return ApiResponse(success=True, data=FullStatus.from_snapshot(snapshot, aggregate(snapshot)))
