"""
Configuration routes.

  GET /api/config  — active configuration
  PUT /api/config  — partial update, persisted and applied live

Endpoints and the log path are read by every cycle, so changing them needs
nothing else. A new cadence or retention window restarts the scheduler
after the response has been sent.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import ValidationError

from statuswatch.config import MonitorSettings, get_config_provider
from statuswatch.models.config import ConfigUpdate
from statuswatch.models.status import ApiResponse
from statuswatch.scheduler import get_scheduler

logger = logging.getLogger("config")

router = APIRouter(prefix="/api", tags=["Configuration"])


@router.get("/config", response_model=ApiResponse[MonitorSettings])
def read_config():
    return ApiResponse(success=True, data=get_config_provider().get())


@router.put("/config", response_model=ApiResponse[MonitorSettings])
def update_config(update: ConfigUpdate, background_tasks: BackgroundTasks):
    provider = get_config_provider()
    previous = provider.get()

    try:
        settings = provider.update(update.changes())
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid configuration: {exc}") from exc

    reschedule = (
        settings.ping_interval != previous.ping_interval
        or settings.data_retention_days != previous.data_retention_days
    )
    scheduler = get_scheduler()
    if reschedule and scheduler.started:
        logger.info(
            "Rescheduling monitoring (interval=%r, retention_days=%d)",
            settings.ping_interval,
            settings.data_retention_days,
        )
        background_tasks.add_task(scheduler.start, settings.ping_interval, settings.data_retention_days)

    return ApiResponse(success=True, data=settings)
