import logging

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from statuswatch.database import check_connection
from statuswatch.models.status import HealthChecks, HealthResponse
from sw_common.observability import metrics_response

logger = logging.getLogger("health")

router = APIRouter(tags=["Health"])


@router.get("/api/health", response_model=HealthResponse)
def health():
    db_ok = check_connection()
    body = HealthResponse(
        success=db_ok,
        status="healthy" if db_ok else "unhealthy",
        checks=HealthChecks(server=True, database=db_ok),
    )
    if not db_ok:
        logger.error("Health check failed: database unreachable")
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))
    return body


@router.get("/metrics")
def metrics():
    body, content_type = metrics_response()
    return Response(content=body, media_type=content_type)
