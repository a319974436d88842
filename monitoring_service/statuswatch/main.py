import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sw_common.observability import init_observability, shutdown_tracing

from statuswatch import __version__
from statuswatch.config import get_config_provider
from statuswatch.database import init_db
from statuswatch.models.status import ApiResponse
from statuswatch.ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from statuswatch.routes import config_router, dashboard_router, health_router, status_router
from statuswatch.scheduler import get_scheduler

logger = init_observability("statuswatch-api", __version__)

RATE_LIMIT_MAX_REQUESTS = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = float(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))

rate_limiter = FixedWindowRateLimiter(
    max_requests=RATE_LIMIT_MAX_REQUESTS,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database initialized")

    settings = get_config_provider().load()
    scheduler = get_scheduler()
    await scheduler.start(settings.ping_interval, settings.data_retention_days)
    logger.info("Monitoring scheduler started (interval=%r)", settings.ping_interval)

    yield

    scheduler.stop()
    logger.info("Monitoring scheduler stopped")

    # Flush remaining traces before shutdown
    shutdown_tracing()


app = FastAPI(
    title="StatusWatch",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)

app.include_router(status_router)
app.include_router(health_router)
app.include_router(dashboard_router)
app.include_router(config_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = ApiResponse(success=False, error=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    body = ApiResponse(success=False, error="Internal server error")
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


@app.get("/")
def index():
    return {
        "message": "StatusWatch monitoring service",
        "version": __version__,
        "endpoints": [
            "/api/pingstatus",
            "/api/pinglist",
            "/api/steadystatus",
            "/api/steadylist",
            "/api/fullstatus",
            "/api/health",
            "/api/dashboard",
            "/api/config",
            "/metrics",
        ],
    }


# Initialize telemetry at module level (before requests start)
try:
    from statuswatch import telemetry
    telemetry.init(app)
except Exception as e:
    logger.warning(f"Telemetry init skipped: {e}")
