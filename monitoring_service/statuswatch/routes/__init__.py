from .status import router as status_router
from .health import router as health_router
from .dashboard import router as dashboard_router
from .config import router as config_router

__all__ = ["status_router", "health_router", "dashboard_router", "config_router"]
