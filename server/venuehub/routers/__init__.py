"""FastAPI routers package."""

from .bookings import router as bookings_router
from .health import router as health_router
from .metrics import router as metrics_router
from .venues import router as venues_router

__all__ = [
    "bookings_router",
    "health_router",
    "metrics_router",
    "venues_router",
]
