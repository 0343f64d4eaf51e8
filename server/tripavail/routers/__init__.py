"""FastAPI routers package."""

from .availability import router as availability_router
from .booking import router as booking_router
from .catalog import router as catalog_router
from .health import router as health_router
from .jobs import router as jobs_router
from .metrics import router as metrics_router
from .payment import router as payment_router

__all__ = [
    "availability_router",
    "booking_router",
    "catalog_router",
    "health_router",
    "jobs_router",
    "metrics_router",
    "payment_router",
]
