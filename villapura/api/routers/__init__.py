"""HTTP routers."""

from .availability import router as availability_router
from .bookings import router as bookings_router

__all__ = ["availability_router", "bookings_router"]
