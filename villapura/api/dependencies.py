"""FastAPI dependencies resolving services from the application state."""

from fastapi import HTTPException, Request

from villapura.container import ServiceContainer
from villapura.services.availability import AvailabilityCache
from villapura.services.booking_service import BookingService
from villapura.services.calendar_feed import CalendarFeedSynchronizer
from villapura.services.payments import PaymentReconciler


def get_container(request: Request) -> ServiceContainer:
    """Get the service container of the running application."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(500, "Services not initialized")
    return container


def get_booking_service(request: Request) -> BookingService:
    return get_container(request).booking_service


def get_reconciler(request: Request) -> PaymentReconciler:
    return get_container(request).reconciler


def get_cache(request: Request) -> AvailabilityCache:
    return get_container(request).cache


def get_synchronizer(request: Request) -> CalendarFeedSynchronizer:
    return get_container(request).synchronizer
