"""Availability API routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from villapura.api.dependencies import get_cache, get_synchronizer
from villapura.services.availability import AvailabilityCache
from villapura.services.calendar_feed import CalendarFeedSynchronizer

router = APIRouter(tags=["Availability"])


@router.get("/blocked-dates")
async def blocked_dates(
    cache: AvailabilityCache = Depends(get_cache),
    synchronizer: CalendarFeedSynchronizer = Depends(get_synchronizer),
):
    """
    Dates blocked by the external calendar.

    Served from the cache. Only a cold cache triggers a live sync; if that
    fails too, the (empty) cached payload comes back with a 500.
    """
    warm = await synchronizer.ensure_warm()
    payload = [blocked.to_dict() for blocked in cache.read()]
    if not warm:
        return JSONResponse(status_code=500, content=payload)
    return payload
