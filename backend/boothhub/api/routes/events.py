"""
Exhibition-event endpoints with Redis caching on list operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import require_admin
from boothhub.core.logging import get_logger
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.schemas.common import ApiResponse, ok
from boothhub.schemas.event import EventCreate, EventListResponse, EventResponse, EventUpdate
from boothhub.services.cache_service import event_listings
from boothhub.services.event_service import create_event, get_event, list_events, update_event

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=ApiResponse[EventResponse], status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a new exhibition event. Admin only."""
    event = await create_event(db, event_data, admin.id)
    await event_listings.invalidate()
    return ok(event)


@router.get("", response_model=ApiResponse[EventListResponse])
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with pagination.
    Results are cached in Redis for REDIS_CACHE_TTL seconds and invalidated
    when events are created or updated.
    """
    cached = await event_listings.get(page=page, size=page_size, status=status_filter)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return ok(EventListResponse.model_validate(cached))

    events, total = await list_events(db, page, page_size, status_filter)

    response = EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
        cached=False,
    )
    await event_listings.set(response.model_dump(mode="json"), page=page, size=page_size, status=status_filter)
    return ok(response)


@router.get("/{event_id}", response_model=ApiResponse[EventResponse])
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    event = await get_event(db, event_id)
    return ok(event)


@router.patch("/{event_id}", response_model=ApiResponse[EventResponse])
async def update_event_endpoint(
    event_id: int,
    changes: EventUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await update_event(db, event_id, changes)
    await event_listings.invalidate()
    return ok(event)
