"""
Exhibition-event service handling CRUD operations.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.exceptions import NotFound, ValidationError
from boothhub.core.logging import get_logger
from boothhub.core.utils import ensure_aware
from boothhub.models.event import Event
from boothhub.schemas.event import EventCreate, EventUpdate

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate, created_by: int) -> Event:
    event = Event(
        name=event_data.name,
        description=event_data.description,
        start_date=event_data.start_date,
        end_date=event_data.end_date,
        venue=event_data.venue,
        status=event_data.status,
        created_by=created_by,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, name=event.name)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise NotFound(f"Event {event_id} not found")
    return event


async def update_event(db: AsyncSession, event_id: int, changes: EventUpdate) -> Event:
    event = await get_event(db, event_id)
    updates = changes.model_dump(exclude_unset=True)

    start = ensure_aware(updates.get("start_date", event.start_date))
    end = ensure_aware(updates.get("end_date", event.end_date))
    if start >= end:
        raise ValidationError("start date must be before end date")

    for field, value in updates.items():
        setattr(event, field, value)
    await db.commit()
    await db.refresh(event)

    logger.info("event_updated", event_id=event.id, fields=sorted(updates))
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    status: Optional[str] = None,
) -> tuple[list[Event], int]:
    """List events with pagination, soonest first. Uses ix_events_start_date."""
    query = select(Event)

    if status:
        query = query.where(Event.status == status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.start_date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total
