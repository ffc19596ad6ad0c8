"""
Booth store: the only writer of Booth.status.

CONCURRENCY STRATEGY: conditional update
========================================

A status change is one statement:

    UPDATE booths
       SET status = :new, version = version + 1, updated_at = :now
     WHERE id = :id [AND status IN (:expected...)]

If two requests race, the database applies them one after the other and the
loser's WHERE no longer matches (rowcount == 0). We never read-modify-write
the status in Python, so there is no window for a lost update.

The store does not know business rules; callers (the reservation engine,
admin endpoints) pass the statuses they expect to transition from.
"""

from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.exceptions import BoothUnavailable, Conflict, NotFound
from boothhub.core.logging import get_logger
from boothhub.core.utils import utcnow
from boothhub.models.booth import Booth, BoothStatus
from boothhub.models.event import Event
from boothhub.models.reservation import ACTIVE_RESERVATION_STATUSES, Reservation
from boothhub.schemas.booth import BoothCreate, BoothUpdate

logger = get_logger(__name__)


def _values(statuses: Iterable[BoothStatus]) -> list[str]:
    return [BoothStatus(s).value for s in statuses]


class BoothStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, booth_id: int) -> Booth:
        booth = await self.db.get(Booth, booth_id, populate_existing=True)
        if not booth:
            raise NotFound(f"Booth {booth_id} not found")
        return booth

    async def list_for_event(self, event_id: int, status: Optional[str] = None) -> list[Booth]:
        query = select(Booth).where(Booth.event_id == event_id)
        if status:
            query = query.where(Booth.status == status)
        result = await self.db.execute(query.order_by(Booth.booth_number.asc()))
        return list(result.scalars().all())

    async def get_available(
        self,
        event_id: int,
        size: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> list[Booth]:
        """
        Booths that can be reserved right now, ordered by booth number.

        A booth still marked 'reserved' whose only hold has lapsed counts as
        available: expiry is decided at read time, not by the sweeper.
        """
        now = utcnow()
        live_hold = exists(
            select(Reservation.id).where(
                Reservation.booth_id == Booth.id,
                Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
                or_(Reservation.expires_at.is_(None), Reservation.expires_at > now),
            )
        )
        query = select(Booth).where(
            Booth.event_id == event_id,
            Booth.status.in_(_values((BoothStatus.AVAILABLE, BoothStatus.RESERVED))),
            ~live_hold,
        )
        if size:
            query = query.where(Booth.size == size)
        if min_price is not None:
            query = query.where(Booth.price >= min_price)
        if max_price is not None:
            query = query.where(Booth.price <= max_price)

        result = await self.db.execute(query.order_by(Booth.booth_number.asc()))
        return list(result.scalars().all())

    async def transition(
        self,
        booth_id: int,
        new_status: BoothStatus,
        expected: Optional[Iterable[BoothStatus]] = None,
    ) -> Booth:
        """
        Atomically set the booth status (bumping version and updated_at).

        Raises NotFound if the booth does not exist, BoothUnavailable if it
        exists but is not in one of the `expected` statuses.
        """
        new_status = BoothStatus(new_status)
        stmt = update(Booth).where(Booth.id == booth_id)
        if expected is not None:
            stmt = stmt.where(Booth.status.in_(_values(expected)))
        stmt = stmt.values(
            status=new_status.value,
            version=Booth.version + 1,
            updated_at=utcnow(),
        ).execution_options(synchronize_session=False)

        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            current = await self.db.scalar(select(Booth.status).where(Booth.id == booth_id))
            if current is None:
                raise NotFound(f"Booth {booth_id} not found")
            logger.info(
                "booth_transition_rejected",
                booth_id=booth_id,
                current=current,
                requested=new_status.value,
            )
            raise BoothUnavailable(f"Booth is {current}", details={"status": current})

        booth = await self.get(booth_id)
        logger.info("booth_transition", booth_id=booth_id, status=new_status.value, version=booth.version)
        return booth

    async def release(self, booth_id: int, expected: Optional[Iterable[BoothStatus]] = None) -> Booth:
        return await self.transition(booth_id, BoothStatus.AVAILABLE, expected=expected)

    # Admin CRUD (never touches status)

    async def create(self, data: BoothCreate) -> Booth:
        if not await self.db.get(Event, data.event_id):
            raise NotFound(f"Event {data.event_id} not found")

        booth = Booth(**data.model_dump(), status=BoothStatus.AVAILABLE.value)
        self.db.add(booth)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict(f"Booth {data.booth_number} already exists for this event")
        await self.db.refresh(booth)
        logger.info("booth_created", booth_id=booth.id, event_id=booth.event_id, number=booth.booth_number)
        return booth

    async def update(self, booth_id: int, changes: BoothUpdate) -> Booth:
        booth = await self.get(booth_id)
        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(booth, field, value)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Booth number already used for this event")
        await self.db.refresh(booth)
        return booth

    async def delete(self, booth_id: int) -> None:
        await self.get(booth_id)
        has_history = await self.db.scalar(
            select(exists().where(Reservation.booth_id == booth_id))
        )
        if has_history:
            raise Conflict("Booth has reservations and cannot be deleted")
        await self.db.execute(delete(Booth).where(Booth.id == booth_id))
        await self.db.commit()
        logger.info("booth_deleted", booth_id=booth_id)

    async def set_listing_status(self, booth_id: int, status: BoothStatus) -> Booth:
        """Admin toggle between available and unavailable. Held or booked booths are left alone."""
        booth = await self.transition(
            booth_id,
            status,
            expected=(BoothStatus.AVAILABLE, BoothStatus.UNAVAILABLE),
        )
        await self.db.commit()
        return booth
