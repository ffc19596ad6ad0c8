"""
Reservation engine: holds, confirmations, cancellations and expiry.

STATE MACHINE
=============

    pending --confirm--> confirmed
    pending --cancel---> cancelled
    pending --timeout--> expired

EXCLUSIVITY
===========

At most one pending/confirmed, unexpired reservation per booth. Three layers
enforce it, outermost first:

  1. A keyed asyncio.Lock per booth serialises reserve attempts inside this
     process (and an optional Redis admission gate across processes).
  2. The booth moves to 'reserved' through BoothStore's conditional UPDATE,
     so only one writer can win the available -> reserved transition.
  3. The partial unique index uq_reservations_active_booth rejects a second
     active row no matter what. IntegrityError becomes BoothReserved.

A losing attempt gets BoothReserved whichever layer stopped it; a booth
that is held (reserved or booked) is reported as reserved before its status
is checked. BoothUnavailable is kept for booths taken off sale.

Lapsed pending rows for the booth are stamped 'expired' in the same
transaction that inserts the new hold, so (3) never blocks a legitimate
re-reservation.

EXPIRY
======

Expiry is decided at read time: a pending row whose expires_at has passed is
inactive for is_booth_reserved(), availability and every state change, even
if no sweep has touched it. sweep_expired() only tidies rows up.

Events are published after commit so subscribers never observe state that
could still roll back.
"""

import time
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.config import get_settings
from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import (
    BoothReserved,
    BoothUnavailable,
    InvalidReservationState,
    NotFound,
    ReservationExpired,
)
from boothhub.core.logging import get_logger
from boothhub.core.metrics import (
    record_admission,
    record_reservation_attempt,
    reservation_latency,
    reservation_transitions,
)
from boothhub.core.utils import KeyedLocks, utcnow
from boothhub.models.booth import Booth, BoothStatus
from boothhub.models.reservation import ACTIVE_RESERVATION_STATUSES, Reservation, ReservationStatus
from boothhub.models.user import User
from boothhub.services.booth_store import BoothStore
from boothhub.services.interfaces.admission import AdmissionStrategy
from boothhub.services.interfaces.notifier import Notifier
from boothhub.services.interfaces.optimistic_admission import OptimisticAdmission
from boothhub.services.notification_service import notify_safely

logger = get_logger(__name__)
settings = get_settings()

MODULE = "sales"

# Booth statuses that mean another exhibitor holds the booth
_HELD = (BoothStatus.RESERVED.value, BoothStatus.BOOKED.value)


def _live(now: datetime):
    return or_(Reservation.expires_at.is_(None), Reservation.expires_at > now)


class ReservationEngine:
    def __init__(
        self,
        db: AsyncSession,
        bus: EventBus,
        admission: Optional[AdmissionStrategy] = None,
        notifier: Optional[Notifier] = None,
        locks: Optional[KeyedLocks] = None,
        hold_minutes: Optional[int] = None,
    ):
        self.db = db
        self.bus = bus
        self.booths = BoothStore(db)
        self.admission = admission or OptimisticAdmission()
        self.notifier = notifier
        self.locks = locks or KeyedLocks()
        self.hold_minutes = hold_minutes or settings.RESERVATION_HOLD_MINUTES

    # Queries

    async def get(self, reservation_id: int) -> Reservation:
        reservation = await self.db.get(Reservation, reservation_id, populate_existing=True)
        if not reservation:
            raise NotFound(f"Reservation {reservation_id} not found")
        return reservation

    async def is_booth_reserved(self, booth_id: int, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        found = await self.db.scalar(
            select(Reservation.id)
            .where(
                Reservation.booth_id == booth_id,
                Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
                _live(now),
            )
            .limit(1)
        )
        return found is not None

    async def list_for_exhibitor(self, exhibitor_id: int) -> list[Reservation]:
        result = await self.db.execute(
            select(Reservation)
            .where(Reservation.exhibitor_id == exhibitor_id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        status: Optional[str] = None,
        event_id: Optional[int] = None,
    ) -> list[Reservation]:
        query = select(Reservation)
        if status:
            query = query.where(Reservation.status == status)
        if event_id:
            query = query.where(Reservation.event_id == event_id)
        result = await self.db.execute(query.order_by(Reservation.id.desc()))
        return list(result.scalars().all())

    # Commands

    async def reserve(
        self,
        booth_id: int,
        event_id: int,
        exhibitor_id: int,
        hold_minutes: Optional[int] = None,
    ) -> Reservation:
        """
        Place a time-bounded hold on a booth.

        Raises NotFound, BoothUnavailable (booth not open for sale) or
        BoothReserved (someone else holds it).
        """
        started = time.perf_counter()
        try:
            async with self.locks.hold(("booth", booth_id)):
                reservation, booth, lapsed_ids = await self._reserve(
                    booth_id, event_id, exhibitor_id, hold_minutes or self.hold_minutes
                )
        except BoothReserved:
            record_reservation_attempt("reserved")
            raise
        except BoothUnavailable:
            record_reservation_attempt("unavailable")
            raise
        except NotFound:
            record_reservation_attempt("not_found")
            raise
        finally:
            reservation_latency.observe(time.perf_counter() - started)

        record_reservation_attempt("success")
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            booth_id=booth_id,
            event_id=event_id,
            exhibitor_id=exhibitor_id,
            expires_at=reservation.expires_at.isoformat(),
        )

        for lapsed_id in lapsed_ids:
            await self.bus.emit_async(
                Topic.RESERVATION_EXPIRED,
                {"reservationId": lapsed_id, "boothId": booth_id, "eventId": event_id, "module": MODULE},
            )
        await self.bus.emit_async(
            Topic.BOOTH_RESERVED,
            {
                "reservationId": reservation.id,
                "boothId": booth_id,
                "eventId": event_id,
                "exhibitorId": exhibitor_id,
                "expiresAt": reservation.expires_at.isoformat(),
                "module": MODULE,
            },
        )
        await self._status_changed(booth)
        await notify_safely(
            "reservation_created",
            self._notify_reserved(reservation, booth),
            reservation_id=reservation.id,
        )
        return reservation

    async def _reserve(
        self,
        booth_id: int,
        event_id: int,
        exhibitor_id: int,
        hold_minutes: int,
    ) -> tuple[Reservation, Booth, list[int]]:
        now = utcnow()
        booth = await self.booths.get(booth_id)
        if booth.event_id != event_id:
            raise NotFound(f"Booth {booth_id} not found for event {event_id}")

        held = await self.is_booth_reserved(booth_id, now)
        if held:
            raise BoothReserved()
        if booth.status == BoothStatus.AVAILABLE.value:
            expected = (BoothStatus.AVAILABLE,)
        elif booth.status == BoothStatus.RESERVED.value:
            # Marked reserved but the hold has lapsed
            expected = (BoothStatus.AVAILABLE, BoothStatus.RESERVED)
        else:
            raise BoothUnavailable(f"Booth is {booth.status}", details={"status": booth.status})

        admitted = await self.admission.admit(booth_id)
        record_admission(admitted)
        if not admitted:
            raise BoothReserved("Booth is being reserved by another exhibitor")

        try:
            lapsed_ids = list(
                (
                    await self.db.scalars(
                        select(Reservation.id).where(
                            Reservation.booth_id == booth_id,
                            Reservation.status == ReservationStatus.PENDING.value,
                            Reservation.expires_at <= now,
                        )
                    )
                ).all()
            )
            if lapsed_ids:
                await self.db.execute(
                    update(Reservation)
                    .where(Reservation.id.in_(lapsed_ids))
                    .values(status=ReservationStatus.EXPIRED.value, updated_at=now)
                    .execution_options(synchronize_session=False)
                )

            try:
                booth = await self.booths.transition(booth_id, BoothStatus.RESERVED, expected=expected)
            except BoothUnavailable as e:
                # Read a stale booth row; another hold landed since
                if (e.details or {}).get("status") in _HELD:
                    raise BoothReserved() from e
                raise
            reservation = Reservation(
                booth_id=booth_id,
                exhibitor_id=exhibitor_id,
                event_id=event_id,
                status=ReservationStatus.PENDING.value,
                expires_at=now + timedelta(minutes=hold_minutes),
            )
            self.db.add(reservation)
            await self.db.flush()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("reservation_conflict", booth_id=booth_id, exhibitor_id=exhibitor_id)
            raise BoothReserved()
        except Exception:
            await self.db.rollback()
            raise
        finally:
            await self.admission.release(booth_id)

        return reservation, booth, lapsed_ids

    async def confirm(self, reservation_id: int) -> Reservation:
        """
        pending -> confirmed, booth -> booked.

        Idempotent: confirming a confirmed reservation returns it unchanged
        and publishes nothing. Safe to call from both the webhook and the
        client-driven confirm path at the same time.
        """
        async with self.locks.hold(("reservation", reservation_id)):
            reservation, booth = await self._confirm(reservation_id)

        if booth is None:
            return reservation

        reservation_transitions.labels(status=ReservationStatus.CONFIRMED.value).inc()
        logger.info("reservation_confirmed", reservation_id=reservation.id, booth_id=booth.id)
        await self.bus.emit_async(
            Topic.BOOTH_BOOKED,
            {
                "reservationId": reservation.id,
                "boothId": booth.id,
                "eventId": reservation.event_id,
                "exhibitorId": reservation.exhibitor_id,
                "module": MODULE,
            },
        )
        await self._status_changed(booth)
        return reservation

    async def _confirm(self, reservation_id: int) -> tuple[Reservation, Optional[Booth]]:
        now = utcnow()
        reservation = await self.get(reservation_id)

        if reservation.status == ReservationStatus.CONFIRMED.value:
            logger.info("reservation_confirm_noop", reservation_id=reservation_id)
            return reservation, None
        self._check_pending(reservation, now)

        result = await self.db.execute(
            update(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.status == ReservationStatus.PENDING.value,
                _live(now),
            )
            .values(
                status=ReservationStatus.CONFIRMED.value,
                confirmed_at=now,
                expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Lost a race; nothing was written. Commit (not rollback) ends the
            # transaction without expiring objects the caller still holds.
            await self.db.commit()
            reservation = await self.get(reservation_id)
            if reservation.status == ReservationStatus.CONFIRMED.value:
                logger.info("reservation_confirm_noop", reservation_id=reservation_id)
                return reservation, None
            self._check_pending(reservation, utcnow())
            raise InvalidReservationState()

        try:
            booth = await self.booths.transition(
                reservation.booth_id, BoothStatus.BOOKED, expected=(BoothStatus.RESERVED,)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await self.get(reservation_id), booth

    async def cancel(self, reservation_id: int, reason: str = "user") -> Reservation:
        """pending -> cancelled and release the booth. Confirmed bookings are not cancellable here."""
        async with self.locks.hold(("reservation", reservation_id)):
            now = utcnow()
            reservation = await self.get(reservation_id)
            self._check_pending(reservation, now)

            try:
                result = await self.db.execute(
                    update(Reservation)
                    .where(
                        Reservation.id == reservation_id,
                        Reservation.status == ReservationStatus.PENDING.value,
                    )
                    .values(status=ReservationStatus.CANCELLED.value, cancelled_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise InvalidReservationState()

                booth = await self._release_if_free(reservation.booth_id, now)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        reservation = await self.get(reservation_id)
        reservation_transitions.labels(status=ReservationStatus.CANCELLED.value).inc()
        logger.info("reservation_cancelled", reservation_id=reservation_id, reason=reason)

        if booth is not None:
            await self._publish_released(reservation, booth, reason)
        await notify_safely(
            "reservation_cancelled",
            self._notify_cancelled(reservation),
            reservation_id=reservation_id,
        )
        return reservation

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Stamp lapsed pending holds 'expired' and free their booths.
        Hygiene only; reads already treat these holds as inactive.
        """
        now = now or utcnow()
        candidates = (
            await self.db.execute(
                select(Reservation.id, Reservation.booth_id).where(
                    Reservation.status == ReservationStatus.PENDING.value,
                    Reservation.expires_at <= now,
                )
            )
        ).all()

        expired = 0
        for reservation_id, booth_id in candidates:
            async with self.locks.hold(("booth", booth_id)):
                try:
                    result = await self.db.execute(
                        update(Reservation)
                        .where(
                            Reservation.id == reservation_id,
                            Reservation.status == ReservationStatus.PENDING.value,
                            Reservation.expires_at <= now,
                        )
                        .values(status=ReservationStatus.EXPIRED.value, updated_at=now)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        await self.db.rollback()
                        continue
                    booth = await self._release_if_free(booth_id, now)
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

            expired += 1
            reservation = await self.get(reservation_id)
            reservation_transitions.labels(status=ReservationStatus.EXPIRED.value).inc()
            logger.info("reservation_expired", reservation_id=reservation_id, booth_id=booth_id)
            await self.bus.emit_async(
                Topic.RESERVATION_EXPIRED,
                {
                    "reservationId": reservation_id,
                    "boothId": booth_id,
                    "eventId": reservation.event_id,
                    "module": MODULE,
                },
            )
            if booth is not None:
                await self._publish_released(reservation, booth, "expired")
        return expired

    # Helpers

    def _check_pending(self, reservation: Reservation, now: datetime) -> None:
        if reservation.status == ReservationStatus.EXPIRED.value or reservation.is_lapsed(now):
            raise ReservationExpired()
        if reservation.status != ReservationStatus.PENDING.value:
            raise InvalidReservationState(
                f"Reservation is {reservation.status}, expected pending",
                details={"status": reservation.status},
            )

    async def _release_if_free(self, booth_id: int, now: datetime) -> Optional[Booth]:
        """Release a reserved booth unless another live reservation still holds it."""
        if await self.is_booth_reserved(booth_id, now):
            return None
        try:
            return await self.booths.release(booth_id, expected=(BoothStatus.RESERVED,))
        except BoothUnavailable:
            # Not in 'reserved' (admin changed it, or already released)
            return None

    async def _status_changed(self, booth: Booth) -> None:
        await self.bus.emit_async(
            Topic.BOOTH_STATUS_CHANGED,
            {"boothId": booth.id, "eventId": booth.event_id, "status": booth.status, "module": MODULE},
        )

    async def _publish_released(self, reservation: Reservation, booth: Booth, reason: str) -> None:
        await self.bus.emit_async(
            Topic.BOOTH_RELEASED,
            {
                "reservationId": reservation.id,
                "boothId": booth.id,
                "eventId": booth.event_id,
                "reason": reason,
                "module": MODULE,
            },
        )
        await self._status_changed(booth)

    async def _notify_reserved(self, reservation: Reservation, booth: Booth) -> None:
        if self.notifier is None:
            return
        user = await self.db.get(User, reservation.exhibitor_id)
        if user is None:
            return
        await self.notifier.reservation_created(
            user.email,
            {
                "name": user.full_name,
                "reservation_id": reservation.id,
                "booth_number": booth.booth_number,
                "expires_at": reservation.expires_at.isoformat(),
            },
        )

    async def _notify_cancelled(self, reservation: Reservation) -> None:
        if self.notifier is None:
            return
        user = await self.db.get(User, reservation.exhibitor_id)
        booth = await self.db.get(Booth, reservation.booth_id)
        if user is None or booth is None:
            return
        await self.notifier.reservation_cancelled(
            user.email,
            {"reservation_id": reservation.id, "booth_number": booth.booth_number},
        )
