"""
Reservation endpoints: lookup, cancellation and the admin listing.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from boothhub.api.deps import get_current_user, get_reservation_engine, require_admin
from boothhub.core.exceptions import Forbidden
from boothhub.models.reservation import Reservation
from boothhub.models.user import User
from boothhub.schemas.booth import ReservationResponse
from boothhub.schemas.common import ApiResponse, ok
from boothhub.services.reservation_engine import ReservationEngine

router = APIRouter(prefix="/reservations", tags=["Reservations"])


def _check_owner(reservation: Reservation, user: User) -> None:
    if reservation.exhibitor_id != user.id and not user.is_admin:
        raise Forbidden("Reservation does not belong to you")


@router.get("", response_model=ApiResponse[list[ReservationResponse]])
async def list_reservations(
    status: Optional[str] = Query(None),
    event_id: Optional[int] = Query(None, alias="eventId"),
    admin: User = Depends(require_admin),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    return ok(await engine.list_all(status=status, event_id=event_id))


@router.get("/{reservation_id}", response_model=ApiResponse[ReservationResponse])
async def get_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    reservation = await engine.get(reservation_id)
    _check_owner(reservation, user)
    return ok(reservation)


@router.post("/{reservation_id}/cancel", response_model=ApiResponse[ReservationResponse])
async def cancel_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """Cancel a pending hold and release the booth. Confirmed bookings cannot be cancelled here."""
    reservation = await engine.get(reservation_id)
    _check_owner(reservation, user)
    reason = "admin" if user.is_admin and reservation.exhibitor_id != user.id else "user"
    reservation = await engine.cancel(reservation_id, reason=reason)
    return ok(reservation, message="Reservation cancelled")
