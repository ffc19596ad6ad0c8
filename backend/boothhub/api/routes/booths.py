"""
Booth endpoints: availability, reservation holds, purchase and payment
confirmation, plus admin booth management.

Booth availability is never cached; it always comes from the database.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from boothhub.api.deps import (
    get_booth_store,
    get_container,
    get_current_user,
    get_payment_coordinator,
    get_reservation_engine,
    require_admin,
)
from boothhub.core.container import ServiceContainer
from boothhub.core.event_bus import Topic
from boothhub.core.logging import get_logger
from boothhub.models.booth import BoothStatus
from boothhub.models.user import User
from boothhub.schemas.booth import (
    BoothCreate,
    BoothResponse,
    BoothSizeLiteral,
    BoothStatusUpdate,
    BoothUpdate,
    ReservationCreated,
    ReservationResponse,
    ReserveRequest,
    booth_view,
)
from boothhub.schemas.common import ApiResponse, ok
from boothhub.schemas.payment import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    PaymentIntentResponse,
    PurchaseRequest,
)
from boothhub.services.booth_store import BoothStore
from boothhub.services.payment_coordinator import PaymentCoordinator
from boothhub.services.reservation_engine import ReservationEngine

logger = get_logger(__name__)
router = APIRouter(prefix="/booths", tags=["Booths"])


@router.get("/available", response_model=ApiResponse[list[BoothResponse]])
async def available_booths(
    event_id: int = Query(..., alias="eventId"),
    size: Optional[BoothSizeLiteral] = Query(None),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    store: BoothStore = Depends(get_booth_store),
):
    booths = await store.get_available(event_id, size=size, min_price=min_price, max_price=max_price)
    return ok([booth_view(b, available=True) for b in booths], count=len(booths))


@router.get("/my-reservations", response_model=ApiResponse[list[ReservationResponse]])
async def my_reservations(
    user: User = Depends(get_current_user),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    return ok(await engine.list_for_exhibitor(user.id))


@router.post("/reserve", response_model=ApiResponse[ReservationCreated], status_code=status.HTTP_201_CREATED)
async def reserve_booth(
    request: ReserveRequest,
    user: User = Depends(get_current_user),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """
    Place a time-bounded hold on a booth.

    Exactly one of many concurrent requests for the same booth succeeds; the
    rest get BOOTH_RESERVED (or BOOTH_UNAVAILABLE if it is not for sale).
    """
    reservation = await engine.reserve(
        request.booth_id,
        request.event_id,
        user.id,
        hold_minutes=request.duration_minutes,
    )
    minutes = request.duration_minutes or engine.hold_minutes
    return ok(
        ReservationCreated(
            reservation_id=reservation.id,
            booth_id=reservation.booth_id,
            event_id=reservation.event_id,
            status=reservation.status,
            expires_at=reservation.expires_at,
        ),
        message=f"Booth reserved successfully. Please complete payment within {minutes} minutes.",
    )


@router.post("/purchase", response_model=ApiResponse[PaymentIntentResponse])
async def purchase_booth(
    request: PurchaseRequest,
    user: User = Depends(get_current_user),
    payments: PaymentCoordinator = Depends(get_payment_coordinator),
):
    """Create (or reuse) the payment intent for a pending reservation."""
    transaction, intent = await payments.create_intent(request.reservation_id, user)
    return ok(
        PaymentIntentResponse(
            transaction_id=transaction.id,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=float(transaction.amount),
            currency=transaction.currency,
        ),
        message="Payment intent created successfully",
    )


@router.post("/confirm-payment", response_model=ApiResponse[ConfirmPaymentResponse])
async def confirm_payment(
    request: ConfirmPaymentRequest,
    user: User = Depends(get_current_user),
    payments: PaymentCoordinator = Depends(get_payment_coordinator),
):
    """
    Finalise a booking once the processor reports the payment succeeded.
    Safe to call repeatedly and concurrently with the webhook.
    """
    transaction, reservation, invoice = await payments.confirm_from_processor(
        request.payment_intent_id, user
    )
    return ok(
        {"transaction": transaction, "reservation": reservation, "invoice": invoice},
        message="Payment confirmed and booking completed successfully",
    )


# Admin

@router.get("", response_model=ApiResponse[list[BoothResponse]])
async def list_booths(
    event_id: int = Query(..., alias="eventId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    admin: User = Depends(require_admin),
    store: BoothStore = Depends(get_booth_store),
):
    return ok(await store.list_for_event(event_id, status=status_filter))


@router.post("", response_model=ApiResponse[BoothResponse], status_code=status.HTTP_201_CREATED)
async def create_booth(
    booth_data: BoothCreate,
    admin: User = Depends(require_admin),
    store: BoothStore = Depends(get_booth_store),
):
    return ok(await store.create(booth_data))


@router.get("/{booth_id}", response_model=ApiResponse[BoothResponse])
async def get_booth(booth_id: int, store: BoothStore = Depends(get_booth_store)):
    return ok(await store.get(booth_id))


@router.patch("/{booth_id}", response_model=ApiResponse[BoothResponse])
async def update_booth(
    booth_id: int,
    changes: BoothUpdate,
    admin: User = Depends(require_admin),
    store: BoothStore = Depends(get_booth_store),
):
    return ok(await store.update(booth_id, changes))


@router.delete("/{booth_id}", response_model=ApiResponse[None])
async def delete_booth(
    booth_id: int,
    admin: User = Depends(require_admin),
    store: BoothStore = Depends(get_booth_store),
):
    await store.delete(booth_id)
    return ok(message="Booth deleted")


@router.put("/{booth_id}/status", response_model=ApiResponse[BoothResponse])
async def set_booth_status(
    booth_id: int,
    update: BoothStatusUpdate,
    admin: User = Depends(require_admin),
    store: BoothStore = Depends(get_booth_store),
    container: ServiceContainer = Depends(get_container),
):
    """Take a booth off sale or put it back. Held and booked booths are refused."""
    booth = await store.set_listing_status(booth_id, BoothStatus(update.status))
    await container.bus.emit_async(
        Topic.BOOTH_STATUS_CHANGED,
        {"boothId": booth.id, "eventId": booth.event_id, "status": booth.status, "module": "admin"},
    )
    return ok(booth)
