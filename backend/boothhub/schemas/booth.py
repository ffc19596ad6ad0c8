"""
Pydantic schemas for booths and reservations.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import AliasChoices, Field

from boothhub.schemas.common import CamelModel

BoothSizeLiteral = Literal["small", "medium", "large", "xlarge"]


class BoothCreate(CamelModel):
    event_id: int
    booth_number: str = Field(..., min_length=1, max_length=20)
    size: BoothSizeLiteral = "medium"
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    location_x: Optional[int] = Field(None, ge=0)
    location_y: Optional[int] = Field(None, ge=0)
    width: int = Field(1, ge=1)
    height: int = Field(1, ge=1)
    description: Optional[str] = None
    amenities: Optional[list[str]] = None


class BoothUpdate(CamelModel):
    """Admin edits. Status is deliberately absent; it has its own endpoint."""

    booth_number: Optional[str] = Field(None, min_length=1, max_length=20)
    size: Optional[BoothSizeLiteral] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    location_x: Optional[int] = Field(None, ge=0)
    location_y: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    amenities: Optional[list[str]] = None


class BoothStatusUpdate(CamelModel):
    status: Literal["available", "unavailable"]


class BoothResponse(CamelModel):
    id: int
    event_id: int
    booth_number: str
    size: str
    price: float
    status: str
    location_x: Optional[int] = None
    location_y: Optional[int] = None
    width: int
    height: int
    description: Optional[str] = None
    amenities: Optional[list[str]] = None
    version: int
    updated_at: Optional[datetime] = None


class ReserveRequest(CamelModel):
    booth_id: int
    event_id: int
    duration_minutes: Optional[int] = Field(None, ge=1, le=24 * 60)


class ReservationResponse(CamelModel):
    id: int
    booth_id: int
    exhibitor_id: int
    event_id: int
    # Lapsed pending holds read as "expired" even before a sweep stamps them
    status: str = Field(validation_alias=AliasChoices("effective_status", "status"))
    expires_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


class ReservationCreated(CamelModel):
    reservation_id: int
    booth_id: int
    event_id: int
    status: str
    expires_at: Optional[datetime] = None


def booth_view(booth, available: bool = False) -> BoothResponse:
    """
    Wire view of a booth. Booths returned by the availability query may still
    be marked 'reserved' behind a lapsed hold; those are shown as available.
    """
    view = BoothResponse.model_validate(booth)
    if available and view.status != "available":
        view = view.model_copy(update={"status": "available"})
    return view
