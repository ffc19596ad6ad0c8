"""
Booth model. `status` is owned by BoothStore and only changes through its
conditional transition; everything else is plain admin CRUD.

Key design decisions:
- `version` is bumped on every status transition (optimistic concurrency)
- Unique (event_id, booth_number): display numbers are per event
- Composite index (event_id, status, booth_number) serves the availability query
"""

from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, JSON, ForeignKey, Index,
    UniqueConstraint, CheckConstraint,
)

from boothhub.db.base import Base, TimestampMixin


class BoothStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    BOOKED = "booked"
    UNAVAILABLE = "unavailable"


class BoothSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"


class Booth(Base, TimestampMixin):
    __tablename__ = "booths"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    booth_number = Column(String(20), nullable=False)
    size = Column(String(20), nullable=False, default=BoothSize.MEDIUM.value)
    price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BoothStatus.AVAILABLE.value)
    location_x = Column(Integer, nullable=True)
    location_y = Column(Integer, nullable=True)
    width = Column(Integer, nullable=False, default=1)
    height = Column(Integer, nullable=False, default=1)
    description = Column(Text, nullable=True)
    amenities = Column(JSON, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("event_id", "booth_number", name="uq_booth_event_number"),
        CheckConstraint("price >= 0", name="check_booth_price_non_negative"),
        CheckConstraint(
            "status IN ('available', 'reserved', 'booked', 'unavailable')",
            name="check_booth_status",
        ),
        CheckConstraint("size IN ('small', 'medium', 'large', 'xlarge')", name="check_booth_size"),
        Index("ix_booths_event_status_number", "event_id", "status", "booth_number"),
    )

    def __repr__(self) -> str:
        return f"<Booth(id={self.id}, event={self.event_id}, number={self.booth_number}, status={self.status})>"
