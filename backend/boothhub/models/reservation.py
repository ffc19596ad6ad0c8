"""
Reservation (hold) model. Rows are never deleted; a retry creates a new row.

Key design decisions:
- Partial unique index on booth_id WHERE status IN ('pending', 'confirmed'):
  the database refuses a second active reservation for a booth, whatever
  the application layer does.
- A pending row past `expires_at` is already inactive for reads (lazy expiry).
  The engine stamps such rows 'expired' before inserting a new hold so the
  index only ever sees live rows.
- `expires_at` is cleared on confirm; a confirmed booking never lapses.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Integer, String, ForeignKey, Index, CheckConstraint, text

from boothhub.core.utils import ensure_aware, utcnow
from boothhub.db.base import Base, TimestampMixin, UTCDateTime


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


ACTIVE_RESERVATION_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value)


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    booth_id = Column(Integer, ForeignKey("booths.id"), nullable=False, index=True)
    exhibitor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value)
    expires_at = Column(UTCDateTime(), nullable=True)
    confirmed_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'expired')",
            name="check_reservation_status",
        ),
        Index(
            "uq_reservations_active_booth",
            "booth_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'confirmed')"),
            sqlite_where=text("status IN ('pending', 'confirmed')"),
        ),
        Index("ix_reservations_status_expires", "status", "expires_at"),
    )

    def is_lapsed(self, now: Optional[datetime] = None) -> bool:
        """Pending hold whose expiry has passed, whether or not a sweep stamped it yet."""
        if self.status != ReservationStatus.PENDING.value or self.expires_at is None:
            return False
        return ensure_aware(self.expires_at) <= (now or utcnow())

    @property
    def effective_status(self) -> str:
        if self.is_lapsed():
            return ReservationStatus.EXPIRED.value
        return self.status

    def __repr__(self) -> str:
        return f"<Reservation(id={self.id}, booth={self.booth_id}, status={self.status})>"
