"""
Exhibition event: the container every booth belongs to.

Key design decisions:
- CHECK (start_date < end_date) backs the service-level validation
- Index on start_date for the "upcoming events" listing
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index, CheckConstraint

from boothhub.db.base import Base, TimestampMixin, UTCDateTime


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(UTCDateTime(), nullable=False)
    end_date = Column(UTCDateTime(), nullable=False)
    venue = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="check_event_dates"),
        CheckConstraint(
            "status IN ('draft', 'published', 'active', 'completed', 'cancelled')",
            name="check_event_status",
        ),
        Index("ix_events_start_date", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, status={self.status})>"
