"""
Declarative base, the UTC timestamp column type and shared column mixins.
"""

from datetime import timezone

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from boothhub.core.utils import ensure_aware


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """
    TIMESTAMP WITH TIME ZONE that always loads as an aware UTC datetime.

    Postgres returns aware values already. SQLite stores no offset and hands
    back naive values, so those are tagged UTC on the way out; aware values
    are converted to UTC on the way in so the stored wall time is UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        return ensure_aware(value)


class TimestampMixin:
    # Load server-side timestamps in the INSERT/UPDATE itself; async sessions
    # cannot lazy-load them afterwards
    __mapper_args__ = {"eager_defaults": True}

    created_at = Column(UTCDateTime(), server_default=func.now(), nullable=False)
    updated_at = Column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
