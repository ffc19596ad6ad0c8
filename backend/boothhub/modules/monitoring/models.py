"""
Monitoring tables: numeric metrics and a team activity log.
"""

from sqlalchemy import Column, ForeignKey, Integer, JSON, Numeric, String, Text, func

from boothhub.db.base import Base, TimestampMixin, UTCDateTime


class MonitoringMetric(Base, TimestampMixin):
    __tablename__ = "monitoring_metrics"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    metric_type = Column(String(50), nullable=False, index=True)
    metric_name = Column(String(100), nullable=False)
    value = Column(Numeric(14, 2), nullable=False)
    meta = Column("metadata", JSON, nullable=True)
    recorded_at = Column(UTCDateTime(), server_default=func.now(), nullable=False)


class TeamActivity(Base, TimestampMixin):
    __tablename__ = "team_activity"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    action_type = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
