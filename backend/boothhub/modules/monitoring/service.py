"""
Sales monitoring: metrics, team activity and a performance summary.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.logging import get_logger
from boothhub.models.booth import Booth
from boothhub.models.reservation import Reservation, ReservationStatus
from boothhub.models.user import User
from boothhub.modules.monitoring.models import MonitoringMetric, TeamActivity

logger = get_logger(__name__)

MODULE = "monitoring"
ACTIVITY_LIMIT = 100
TOP_PERFORMERS = 5


class MonitoringService:
    def __init__(self, db: AsyncSession, bus: EventBus):
        self.db = db
        self.bus = bus

    async def record_metric(
        self,
        metric_type: str,
        metric_name: str,
        value: float,
        event_id: Optional[int] = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> MonitoringMetric:
        metric = MonitoringMetric(
            event_id=event_id,
            metric_type=metric_type,
            metric_name=metric_name,
            value=value,
            meta=meta,
        )
        self.db.add(metric)
        await self.db.commit()
        await self.db.refresh(metric)

        await self.bus.emit_async(
            Topic.METRIC_RECORDED,
            {"metricId": metric.id, "metricType": metric_type, "value": float(value), "module": MODULE},
        )
        return metric

    async def log_activity(
        self,
        action_type: str,
        user_id: Optional[int] = None,
        event_id: Optional[int] = None,
        description: Optional[str] = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> TeamActivity:
        activity = TeamActivity(
            user_id=user_id,
            event_id=event_id,
            action_type=action_type,
            description=description,
            meta=meta,
        )
        self.db.add(activity)
        await self.db.commit()
        await self.db.refresh(activity)

        await self.bus.emit_async(
            Topic.ACTIVITY_LOGGED,
            {"activityId": activity.id, "userId": user_id, "actionType": action_type, "module": MODULE},
        )
        return activity

    async def event_metrics(self, event_id: int, metric_type: Optional[str] = None) -> list[MonitoringMetric]:
        query = select(MonitoringMetric).where(MonitoringMetric.event_id == event_id)
        if metric_type:
            query = query.where(MonitoringMetric.metric_type == metric_type)
        result = await self.db.execute(
            query.order_by(MonitoringMetric.recorded_at.desc(), MonitoringMetric.id.desc())
        )
        return list(result.scalars().all())

    async def team_activity(
        self,
        user_id: Optional[int] = None,
        event_id: Optional[int] = None,
        action_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[TeamActivity]:
        """Most recent activity first, capped at ACTIVITY_LIMIT rows."""
        query = select(TeamActivity)
        if user_id is not None:
            query = query.where(TeamActivity.user_id == user_id)
        if event_id is not None:
            query = query.where(TeamActivity.event_id == event_id)
        if action_type:
            query = query.where(TeamActivity.action_type == action_type)
        if start is not None:
            query = query.where(TeamActivity.created_at >= start)
        if end is not None:
            query = query.where(TeamActivity.created_at <= end)
        result = await self.db.execute(
            query.order_by(TeamActivity.created_at.desc(), TeamActivity.id.desc()).limit(ACTIVITY_LIMIT)
        )
        return list(result.scalars().all())

    async def performance_summary(self, event_id: Optional[int] = None) -> dict[str, Any]:
        sales_query = (
            select(func.count(Reservation.id), func.coalesce(func.sum(Booth.price), 0))
            .join(Booth, Booth.id == Reservation.booth_id)
            .where(Reservation.status == ReservationStatus.CONFIRMED.value)
        )
        activity_query = select(func.count(TeamActivity.id))
        performers_query = (
            select(User.id, User.first_name, User.last_name, func.count(TeamActivity.id).label("activity_count"))
            .join(User, User.id == TeamActivity.user_id)
            .group_by(User.id, User.first_name, User.last_name)
            .order_by(func.count(TeamActivity.id).desc(), User.id.asc())
            .limit(TOP_PERFORMERS)
        )
        if event_id is not None:
            sales_query = sales_query.where(Reservation.event_id == event_id)
            activity_query = activity_query.where(TeamActivity.event_id == event_id)
            performers_query = performers_query.where(TeamActivity.event_id == event_id)

        bookings, revenue = (await self.db.execute(sales_query)).one()
        total_activities = await self.db.scalar(activity_query)
        performers = (await self.db.execute(performers_query)).all()

        return {
            "sales": {"bookings": int(bookings or 0), "revenue": float(revenue or 0)},
            "activities": {"total": int(total_activities or 0)},
            "topPerformers": [
                {
                    "id": row.id,
                    "firstName": row.first_name,
                    "lastName": row.last_name,
                    "activityCount": row.activity_count,
                }
                for row in performers
            ],
        }
