"""
Monitoring module endpoints, mounted at /api/v1/monitoring.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import get_container, get_current_user, require_admin
from boothhub.core.container import ServiceContainer
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.modules.monitoring.schemas import (
    ActivityCreate,
    ActivityResponse,
    MetricCreate,
    MetricResponse,
)
from boothhub.modules.monitoring.service import MonitoringService
from boothhub.schemas.common import ApiResponse, ok


def get_monitoring(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> MonitoringService:
    return MonitoringService(db, container.bus)


def get_router() -> APIRouter:
    router = APIRouter(tags=["Monitoring"])

    @router.post("/metrics", response_model=ApiResponse[MetricResponse], status_code=status.HTTP_201_CREATED)
    async def record_metric(
        data: MetricCreate,
        admin: User = Depends(require_admin),
        monitoring: MonitoringService = Depends(get_monitoring),
    ):
        metric = await monitoring.record_metric(
            data.metric_type,
            data.metric_name,
            data.value,
            event_id=data.event_id,
            meta=data.meta,
        )
        return ok(metric)

    @router.get("/metrics", response_model=ApiResponse[list[MetricResponse]])
    async def event_metrics(
        event_id: int = Query(..., alias="eventId"),
        metric_type: Optional[str] = Query(None, alias="metricType"),
        admin: User = Depends(require_admin),
        monitoring: MonitoringService = Depends(get_monitoring),
    ):
        return ok(await monitoring.event_metrics(event_id, metric_type))

    @router.post("/activity", response_model=ApiResponse[ActivityResponse], status_code=status.HTTP_201_CREATED)
    async def log_activity(
        data: ActivityCreate,
        user: User = Depends(get_current_user),
        monitoring: MonitoringService = Depends(get_monitoring),
    ):
        activity = await monitoring.log_activity(
            data.action_type,
            user_id=user.id,
            event_id=data.event_id,
            description=data.description,
            meta=data.meta,
        )
        return ok(activity)

    @router.get("/activity", response_model=ApiResponse[list[ActivityResponse]])
    async def team_activity(
        user_id: Optional[int] = Query(None, alias="userId"),
        event_id: Optional[int] = Query(None, alias="eventId"),
        action_type: Optional[str] = Query(None, alias="actionType"),
        start: Optional[datetime] = Query(None, alias="startDate"),
        end: Optional[datetime] = Query(None, alias="endDate"),
        admin: User = Depends(require_admin),
        monitoring: MonitoringService = Depends(get_monitoring),
    ):
        return ok(await monitoring.team_activity(user_id, event_id, action_type, start, end))

    @router.get("/summary")
    async def performance_summary(
        event_id: Optional[int] = Query(None, alias="eventId"),
        admin: User = Depends(require_admin),
        monitoring: MonitoringService = Depends(get_monitoring),
    ):
        return ok(await monitoring.performance_summary(event_id))

    return router
