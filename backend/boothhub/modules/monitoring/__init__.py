"""
Monitoring module: records booking activity and payment metrics.
"""

from boothhub.core.event_bus import Topic
from boothhub.core.module_registry import ModuleDescriptor
from boothhub.db.session import create_tables
from boothhub.modules.monitoring.models import MonitoringMetric, TeamActivity
from boothhub.modules.monitoring.routes import get_router
from boothhub.modules.monitoring.service import MonitoringService


def event_handlers(container):
    async def booth_booked(payload):
        async with container.session() as db:
            await MonitoringService(db, container.bus).log_activity(
                "booth_booked",
                user_id=payload.get("exhibitorId"),
                event_id=payload.get("eventId"),
                description=f"Booth booked: {payload.get('boothId')}",
                meta=payload,
            )

    async def payment_completed(payload):
        async with container.session() as db:
            await MonitoringService(db, container.bus).record_metric(
                "sales",
                "payment_completed",
                payload.get("amount") or 0,
                event_id=payload.get("eventId"),
                meta=payload,
            )

    return {
        Topic.BOOTH_BOOKED.value: booth_booked,
        Topic.PAYMENT_COMPLETED.value: payment_completed,
    }


async def migrate(container):
    async with container.session() as db:
        await create_tables(db, [MonitoringMetric.__table__, TeamActivity.__table__])


descriptor = ModuleDescriptor(
    name="monitoring",
    version="1.0.0",
    description="Sales team monitoring and performance metrics",
    router_factory=get_router,
    event_handlers=event_handlers,
    migrate=migrate,
)
