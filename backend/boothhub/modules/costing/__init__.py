"""
Costing module: event costs and category budgets.
"""

from boothhub.core.event_bus import Topic
from boothhub.core.logging import get_logger
from boothhub.core.module_registry import ModuleDescriptor
from boothhub.db.session import create_tables
from boothhub.modules.costing.models import Budget, Cost
from boothhub.modules.costing.routes import get_router

logger = get_logger(__name__)


def event_handlers(container):
    def budget_warning(payload):
        logger.warning(
            "budget_warning",
            event_id=payload.get("eventId"),
            category=payload.get("category"),
            percentage=payload.get("percentage"),
        )

    def budget_exceeded(payload):
        logger.warning(
            "budget_exceeded_alert",
            event_id=payload.get("eventId"),
            category=payload.get("category"),
            overage=payload.get("overage"),
        )

    return {
        Topic.BUDGET_WARNING.value: budget_warning,
        Topic.BUDGET_EXCEEDED.value: budget_exceeded,
    }


async def migrate(container):
    async with container.session() as db:
        await create_tables(db, [Cost.__table__, Budget.__table__])


descriptor = ModuleDescriptor(
    name="costing",
    version="1.0.0",
    description="Cost tracking and budget management",
    router_factory=get_router,
    event_handlers=event_handlers,
    migrate=migrate,
)
