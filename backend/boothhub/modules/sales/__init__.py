"""
Sales module: booth browsing and holds, floor plans, and the expiry sweeper.
"""

from boothhub.core.event_bus import Topic
from boothhub.core.logging import get_logger
from boothhub.core.module_registry import ModuleDescriptor
from boothhub.db.session import create_tables
from boothhub.models.floor_plan import FloorPlan
from boothhub.modules.sales.routes import get_router
from boothhub.modules.sales.sweeper import ExpirySweeper

logger = get_logger(__name__)


def event_handlers(container):
    async def confirm_paid_reservation(payload):
        # Settlement confirms first; this only covers a completion published
        # by another path and is a no-op for an already confirmed booking.
        async with container.session() as db:
            await container.reservations(db).confirm(payload["reservationId"])

    return {Topic.PAYMENT_COMPLETED.value: confirm_paid_reservation}


async def migrate(container):
    async with container.session() as db:
        await create_tables(db, [FloorPlan.__table__])


async def initialize(container):
    interval = container.settings.RESERVATION_SWEEP_INTERVAL_SECONDS
    if interval <= 0:
        logger.info("reservation_sweeper_disabled")
        return
    sweeper = ExpirySweeper(container, interval)
    container.state["sales"] = sweeper
    sweeper.start()


async def shutdown(container):
    sweeper = container.state.pop("sales", None)
    if sweeper is not None:
        await sweeper.stop()


descriptor = ModuleDescriptor(
    name="sales",
    version="1.0.0",
    description="Booth sales, holds and floor plans",
    router_factory=get_router,
    event_handlers=event_handlers,
    migrate=migrate,
    initialize=initialize,
    shutdown=shutdown,
)
