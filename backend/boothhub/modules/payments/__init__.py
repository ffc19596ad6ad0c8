"""
Payments module: transaction history, refunds, and draft invoices for new
bookings.
"""

from boothhub.core.event_bus import Topic
from boothhub.core.module_registry import ModuleDescriptor
from boothhub.models.reservation import Reservation
from boothhub.modules.payments.routes import get_router


def event_handlers(container):
    async def draft_invoice(payload):
        async with container.session() as db:
            reservation = await db.get(Reservation, payload["reservationId"])
            if reservation is not None:
                await container.invoices(db).ensure_draft(reservation)

    return {Topic.BOOTH_BOOKED.value: draft_invoice}


descriptor = ModuleDescriptor(
    name="payments",
    version="1.0.0",
    description="Payment history, refunds and invoicing",
    dependencies=("sales",),
    router_factory=get_router,
    event_handlers=event_handlers,
)
