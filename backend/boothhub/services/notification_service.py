"""
Notification delivery.

LoggingNotifier renders the messages and writes them to the structured log;
a mail transport plugs in behind the same Notifier interface.
`notify_safely` is what services call: delivery problems are logged and
never propagate into the operation that triggered them.
"""

from typing import Any, Awaitable

from boothhub.core.logging import get_logger
from boothhub.services.interfaces.notifier import Notifier

logger = get_logger(__name__)


class LoggingNotifier(Notifier):
    """Keeps nothing in memory; every message goes straight to the log."""

    async def _deliver(self, recipient: str, subject: str, body: str) -> None:
        logger.info("notification_sent", to=recipient, subject=subject, body=body)

    async def reservation_created(self, recipient: str, context: dict[str, Any]) -> None:
        await self._deliver(
            recipient,
            f"Booth Reservation Confirmed - {context['booth_number']}",
            (
                f"Hi {context.get('name', '')},\n\n"
                f"Booth {context['booth_number']} is held for you until "
                f"{context['expires_at']}. Complete payment before then to keep it.\n"
                f"Reservation #{context['reservation_id']}"
            ),
        )

    async def reservation_cancelled(self, recipient: str, context: dict[str, Any]) -> None:
        await self._deliver(
            recipient,
            f"Reservation Cancelled - Booth {context['booth_number']}",
            f"Reservation #{context['reservation_id']} has been cancelled and the booth released.",
        )

    async def payment_confirmed(self, recipient: str, context: dict[str, Any]) -> None:
        await self._deliver(
            recipient,
            f"Payment Confirmed - Booth {context['booth_number']}",
            (
                f"We received {context['amount']} {context['currency']} for booth "
                f"{context['booth_number']}. Invoice: {context.get('invoice_number') or 'pending'}."
            ),
        )


async def notify_safely(kind: str, send: Awaitable[None], **log_context: Any) -> None:
    try:
        await send
    except Exception as e:
        logger.warning("notification_failed", kind=kind, error=str(e), **log_context)
