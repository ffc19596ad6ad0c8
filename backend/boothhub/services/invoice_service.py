"""
Invoice service.

One invoice per reservation (unique reservation_id). Both the boothBooked
handler (draft) and the payment settlement paths (paid) may race to create
it. Inside one process they queue on a keyed lock per reservation; across
processes the unique constraint decides and the loser re-reads the winner's
row.
"""

import secrets
import time
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.config import get_settings
from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import NotFound
from boothhub.core.logging import get_logger
from boothhub.core.utils import KeyedLocks, to_base36, utcnow
from boothhub.models.booth import Booth
from boothhub.models.invoice import Invoice, InvoiceStatus
from boothhub.models.reservation import Reservation
from boothhub.models.transaction import Transaction

logger = get_logger(__name__)
settings = get_settings()

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def generate_invoice_number(prefix: Optional[str] = None) -> str:
    """INV-<base36 ms timestamp>-<4 random base36>, upper-case."""
    stamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix or settings.INVOICE_PREFIX}-{stamp}-{suffix}".upper()


class InvoiceService:
    def __init__(self, db: AsyncSession, bus: EventBus, locks: Optional[KeyedLocks] = None):
        self.db = db
        self.bus = bus
        self.locks = locks or KeyedLocks()

    async def get(self, invoice_id: int) -> Invoice:
        invoice = await self.db.get(Invoice, invoice_id, populate_existing=True)
        if not invoice:
            raise NotFound(f"Invoice {invoice_id} not found")
        return invoice

    async def get_for_reservation(self, reservation_id: int) -> Optional[Invoice]:
        return await self.db.scalar(
            select(Invoice)
            .where(Invoice.reservation_id == reservation_id)
            .execution_options(populate_existing=True)
        )

    async def list_for_exhibitor(self, exhibitor_id: int) -> list[Invoice]:
        result = await self.db.execute(
            select(Invoice).where(Invoice.exhibitor_id == exhibitor_id).order_by(Invoice.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(self, status: Optional[str] = None) -> list[Invoice]:
        query = select(Invoice)
        if status:
            query = query.where(Invoice.status == status)
        result = await self.db.execute(query.order_by(Invoice.id.desc()))
        return list(result.scalars().all())

    async def ensure_draft(self, reservation: Reservation) -> Invoice:
        """Create the draft invoice for a booked reservation unless one exists."""
        reservation_id = reservation.id
        async with self.locks.hold(("invoice", reservation_id)):
            invoice = await self.get_for_reservation(reservation_id)
            if invoice:
                return invoice

            booth = await self.db.get(Booth, reservation.booth_id)
            if not booth:
                raise NotFound(f"Booth {reservation.booth_id} not found")
            invoice, created = await self._create(reservation, Decimal(booth.price), settings.CURRENCY)

        if created:
            await self._generated(invoice)
        return invoice

    async def ensure_paid(self, reservation: Reservation, transaction: Transaction) -> Invoice:
        """
        Walk the reservation's invoice to 'paid' (draft -> sent -> paid),
        creating it first if needed. Calling it again changes nothing.
        """
        reservation_id = reservation.id
        amount, currency = Decimal(transaction.amount), transaction.currency
        created = False
        async with self.locks.hold(("invoice", reservation_id)):
            invoice = await self.get_for_reservation(reservation_id)
            if invoice is None:
                invoice, created = await self._create(reservation, amount, currency)

            if invoice.status != InvoiceStatus.PAID.value:
                now = utcnow()
                if invoice.status == InvoiceStatus.DRAFT.value:
                    invoice.status = InvoiceStatus.SENT.value
                    invoice.issued_at = now
                invoice.status = InvoiceStatus.PAID.value
                invoice.paid_at = now
                await self.db.commit()
                logger.info("invoice_paid", invoice_id=invoice.id, reservation_id=reservation_id)

        if created:
            await self._generated(invoice)
        return invoice

    async def _create(self, reservation: Reservation, amount: Decimal, currency: str) -> tuple[Invoice, bool]:
        """Insert the draft. Returns (invoice, created); a lost insert race returns the winner's row."""
        reservation_id, exhibitor_id = reservation.id, reservation.exhibitor_id
        tax = (amount * Decimal(settings.INVOICE_TAX_RATE)).quantize(Decimal("0.01"))
        now = utcnow()
        invoice = Invoice(
            reservation_id=reservation_id,
            exhibitor_id=exhibitor_id,
            invoice_number=generate_invoice_number(),
            amount=amount,
            tax_amount=tax,
            total_amount=amount + tax,
            currency=currency,
            status=InvoiceStatus.DRAFT.value,
            due_date=now + timedelta(days=settings.INVOICE_DUE_DAYS),
        )
        self.db.add(invoice)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another process created it first. The rollback expires every
            # object in this session, so callers re-read what they return.
            await self.db.rollback()
            existing = await self.get_for_reservation(reservation_id)
            if existing is None:
                raise
            return existing, False

        logger.info(
            "invoice_generated",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            reservation_id=reservation_id,
        )
        return invoice, True

    async def _generated(self, invoice: Invoice) -> None:
        await self.bus.emit_async(
            Topic.INVOICE_GENERATED,
            {
                "invoiceId": invoice.id,
                "invoiceNumber": invoice.invoice_number,
                "reservationId": invoice.reservation_id,
                "exhibitorId": invoice.exhibitor_id,
                "totalAmount": float(invoice.total_amount),
                "module": "payments",
            },
        )
