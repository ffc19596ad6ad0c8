"""
Payment coordinator: purchase intents, settlement and processor webhooks.

Two paths can observe "payment succeeded" for the same transaction: the
client calling confirm-payment and the processor's webhook. Both funnel into
_settle(), which is safe to run redundantly:

  - the transaction moves to 'completed' with a conditional UPDATE, so only
    one caller sees the transition (and publishes payment.completed);
  - ReservationEngine.confirm() is idempotent;
  - the invoice is unique per reservation and ensure_paid() is idempotent.

A success that arrives after the hold lapsed (or after the reservation was
cancelled) does not resurrect the reservation. The transaction is recorded
as completed, payment.orphaned is published for an operator to refund, and
the caller gets RESERVATION_EXPIRED / INVALID_RESERVATION.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.config import get_settings
from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidReservationState,
    NotFound,
    PaymentNotCompleted,
    PaymentProcessorError,
    ReservationExpired,
    ValidationError,
    WebhookSignatureError,
)
from boothhub.core.logging import get_logger
from boothhub.core.metrics import record_payment, record_webhook
from boothhub.core.utils import to_minor_units, utcnow
from boothhub.models.booth import Booth
from boothhub.models.invoice import Invoice
from boothhub.models.reservation import Reservation, ReservationStatus
from boothhub.models.transaction import Transaction, TransactionStatus
from boothhub.models.user import User
from boothhub.services.interfaces.notifier import Notifier
from boothhub.services.interfaces.payment_processor import PaymentProcessor, ProcessorEvent, ProcessorIntent
from boothhub.services.invoice_service import InvoiceService
from boothhub.services.notification_service import notify_safely
from boothhub.services.reservation_engine import ReservationEngine

logger = get_logger(__name__)
settings = get_settings()

MODULE = "payments"

INTENT_SUCCEEDED = "payment_intent.succeeded"
INTENT_FAILED = "payment_intent.payment_failed"
INTENT_CANCELED = "payment_intent.canceled"


class PaymentCoordinator:
    def __init__(
        self,
        db: AsyncSession,
        bus: EventBus,
        processor: PaymentProcessor,
        engine: ReservationEngine,
        invoices: InvoiceService,
        notifier: Optional[Notifier] = None,
    ):
        self.db = db
        self.bus = bus
        self.processor = processor
        self.engine = engine
        self.invoices = invoices
        self.notifier = notifier

    # Queries

    async def get_transaction(self, transaction_id: int) -> Transaction:
        transaction = await self.db.get(Transaction, transaction_id, populate_existing=True)
        if not transaction:
            raise NotFound(f"Transaction {transaction_id} not found")
        return transaction

    async def get_by_intent(self, intent_id: str) -> Optional[Transaction]:
        return await self.db.scalar(
            select(Transaction)
            .where(Transaction.processor_intent_id == intent_id)
            .execution_options(populate_existing=True)
        )

    async def live_transaction(self, reservation_id: int) -> Optional[Transaction]:
        """Latest attempt for the reservation that has not failed."""
        return await self.db.scalar(
            select(Transaction)
            .where(
                Transaction.reservation_id == reservation_id,
                Transaction.status != TransactionStatus.FAILED.value,
            )
            .order_by(Transaction.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )

    async def list_transactions_for(self, exhibitor_id: int) -> list[Transaction]:
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.exhibitor_id == exhibitor_id)
            .order_by(Transaction.id.desc())
        )
        return list(result.scalars().all())

    async def list_all_transactions(self, status: Optional[str] = None) -> list[Transaction]:
        query = select(Transaction)
        if status:
            query = query.where(Transaction.status == status)
        result = await self.db.execute(query.order_by(Transaction.id.desc()))
        return list(result.scalars().all())

    # Purchase

    async def create_intent(self, reservation_id: int, user: User) -> tuple[Transaction, ProcessorIntent]:
        """
        Create (or reuse) the transaction for a pending reservation and make
        sure it has a processor intent. Returns the transaction and intent.
        """
        async with self.engine.locks.hold(("payment", reservation_id)):
            reservation = await self.engine.get(reservation_id)
            if reservation.exhibitor_id != user.id:
                raise Forbidden("Reservation does not belong to you")
            if reservation.status == ReservationStatus.EXPIRED.value or reservation.is_lapsed():
                raise ReservationExpired()
            if reservation.status != ReservationStatus.PENDING.value:
                raise InvalidReservationState()

            booth = await self.db.get(Booth, reservation.booth_id)
            transaction = await self.live_transaction(reservation_id)
            if transaction is not None and transaction.status != TransactionStatus.PENDING.value:
                raise InvalidReservationState(f"Payment already {transaction.status}")

            if transaction is None:
                transaction = await self._open_transaction(reservation, booth, user)

            if transaction.processor_intent_id:
                intent = await self.processor.retrieve_intent(transaction.processor_intent_id)
                return transaction, intent

            metadata = {
                "reservationId": str(reservation.id),
                "transactionId": str(transaction.id),
                "boothId": str(reservation.booth_id),
                "eventId": str(reservation.event_id),
                "boothNumber": booth.booth_number,
            }
            try:
                intent = await self.processor.create_intent(
                    to_minor_units(transaction.amount),
                    transaction.currency,
                    metadata,
                    customer_id=transaction.processor_customer_id,
                )
            except PaymentProcessorError as e:
                # The pending transaction stays; a retry backfills its intent
                record_payment("processor_error")
                logger.error(
                    "payment_intent_failed",
                    transaction_id=transaction.id,
                    reservation_id=reservation_id,
                    error=e.message,
                )
                raise

            transaction.processor_intent_id = intent.id
            await self.db.commit()

        record_payment("initiated")
        logger.info(
            "payment_intent_created",
            transaction_id=transaction.id,
            reservation_id=reservation_id,
            intent_id=intent.id,
        )
        await self.bus.emit_async(
            Topic.PAYMENT_INITIATED,
            {
                "transactionId": transaction.id,
                "reservationId": reservation_id,
                "intentId": intent.id,
                "amount": float(transaction.amount),
                "currency": transaction.currency,
                "module": MODULE,
            },
        )
        return transaction, intent

    async def _open_transaction(self, reservation: Reservation, booth: Booth, user: User) -> Transaction:
        reservation_id = reservation.id
        customer_id = None
        try:
            customer_id = await self.processor.create_customer(
                user.email,
                user.full_name,
                {"userId": str(user.id), "reservationId": str(reservation_id)},
            )
        except PaymentProcessorError as e:
            logger.warning("payment_customer_failed", user_id=user.id, error=e.message)

        transaction = Transaction(
            reservation_id=reservation_id,
            exhibitor_id=reservation.exhibitor_id,
            amount=booth.price,
            currency=settings.CURRENCY,
            status=TransactionStatus.PENDING.value,
            payment_method="stripe",
            processor_customer_id=customer_id,
            meta={"boothNumber": booth.booth_number, "eventId": booth.event_id},
        )
        self.db.add(transaction)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.live_transaction(reservation_id)
            if existing is None:
                raise
            return existing
        return transaction

    # Settlement

    async def confirm_from_processor(
        self,
        intent_id: str,
        user: Optional[User] = None,
    ) -> tuple[Transaction, Reservation, Invoice]:
        """Client-driven confirm: verify with the processor, then settle."""
        transaction = await self.get_by_intent(intent_id)
        if not transaction:
            raise NotFound("Transaction not found")
        if user is not None and not user.is_admin and transaction.exhibitor_id != user.id:
            raise Forbidden("Transaction does not belong to you")

        intent = await self.processor.retrieve_intent(intent_id)
        if intent.status != "succeeded":
            raise PaymentNotCompleted(f"Payment status: {intent.status}", details={"status": intent.status})

        return await self._settle(transaction.id)

    async def _settle(self, transaction_id: int) -> tuple[Transaction, Reservation, Invoice]:
        now = utcnow()
        try:
            result = await self.db.execute(
                update(Transaction)
                .where(
                    Transaction.id == transaction_id,
                    Transaction.status.in_(
                        (TransactionStatus.PENDING.value, TransactionStatus.FAILED.value)
                    ),
                )
                .values(status=TransactionStatus.COMPLETED.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Another payment for this reservation is already live")
        newly_completed = result.rowcount == 1

        transaction = await self.get_transaction(transaction_id)
        if transaction.status != TransactionStatus.COMPLETED.value:
            raise InvalidReservationState(f"Payment already {transaction.status}")

        try:
            reservation = await self.engine.confirm(transaction.reservation_id)
        except (ReservationExpired, InvalidReservationState) as e:
            if newly_completed:
                await self._orphaned(transaction, e.code)
            raise

        invoice = await self.invoices.ensure_paid(reservation, transaction)
        # A lost invoice insert rolls the session back and expires what we
        # loaded; hand callers freshly loaded rows
        transaction = await self.get_transaction(transaction_id)
        reservation = await self.engine.get(transaction.reservation_id)
        invoice = await self.invoices.get(invoice.id)

        if newly_completed:
            record_payment("completed")
            logger.info(
                "payment_settled",
                transaction_id=transaction.id,
                reservation_id=reservation.id,
                invoice_id=invoice.id,
            )
            await self.bus.emit_async(
                Topic.PAYMENT_COMPLETED,
                {
                    "transactionId": transaction.id,
                    "reservationId": reservation.id,
                    "boothId": reservation.booth_id,
                    "eventId": reservation.event_id,
                    "exhibitorId": reservation.exhibitor_id,
                    "amount": float(transaction.amount),
                    "currency": transaction.currency,
                    "invoiceId": invoice.id,
                    "module": MODULE,
                },
            )
            await notify_safely(
                "payment_confirmed",
                self._notify_paid(reservation, transaction, invoice),
                transaction_id=transaction.id,
            )
        return transaction, reservation, invoice

    async def _orphaned(self, transaction: Transaction, reason: str) -> None:
        record_payment("orphaned")
        logger.warning(
            "payment_orphaned",
            transaction_id=transaction.id,
            reservation_id=transaction.reservation_id,
            reason=reason,
        )
        await self.bus.emit_async(
            Topic.PAYMENT_ORPHANED,
            {
                "transactionId": transaction.id,
                "reservationId": transaction.reservation_id,
                "intentId": transaction.processor_intent_id,
                "amount": float(transaction.amount),
                "reason": reason,
                "module": MODULE,
            },
        )

    # Webhooks

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        """
        Verify and dispatch a processor event. A bad or missing signature
        raises before anything is read or written.
        """
        try:
            event = self.processor.parse_webhook(payload, signature)
        except WebhookSignatureError as e:
            record_webhook("unknown", "rejected")
            logger.warning("webhook_signature_invalid", error=e.message)
            raise

        logger.info("webhook_received", event_id=event.id, event_type=event.type, intent_id=event.intent_id)
        handlers = {
            INTENT_SUCCEEDED: self._on_succeeded,
            INTENT_FAILED: self._on_failed,
            INTENT_CANCELED: self._on_canceled,
        }
        handler = handlers.get(event.type)
        if handler is None:
            record_webhook(event.type, "ignored")
            logger.info("webhook_unhandled_event", event_type=event.type)
            return {"received": True}

        await handler(event)
        record_webhook(event.type, "handled")
        return {"received": True}

    async def _webhook_transaction(self, event: ProcessorEvent) -> Optional[Transaction]:
        transaction = await self.get_by_intent(event.intent_id) if event.intent_id else None
        if transaction is None:
            logger.warning("webhook_unknown_intent", event_type=event.type, intent_id=event.intent_id)
        return transaction

    async def _on_succeeded(self, event: ProcessorEvent) -> None:
        transaction = await self._webhook_transaction(event)
        if transaction is None:
            return
        try:
            await self._settle(transaction.id)
        except (ReservationExpired, InvalidReservationState) as e:
            # Recorded as orphaned; the processor must not keep retrying
            logger.warning("webhook_settle_rejected", transaction_id=transaction.id, code=e.code)

    async def _on_failed(self, event: ProcessorEvent) -> None:
        transaction = await self._webhook_transaction(event)
        if transaction is None:
            return
        failure = event.data.get("failure_message")
        result = await self.db.execute(
            update(Transaction)
            .where(
                Transaction.id == transaction.id,
                Transaction.status == TransactionStatus.PENDING.value,
            )
            .values(
                status=TransactionStatus.FAILED.value,
                meta={**(transaction.meta or {}), "failureMessage": failure},
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            return

        record_payment("failed")
        logger.info("payment_failed", transaction_id=transaction.id, reason=failure)
        await self.bus.emit_async(
            Topic.PAYMENT_FAILED,
            {
                "transactionId": transaction.id,
                "reservationId": transaction.reservation_id,
                "reason": failure,
                "module": MODULE,
            },
        )

    async def _on_canceled(self, event: ProcessorEvent) -> None:
        transaction = await self._webhook_transaction(event)
        if transaction is None:
            return
        reservation = await self.engine.get(transaction.reservation_id)
        if reservation.status != ReservationStatus.PENDING.value or reservation.is_lapsed():
            logger.info(
                "payment_canceled_noop",
                reservation_id=reservation.id,
                status=reservation.effective_status,
            )
            return
        await self.engine.cancel(reservation.id, reason="payment_canceled")

    # Refunds

    async def refund(self, transaction_id: int) -> Transaction:
        """Refund a completed payment. The reservation and booth are left as they are."""
        transaction = await self.get_transaction(transaction_id)
        if transaction.status != TransactionStatus.COMPLETED.value:
            raise ValidationError(f"Only completed payments can be refunded (status: {transaction.status})")

        refund_id = None
        if transaction.processor_intent_id:
            refund_id = await self.processor.refund(transaction.processor_intent_id)

        transaction.status = TransactionStatus.REFUNDED.value
        transaction.meta = {**(transaction.meta or {}), "refundId": refund_id}
        await self.db.commit()

        record_payment("refunded")
        logger.info("payment_refunded", transaction_id=transaction.id, refund_id=refund_id)
        await self.bus.emit_async(
            Topic.PAYMENT_REFUNDED,
            {
                "transactionId": transaction.id,
                "reservationId": transaction.reservation_id,
                "refundId": refund_id,
                "amount": float(transaction.amount),
                "module": MODULE,
            },
        )
        return transaction

    async def _notify_paid(self, reservation: Reservation, transaction: Transaction, invoice: Invoice) -> None:
        if self.notifier is None:
            return
        user = await self.db.get(User, reservation.exhibitor_id)
        booth = await self.db.get(Booth, reservation.booth_id)
        if user is None or booth is None:
            return
        await self.notifier.payment_confirmed(
            user.email,
            {
                "booth_number": booth.booth_number,
                "amount": f"{transaction.amount:.2f}",
                "currency": transaction.currency,
                "invoice_number": invoice.invoice_number,
            },
        )
