"""
Tests for the purchase flow: payment intents, confirmation, webhooks and refunds.

The processor is the in-memory fake from conftest; webhook signatures are
checked by the real Stripe verification code.
"""

import asyncio
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.utils import utcnow
from boothhub.main import container
from boothhub.models.reservation import Reservation
from boothhub.models.transaction import Transaction
from boothhub.services.invoice_service import InvoiceService
from boothhub.services.payment_coordinator import PaymentCoordinator
from boothhub.services.reservation_engine import ReservationEngine
from tests.conftest import sign_payload, webhook_body


async def _hold(client: AsyncClient, headers, booth) -> int:
    response = await client.post(
        "/api/v1/booths/reserve",
        json={"boothId": booth.id, "eventId": booth.event_id},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]["reservationId"]


async def _purchase(client: AsyncClient, headers, reservation_id: int):
    return await client.post(
        "/api/v1/booths/purchase",
        json={"reservationId": reservation_id},
        headers=headers,
    )


async def _confirm(client: AsyncClient, headers, intent_id: str):
    return await client.post(
        "/api/v1/booths/confirm-payment",
        json={"paymentIntentId": intent_id},
        headers=headers,
    )


async def _webhook(client: AsyncClient, body: str, signature: str):
    return await client.post(
        "/api/v1/webhooks/payment",
        content=body,
        headers={"Stripe-Signature": signature, "Content-Type": "application/json"},
    )


async def _transaction(db_session, intent_id: str) -> Transaction:
    return await db_session.scalar(
        select(Transaction)
        .where(Transaction.processor_intent_id == intent_id)
        .execution_options(populate_existing=True)
    )


@pytest.mark.asyncio
async def test_purchase_creates_intent(client: AsyncClient, processor, auth_headers, booth):
    """The intent is for the booth price, in minor units."""
    reservation_id = await _hold(client, auth_headers, booth)

    response = await _purchase(client, auth_headers, reservation_id)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["amount"] == 500.0
    assert data["currency"] == "USD"
    assert data["clientSecret"]

    intent = processor.intents[data["paymentIntentId"]]
    assert intent.amount == 50000
    assert intent.currency == "usd"


@pytest.mark.asyncio
async def test_purchase_twice_reuses_intent(client: AsyncClient, processor, auth_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    first = await _purchase(client, auth_headers, reservation_id)
    second = await _purchase(client, auth_headers, reservation_id)

    assert first.json()["data"]["paymentIntentId"] == second.json()["data"]["paymentIntentId"]
    assert first.json()["data"]["transactionId"] == second.json()["data"]["transactionId"]
    assert len(processor.intents) == 1


@pytest.mark.asyncio
async def test_purchase_someone_elses_reservation(client: AsyncClient, auth_headers, other_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    response = await _purchase(client, other_headers, reservation_id)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_purchase_unknown_reservation(client: AsyncClient, auth_headers):
    response = await _purchase(client, auth_headers, 99999)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_processor_failure_keeps_hold(client: AsyncClient, processor, auth_headers, booth):
    """A processor outage surfaces as a 500 and the hold is untouched; a retry succeeds."""
    reservation_id = await _hold(client, auth_headers, booth)
    processor.fail_create = True

    failed = await _purchase(client, auth_headers, reservation_id)
    assert failed.status_code == 500
    assert failed.json()["error"]["code"] == "INTERNAL_ERROR"

    reservation = await client.get(f"/api/v1/reservations/{reservation_id}", headers=auth_headers)
    assert reservation.json()["data"]["status"] == "pending"

    processor.fail_create = False
    retried = await _purchase(client, auth_headers, reservation_id)
    assert retried.status_code == 200


@pytest.mark.asyncio
async def test_confirm_before_payment_succeeds(client: AsyncClient, auth_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]

    response = await _confirm(client, auth_headers, intent_id)
    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "PAYMENT_NOT_COMPLETED"
    assert body["error"]["details"]["status"] == "requires_payment_method"


@pytest.mark.asyncio
async def test_full_purchase_round_trip(client: AsyncClient, processor, auth_headers, booth):
    """reserve -> purchase -> processor succeeds -> confirm: booked, paid and invoiced."""
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]
    processor.succeed(intent_id)

    response = await _confirm(client, auth_headers, intent_id)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["transaction"]["status"] == "completed"
    assert data["transaction"]["amount"] == 500.0
    assert data["reservation"]["status"] == "confirmed"
    assert data["reservation"]["confirmedAt"] is not None
    assert data["reservation"]["expiresAt"] is None
    assert data["invoice"]["status"] == "paid"
    assert data["invoice"]["totalAmount"] == 500.0
    assert data["invoice"]["invoiceNumber"].startswith("INV-")

    booth_response = await client.get(f"/api/v1/booths/{booth.id}")
    assert booth_response.json()["data"]["status"] == "booked"

    assert len(container.bus.history("payment.completed")) == 1
    assert len(container.bus.history("boothBooked")) == 1


@pytest.mark.asyncio
async def test_repeat_confirm_is_idempotent(client: AsyncClient, processor, auth_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]
    processor.succeed(intent_id)

    first = await _confirm(client, auth_headers, intent_id)
    second = await _confirm(client, auth_headers, intent_id)
    assert second.status_code == 200
    assert second.json()["data"]["invoice"]["id"] == first.json()["data"]["invoice"]["id"]
    assert second.json()["data"]["reservation"]["status"] == "confirmed"

    # Only the first settlement publishes
    assert len(container.bus.history("payment.completed")) == 1

    invoices = await client.get("/api/v1/invoices/mine", headers=auth_headers)
    assert len(invoices.json()["data"]) == 1


@pytest.mark.asyncio
async def test_confirmed_booking_blocks_other_exhibitors(
    client: AsyncClient, processor, auth_headers, other_headers, booth
):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]
    processor.succeed(intent_id)
    await _confirm(client, auth_headers, intent_id)

    response = await client.post(
        "/api/v1/booths/reserve",
        json={"boothId": booth.id, "eventId": booth.event_id},
        headers=other_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BOOTH_RESERVED"

    cancel = await client.post(f"/api/v1/reservations/{reservation_id}/cancel", headers=auth_headers)
    assert cancel.status_code == 400


@pytest.mark.asyncio
async def test_webhook_succeeded_settles(client: AsyncClient, db_session, processor, auth_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]

    body = webhook_body("payment_intent.succeeded", intent_id, "succeeded")
    response = await _webhook(client, body, sign_payload(body))
    assert response.status_code == 200
    assert response.json()["data"] == {"received": True}

    transaction = await _transaction(db_session, intent_id)
    assert transaction.status == "completed"
    reservation = await client.get(f"/api/v1/reservations/{reservation_id}", headers=auth_headers)
    assert reservation.json()["data"]["status"] == "confirmed"

    # Webhook then client confirm: still one settlement
    processor.succeed(intent_id)
    confirm = await _confirm(client, auth_headers, intent_id)
    assert confirm.status_code == 200
    assert len(container.bus.history("payment.completed")) == 1


@pytest.mark.asyncio
async def test_webhook_bad_signature_changes_nothing(client: AsyncClient, db_session, auth_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]

    body = webhook_body("payment_intent.succeeded", intent_id, "succeeded")
    response = await _webhook(client, body, sign_payload(body, secret="whsec_wrong"))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    transaction = await _transaction(db_session, intent_id)
    assert transaction.status == "pending"


@pytest.mark.asyncio
async def test_webhook_missing_signature(client: AsyncClient):
    response = await client.post(
        "/api/v1/webhooks/payment",
        content='{"type": "payment_intent.succeeded"}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_SIGNATURE"


@pytest.mark.asyncio
async def test_webhook_payment_failed(client: AsyncClient, db_session, auth_headers, booth):
    """A failed attempt marks the transaction failed; the hold stays for a retry."""
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]

    body = webhook_body(
        "payment_intent.payment_failed",
        intent_id,
        "requires_payment_method",
        last_payment_error={"message": "Your card was declined."},
    )
    response = await _webhook(client, body, sign_payload(body))
    assert response.status_code == 200

    transaction = await _transaction(db_session, intent_id)
    assert transaction.status == "failed"
    assert transaction.meta["failureMessage"] == "Your card was declined."

    reservation = await client.get(f"/api/v1/reservations/{reservation_id}", headers=auth_headers)
    assert reservation.json()["data"]["status"] == "pending"

    failed = container.bus.history("payment.failed")
    assert failed[0]["reason"] == "Your card was declined."


@pytest.mark.asyncio
async def test_webhook_canceled_releases_hold(client: AsyncClient, auth_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]

    body = webhook_body("payment_intent.canceled", intent_id, "canceled")
    response = await _webhook(client, body, sign_payload(body))
    assert response.status_code == 200

    reservation = await client.get(f"/api/v1/reservations/{reservation_id}", headers=auth_headers)
    assert reservation.json()["data"]["status"] == "cancelled"
    booth_response = await client.get(f"/api/v1/booths/{booth.id}")
    assert booth_response.json()["data"]["status"] == "available"


@pytest.mark.asyncio
async def test_webhook_unknown_intent_acknowledged(client: AsyncClient):
    body = webhook_body("payment_intent.succeeded", "pi_unknown", "succeeded")
    response = await _webhook(client, body, sign_payload(body))
    assert response.status_code == 200
    assert response.json()["data"] == {"received": True}


@pytest.mark.asyncio
async def test_webhook_unhandled_type_acknowledged(client: AsyncClient):
    body = webhook_body("charge.refunded", "pi_whatever", "succeeded")
    response = await _webhook(client, body, sign_payload(body))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_late_payment_after_lapse_is_orphaned(
    client: AsyncClient, db_session, processor, auth_headers, booth
):
    """
    Payment success after the hold lapsed: the money is recorded, the
    reservation stays dead and an orphaned-payment event is published.
    """
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]
    await db_session.execute(
        update(Reservation)
        .where(Reservation.id == reservation_id)
        .values(expires_at=utcnow() - timedelta(minutes=1))
    )
    await db_session.commit()
    processor.succeed(intent_id)

    response = await _confirm(client, auth_headers, intent_id)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "RESERVATION_EXPIRED"

    transaction = await _transaction(db_session, intent_id)
    assert transaction.status == "completed"
    orphaned = container.bus.history("payment.orphaned")
    assert len(orphaned) == 1
    assert orphaned[0]["intentId"] == intent_id
    assert container.bus.history("payment.completed") == []

    # The webhook for the same payment is acknowledged and publishes nothing new
    body = webhook_body("payment_intent.succeeded", intent_id, "succeeded")
    webhook = await _webhook(client, body, sign_payload(body))
    assert webhook.status_code == 200
    assert len(container.bus.history("payment.orphaned")) == 1


@pytest.mark.asyncio
async def test_refund_completed_payment(client: AsyncClient, processor, auth_headers, admin_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]
    processor.succeed(intent_id)
    confirmed = await _confirm(client, auth_headers, intent_id)
    transaction_id = confirmed.json()["data"]["transaction"]["id"]

    forbidden = await client.post(
        f"/api/v1/payments/transactions/{transaction_id}/refund", headers=auth_headers
    )
    assert forbidden.status_code == 403

    response = await client.post(
        f"/api/v1/payments/transactions/{transaction_id}/refund", headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "refunded"
    assert processor.refunds == [intent_id]

    again = await client.post(
        f"/api/v1/payments/transactions/{transaction_id}/refund", headers=admin_headers
    )
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_transaction_listings(client: AsyncClient, auth_headers, admin_headers, booth):
    reservation_id = await _hold(client, auth_headers, booth)
    await _purchase(client, auth_headers, reservation_id)

    mine = await client.get("/api/v1/payments/transactions", headers=auth_headers)
    assert mine.status_code == 200
    assert mine.json()["meta"]["count"] == 1

    everything = await client.get("/api/v1/payments/transactions/all?status=pending", headers=admin_headers)
    assert len(everything.json()["data"]) == 1


@pytest.mark.asyncio
async def test_concurrent_webhook_and_confirm_settle_once(
    client: AsyncClient, db_session, processor, auth_headers, booth
):
    reservation_id = await _hold(client, auth_headers, booth)
    intent_id = (await _purchase(client, auth_headers, reservation_id)).json()["data"]["paymentIntentId"]
    processor.succeed(intent_id)
    body = webhook_body("payment_intent.succeeded", intent_id, "succeeded")

    results = await asyncio.gather(
        _webhook(client, body, sign_payload(body)),
        _confirm(client, auth_headers, intent_id),
        _confirm(client, auth_headers, intent_id),
    )

    assert [r.status_code for r in results] == [200, 200, 200]
    assert len(container.bus.history("payment.completed")) == 1
    assert len(container.bus.history("boothBooked")) == 1
    invoices = await client.get("/api/v1/invoices/mine", headers=auth_headers)
    assert len(invoices.json()["data"]) == 1
    assert (await _transaction(db_session, intent_id)).status == "completed"


@pytest.mark.asyncio
async def test_settle_after_lost_invoice_insert_returns_loaded_rows(
    db_session, processor, booth, exhibitor, monkeypatch
):
    """Another process wrote the invoice first; the settling caller still gets usable rows."""
    bus = EventBus()
    engine = ReservationEngine(db_session, bus)
    invoices = InvoiceService(db_session, bus)
    coordinator = PaymentCoordinator(db_session, bus, processor, engine, invoices)
    reservation = await engine.reserve(booth.id, booth.event_id, exhibitor.id)
    transaction, intent = await coordinator.create_intent(reservation.id, exhibitor)
    processor.succeed(intent.id)

    factory = async_sessionmaker(db_session.bind, expire_on_commit=False)
    async with factory() as other:
        elsewhere = await other.get(Reservation, reservation.id)
        winner = await InvoiceService(other, EventBus()).ensure_draft(elsewhere)

    real = invoices.get_for_reservation
    calls = []

    async def not_yet_visible(reservation_id):
        calls.append(reservation_id)
        if len(calls) == 1:
            return None
        return await real(reservation_id)

    monkeypatch.setattr(invoices, "get_for_reservation", not_yet_visible)

    transaction, reservation, invoice = await coordinator.confirm_from_processor(intent.id)

    assert transaction.status == "completed"
    assert reservation.status == "confirmed"
    assert invoice.id == winner.id
    assert invoice.status == "paid"
    assert len(bus.history(Topic.PAYMENT_COMPLETED)) == 1
