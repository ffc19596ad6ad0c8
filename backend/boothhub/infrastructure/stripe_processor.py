"""
Stripe adapter for the PaymentProcessor interface.

The stripe SDK is synchronous, so every network call goes through the
threadpool to keep the event loop free.
"""

import json
from typing import Optional

import stripe
from starlette.concurrency import run_in_threadpool

from boothhub.core.exceptions import PaymentProcessorError, WebhookSignatureError
from boothhub.core.logging import get_logger
from boothhub.services.interfaces.payment_processor import (
    PaymentProcessor,
    ProcessorEvent,
    ProcessorIntent,
)

logger = get_logger(__name__)


def _to_intent(intent) -> ProcessorIntent:
    return ProcessorIntent(
        id=intent["id"],
        status=intent["status"],
        client_secret=intent.get("client_secret"),
        amount=intent.get("amount"),
        currency=intent.get("currency"),
    )


class StripePaymentProcessor(PaymentProcessor):
    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    async def create_customer(self, email: str, name: str, metadata: dict[str, str]) -> str:
        try:
            customer = await run_in_threadpool(
                stripe.Customer.create,
                email=email,
                name=name,
                metadata=metadata,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            raise PaymentProcessorError(f"Customer creation failed: {e.user_message or e}")
        return customer["id"]

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        customer_id: Optional[str] = None,
    ) -> ProcessorIntent:
        params = {
            "amount": amount,
            "currency": currency.lower(),
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
            "api_key": self.api_key,
        }
        if customer_id:
            params["customer"] = customer_id
        try:
            intent = await run_in_threadpool(stripe.PaymentIntent.create, **params)
        except stripe.StripeError as e:
            raise PaymentProcessorError(f"Payment intent creation failed: {e.user_message or e}")
        return _to_intent(intent)

    async def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.retrieve, intent_id, api_key=self.api_key
            )
        except stripe.StripeError as e:
            raise PaymentProcessorError(f"Payment intent lookup failed: {e.user_message or e}")
        return _to_intent(intent)

    async def refund(self, intent_id: str) -> str:
        try:
            refund = await run_in_threadpool(
                stripe.Refund.create, payment_intent=intent_id, api_key=self.api_key
            )
        except stripe.StripeError as e:
            raise PaymentProcessorError(f"Refund failed: {e.user_message or e}")
        return refund["id"]

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> ProcessorEvent:
        if not signature:
            raise WebhookSignatureError("Missing webhook signature")
        if not self.webhook_secret:
            # No secret configured means nothing can be verified
            raise WebhookSignatureError("Webhook secret is not configured")
        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
            event = json.loads(body)
            obj = event["data"]["object"]
        except stripe.SignatureVerificationError:
            raise WebhookSignatureError()
        except (ValueError, KeyError, TypeError):
            raise WebhookSignatureError("Malformed webhook payload")

        data = {
            "status": obj.get("status"),
            "amount": obj.get("amount"),
            "currency": obj.get("currency"),
        }
        error = obj.get("last_payment_error")
        if error:
            data["failure_message"] = error.get("message")
        return ProcessorEvent(
            id=event["id"],
            type=event["type"],
            intent_id=obj.get("id"),
            data=data,
        )
