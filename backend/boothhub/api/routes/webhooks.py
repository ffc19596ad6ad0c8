"""
Payment processor webhooks.

The body is read raw: signature verification needs the exact bytes the
processor signed.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from boothhub.api.deps import get_payment_coordinator
from boothhub.schemas.common import ok
from boothhub.services.payment_coordinator import PaymentCoordinator

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/payment")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    payments: PaymentCoordinator = Depends(get_payment_coordinator),
):
    payload = await request.body()
    result = await payments.handle_webhook(payload, stripe_signature)
    return ok(result)
