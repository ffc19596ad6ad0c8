"""
Payments module endpoints, mounted at /api/v1/payments.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from boothhub.api.deps import get_current_user, get_payment_coordinator, require_admin
from boothhub.models.user import User
from boothhub.schemas.common import ApiResponse, ok
from boothhub.schemas.payment import TransactionResponse
from boothhub.services.payment_coordinator import PaymentCoordinator


def get_router() -> APIRouter:
    router = APIRouter(tags=["Payments"])

    @router.get("/transactions", response_model=ApiResponse[list[TransactionResponse]])
    async def my_transactions(
        user: User = Depends(get_current_user),
        payments: PaymentCoordinator = Depends(get_payment_coordinator),
    ):
        transactions = await payments.list_transactions_for(user.id)
        return ok(transactions, count=len(transactions))

    @router.get("/transactions/all", response_model=ApiResponse[list[TransactionResponse]])
    async def all_transactions(
        status_filter: Optional[str] = Query(None, alias="status"),
        admin: User = Depends(require_admin),
        payments: PaymentCoordinator = Depends(get_payment_coordinator),
    ):
        transactions = await payments.list_all_transactions(status_filter)
        return ok(transactions, count=len(transactions))

    @router.post("/transactions/{transaction_id}/refund", response_model=ApiResponse[TransactionResponse])
    async def refund_transaction(
        transaction_id: int,
        admin: User = Depends(require_admin),
        payments: PaymentCoordinator = Depends(get_payment_coordinator),
    ):
        """Refund with the processor. The booking itself is not released."""
        return ok(await payments.refund(transaction_id), message="Payment refunded")

    return router
