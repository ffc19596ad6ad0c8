"""
Invoice endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from boothhub.api.deps import get_current_user, get_invoice_service, require_admin
from boothhub.core.exceptions import Forbidden
from boothhub.models.user import User
from boothhub.schemas.common import ApiResponse, ok
from boothhub.schemas.payment import InvoiceResponse
from boothhub.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.get("/mine", response_model=ApiResponse[list[InvoiceResponse]])
async def my_invoices(
    user: User = Depends(get_current_user),
    invoices: InvoiceService = Depends(get_invoice_service),
):
    return ok(await invoices.list_for_exhibitor(user.id))


@router.get("", response_model=ApiResponse[list[InvoiceResponse]])
async def list_invoices(
    status: Optional[str] = Query(None),
    admin: User = Depends(require_admin),
    invoices: InvoiceService = Depends(get_invoice_service),
):
    return ok(await invoices.list_all(status=status))


@router.get("/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def get_invoice(
    invoice_id: int,
    user: User = Depends(get_current_user),
    invoices: InvoiceService = Depends(get_invoice_service),
):
    invoice = await invoices.get(invoice_id)
    if invoice.exhibitor_id != user.id and not user.is_admin:
        raise Forbidden("Invoice does not belong to you")
    return ok(invoice)
