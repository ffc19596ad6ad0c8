"""
Pydantic schemas for the purchase flow, transactions and invoices.
"""

from datetime import datetime
from typing import Any, Optional

from boothhub.schemas.booth import ReservationResponse
from boothhub.schemas.common import CamelModel


class PurchaseRequest(CamelModel):
    reservation_id: int


class PaymentIntentResponse(CamelModel):
    transaction_id: int
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    amount: float
    currency: str


class ConfirmPaymentRequest(CamelModel):
    payment_intent_id: str


class TransactionResponse(CamelModel):
    id: int
    reservation_id: int
    exhibitor_id: int
    amount: float
    currency: str
    status: str
    payment_method: Optional[str] = None
    processor_intent_id: Optional[str] = None
    meta: Optional[dict[str, Any]] = None
    created_at: datetime


class InvoiceResponse(CamelModel):
    id: int
    reservation_id: int
    exhibitor_id: int
    invoice_number: str
    amount: float
    tax_amount: float
    total_amount: float
    currency: str
    status: str
    due_date: Optional[datetime] = None
    issued_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class ConfirmPaymentResponse(CamelModel):
    transaction: TransactionResponse
    reservation: ReservationResponse
    invoice: Optional[InvoiceResponse] = None
