"""
Invoice issued for a booked reservation. One per reservation (unique FK).
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint

from boothhub.db.base import Base, TimestampMixin, UTCDateTime


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    CANCELLED = "cancelled"


class Invoice(Base, TimestampMixin):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False, unique=True)
    exhibitor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    invoice_number = Column(String(50), nullable=False, unique=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)
    due_date = Column(UTCDateTime(), nullable=True)
    issued_at = Column(UTCDateTime(), nullable=True)
    paid_at = Column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'sent', 'paid', 'cancelled')",
            name="check_invoice_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status})>"
