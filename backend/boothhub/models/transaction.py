"""
Payment transaction: one charge attempt against a reservation.

Key design decisions:
- Amount and currency are snapshotted from the booth at creation
- Partial unique index on reservation_id WHERE status IN ('pending', 'completed'):
  at most one live transaction per reservation. Failed attempts stay as history.
- processor_intent_id is unique so webhooks resolve to exactly one row
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, Numeric, JSON, ForeignKey, Index, CheckConstraint, text

from boothhub.db.base import Base, TimestampMixin


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False, index=True)
    exhibitor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=TransactionStatus.PENDING.value)
    payment_method = Column(String(50), nullable=True)
    processor_customer_id = Column(String(255), nullable=True)
    processor_intent_id = Column(String(255), nullable=True, unique=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_transaction_status",
        ),
        CheckConstraint("amount >= 0", name="check_transaction_amount_non_negative"),
        Index(
            "uq_transactions_live_reservation",
            "reservation_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'completed')"),
            sqlite_where=text("status IN ('pending', 'completed')"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, reservation={self.reservation_id}, status={self.status})>"
