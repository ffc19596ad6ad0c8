"""
Costing tables: cost entries per event and per-category budgets.

Budget.spent_amount is derived: the sum of non-rejected costs in the same
event and category, recomputed whenever a cost changes.
"""

from enum import Enum

from sqlalchemy import (
    CheckConstraint, Column, Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint,
)

from boothhub.db.base import Base, TimestampMixin


class CostStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class Cost(Base, TimestampMixin):
    __tablename__ = "costs"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    cost_date = Column(Date, nullable=False)
    vendor = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=CostStatus.PENDING.value)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="check_cost_amount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'paid', 'rejected')",
            name="check_cost_status",
        ),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(100), nullable=False)
    allocated_amount = Column(Numeric(12, 2), nullable=False)
    spent_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    __table_args__ = (
        UniqueConstraint("event_id", "category", name="uq_budget_event_category"),
        CheckConstraint("allocated_amount >= 0", name="check_budget_allocated_non_negative"),
    )
