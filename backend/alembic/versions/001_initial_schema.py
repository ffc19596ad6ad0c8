"""Initial schema: users, events, booths, reservations, transactions, invoices, floor plans.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="exhibitor"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'exhibitor')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("start_date < end_date", name="check_event_dates"),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'active', 'completed', 'cancelled')",
            name="check_event_status",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_start_date", "events", ["start_date"])

    # Booths table
    op.create_table(
        "booths",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("booth_number", sa.String(20), nullable=False),
        sa.Column("size", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("location_x", sa.Integer(), nullable=True),
        sa.Column("location_y", sa.Integer(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("height", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amenities", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "booth_number", name="uq_booth_event_number"),
        sa.CheckConstraint("price >= 0", name="check_booth_price_non_negative"),
        sa.CheckConstraint(
            "status IN ('available', 'reserved', 'booked', 'unavailable')",
            name="check_booth_status",
        ),
        sa.CheckConstraint("size IN ('small', 'medium', 'large', 'xlarge')", name="check_booth_size"),
    )
    op.create_index("ix_booths_id", "booths", ["id"])
    op.create_index("ix_booths_event_id", "booths", ["event_id"])
    # Serves the availability listing: WHERE event_id = ? AND status IN (...) ORDER BY booth_number
    op.create_index("ix_booths_event_status_number", "booths", ["event_id", "status", "booth_number"])

    # Reservations table
    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booth_id", sa.Integer(), sa.ForeignKey("booths.id"), nullable=False),
        sa.Column("exhibitor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'expired')",
            name="check_reservation_status",
        ),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_booth_id", "reservations", ["booth_id"])
    op.create_index("ix_reservations_exhibitor_id", "reservations", ["exhibitor_id"])
    op.create_index("ix_reservations_event_id", "reservations", ["event_id"])
    op.create_index("ix_reservations_status_expires", "reservations", ["status", "expires_at"])
    # EXCLUSIVITY GUARD: at most one pending or confirmed reservation per booth,
    # enforced by the database whatever the application layer does.
    op.create_index(
        "uq_reservations_active_booth",
        "reservations",
        ["booth_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'confirmed')"),
    )

    # Transactions table
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=False),
        sa.Column("exhibitor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("processor_customer_id", sa.String(255), nullable=True),
        sa.Column("processor_intent_id", sa.String(255), nullable=True, unique=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_transaction_status",
        ),
        sa.CheckConstraint("amount >= 0", name="check_transaction_amount_non_negative"),
    )
    op.create_index("ix_transactions_id", "transactions", ["id"])
    op.create_index("ix_transactions_reservation_id", "transactions", ["reservation_id"])
    op.create_index("ix_transactions_exhibitor_id", "transactions", ["exhibitor_id"])
    # One live charge per reservation; failed attempts stay as history
    op.create_index(
        "uq_transactions_live_reservation",
        "transactions",
        ["reservation_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'completed')"),
    )

    # Invoices table
    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=False, unique=True),
        sa.Column("exhibitor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("invoice_number", sa.String(50), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'sent', 'paid', 'cancelled')",
            name="check_invoice_status",
        ),
    )
    op.create_index("ix_invoices_id", "invoices", ["id"])
    op.create_index("ix_invoices_exhibitor_id", "invoices", ["exhibitor_id"])
    op.create_index("ix_invoices_invoice_number", "invoices", ["invoice_number"], unique=True)

    # Floor plans table
    op.create_table(
        "floor_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("layout_data", sa.JSON(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_floor_plans_id", "floor_plans", ["id"])
    op.create_index("ix_floor_plans_event_id", "floor_plans", ["event_id"])


def downgrade() -> None:
    op.drop_table("floor_plans")
    op.drop_table("invoices")
    op.drop_table("transactions")
    op.drop_table("reservations")
    op.drop_table("booths")
    op.drop_table("events")
    op.drop_table("users")
