"""Module tables: monitoring, costing, policies, proposals.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _event_fk(nullable: bool = False):
    return sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=nullable)


def _user_fk(name: str):
    return sa.Column(name, sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


def upgrade() -> None:
    # Monitoring
    op.create_table(
        "monitoring_metrics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _event_fk(nullable=True),
        sa.Column("metric_type", sa.String(50), nullable=False),
        sa.Column("metric_name", sa.String(100), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
    )
    op.create_index("ix_monitoring_metrics_id", "monitoring_metrics", ["id"])
    op.create_index("ix_monitoring_metrics_event_id", "monitoring_metrics", ["event_id"])
    op.create_index("ix_monitoring_metrics_metric_type", "monitoring_metrics", ["metric_type"])

    op.create_table(
        "team_activity",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        _event_fk(nullable=True),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_team_activity_id", "team_activity", ["id"])
    op.create_index("ix_team_activity_user_id", "team_activity", ["user_id"])
    op.create_index("ix_team_activity_event_id", "team_activity", ["event_id"])
    op.create_index("ix_team_activity_action_type", "team_activity", ["action_type"])

    # Costing
    op.create_table(
        "costs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _event_fk(),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("cost_date", sa.Date(), nullable=False),
        sa.Column("vendor", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="check_cost_amount_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'paid', 'rejected')",
            name="check_cost_status",
        ),
    )
    op.create_index("ix_costs_id", "costs", ["id"])
    op.create_index("ix_costs_event_id", "costs", ["event_id"])

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _event_fk(),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("allocated_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("spent_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "category", name="uq_budget_event_category"),
        sa.CheckConstraint("allocated_amount >= 0", name="check_budget_allocated_non_negative"),
    )
    op.create_index("ix_budgets_id", "budgets", ["id"])
    op.create_index("ix_budgets_event_id", "budgets", ["event_id"])

    # Policies
    op.create_table(
        "policies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("version", sa.String(20), nullable=False, server_default="1.0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("effective_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("created_by"),
        *_timestamps(),
    )
    op.create_index("ix_policies_id", "policies", ["id"])
    op.create_index("ix_policies_category", "policies", ["category"])

    # Proposals
    op.create_table(
        "proposal_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_proposal_templates_id", "proposal_templates", ["id"])
    op.create_index("ix_proposal_templates_category", "proposal_templates", ["category"])

    op.create_table(
        "proposals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _event_fk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("proposal_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        _user_fk("created_by"),
        _user_fk("submitted_by"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("reviewed_by"),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected', 'sent')",
            name="check_proposal_status",
        ),
    )
    op.create_index("ix_proposals_id", "proposals", ["id"])
    op.create_index("ix_proposals_event_id", "proposals", ["event_id"])


def downgrade() -> None:
    op.drop_table("proposals")
    op.drop_table("proposal_templates")
    op.drop_table("policies")
    op.drop_table("budgets")
    op.drop_table("costs")
    op.drop_table("team_activity")
    op.drop_table("monitoring_metrics")
