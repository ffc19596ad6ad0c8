"""
Proposal workflow tables.

    draft --submit--> submitted --approve--> approved --send--> sent
                          |
                          +--reject--> rejected --submit--> submitted
"""

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Text

from boothhub.db.base import Base, TimestampMixin, UTCDateTime


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    SENT = "sent"


class ProposalTemplate(Base, TimestampMixin):
    __tablename__ = "proposal_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)


class Proposal(Base, TimestampMixin):
    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    template_id = Column(Integer, ForeignKey("proposal_templates.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default=ProposalStatus.DRAFT.value)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    submitted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    submitted_at = Column(UTCDateTime(), nullable=True)
    # Set by both approve and reject
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(UTCDateTime(), nullable=True)
    sent_at = Column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected', 'sent')",
            name="check_proposal_status",
        ),
    )
