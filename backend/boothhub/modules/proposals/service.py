"""
Proposals and proposal templates.

Status moves go through one conditional UPDATE keyed on the allowed source
states, so two reviewers acting at once cannot both win.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import Conflict, NotFound
from boothhub.core.logging import get_logger
from boothhub.core.utils import utcnow
from boothhub.models.event import Event
from boothhub.modules.proposals.models import Proposal, ProposalStatus, ProposalTemplate
from boothhub.modules.proposals.schemas import ProposalCreate, TemplateCreate

logger = get_logger(__name__)

MODULE = "proposals"

# target status -> statuses it may be reached from
TRANSITIONS = {
    ProposalStatus.SUBMITTED: (ProposalStatus.DRAFT, ProposalStatus.REJECTED),
    ProposalStatus.APPROVED: (ProposalStatus.SUBMITTED,),
    ProposalStatus.REJECTED: (ProposalStatus.SUBMITTED,),
    ProposalStatus.SENT: (ProposalStatus.APPROVED,),
}


class ProposalService:
    def __init__(self, db: AsyncSession, bus: EventBus):
        self.db = db
        self.bus = bus

    async def get(self, proposal_id: int) -> Proposal:
        proposal = await self.db.get(Proposal, proposal_id, populate_existing=True)
        if not proposal:
            raise NotFound(f"Proposal {proposal_id} not found")
        return proposal

    async def list_for_event(self, event_id: int, status: Optional[str] = None) -> list[Proposal]:
        query = select(Proposal).where(Proposal.event_id == event_id)
        if status:
            query = query.where(Proposal.status == status)
        result = await self.db.execute(query.order_by(Proposal.created_at.desc(), Proposal.id.desc()))
        return list(result.scalars().all())

    async def create(self, data: ProposalCreate, created_by: Optional[int] = None) -> Proposal:
        if not await self.db.get(Event, data.event_id):
            raise NotFound(f"Event {data.event_id} not found")
        if data.template_id is not None and not await self.db.get(ProposalTemplate, data.template_id):
            raise NotFound(f"Template {data.template_id} not found")

        proposal = Proposal(
            event_id=data.event_id,
            title=data.title,
            description=data.description,
            template_id=data.template_id,
            status=ProposalStatus.DRAFT.value,
            created_by=created_by,
        )
        self.db.add(proposal)
        await self.db.commit()
        await self.db.refresh(proposal)

        await self.bus.emit_async(
            Topic.PROPOSAL_CREATED,
            {"proposalId": proposal.id, "eventId": proposal.event_id, "module": MODULE},
        )
        return proposal

    async def submit(self, proposal_id: int, user_id: int) -> Proposal:
        return await self._move(proposal_id, ProposalStatus.SUBMITTED, user_id,
                                submitted_by=user_id, submitted_at=utcnow())

    async def approve(self, proposal_id: int, user_id: int) -> Proposal:
        return await self._move(proposal_id, ProposalStatus.APPROVED, user_id,
                                reviewed_by=user_id, reviewed_at=utcnow())

    async def reject(self, proposal_id: int, user_id: int) -> Proposal:
        return await self._move(proposal_id, ProposalStatus.REJECTED, user_id,
                                reviewed_by=user_id, reviewed_at=utcnow())

    async def mark_sent(self, proposal_id: int, user_id: int) -> Proposal:
        return await self._move(proposal_id, ProposalStatus.SENT, user_id, sent_at=utcnow())

    async def _move(self, proposal_id: int, target: ProposalStatus, user_id: int, **values) -> Proposal:
        sources = TRANSITIONS[target]
        result = await self.db.execute(
            update(Proposal)
            .where(Proposal.id == proposal_id, Proposal.status.in_([s.value for s in sources]))
            .values(status=target.value, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            proposal = await self.get(proposal_id)
            raise Conflict(
                f"Cannot move proposal from '{proposal.status}' to '{target.value}'",
                details={"status": proposal.status, "target": target.value},
            )
        await self.db.commit()

        proposal = await self.get(proposal_id)
        logger.info("proposal_status_changed", proposal_id=proposal_id, status=target.value, user_id=user_id)
        await self.bus.emit_async(
            Topic.PROPOSAL_STATUS_CHANGED,
            {
                "proposalId": proposal.id,
                "eventId": proposal.event_id,
                "status": target.value,
                "userId": user_id,
                "module": MODULE,
            },
        )
        return proposal

    # Templates

    async def templates(self, category: Optional[str] = None) -> list[ProposalTemplate]:
        query = select(ProposalTemplate).where(ProposalTemplate.is_active.is_(True))
        if category:
            query = query.where(ProposalTemplate.category == category)
        result = await self.db.execute(query.order_by(ProposalTemplate.name.asc()))
        return list(result.scalars().all())

    async def create_template(self, data: TemplateCreate) -> ProposalTemplate:
        template = ProposalTemplate(**data.model_dump(), is_active=True)
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)
        return template
