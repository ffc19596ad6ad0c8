"""
Proposals module endpoints, mounted at /api/v1/proposals.

Any signed-in user drafts and submits; review and sending are admin actions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import get_container, get_current_user, require_admin
from boothhub.core.container import ServiceContainer
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.modules.proposals.schemas import (
    ProposalCreate,
    ProposalResponse,
    TemplateCreate,
    TemplateResponse,
)
from boothhub.modules.proposals.service import ProposalService
from boothhub.schemas.common import ApiResponse, ok


def get_proposals(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> ProposalService:
    return ProposalService(db, container.bus)


def get_router() -> APIRouter:
    router = APIRouter(tags=["Proposals"])

    # Template routes come first so /templates is not read as a proposal id

    @router.get("/templates", response_model=ApiResponse[list[TemplateResponse]])
    async def list_templates(
        category: Optional[str] = Query(None),
        user: User = Depends(get_current_user),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.templates(category))

    @router.post("/templates", response_model=ApiResponse[TemplateResponse], status_code=status.HTTP_201_CREATED)
    async def create_template(
        data: TemplateCreate,
        admin: User = Depends(require_admin),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.create_template(data))

    @router.post("", response_model=ApiResponse[ProposalResponse], status_code=status.HTTP_201_CREATED)
    async def create_proposal(
        data: ProposalCreate,
        user: User = Depends(get_current_user),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.create(data, created_by=user.id))

    @router.get("/event/{event_id}", response_model=ApiResponse[list[ProposalResponse]])
    async def event_proposals(
        event_id: int,
        status_filter: Optional[str] = Query(None, alias="status"),
        user: User = Depends(get_current_user),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.list_for_event(event_id, status_filter))

    @router.get("/{proposal_id}", response_model=ApiResponse[ProposalResponse])
    async def get_proposal(
        proposal_id: int,
        user: User = Depends(get_current_user),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.get(proposal_id))

    @router.post("/{proposal_id}/submit", response_model=ApiResponse[ProposalResponse])
    async def submit_proposal(
        proposal_id: int,
        user: User = Depends(get_current_user),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.submit(proposal_id, user.id))

    @router.post("/{proposal_id}/approve", response_model=ApiResponse[ProposalResponse])
    async def approve_proposal(
        proposal_id: int,
        admin: User = Depends(require_admin),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.approve(proposal_id, admin.id))

    @router.post("/{proposal_id}/reject", response_model=ApiResponse[ProposalResponse])
    async def reject_proposal(
        proposal_id: int,
        admin: User = Depends(require_admin),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.reject(proposal_id, admin.id))

    @router.post("/{proposal_id}/sent", response_model=ApiResponse[ProposalResponse])
    async def mark_proposal_sent(
        proposal_id: int,
        admin: User = Depends(require_admin),
        proposals: ProposalService = Depends(get_proposals),
    ):
        return ok(await proposals.mark_sent(proposal_id, admin.id))

    return router
