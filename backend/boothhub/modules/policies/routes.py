"""
Policies module endpoints, mounted at /api/v1/policies.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import get_container, require_admin
from boothhub.core.container import ServiceContainer
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.modules.policies.schemas import PolicyCreate, PolicyResponse, PolicyUpdate
from boothhub.modules.policies.service import PolicyService
from boothhub.schemas.common import ApiResponse, ok


def get_policies(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> PolicyService:
    return PolicyService(db, container.bus)


def get_router() -> APIRouter:
    router = APIRouter(tags=["Policies"])

    @router.post("", response_model=ApiResponse[PolicyResponse], status_code=status.HTTP_201_CREATED)
    async def create_policy(
        data: PolicyCreate,
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        return ok(await policies.create(data, created_by=admin.id))

    @router.get("", response_model=ApiResponse[list[PolicyResponse]])
    async def list_policies(
        category: Optional[str] = Query(None),
        is_active: Optional[bool] = Query(None, alias="isActive"),
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        return ok(await policies.list_policies(category, is_active))

    @router.get("/active/{category}", response_model=ApiResponse[PolicyResponse])
    async def active_policy(category: str, policies: PolicyService = Depends(get_policies)):
        """Public: the policy currently in force for a category."""
        return ok(await policies.active(category))

    @router.get("/{policy_id}", response_model=ApiResponse[PolicyResponse])
    async def get_policy(
        policy_id: int,
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        return ok(await policies.get(policy_id))

    @router.put("/{policy_id}", response_model=ApiResponse[PolicyResponse])
    async def update_policy(
        policy_id: int,
        changes: PolicyUpdate,
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        return ok(await policies.update(policy_id, changes))

    @router.post("/{policy_id}/activate", response_model=ApiResponse[PolicyResponse])
    async def activate_policy(
        policy_id: int,
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        return ok(await policies.activate(policy_id))

    @router.post("/{policy_id}/deactivate", response_model=ApiResponse[PolicyResponse])
    async def deactivate_policy(
        policy_id: int,
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        return ok(await policies.deactivate(policy_id))

    @router.delete("/{policy_id}", response_model=ApiResponse[None])
    async def delete_policy(
        policy_id: int,
        admin: User = Depends(require_admin),
        policies: PolicyService = Depends(get_policies),
    ):
        await policies.delete(policy_id)
        return ok(message="Policy deleted")

    return router
