"""
Policies: terms, cancellation rules and other published text, versioned per
category. A policy is in force when it is active and now falls inside its
optional effective/expiry window.
"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import NotFound, ValidationError
from boothhub.core.logging import get_logger
from boothhub.core.utils import utcnow
from boothhub.modules.policies.models import Policy
from boothhub.modules.policies.schemas import PolicyCreate, PolicyUpdate

logger = get_logger(__name__)

MODULE = "policies"


class PolicyService:
    def __init__(self, db: AsyncSession, bus: EventBus):
        self.db = db
        self.bus = bus

    async def get(self, policy_id: int) -> Policy:
        policy = await self.db.get(Policy, policy_id)
        if not policy:
            raise NotFound(f"Policy {policy_id} not found")
        return policy

    async def list_policies(self, category: Optional[str] = None, is_active: Optional[bool] = None) -> list[Policy]:
        query = select(Policy)
        if category:
            query = query.where(Policy.category == category)
        if is_active is not None:
            query = query.where(Policy.is_active == is_active)
        result = await self.db.execute(
            query.order_by(Policy.category.asc(), Policy.created_at.desc(), Policy.id.desc())
        )
        return list(result.scalars().all())

    async def active(self, category: str) -> Policy:
        now = utcnow()
        policy = await self.db.scalar(
            select(Policy)
            .where(
                Policy.category == category,
                Policy.is_active.is_(True),
                or_(Policy.effective_date.is_(None), Policy.effective_date <= now),
                or_(Policy.expires_at.is_(None), Policy.expires_at >= now),
            )
            .order_by(Policy.created_at.desc(), Policy.id.desc())
            .limit(1)
        )
        if not policy:
            raise NotFound(f"No active policy for category '{category}'")
        return policy

    async def create(self, data: PolicyCreate, created_by: Optional[int] = None) -> Policy:
        policy = Policy(**data.model_dump(), is_active=True, created_by=created_by)
        self.db.add(policy)
        await self.db.commit()
        await self.db.refresh(policy)

        logger.info("policy_created", policy_id=policy.id, category=policy.category)
        await self.bus.emit_async(
            Topic.POLICY_CREATED,
            {"policyId": policy.id, "category": policy.category, "module": MODULE},
        )
        return policy

    async def update(self, policy_id: int, changes: PolicyUpdate) -> Policy:
        policy = await self.get(policy_id)
        updates = changes.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationError("No valid fields to update")
        for field, value in updates.items():
            setattr(policy, field, value)
        await self.db.commit()
        await self.db.refresh(policy)
        return policy

    async def activate(self, policy_id: int) -> Policy:
        policy = await self._set_active(policy_id, True)
        await self.bus.emit_async(
            Topic.POLICY_ACTIVATED,
            {"policyId": policy.id, "category": policy.category, "module": MODULE},
        )
        return policy

    async def deactivate(self, policy_id: int) -> Policy:
        return await self._set_active(policy_id, False)

    async def delete(self, policy_id: int) -> None:
        policy = await self.get(policy_id)
        await self.db.delete(policy)
        await self.db.commit()
        logger.info("policy_deleted", policy_id=policy_id)

    async def _set_active(self, policy_id: int, active: bool) -> Policy:
        policy = await self.get(policy_id)
        policy.is_active = active
        await self.db.commit()
        await self.db.refresh(policy)
        logger.info("policy_active_changed", policy_id=policy_id, active=active)
        return policy
