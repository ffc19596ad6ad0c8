"""
Tests for the policies module. The module ships disabled, so the service is
exercised directly and the HTTP surface is checked for its 503.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from pydantic import ValidationError as SchemaValidationError

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import NotFound, ValidationError
from boothhub.core.utils import utcnow
from boothhub.modules.policies.schemas import PolicyCreate, PolicyUpdate
from boothhub.modules.policies.service import PolicyService


def _policy(category: str = "cancellation", **fields) -> PolicyCreate:
    return PolicyCreate(title="Cancellation terms", content="Full refund up to 30 days out.",
                        category=category, **fields)


@pytest.mark.asyncio
async def test_create_and_read_active_policy(db_session):
    bus = EventBus()
    policies = PolicyService(db_session, bus)

    created = await policies.create(_policy())
    assert created.is_active is True
    assert created.version == "1.0"
    assert bus.history(Topic.POLICY_CREATED)[0]["policyId"] == created.id

    active = await policies.active("cancellation")
    assert active.id == created.id


@pytest.mark.asyncio
async def test_newest_active_policy_wins(db_session):
    policies = PolicyService(db_session, EventBus())
    await policies.create(_policy(version="1.0"))
    newer = await policies.create(_policy(version="2.0"))

    assert (await policies.active("cancellation")).id == newer.id


@pytest.mark.asyncio
async def test_policy_outside_its_window_is_not_active(db_session):
    policies = PolicyService(db_session, EventBus())
    now = utcnow()
    await policies.create(_policy(effective_date=now + timedelta(days=1)))
    await policies.create(_policy(effective_date=now - timedelta(days=10), expires_at=now - timedelta(days=1)))

    with pytest.raises(NotFound):
        await policies.active("cancellation")


def test_window_must_be_ordered():
    now = utcnow()
    with pytest.raises(SchemaValidationError):
        _policy(effective_date=now, expires_at=now - timedelta(hours=1))


@pytest.mark.asyncio
async def test_deactivate_and_activate(db_session):
    bus = EventBus()
    policies = PolicyService(db_session, bus)
    policy = await policies.create(_policy())

    await policies.deactivate(policy.id)
    with pytest.raises(NotFound):
        await policies.active("cancellation")
    assert [p.id for p in await policies.list_policies(is_active=False)] == [policy.id]

    await policies.activate(policy.id)
    assert (await policies.active("cancellation")).id == policy.id
    assert bus.history(Topic.POLICY_ACTIVATED)[0]["policyId"] == policy.id


@pytest.mark.asyncio
async def test_update_and_delete(db_session):
    policies = PolicyService(db_session, EventBus())
    policy = await policies.create(_policy())

    updated = await policies.update(policy.id, PolicyUpdate(version="1.1"))
    assert updated.version == "1.1"

    with pytest.raises(ValidationError):
        await policies.update(policy.id, PolicyUpdate())

    await policies.delete(policy.id)
    with pytest.raises(NotFound):
        await policies.get(policy.id)


@pytest.mark.asyncio
async def test_list_by_category(db_session):
    policies = PolicyService(db_session, EventBus())
    await policies.create(_policy())
    await policies.create(_policy(category="general"))

    assert [p.category for p in await policies.list_policies()] == ["cancellation", "general"]
    assert [p.category for p in await policies.list_policies(category="general")] == ["general"]


@pytest.mark.asyncio
async def test_policy_routes_disabled_by_default(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/policies",
        json={"title": "Terms", "content": "...", "category": "general"},
        headers=admin_headers,
    )
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "MODULE_DISABLED"
