"""
Tests for the costing module: costs, budgets and budget alerts.
"""

import pytest
from httpx import AsyncClient

from boothhub.main import container


async def _add_cost(client: AsyncClient, headers, event_id: int, amount, category: str = "catering", **extra):
    return await client.post(
        "/api/v1/costing/costs",
        json={"eventId": event_id, "category": category, "description": "Coffee", "amount": amount, **extra},
        headers=headers,
    )


async def _set_budget(client: AsyncClient, headers, event_id: int, allocated, category: str = "catering"):
    return await client.post(
        "/api/v1/costing/budget",
        json={"eventId": event_id, "category": category, "allocatedAmount": allocated},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_costing_is_admin_only(client: AsyncClient, auth_headers, test_event):
    response = await _add_cost(client, auth_headers, test_event.id, 10)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_add_and_read_cost(client: AsyncClient, admin_headers, test_event):
    response = await _add_cost(client, admin_headers, test_event.id, "120.50", vendor="Beans Co", date="2026-03-01")
    assert response.status_code == 201
    cost = response.json()["data"]
    assert cost["amount"] == 120.5
    assert cost["status"] == "pending"
    assert cost["date"] == "2026-03-01"
    assert cost["currency"] == "USD"

    fetched = await client.get(f"/api/v1/costing/costs/{cost['id']}", headers=admin_headers)
    assert fetched.json()["data"]["vendor"] == "Beans Co"

    assert container.bus.history("cost.added")[0]["costId"] == cost["id"]


@pytest.mark.asyncio
async def test_cost_for_unknown_event(client: AsyncClient, admin_headers):
    response = await _add_cost(client, admin_headers, 99999, 10)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_negative_cost_rejected(client: AsyncClient, admin_headers, test_event):
    response = await _add_cost(client, admin_headers, test_event.id, -5)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_budget_tracks_spending(client: AsyncClient, admin_headers, test_event):
    await _set_budget(client, admin_headers, test_event.id, 1000)
    await _add_cost(client, admin_headers, test_event.id, 300)
    await _add_cost(client, admin_headers, test_event.id, 200)

    budgets = await client.get(f"/api/v1/costing/budget/event/{test_event.id}", headers=admin_headers)
    budget = budgets.json()["data"][0]
    assert budget["allocatedAmount"] == 1000.0
    assert budget["spentAmount"] == 500.0


@pytest.mark.asyncio
async def test_budget_set_twice_updates_allocation(client: AsyncClient, admin_headers, test_event):
    first = await _set_budget(client, admin_headers, test_event.id, 1000)
    second = await _set_budget(client, admin_headers, test_event.id, 2500)
    assert second.json()["data"]["id"] == first.json()["data"]["id"]
    assert second.json()["data"]["allocatedAmount"] == 2500.0


@pytest.mark.asyncio
async def test_budget_warning_then_exceeded(client: AsyncClient, admin_headers, test_event):
    await _set_budget(client, admin_headers, test_event.id, 1000)

    await _add_cost(client, admin_headers, test_event.id, 950)
    warnings = container.bus.history("budget.warning")
    assert len(warnings) == 1
    assert warnings[0]["percentage"] == 95.0
    assert container.bus.history("budget.exceeded") == []

    await _add_cost(client, admin_headers, test_event.id, 100)
    exceeded = container.bus.history("budget.exceeded")
    assert len(exceeded) == 1
    assert exceeded[0]["overage"] == 50.0
    assert exceeded[0]["category"] == "catering"


@pytest.mark.asyncio
async def test_rejected_costs_do_not_count(client: AsyncClient, admin_headers, test_event):
    await _set_budget(client, admin_headers, test_event.id, 1000)
    cost = (await _add_cost(client, admin_headers, test_event.id, 400)).json()["data"]

    updated = await client.put(
        f"/api/v1/costing/costs/{cost['id']}",
        json={"status": "rejected"},
        headers=admin_headers,
    )
    assert updated.json()["data"]["status"] == "rejected"

    budgets = await client.get(f"/api/v1/costing/budget/event/{test_event.id}", headers=admin_headers)
    assert budgets.json()["data"][0]["spentAmount"] == 0.0


@pytest.mark.asyncio
async def test_empty_cost_update_rejected(client: AsyncClient, admin_headers, test_event):
    cost = (await _add_cost(client, admin_headers, test_event.id, 10)).json()["data"]
    response = await client.put(f"/api/v1/costing/costs/{cost['id']}", json={}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_moving_cost_between_categories(client: AsyncClient, admin_headers, test_event):
    await _set_budget(client, admin_headers, test_event.id, 1000, category="catering")
    await _set_budget(client, admin_headers, test_event.id, 1000, category="signage")
    cost = (await _add_cost(client, admin_headers, test_event.id, 250)).json()["data"]

    await client.put(f"/api/v1/costing/costs/{cost['id']}", json={"category": "signage"}, headers=admin_headers)

    budgets = await client.get(f"/api/v1/costing/budget/event/{test_event.id}", headers=admin_headers)
    spent = {b["category"]: b["spentAmount"] for b in budgets.json()["data"]}
    assert spent == {"catering": 0.0, "signage": 250.0}


@pytest.mark.asyncio
async def test_delete_cost_updates_budget(client: AsyncClient, admin_headers, test_event):
    await _set_budget(client, admin_headers, test_event.id, 1000)
    cost = (await _add_cost(client, admin_headers, test_event.id, 600)).json()["data"]

    deleted = await client.delete(f"/api/v1/costing/costs/{cost['id']}", headers=admin_headers)
    assert deleted.status_code == 200

    budgets = await client.get(f"/api/v1/costing/budget/event/{test_event.id}", headers=admin_headers)
    assert budgets.json()["data"][0]["spentAmount"] == 0.0
    missing = await client.get(f"/api/v1/costing/costs/{cost['id']}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_cost_summary(client: AsyncClient, admin_headers, test_event):
    await _set_budget(client, admin_headers, test_event.id, 1000)
    await _set_budget(client, admin_headers, test_event.id, 500, category="signage")
    await _add_cost(client, admin_headers, test_event.id, 300)
    await _add_cost(client, admin_headers, test_event.id, 100, category="signage")

    response = await client.get(f"/api/v1/costing/summary/{test_event.id}", headers=admin_headers)
    summary = response.json()["data"]
    assert summary["totalSpent"] == 400.0
    assert summary["totalBudget"] == 1500.0
    assert summary["remaining"] == 1100.0
    assert {row["category"] for row in summary["byCategory"]} == {"catering", "signage"}
    assert len(summary["budgets"]) == 2


@pytest.mark.asyncio
async def test_event_costs_filter(client: AsyncClient, admin_headers, test_event):
    await _add_cost(client, admin_headers, test_event.id, 10)
    await _add_cost(client, admin_headers, test_event.id, 20, category="signage")

    response = await client.get(
        f"/api/v1/costing/costs/event/{test_event.id}?category=signage", headers=admin_headers
    )
    assert [c["amount"] for c in response.json()["data"]] == [20.0]
