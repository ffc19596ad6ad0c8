"""
Tests for the in-process event bus.
"""

import asyncio

import pytest

from boothhub.core.event_bus import EventBus, Topic


@pytest.mark.asyncio
async def test_handlers_run_in_registration_order():
    bus = EventBus()
    calls = []

    async def first(payload):
        await asyncio.sleep(0.01)
        calls.append(("first", payload["boothId"]))

    def second(payload):
        calls.append(("second", payload["boothId"]))

    bus.subscribe(Topic.BOOTH_RESERVED, first)
    bus.subscribe(Topic.BOOTH_RESERVED, second)
    await bus.emit_async(Topic.BOOTH_RESERVED, {"boothId": 7})

    assert calls == [("first", 7), ("second", 7)]


@pytest.mark.asyncio
async def test_payload_is_enriched():
    bus = EventBus()
    seen = []
    bus.subscribe("custom.topic", seen.append)

    await bus.emit_async("custom.topic", {"value": 1})

    assert seen[0]["value"] == 1
    assert seen[0]["module"] == "unknown"
    assert "timestamp" in seen[0]


@pytest.mark.asyncio
async def test_failing_handler_is_isolated():
    """A handler that raises never reaches the publisher or stops the others."""
    bus = EventBus()
    calls = []

    async def broken(payload):
        raise RuntimeError("boom")

    def sync_broken(payload):
        raise ValueError("bad")

    bus.subscribe(Topic.PAYMENT_COMPLETED, broken)
    bus.subscribe(Topic.PAYMENT_COMPLETED, sync_broken)
    bus.subscribe(Topic.PAYMENT_COMPLETED, lambda payload: calls.append("ok"))

    await bus.emit_async(Topic.PAYMENT_COMPLETED, {"transactionId": 1})
    assert calls == ["ok"]

    assert bus.emit(Topic.PAYMENT_COMPLETED, {"transactionId": 2}) is True
    await bus.drain()
    assert calls == ["ok", "ok"]


@pytest.mark.asyncio
async def test_emit_schedules_coroutines():
    bus = EventBus()
    done = asyncio.Event()

    async def handler(payload):
        done.set()

    bus.subscribe(Topic.BOOTH_SELECTED, handler)
    assert bus.emit(Topic.BOOTH_SELECTED, {"boothId": 1}) is True
    assert not done.is_set()

    await bus.drain()
    assert done.is_set()


def test_emit_without_handlers_returns_false():
    bus = EventBus()
    assert bus.emit("nobody.listens") is False
    assert bus.history("nobody.listens")[0]["event"] == "nobody.listens"


@pytest.mark.asyncio
async def test_once_fires_a_single_time():
    bus = EventBus()
    calls = []
    bus.once(Topic.INVOICE_GENERATED, lambda payload: calls.append(payload["invoiceId"]))

    await bus.emit_async(Topic.INVOICE_GENERATED, {"invoiceId": 1})
    await bus.emit_async(Topic.INVOICE_GENERATED, {"invoiceId": 2})

    assert calls == [1]
    assert bus.handlers(Topic.INVOICE_GENERATED) == []


@pytest.mark.asyncio
async def test_unsubscribe():
    bus = EventBus()
    calls = []
    unsubscribe = bus.subscribe(Topic.COST_ADDED, lambda payload: calls.append(1))
    unsubscribe()

    await bus.emit_async(Topic.COST_ADDED, {})
    assert calls == []
    assert "cost.added" not in bus.topics()


@pytest.mark.asyncio
async def test_history_is_capped_and_newest_first():
    bus = EventBus(history_size=3)
    for i in range(5):
        await bus.emit_async(Topic.METRIC_RECORDED, {"n": i})

    history = bus.history(Topic.METRIC_RECORDED)
    assert [entry["n"] for entry in history] == [4, 3, 2]

    bus.clear_history(Topic.METRIC_RECORDED)
    assert bus.history(Topic.METRIC_RECORDED) == []


@pytest.mark.asyncio
async def test_merged_history_covers_all_topics():
    bus = EventBus()
    await bus.emit_async(Topic.POLICY_CREATED, {"policyId": 1})
    await bus.emit_async(Topic.PROPOSAL_CREATED, {"proposalId": 2})

    events = {entry["event"] for entry in bus.history()}
    assert events == {"policy.created", "proposal.created"}
