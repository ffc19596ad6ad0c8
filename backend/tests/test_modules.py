"""
Tests for the module registry, feature flags and the system endpoints.
"""

import json

import pytest
from fastapi import APIRouter, FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select

from boothhub.api.exception_handlers import register_exception_handlers
from boothhub.core.event_bus import EventBus
from boothhub.core.feature_flags import FeatureFlag, FeatureFlags
from boothhub.core.module_registry import ModuleDescriptor, ModuleRegistry
from boothhub.main import container
from boothhub.models.booth import Booth
from boothhub.models.reservation import Reservation


class StubContainer:
    def __init__(self, flags: FeatureFlags):
        self.flags = flags
        self.bus = EventBus()
        self.calls = []


def _ping_router() -> APIRouter:
    router = APIRouter()

    @router.get("/ping")
    async def ping():
        return {"pong": True}

    return router


def _app(router: APIRouter) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)
    return app


def test_flag_defaults():
    flags = FeatureFlags()
    assert flags.enabled("sales")
    assert flags.enabled("payments")
    assert not flags.enabled("policies")
    assert not flags.enabled("gpsTracking")
    assert not flags.enabled("no-such-flag")
    assert {f.name for f in flags.module_flags("sales")} == {"sales", "svgFloorPlan"}


def test_flag_overrides_and_toggles():
    flags = FeatureFlags(overrides={"policies": True, "brandNew": True})
    assert flags.enabled("policies")
    assert flags.enabled("brandNew")

    flags.disable("policies")
    assert not flags.enabled("policies")
    assert flags.disable("unknown") is None

    flags.register(FeatureFlag("beta", True, "Beta feature", "sales"))
    assert flags.get("beta").module == "sales"


def test_flags_persist_to_file(tmp_path):
    path = tmp_path / "flags.json"
    flags = FeatureFlags(config_file=str(path))
    flags.enable("gpsTracking")

    saved = {entry["name"]: entry["enabled"] for entry in json.loads(path.read_text())}
    assert saved["gpsTracking"] is True

    reloaded = FeatureFlags(config_file=str(path))
    assert reloaded.enabled("gpsTracking")


def test_broken_flags_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "flags.json"
    path.write_text("{not json")
    flags = FeatureFlags(config_file=str(path))
    assert flags.enabled("sales")


@pytest.mark.asyncio
async def test_registry_loads_mounts_and_subscribes():
    flags = FeatureFlags(overrides={"alpha": True})
    stub = StubContainer(flags)
    seen = []
    descriptor = ModuleDescriptor(
        name="alpha",
        router_factory=_ping_router,
        event_handlers=lambda c: {"alpha.topic": seen.append},
    )
    router = APIRouter(prefix="/api/v1")
    registry = ModuleRegistry([descriptor], stub)
    registry.load(router)

    assert "alpha" in registry.loaded
    await stub.bus.emit_async("alpha.topic", {"x": 1})
    assert seen[0]["x"] == 1

    async with AsyncClient(transport=ASGITransport(app=_app(router)), base_url="http://test") as ac:
        response = await ac.get("/api/v1/alpha/ping")
        assert response.json() == {"pong": True}

        # Switching the flag off takes effect on the next request
        flags.disable("alpha")
        response = await ac.get("/api/v1/alpha/ping")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "MODULE_DISABLED"


@pytest.mark.asyncio
async def test_registry_skips_disabled_module_and_dependents():
    flags = FeatureFlags(overrides={"base": False, "child": True})
    stub = StubContainer(flags)
    base = ModuleDescriptor(name="base", router_factory=_ping_router)
    child = ModuleDescriptor(name="child", dependencies=("base",), router_factory=_ping_router)
    router = APIRouter(prefix="/api/v1")
    registry = ModuleRegistry([base, child], stub)
    registry.load(router)

    assert registry.loaded == {}
    assert registry.skipped["base"] == "disabled by feature flag"
    assert registry.skipped["child"] == "requires 'base' which is disabled"

    async with AsyncClient(transport=ASGITransport(app=_app(router)), base_url="http://test") as ac:
        response = await ac.get("/api/v1/child/ping")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "MODULE_DISABLED"

    described = {m["name"]: m for m in registry.describe()}
    assert described["child"]["loaded"] is False
    assert described["child"]["skipReason"] == "requires 'base' which is disabled"


@pytest.mark.asyncio
async def test_hook_failures_do_not_abort_startup():
    flags = FeatureFlags(overrides={"first": True, "second": True})
    stub = StubContainer(flags)

    async def failing(c):
        raise RuntimeError("migration exploded")

    async def record_init(c):
        c.calls.append("second.initialize")

    async def record_shutdown(c):
        c.calls.append("second.shutdown")

    first = ModuleDescriptor(name="first", migrate=failing, initialize=failing, shutdown=failing)
    second = ModuleDescriptor(name="second", initialize=record_init, shutdown=record_shutdown)
    registry = ModuleRegistry([first, second], stub)
    registry.load(APIRouter())

    await registry.initialize()
    await registry.shutdown()

    assert stub.calls == ["second.initialize", "second.shutdown"]


@pytest.mark.asyncio
async def test_migrate_runs_once():
    flags = FeatureFlags(overrides={"gamma": True})
    stub = StubContainer(flags)

    async def migrate(c):
        c.calls.append("migrate")

    registry = ModuleRegistry([ModuleDescriptor(name="gamma", migrate=migrate)], stub)
    registry.load(APIRouter())
    await registry.initialize()
    await registry.initialize()

    assert stub.calls == ["migrate"]


@pytest.mark.asyncio
async def test_shutdown_unsubscribes_handlers():
    flags = FeatureFlags(overrides={"delta": True})
    stub = StubContainer(flags)
    descriptor = ModuleDescriptor(name="delta", event_handlers=lambda c: {"delta.topic": lambda p: None})
    registry = ModuleRegistry([descriptor], stub)
    registry.load(APIRouter())
    assert stub.bus.handlers("delta.topic")

    await registry.shutdown()
    assert stub.bus.handlers("delta.topic") == []


# Application wiring


@pytest.mark.asyncio
async def test_system_modules_listing(client: AsyncClient):
    response = await client.get("/api/v1/system/modules")
    modules = {m["name"]: m for m in response.json()["data"]}
    assert modules["sales"]["loaded"] is True
    assert modules["payments"]["dependencies"] == ["sales"]
    assert modules["policies"]["loaded"] is False


@pytest.mark.asyncio
async def test_disabled_policies_module_answers_503(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/policies/active/general")
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "MODULE_DISABLED"


@pytest.mark.asyncio
async def test_runtime_flag_toggle_disables_module(client: AsyncClient, admin_headers, auth_headers, booth):
    """Turning sales off blocks its routes immediately; turning it on restores them."""
    url = f"/api/v1/sales/booths/available?eventId={booth.event_id}"
    assert (await client.get(url)).status_code == 200

    forbidden = await client.put("/api/v1/system/flags/sales", json={"enabled": False}, headers=auth_headers)
    assert forbidden.status_code == 403

    off = await client.put("/api/v1/system/flags/sales", json={"enabled": False}, headers=admin_headers)
    assert off.status_code == 200
    assert off.json()["data"]["enabled"] is False
    assert (await client.get(url)).status_code == 503

    await client.put("/api/v1/system/flags/sales", json={"enabled": True}, headers=admin_headers)
    assert (await client.get(url)).status_code == 200


@pytest.mark.asyncio
async def test_disabled_sales_reserve_leaves_booth_alone(
    client: AsyncClient, db_session, admin_headers, auth_headers, booth
):
    await client.put("/api/v1/system/flags/sales", json={"enabled": False}, headers=admin_headers)

    response = await client.post(
        "/api/v1/sales/booths/reserve",
        json={"boothId": booth.id, "eventId": booth.event_id},
        headers=auth_headers,
    )

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "MODULE_DISABLED"
    assert await db_session.scalar(select(Booth.status).where(Booth.id == booth.id)) == "available"
    assert await db_session.scalar(select(func.count(Reservation.id))) == 0


@pytest.mark.asyncio
async def test_unknown_flag_cannot_be_disabled(client: AsyncClient, admin_headers):
    response = await client.put("/api/v1/system/flags/nope", json={"enabled": False}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_event_history_endpoint(client: AsyncClient, admin_headers, auth_headers, booth):
    await client.post(
        "/api/v1/booths/reserve",
        json={"boothId": booth.id, "eventId": booth.event_id},
        headers=auth_headers,
    )
    response = await client.get("/api/v1/system/events/history?topic=boothReserved", headers=admin_headers)
    history = response.json()["data"]
    assert history[0]["boothId"] == booth.id
    assert history[0]["module"] == "sales"


@pytest.mark.asyncio
async def test_health_reports_modules(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["cache"] == {"status": "disabled"}
    assert "sales" in body["modules"]
    assert container.flags.enabled("sales")
