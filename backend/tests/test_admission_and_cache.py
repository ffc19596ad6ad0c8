"""
Tests for the Redis-backed admission gate, the listing cache and request
correlation, using an in-memory stand-in for the Redis client.
"""

import pytest
from httpx import AsyncClient

from boothhub.main import container
from boothhub.services import admission_service, cache_service
from boothhub.services.admission_service import RedisAdmission
from boothhub.services.cache_service import ListingCache
from boothhub.services.interfaces.admission import AdmissionStrategy


class MemoryRedis:
    """The handful of redis.asyncio calls the gate and the cache make."""

    def __init__(self):
        self.data = {}
        self.fail = False

    async def set(self, key, value, nx=False, px=None):
        if self.fail:
            raise ConnectionError("redis down")
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    async def scan_iter(self, match, count=None):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key


@pytest.fixture
def memory_redis(monkeypatch):
    fake = MemoryRedis()

    async def get_redis():
        return fake

    monkeypatch.setattr(admission_service, "get_redis", get_redis)
    monkeypatch.setattr(cache_service, "get_redis", get_redis)
    return fake


class RefuseAll(AdmissionStrategy):
    def __init__(self):
        self.released = []

    async def admit(self, booth_id: int) -> bool:
        return False

    async def release(self, booth_id: int) -> None:
        self.released.append(booth_id)


@pytest.mark.asyncio
async def test_gate_admits_one_attempt_per_booth(memory_redis):
    gate = RedisAdmission()

    assert await gate.admit(1) is True
    assert await gate.admit(1) is False
    assert await gate.admit(2) is True

    await gate.release(1)
    assert await gate.admit(1) is True


@pytest.mark.asyncio
async def test_gate_fails_open(memory_redis):
    memory_redis.fail = True
    assert await RedisAdmission().admit(1) is True


@pytest.mark.asyncio
async def test_gate_without_redis_admits():
    # REDIS_ENABLED is off under test
    assert await RedisAdmission().admit(1) is True


@pytest.mark.asyncio
async def test_refused_admission_is_booth_reserved(client: AsyncClient, auth_headers, booth, monkeypatch):
    gate = RefuseAll()
    monkeypatch.setattr(container, "admission", gate)

    response = await client.post(
        "/api/v1/booths/reserve",
        json={"boothId": booth.id, "eventId": booth.event_id},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BOOTH_RESERVED"
    assert gate.released == []
    detail = await client.get(f"/api/v1/booths/{booth.id}")
    assert detail.json()["data"]["status"] == "available"


def test_cache_key_is_order_independent():
    cache = ListingCache("things")
    assert cache.key(page=1, status=None) == cache.key(status=None, page=1) == "things:page=1&status=any"


@pytest.mark.asyncio
async def test_listing_cache_round_trip_and_invalidate(memory_redis):
    cache = ListingCache("events:list", ttl=60)
    other = ListingCache("floorplans")

    assert await cache.get(page=1) is None
    await cache.set({"total": 3}, page=1)
    await cache.set({"total": 3}, page=2)
    await other.set({"plans": []}, event=1)
    assert await cache.get(page=1) == {"total": 3}

    assert await cache.invalidate() == 2
    assert await cache.get(page=2) is None
    assert await other.get(event=1) == {"plans": []}


@pytest.mark.asyncio
async def test_cache_disabled_without_redis():
    cache = ListingCache("events:list")
    await cache.set({"total": 1}, page=1)
    assert await cache.get(page=1) is None
    assert await cache.invalidate() == 0


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"
    assert response.headers["X-Response-Time"].endswith("ms")

    generated = await client.get("/health")
    assert generated.headers["X-Request-ID"]
