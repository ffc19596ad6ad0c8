"""
Admission control service for high-contention booths.
Implements AdmissionStrategy interface using Redis.

Each reserve attempt takes a short-lived per-booth gate (SET NX PX). While it
is held, competing attempts for the same booth are turned away before they
reach the database.

Circuit Breaker Pattern:
  On Redis failure, the system "fails open" (admits all requests).
  Database remains authoritative - Redis is advisory only.
"""

from boothhub.core.logging import get_logger
from boothhub.core.metrics import redis_connection_errors, redis_circuit_breaker_open
from boothhub.infrastructure.redis_client import get_redis
from boothhub.services.interfaces.admission import AdmissionStrategy

logger = get_logger(__name__)

GATE_TTL_MS = 5000


def _gate_key(booth_id: int) -> str:
    return f"admission:booth:{booth_id}"


class RedisAdmission(AdmissionStrategy):
    """
    Redis-based admission control.

    Use when:
    - Many exhibitors race for the same premium booths at sale opening
    - Need to protect database from overload
    """

    def __init__(self, ttl_ms: int = GATE_TTL_MS):
        self.ttl_ms = ttl_ms

    async def admit(self, booth_id: int) -> bool:
        client = await get_redis()
        if client is None:
            return True
        try:
            acquired = await client.set(_gate_key(booth_id), "1", nx=True, px=self.ttl_ms)
            redis_circuit_breaker_open.set(0)
            return bool(acquired)
        except Exception as e:
            # Circuit breaker: On Redis failure, fail open (admit all)
            redis_connection_errors.inc()
            redis_circuit_breaker_open.set(1)
            logger.warning("admission_gate_unavailable", booth_id=booth_id, error=str(e))
            return True

    async def release(self, booth_id: int):
        client = await get_redis()
        if client is None:
            return
        try:
            await client.delete(_gate_key(booth_id))
        except Exception as e:
            # Gate expires on its own via PX
            logger.warning("admission_release_failed", booth_id=booth_id, error=str(e))
