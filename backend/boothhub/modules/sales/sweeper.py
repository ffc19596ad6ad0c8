"""
Background task that stamps lapsed holds 'expired' and frees their booths.

Correctness never depends on it: reads treat a lapsed hold as inactive on
their own. It keeps the tables tidy and publishes the release events.
"""

import asyncio
from typing import TYPE_CHECKING, Optional

from boothhub.core.logging import get_logger

if TYPE_CHECKING:
    from boothhub.core.container import ServiceContainer

logger = get_logger(__name__)


class ExpirySweeper:
    def __init__(self, container: "ServiceContainer", interval: float):
        self.container = container
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        async with self.container.session() as db:
            return await self.container.reservations(db).sweep_expired()

    async def _loop(self) -> None:
        while True:
            try:
                expired = await self.run_once()
                if expired:
                    logger.info("reservations_swept", expired=expired)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("reservation_sweep_failed", error=str(e), exc_info=e)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="reservation-sweeper")
        logger.info("reservation_sweeper_started", interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("reservation_sweeper_stopped")
