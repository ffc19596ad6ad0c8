"""
Outbound notification interface (confirmation e-mails and the like).
Callers treat every method as best-effort.
"""

from abc import ABC, abstractmethod
from typing import Any


class Notifier(ABC):
    @abstractmethod
    async def reservation_created(self, recipient: str, context: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def reservation_cancelled(self, recipient: str, context: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def payment_confirmed(self, recipient: str, context: dict[str, Any]) -> None:
        pass
