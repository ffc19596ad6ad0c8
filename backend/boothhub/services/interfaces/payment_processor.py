"""
Payment processor interface.
The coordinator only talks to this; the Stripe adapter and test fakes implement it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ProcessorIntent:
    id: str
    status: str
    client_secret: Optional[str] = None
    amount: Optional[int] = None  # minor units
    currency: Optional[str] = None


@dataclass
class ProcessorEvent:
    id: str
    type: str
    intent_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)


class PaymentProcessor(ABC):
    """
    Every method raises PaymentProcessorError on processor/network failure,
    and parse_webhook raises WebhookSignatureError on a bad signature.
    """

    @abstractmethod
    async def create_customer(self, email: str, name: str, metadata: dict[str, str]) -> str:
        """Returns the processor's customer id."""

    @abstractmethod
    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        customer_id: Optional[str] = None,
    ) -> ProcessorIntent:
        pass

    @abstractmethod
    async def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        pass

    @abstractmethod
    async def refund(self, intent_id: str) -> str:
        """Returns the processor's refund id."""

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> ProcessorEvent:
        pass
