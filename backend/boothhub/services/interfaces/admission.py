"""
Per-booth admission gate in front of the reserve path.
"""

from abc import ABC, abstractmethod


class AdmissionStrategy(ABC):
    """
    Decides whether a reserve attempt may go on to the database.

    The gate is advisory: turning an attempt away early saves a round trip
    under a stampede, but the keyed lock and the conditional booth UPDATE
    still decide who gets the booth.

    Implementations:
    - OptimisticAdmission: admits everything
    - RedisAdmission: SET NX gate per booth, shared across processes
    """

    @abstractmethod
    async def admit(self, booth_id: int) -> bool:
        """False means another attempt on this booth is already in flight."""

    @abstractmethod
    async def release(self, booth_id: int) -> None:
        """Called once the attempt finishes, whatever its outcome."""
