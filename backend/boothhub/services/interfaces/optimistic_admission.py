"""
Admit-everything gate; the database alone arbitrates.
"""

from boothhub.services.interfaces.admission import AdmissionStrategy


class OptimisticAdmission(AdmissionStrategy):
    """Default for single-process deployments and tests."""

    async def admit(self, booth_id: int) -> bool:
        return True

    async def release(self, booth_id: int) -> None:
        return None
