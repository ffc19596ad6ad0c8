"""
Strategy factory.
Chooses the admission control strategy and the payment processor from settings.
"""

from boothhub.core.config import Settings
from boothhub.infrastructure.stripe_processor import StripePaymentProcessor
from boothhub.services.admission_service import RedisAdmission
from boothhub.services.interfaces.admission import AdmissionStrategy
from boothhub.services.interfaces.optimistic_admission import OptimisticAdmission
from boothhub.services.interfaces.payment_processor import PaymentProcessor


def get_admission_strategy(settings: Settings) -> AdmissionStrategy:
    """
    Strategy selection via ADMISSION_STRATEGY:
    - optimistic (default): DB guard only
    - redis: per-booth fail-fast gate before the DB
    """
    if settings.ADMISSION_STRATEGY == "redis":
        return RedisAdmission()
    return OptimisticAdmission()


def get_payment_processor(settings: Settings) -> PaymentProcessor:
    return StripePaymentProcessor(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )
