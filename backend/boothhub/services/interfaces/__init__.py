"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .admission import AdmissionStrategy
from .optimistic_admission import OptimisticAdmission
from .notifier import Notifier
from .payment_processor import PaymentProcessor, ProcessorEvent, ProcessorIntent

__all__ = [
    'AdmissionStrategy', 'OptimisticAdmission', 'Notifier',
    'PaymentProcessor', 'ProcessorEvent', 'ProcessorIntent',
]
