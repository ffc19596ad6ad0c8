"""
Service container: the process-wide wiring object.

Holds the long-lived collaborators (settings, flags, bus, session factory,
payment processor, notifier, admission strategy, keyed locks, broadcaster)
and builds the per-session services handed to request handlers and module
event handlers. Stored on `app.state.container`; tests swap collaborators
on it instead of patching modules.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boothhub.core.config import Settings, get_settings
from boothhub.core.event_bus import EventBus
from boothhub.core.feature_flags import FeatureFlags
from boothhub.core.utils import KeyedLocks
from boothhub.db.session import AsyncSessionLocal
from boothhub.realtime.broadcaster import Broadcaster
from boothhub.services.interfaces.admission import AdmissionStrategy
from boothhub.services.interfaces.notifier import Notifier
from boothhub.services.interfaces.payment_processor import PaymentProcessor
from boothhub.services.invoice_service import InvoiceService
from boothhub.services.notification_service import LoggingNotifier
from boothhub.services.payment_coordinator import PaymentCoordinator
from boothhub.services.reservation_engine import ReservationEngine
from boothhub.services.strategy_factory import get_admission_strategy, get_payment_processor


class ServiceContainer:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[async_sessionmaker] = None,
        processor: Optional[PaymentProcessor] = None,
        notifier: Optional[Notifier] = None,
        admission: Optional[AdmissionStrategy] = None,
        flags: Optional[FeatureFlags] = None,
        bus: Optional[EventBus] = None,
    ):
        self.settings = settings or get_settings()
        self.flags = flags or FeatureFlags(
            overrides=self.settings.FEATURE_FLAGS,
            config_file=self.settings.FEATURE_FLAGS_FILE,
        )
        self.bus = bus or EventBus(history_size=self.settings.EVENT_BUS_HISTORY_SIZE)
        self.session_factory = session_factory or AsyncSessionLocal
        self.processor = processor or get_payment_processor(self.settings)
        self.notifier = notifier or LoggingNotifier()
        self.admission = admission or get_admission_strategy(self.settings)
        self.locks = KeyedLocks()
        self.broadcaster = Broadcaster(send_timeout=self.settings.WS_SEND_TIMEOUT_SECONDS)
        self.registry = None
        # Module-owned runtime objects (background tasks etc.), keyed by module
        self.state: dict[str, Any] = {}

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session for work outside a request (event handlers, background tasks)."""
        async with self.session_factory() as db:
            yield db

    def reservations(self, db: AsyncSession) -> ReservationEngine:
        return ReservationEngine(
            db,
            self.bus,
            admission=self.admission,
            notifier=self.notifier,
            locks=self.locks,
            hold_minutes=self.settings.RESERVATION_HOLD_MINUTES,
        )

    def invoices(self, db: AsyncSession) -> InvoiceService:
        return InvoiceService(db, self.bus, locks=self.locks)

    def payments(self, db: AsyncSession) -> PaymentCoordinator:
        return PaymentCoordinator(
            db,
            self.bus,
            self.processor,
            self.reservations(db),
            self.invoices(db),
            notifier=self.notifier,
        )
