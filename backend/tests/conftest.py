"""
Pytest fixtures for test database, client, payment processor and authentication.

Every test gets freshly created tables. Each HTTP request gets its own
session, as in production, so concurrent requests really race.
"""

import hashlib
import hmac
import json
import os
import tempfile
import time
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional

# Settings are read once at import; point them at the test setup first
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'boothhub_test.db')}",
)
WEBHOOK_SECRET = "whsec_test_secret"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["REDIS_ENABLED"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["RESERVATION_SWEEP_INTERVAL_SECONDS"] = "0"

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from boothhub.main import app, container
from boothhub.core.exceptions import PaymentProcessorError
from boothhub.core.security import hash_password
from boothhub.core.utils import utcnow
from boothhub.db.base import Base
from boothhub.db.session import get_db
from boothhub.infrastructure.stripe_processor import StripePaymentProcessor
from boothhub.models.booth import Booth
from boothhub.models.event import Event
from boothhub.models.user import User, UserRole
from boothhub.services.auth_service import issue_token
from boothhub.services.interfaces.payment_processor import ProcessorIntent

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

PASSWORD = "testpassword123"


class FakeProcessor(StripePaymentProcessor):
    """
    In-memory processor. Network calls are replaced; webhook signature
    verification is the real Stripe check against WEBHOOK_SECRET.
    """

    def __init__(self):
        super().__init__(api_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
        self.intents: dict[str, ProcessorIntent] = {}
        self.refunds: list[str] = []
        self.fail_create = False

    async def create_customer(self, email, name, metadata):
        return f"cus_{uuid.uuid4().hex[:12]}"

    async def create_intent(self, amount, currency, metadata, customer_id=None):
        if self.fail_create:
            raise PaymentProcessorError("Payment intent creation failed: card network down")
        intent_id = f"pi_{uuid.uuid4().hex[:16]}"
        intent = ProcessorIntent(
            id=intent_id,
            status="requires_payment_method",
            client_secret=f"{intent_id}_secret",
            amount=amount,
            currency=currency.lower(),
        )
        self.intents[intent_id] = intent
        return intent

    async def retrieve_intent(self, intent_id):
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentProcessorError(f"Payment intent lookup failed: no such intent {intent_id}")
        return intent

    async def refund(self, intent_id):
        self.refunds.append(intent_id)
        return f"re_{uuid.uuid4().hex[:12]}"

    def succeed(self, intent_id: str) -> None:
        self.intents[intent_id].status = "succeeded"


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Stripe-Signature header value for a payload."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def webhook_body(event_type: str, intent_id: str, status: str, **extra) -> str:
    obj = {"id": intent_id, "object": "payment_intent", "status": status, "amount": 50000, "currency": "usd"}
    obj.update(extra)
    return json.dumps({"id": f"evt_{uuid.uuid4().hex[:12]}", "type": event_type, "data": {"object": obj}})


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create tables before the test and drop them after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting data directly."""
    async with TestSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest_asyncio.fixture(scope="function")
async def client(db_engine, processor: FakeProcessor) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh session per request and the fake processor."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    container.session_factory = TestSessionLocal
    container.processor = processor
    container.bus.clear_history()
    saved_flags = {flag.name: flag.enabled for flag in container.flags.all()}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await container.bus.drain()
    for name, enabled in saved_flags.items():
        if container.flags.enabled(name) != enabled:
            if enabled:
                container.flags.enable(name)
            else:
                container.flags.disable(name)
    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str, role: str = UserRole.EXHIBITOR.value, **fields) -> User:
    user = User(
        email=email,
        hashed_password=hash_password(PASSWORD),
        first_name=fields.pop("first_name", "Test"),
        last_name=fields.pop("last_name", "User"),
        company_name=fields.pop("company_name", "Test Co"),
        role=role,
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest_asyncio.fixture
async def exhibitor(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "exhibitor@example.com", first_name="Erin", last_name="Exhibitor")


@pytest_asyncio.fixture
async def other_exhibitor(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "rival@example.com", first_name="Riley", last_name="Rival")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", role=UserRole.ADMIN.value, first_name="Ada")


@pytest_asyncio.fixture
async def auth_headers(exhibitor: User) -> dict:
    return _headers(exhibitor)


@pytest_asyncio.fixture
async def other_headers(other_exhibitor: User) -> dict:
    return _headers(other_exhibitor)


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return _headers(admin)


@pytest_asyncio.fixture
async def make_exhibitors(db_session: AsyncSession):
    """Factory: n distinct exhibitors with their auth headers."""

    async def make(n: int) -> list[dict]:
        users = [await _make_user(db_session, f"bulk{i}@example.com") for i in range(n)]
        return [_headers(user) for user in users]

    return make


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, admin: User) -> Event:
    start = utcnow() + timedelta(days=30)
    event = Event(
        name="Trade Expo",
        description="A test exhibition",
        start_date=start,
        end_date=start + timedelta(days=3),
        venue="Hall A",
        status="published",
        created_by=admin.id,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def booth(db_session: AsyncSession, test_event: Event) -> Booth:
    """A $500 booth, available."""
    booth = Booth(
        event_id=test_event.id,
        booth_number="A01",
        size="medium",
        price=Decimal("500.00"),
        status="available",
        location_x=1,
        location_y=1,
        width=2,
        height=2,
    )
    db_session.add(booth)
    await db_session.commit()
    await db_session.refresh(booth)
    return booth


@pytest_asyncio.fixture
async def booths(db_session: AsyncSession, test_event: Event) -> list[Booth]:
    """Five booths of mixed size and price; B05 is off sale."""
    specs = [
        ("B01", "small", "250.00", "available"),
        ("B02", "medium", "500.00", "available"),
        ("B03", "large", "900.00", "available"),
        ("B04", "xlarge", "1500.00", "available"),
        ("B05", "medium", "500.00", "unavailable"),
    ]
    created = []
    for index, (number, size, price, status) in enumerate(specs):
        item = Booth(
            event_id=test_event.id,
            booth_number=number,
            size=size,
            price=Decimal(price),
            status=status,
            location_x=index * 2,
            location_y=4,
        )
        db_session.add(item)
        created.append(item)
    await db_session.commit()
    for item in created:
        await db_session.refresh(item)
    return created
