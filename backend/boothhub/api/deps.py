"""
Shared FastAPI dependencies: container access, authentication, role and
feature gates, and per-request services.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.container import ServiceContainer
from boothhub.core.exceptions import FeatureDisabled, Forbidden, Unauthorized
from boothhub.core.security import decode_token
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.services.booth_store import BoothStore
from boothhub.services.invoice_service import InvoiceService
from boothhub.services.payment_coordinator import PaymentCoordinator
from boothhub.services.reservation_engine import ReservationEngine

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a live, active user on every request."""
    if credentials is None:
        raise Unauthorized("Authentication required")

    payload = decode_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthorized("Invalid token")

    user = await db.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user


def require_feature(name: str):
    """Dependency factory: 503 FEATURE_DISABLED unless the flag is on."""

    def check(container: ServiceContainer = Depends(get_container)) -> None:
        if not container.flags.enabled(name):
            raise FeatureDisabled(f"Feature '{name}' is disabled")

    return check


def get_booth_store(db: AsyncSession = Depends(get_db)) -> BoothStore:
    return BoothStore(db)


def get_reservation_engine(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> ReservationEngine:
    return container.reservations(db)


def get_payment_coordinator(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> PaymentCoordinator:
    return container.payments(db)


def get_invoice_service(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> InvoiceService:
    return container.invoices(db)
