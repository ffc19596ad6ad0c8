"""
Authentication service handling user registration, login and account status.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.exceptions import Conflict, Forbidden, NotFound, Unauthorized
from boothhub.core.logging import get_logger
from boothhub.core.security import hash_password, verify_password, create_access_token
from boothhub.models.user import User, UserRole
from boothhub.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "email": user.email, "role": user.role})


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new exhibitor with hashed password.
    Raises Conflict if the email already exists.
    """
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise Conflict("Email already registered")

    user = User(
        email=email,
        hashed_password=hash_password(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        company_name=user_data.company_name,
        phone=user_data.phone,
        role=UserRole.EXHIBITOR.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[User, str]:
    """
    Authenticate user and return it with a JWT access token.
    Raises Unauthorized if credentials are invalid, Forbidden if deactivated.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise Unauthorized("Invalid email or password")

    if not user.is_active:
        raise Forbidden("Account is deactivated")

    logger.info("user_logged_in", user_id=user.id)
    return user, issue_token(user)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def set_user_active(db: AsyncSession, user_id: int, is_active: bool) -> User:
    user = await get_user(db, user_id)
    user.is_active = is_active
    await db.commit()
    await db.refresh(user)
    logger.info("user_status_changed", user_id=user.id, is_active=is_active)
    return user
