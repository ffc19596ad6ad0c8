"""
Authentication endpoints: register, login and the current user.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import get_current_user
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.schemas.common import ApiResponse, ok
from boothhub.schemas.user import Token, UserCreate, UserLogin, UserResponse
from boothhub.services.auth_service import authenticate_user, issue_token, register_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=ApiResponse[Token], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new exhibitor account and sign it in."""
    user = await register_user(db, user_data)
    return ok({"access_token": issue_token(user), "user": user}, message="Registration successful")


@router.post("/login", response_model=ApiResponse[Token])
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    user, token = await authenticate_user(db, login_data)
    return ok({"access_token": token, "user": user})


@router.get("/me", response_model=ApiResponse[UserResponse])
async def me(user: User = Depends(get_current_user)):
    return ok(user)
