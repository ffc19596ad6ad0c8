"""
User administration endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import require_admin
from boothhub.core.exceptions import ValidationError
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.schemas.common import ApiResponse, ok
from boothhub.schemas.user import UserResponse, UserStatusUpdate
from boothhub.services.auth_service import list_users, set_user_active

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=ApiResponse[list[UserResponse]])
async def list_users_endpoint(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return ok(await list_users(db))


@router.patch("/{user_id}/status", response_model=ApiResponse[UserResponse])
async def set_user_status(
    user_id: int,
    update: UserStatusUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate an account. Deactivated users fail authentication immediately."""
    if user_id == admin.id and not update.is_active:
        raise ValidationError("You cannot deactivate your own account")
    return ok(await set_user_active(db, user_id, update.is_active))
