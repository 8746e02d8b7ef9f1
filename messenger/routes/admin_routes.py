"""
Admin Routes

Admin-only endpoints for user management.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select

from messenger.config.logging_config import get_logger
from messenger.database.models import User
from messenger.database.session import get_db_session
from messenger.dependencies.auth import require_admin
from messenger.services.user_deletion import UserDeletionError, get_user_deletion_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


# =============================================================================
# Request/Response Models
# =============================================================================


class UserDeletedResponse(BaseModel):
    """Response model for an administrative deletion."""
    message: str
    deleted_group_ids: list[int] = []
    retained_group_ids: list[int] = []
    warnings: list[str] = []


# =============================================================================
# Admin User Endpoints
# =============================================================================


@router.delete("/users/{user_id}", response_model=UserDeletedResponse)
async def delete_user(
    user_id: int,
    admin: Annotated[User, Depends(require_admin)],
):
    """
    Delete a user and all their data.

    Admin-only endpoint. Cannot delete yourself (use DELETE /api/users/me).
    """
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account via admin endpoint"
        )

    async with get_db_session() as db:
        result = await db.execute(
            select(User.username).where(User.id == user_id)
        )
        username = result.scalar_one_or_none()

    if username is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    try:
        report = await get_user_deletion_service().delete_user(user_id)
    except UserDeletionError as e:
        logger.error(f"❌ Admin {admin.username} failed to delete user {username}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete user"
        )

    logger.warning(f"🗑️ Admin {admin.username} deleted user {username}")

    return UserDeletedResponse(
        message=f"User {username} deleted successfully",
        deleted_group_ids=report.deleted_group_ids,
        retained_group_ids=report.retained_group_ids,
        warnings=report.warning_messages,
    )
