"""
User Routes

Self-service account endpoints for the authenticated user.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from messenger.config.logging_config import get_logger
from messenger.database.models import User
from messenger.dependencies.auth import get_current_user
from messenger.services.user_deletion import UserDeletionError, get_user_deletion_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_account(
    user: Annotated[User, Depends(get_current_user)],
):
    """
    Permanently delete the current user's account and all their data.

    Returns:
        204 No Content on success

    Raises:
        500: The deletion was aborted (nothing was removed)
    """
    try:
        report = await get_user_deletion_service().delete_user(user.id)
    except UserDeletionError as e:
        logger.error(f"❌ Account deletion failed for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete account",
        )

    logger.warning(
        f"🗑️ User {user.username} (ID: {user.id}) deleted their account "
        f"({len(report.warnings)} warning(s))"
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
