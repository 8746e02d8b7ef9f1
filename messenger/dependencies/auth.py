"""
Authentication Dependencies

FastAPI dependencies for JWT-based authentication and admin access control.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select

from messenger.config.logging_config import get_logger
from messenger.database.models import User
from messenger.database.session import get_db_session
from messenger.services.auth_service import get_auth_service

logger = get_logger(__name__)

# HTTP Bearer token extractor
security = HTTPBearer(auto_error=True)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> User:
    """
    Dependency to get the current authenticated user.

    Extracts JWT from Authorization header, validates it, and returns the user.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
        HTTPException 401: If user not found

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"message": f"Hello {user.username}!"}
    """
    payload = get_auth_service().decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload") from None

    async with get_db_session() as db:
        result = await db.execute(
            select(User).where(User.id == user_id)
        )
        user = result.scalar_one_or_none()

    if not user:
        raise _unauthorized("User not found")

    return user


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Dependency to require the admin flag.

    Chains with get_current_user to first authenticate, then check the flag.

    Raises:
        HTTPException 403: If user is not an admin
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
