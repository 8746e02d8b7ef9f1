"""
Messenger Services Package

- auth_service: JWT access tokens
- user_deletion: user cascade-deletion engine
"""

from .auth_service import AuthService, get_auth_service
from .user_deletion import (
    UserDeletionError,
    UserDeletionService,
    UserNotFoundError,
    delete_user_cascade,
    get_user_deletion_service,
)

__all__ = [
    "AuthService",
    "get_auth_service",
    "UserDeletionError",
    "UserDeletionService",
    "UserNotFoundError",
    "delete_user_cascade",
    "get_user_deletion_service",
]
