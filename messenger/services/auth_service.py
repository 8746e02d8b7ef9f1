"""
Authentication Service

Issues and validates JWT access tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from messenger.config.auth import AuthSettings, get_auth_settings
from messenger.config.logging_config import get_logger

logger = get_logger(__name__)


class AuthService:
    """
    JWT access token management.

    Usage:
        auth_service = AuthService()

        access_token = auth_service.create_access_token(user_id=42)

        payload = auth_service.decode_token(access_token)
        if payload and payload.get("type") == "access":
            print(f"User ID: {payload['sub']}")
    """

    def __init__(self, settings: AuthSettings | None = None):
        """
        Initialize the auth service.

        Args:
            settings: Optional AuthSettings. If not provided, loads from environment.
        """
        self.settings = settings or get_auth_settings()

    def create_access_token(
        self,
        user_id: int,
        is_admin: bool = False,
        extra_claims: dict[str, Any] | None = None
    ) -> str:
        """
        Create a short-lived access token.

        Args:
            user_id: User's numeric id (stored as a string "sub" claim)
            is_admin: Whether the user holds the admin flag
            extra_claims: Optional additional claims to include

        Returns:
            JWT access token string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "admin": is_admin,
            "type": "access",
            "exp": now + timedelta(minutes=self.settings.access_token_expire_minutes),
            "iat": now,
        }
        if extra_claims:
            payload.update(extra_claims)

        return jwt.encode(
            payload,
            self.settings.secret_key,
            algorithm=self.settings.algorithm
        )

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """
        Decode and validate a JWT token.

        Returns:
            Token payload dict if valid, None otherwise
        """
        try:
            return jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.algorithm]
            )
        except JWTError as e:
            logger.debug(f"Token decode failed: {e}")
            return None


# Global service instance (lazy-loaded)
_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get or create the global auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
