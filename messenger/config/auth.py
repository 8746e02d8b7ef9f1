"""
Authentication Configuration

Environment-based settings for verifying the bearer tokens that identify
the account to delete.
"""

import os
import secrets
from dataclasses import dataclass


@dataclass
class AuthSettings:
    """JWT verification settings loaded from environment variables."""

    secret_key: str
    algorithm: str
    access_token_expire_minutes: int

    @classmethod
    def from_env(cls) -> "AuthSettings":
        """Load settings from environment variables."""
        return cls(
            # Unset AUTH_SECRET_KEY invalidates every token on restart
            secret_key=os.getenv("AUTH_SECRET_KEY") or secrets.token_urlsafe(32),
            algorithm=os.getenv("AUTH_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("AUTH_ACCESS_TOKEN_EXPIRE_MINUTES", "30")),
        )


_settings: AuthSettings | None = None


def get_auth_settings() -> AuthSettings:
    """Get or create the global auth settings instance."""
    global _settings
    if _settings is None:
        _settings = AuthSettings.from_env()
    return _settings
