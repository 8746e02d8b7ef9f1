"""
Account Deletion Configuration

Environment-based settings for the user cascade-deletion engine.
"""

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_AVATARS_DIR = "uploads/avatars"

# asyncpg caps a statement at 32767 bind parameters, old SQLite builds at 999
DEFAULT_BATCH_SIZE = 500


@dataclass
class DeletionSettings:
    """Deletion engine configuration loaded from environment variables."""

    # Directory holding avatar files; None disables avatar disposal entirely
    avatars_dir: Path | None
    # Maximum number of ids bound into a single IN (...) clause
    batch_size: int

    @classmethod
    def from_env(cls) -> "DeletionSettings":
        """Load settings from environment variables."""
        avatars_dir = os.getenv("AVATARS_DIR", DEFAULT_AVATARS_DIR).strip()
        batch_size = int(os.getenv("DELETION_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)))
        if batch_size < 1:
            raise ValueError(f"DELETION_BATCH_SIZE must be positive, got {batch_size}")

        return cls(
            # Empty AVATARS_DIR means "this process does not own avatar files"
            avatars_dir=Path(avatars_dir) if avatars_dir else None,
            batch_size=batch_size,
        )


# Global settings instance (lazy-loaded)
_settings: DeletionSettings | None = None


def get_deletion_settings() -> DeletionSettings:
    """Get or create the global deletion settings instance."""
    global _settings
    if _settings is None:
        _settings = DeletionSettings.from_env()
    return _settings
