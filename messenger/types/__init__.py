"""Shared types for Messenger services."""

from .deletion_events import (
    DeletionReport,
    DeletionStatus,
    DeletionWarning,
    DeletionWarningType,
)

__all__ = [
    "DeletionReport",
    "DeletionStatus",
    "DeletionWarning",
    "DeletionWarningType",
]
