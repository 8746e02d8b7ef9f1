"""
Messenger Account Deletion Events

Purpose: Structured outcome of a user cascade deletion.

The deletion engine never batches warnings behind the caller's back: each
DeletionWarning is appended to the run's DeletionReport and, when a sink
callback is supplied, forwarded to it immediately as a plain string.

Severity model:
- warning: recoverable (optional subsystem unavailable, avatar not removed)
- fatal: the run is rolled back and UserDeletionError is raised
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class DeletionWarningType(str, Enum):
    """Categories of non-fatal conditions reported during a cascade."""

    # Optional schema (poll tables) missing or a guarded step failed
    OPTIONAL_SUBSYSTEM = "optional_subsystem"

    # Avatar file could not be removed
    FILESYSTEM = "filesystem"


class DeletionStatus(str, Enum):
    """Terminal outcome of a cascade run."""

    COMPLETED = "completed"
    ABORTED = "aborted"


class DeletionWarning(BaseModel):
    """A recoverable condition reported during a cascade."""

    type: DeletionWarningType
    message: str = Field(..., description="Human-readable description")
    step: Optional[str] = Field(None, description="Cascade step that produced the warning")


class DeletionReport(BaseModel):
    """
    Outcome of one cascade run for one user.

    Attributes:
        user_id: Deletion subject
        status: COMPLETED, or ABORTED when a fatal step failed
        steps_completed: Names of cascade steps that ran to completion, in order
        failed_step: Step that aborted the run (ABORTED only)
        deleted_group_ids: Groups created by the user that were left memberless and removed
        retained_group_ids: Groups created by the user that still have members
        user_found: False when no user row existed (repeat run)
        avatar_removed: True when the avatar file was deleted from disk
        warnings: Every warning reported during the run, in order
    """

    user_id: int
    status: DeletionStatus = DeletionStatus.COMPLETED
    steps_completed: List[str] = Field(default_factory=list)
    failed_step: Optional[str] = None
    deleted_group_ids: List[int] = Field(default_factory=list)
    retained_group_ids: List[int] = Field(default_factory=list)
    user_found: bool = False
    avatar_removed: bool = False
    warnings: List[DeletionWarning] = Field(default_factory=list)

    @property
    def warning_messages(self) -> List[str]:
        return [w.message for w in self.warnings]
