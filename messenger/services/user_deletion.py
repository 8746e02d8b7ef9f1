"""
User Deletion Service

Permanently removes a user and every dependent row, then the avatar file.

The schema declares no ON DELETE CASCADE, so dependents are cleared
explicitly. CASCADE_STEPS below is the only place that defines the order:
a row is never deleted while a row referencing it still exists (votes
before polls, polls before messages, reactions before the messages they
point at, ...).

Guarantees:
- One unit of work: every step runs inside a single transaction, so a
  fatal error leaves the database untouched
- The user row is locked first (SELECT ... FOR UPDATE) so concurrent
  writers referencing the user wait for the deletion to finish
- Poll tables are optional (personal and group polls separately): their
  presence is checked once per run; guarded steps run in a SAVEPOINT and
  failures become warnings, reported once per run
- The avatar file is only removed after the transaction commits
- Idempotent: a second run for the same id matches zero rows

Usage:
    async with get_db_session() as db:
        report = await delete_user_cascade(db, user_id, avatars_dir=Path("uploads/avatars"))

    # Or with configured settings:
    report = await get_user_deletion_service().delete_user(user_id)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import delete, func, inspect, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.config.deletion import DEFAULT_BATCH_SIZE, DeletionSettings, get_deletion_settings
from messenger.config.logging_config import get_logger
from messenger.database.models import (
    AuditLog,
    BlockedUser,
    Contact,
    FcmToken,
    FriendRequest,
    Group,
    GroupMember,
    GroupMessage,
    GroupMessageReaction,
    GroupPoll,
    GroupPollVote,
    GroupRead,
    GROUP_POLL_TABLES,
    Message,
    MessageReaction,
    PasswordResetToken,
    PERSONAL_POLL_TABLES,
    Poll,
    PollVote,
    PrivacyHideFrom,
    PrivacySetting,
    User,
)
from messenger.database.session import get_db_session
from messenger.types.deletion_events import (
    DeletionReport,
    DeletionStatus,
    DeletionWarning,
    DeletionWarningType,
)

logger = get_logger(__name__)

WarningSink = Callable[[str], None]


class UserDeletionError(Exception):
    """Raised when a non-optional cascade step fails. The transaction has been rolled back."""

    def __init__(self, message: str, report: DeletionReport):
        super().__init__(message)
        self.report = report


class UserNotFoundError(Exception):
    """Raised when an administrative deletion targets a user that does not exist"""
    pass


@dataclass(frozen=True)
class OptionalSubsystem:
    """A feature whose tables may be absent in a given deployment."""

    name: str
    tables: tuple


POLLS = OptionalSubsystem("polls", tuple(table.name for table in PERSONAL_POLL_TABLES))
GROUP_POLLS = OptionalSubsystem("group_polls", tuple(table.name for table in GROUP_POLL_TABLES))

# Checked together, once per run
OPTIONAL_SUBSYSTEMS = (POLLS, GROUP_POLLS)


def _chunked(ids: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


def _missing_tables(sync_session, tables) -> List[str]:
    inspector = inspect(sync_session.connection())
    return [name for name in tables if not inspector.has_table(name)]


@dataclass
class _CascadeRun:
    """State shared by the steps of one cascade run."""

    db: AsyncSession
    user_id: int
    report: DeletionReport
    batch_size: int = DEFAULT_BATCH_SIZE
    on_warning: Optional[WarningSink] = None
    _subsystems: Dict[str, bool] = field(default_factory=dict)
    _optional_reported: bool = False
    _message_ids: Optional[List[int]] = None
    _group_message_ids: Optional[List[int]] = None

    def warn(self, warning_type: DeletionWarningType, message: str, step: Optional[str] = None) -> None:
        self.report.warnings.append(DeletionWarning(type=warning_type, message=message, step=step))
        logger.warning(f"⚠️ User {self.user_id}: {message}")
        if self.on_warning is not None:
            self.on_warning(message)

    def warn_optional(self, message: str, step: Optional[str] = None) -> None:
        """Report an optional-subsystem problem; only the first one per run reaches the report."""
        if self._optional_reported:
            logger.warning(f"⚠️ User {self.user_id}: {message} (optional cleanup already reported)")
            return
        self._optional_reported = True
        self.warn(DeletionWarningType.OPTIONAL_SUBSYSTEM, message, step=step)

    async def delete_where(self, model, *criteria) -> int:
        stmt = delete(model).where(*criteria).execution_options(synchronize_session=False)
        result = await self.db.execute(stmt)
        logger.trace(f"🔍 DELETE FROM {model.__tablename__}: {result.rowcount} row(s)")
        return result.rowcount

    async def delete_in(self, model, column, ids: Sequence[int]) -> int:
        deleted = 0
        for chunk in _chunked(ids, self.batch_size):
            deleted += await self.delete_where(model, column.in_(chunk))
        return deleted

    async def select_ids(self, id_column, *criteria) -> List[int]:
        result = await self.db.execute(select(id_column).where(*criteria))
        return list(result.scalars().all())

    async def select_ids_in(self, id_column, column, ids: Sequence[int]) -> List[int]:
        found = []
        for chunk in _chunked(ids, self.batch_size):
            found.extend(await self.select_ids(id_column, column.in_(chunk)))
        return found

    async def message_ids(self) -> List[int]:
        """Ids of 1:1 messages sent or received by the user (stable until the messages step)."""
        if self._message_ids is None:
            self._message_ids = await self.select_ids(
                Message.id,
                or_(Message.sender_id == self.user_id, Message.receiver_id == self.user_id),
            )
        return self._message_ids

    async def group_message_ids(self) -> List[int]:
        """Ids of group messages sent by the user (stable until the group_messages step)."""
        if self._group_message_ids is None:
            self._group_message_ids = await self.select_ids(
                GroupMessage.id, GroupMessage.sender_id == self.user_id
            )
        return self._group_message_ids

    async def _check_schema(self, subsystems: Sequence[OptionalSubsystem]) -> None:
        tables = [table for subsystem in subsystems for table in subsystem.tables]
        missing = await self.db.run_sync(_missing_tables, tables)

        skipped = []
        for subsystem in subsystems:
            self._subsystems[subsystem.name] = not any(table in missing for table in subsystem.tables)
            if not self._subsystems[subsystem.name]:
                skipped.append(subsystem.name)

        if skipped:
            names = " and ".join(skipped)
            self.warn_optional(
                f"{names} schema unavailable (missing tables: {', '.join(missing)}), skipping {names} cleanup",
                step=skipped[0],
            )

    async def subsystem_available(self, subsystem: OptionalSubsystem) -> bool:
        """
        Check the schema for optional subsystems, once per run.

        The known subsystems are checked together, so any combination of
        missing tables is reported as a single warning. Every later guarded
        step of an unavailable subsystem is skipped silently.
        """
        if subsystem.name not in self._subsystems:
            await self._check_schema(OPTIONAL_SUBSYSTEMS if subsystem in OPTIONAL_SUBSYSTEMS else (subsystem,))
        return self._subsystems[subsystem.name]

    async def guarded(self, name: str, subsystem: OptionalSubsystem,
                      action: Callable[["_CascadeRun"], Awaitable[None]]) -> bool:
        """
        Run an optional-subsystem action inside a SAVEPOINT.

        A failure rolls the savepoint back and marks the subsystem
        unavailable for the rest of the run.

        Returns:
            True if the action ran to completion, False if it was skipped or failed
        """
        if not await self.subsystem_available(subsystem):
            return False
        try:
            async with self.db.begin_nested():
                await action(self)
        except SQLAlchemyError as e:
            self._subsystems[subsystem.name] = False
            self.warn_optional(f"{name} cleanup failed: {e}", step=name)
            return False
        return True


# =============================================================================
# Cascade steps
# =============================================================================


def _rows_referencing(model, *columns) -> Callable[[_CascadeRun], Awaitable[None]]:
    """Step action deleting rows of `model` where any of `columns` equals the user id."""

    async def action(run: _CascadeRun) -> None:
        await run.delete_where(model, or_(*(column == run.user_id for column in columns)))

    return action


async def _delete_poll_votes(run: _CascadeRun) -> None:
    await run.delete_where(PollVote, PollVote.user_id == run.user_id)


async def _delete_group_poll_votes(run: _CascadeRun) -> None:
    await run.delete_where(GroupPollVote, GroupPollVote.user_id == run.user_id)


async def _delete_polls(run: _CascadeRun) -> None:
    # Polls attached to the user's conversations, including every vote on them
    poll_ids = await run.select_ids_in(Poll.id, Poll.message_id, await run.message_ids())
    await run.delete_in(PollVote, PollVote.poll_id, poll_ids)
    await run.delete_in(Poll, Poll.id, poll_ids)


async def _delete_group_polls_for(run: _CascadeRun, group_message_ids: Sequence[int]) -> None:
    group_poll_ids = await run.select_ids_in(GroupPoll.id, GroupPoll.group_message_id, group_message_ids)
    await run.delete_in(GroupPollVote, GroupPollVote.group_poll_id, group_poll_ids)
    await run.delete_in(GroupPoll, GroupPoll.id, group_poll_ids)


async def _delete_group_polls(run: _CascadeRun) -> None:
    await _delete_group_polls_for(run, await run.group_message_ids())


async def _delete_reactions(run: _CascadeRun) -> None:
    # The user's own reactions, and anyone's reactions on messages about to be deleted
    await run.delete_where(MessageReaction, MessageReaction.user_id == run.user_id)
    await run.delete_in(MessageReaction, MessageReaction.message_id, await run.message_ids())

    await run.delete_where(GroupMessageReaction, GroupMessageReaction.user_id == run.user_id)
    await run.delete_in(
        GroupMessageReaction, GroupMessageReaction.group_message_id, await run.group_message_ids()
    )


async def _delete_orphan_group(run: _CascadeRun, group_id: int) -> None:
    group_message_ids = await run.select_ids(GroupMessage.id, GroupMessage.group_id == group_id)

    await run.guarded(
        f"group_polls[group={group_id}]",
        GROUP_POLLS,
        lambda r: _delete_group_polls_for(r, group_message_ids),
    )
    await run.delete_in(GroupMessageReaction, GroupMessageReaction.group_message_id, group_message_ids)
    await run.delete_where(GroupRead, GroupRead.group_id == group_id)
    await run.delete_where(GroupMessage, GroupMessage.group_id == group_id)
    await run.delete_where(Group, Group.id == group_id)


async def _resolve_owned_groups(run: _CascadeRun) -> None:
    """
    Decide the fate of groups created by the user.

    Runs after the user's memberships are gone. Memberless groups are
    deleted with their content; groups that still have members are left
    as they are, created_by_user_id included (ownership is not transferred).
    """
    group_ids = await run.select_ids(Group.id, Group.created_by_user_id == run.user_id)

    for group_id in group_ids:
        result = await run.db.execute(
            select(func.count()).select_from(GroupMember).where(GroupMember.group_id == group_id)
        )
        member_count = result.scalar() or 0

        if member_count > 0:
            logger.debug(f"👥 Group {group_id} keeps {member_count} member(s) - retained")
            run.report.retained_group_ids.append(group_id)
            continue

        await _delete_orphan_group(run, group_id)
        logger.debug(f"🧹 Group {group_id} has no members left - deleted")
        run.report.deleted_group_ids.append(group_id)


@dataclass(frozen=True)
class CascadeStep:
    """One entry of the dependency ordering table."""

    name: str
    action: Callable[[_CascadeRun], Awaitable[None]]
    subsystem: Optional[OptionalSubsystem] = None


CASCADE_STEPS = (
    # Votes reference polls, polls reference (group) messages
    CascadeStep("poll_votes", _delete_poll_votes, POLLS),
    CascadeStep("group_poll_votes", _delete_group_poll_votes, GROUP_POLLS),
    CascadeStep("polls", _delete_polls, POLLS),
    CascadeStep("group_polls", _delete_group_polls, GROUP_POLLS),
    # Reactions reference messages and group messages
    CascadeStep("reactions", _delete_reactions),
    CascadeStep("group_read", _rows_referencing(GroupRead, GroupRead.user_id)),
    CascadeStep("group_messages", _rows_referencing(GroupMessage, GroupMessage.sender_id)),
    CascadeStep("group_members", _rows_referencing(GroupMember, GroupMember.user_id)),
    # Must follow group_members: membership counts decide orphan status
    CascadeStep("owned_groups", _resolve_owned_groups),
    CascadeStep("messages", _rows_referencing(Message, Message.sender_id, Message.receiver_id)),
    CascadeStep("contacts", _rows_referencing(Contact, Contact.user_id, Contact.contact_id)),
    CascadeStep(
        "friend_requests",
        _rows_referencing(FriendRequest, FriendRequest.from_user_id, FriendRequest.to_user_id),
    ),
    CascadeStep("fcm_tokens", _rows_referencing(FcmToken, FcmToken.user_id)),
    CascadeStep("password_reset_tokens", _rows_referencing(PasswordResetToken, PasswordResetToken.user_id)),
    CascadeStep("audit_logs", _rows_referencing(AuditLog, AuditLog.user_id)),
    CascadeStep("privacy", _rows_referencing(PrivacySetting, PrivacySetting.user_id)),
    CascadeStep(
        "privacy_hide_from",
        _rows_referencing(PrivacyHideFrom, PrivacyHideFrom.user_id, PrivacyHideFrom.hidden_from_user_id),
    ),
    CascadeStep(
        "blocked_users",
        _rows_referencing(BlockedUser, BlockedUser.blocker_id, BlockedUser.blocked_id),
    ),
    CascadeStep("user", _rows_referencing(User, User.id)),
)


# =============================================================================
# Avatar disposal
# =============================================================================


def dispose_avatar(avatars_dir: Path, avatar_path: str) -> bool:
    """
    Remove a user's avatar file.

    Args:
        avatars_dir: Directory holding avatar files
        avatar_path: Filename stored on the user row (relative to avatars_dir)

    Returns:
        True if a file was removed, False if there was nothing to remove

    Raises:
        ValueError: If avatar_path resolves outside avatars_dir
        OSError: If the file exists but could not be removed
    """
    root = Path(avatars_dir).resolve()
    full_path = (root / avatar_path).resolve()
    if not full_path.is_relative_to(root) or full_path == root:
        raise ValueError(f"avatar path {avatar_path!r} is outside {root}")

    if not full_path.is_file():
        return False

    full_path.unlink()
    return True


# =============================================================================
# Orchestrator
# =============================================================================


async def delete_user_cascade(
    db: AsyncSession,
    user_id: int,
    *,
    avatars_dir: Optional[Path] = None,
    on_warning: Optional[WarningSink] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> DeletionReport:
    """
    Delete a user and every dependent row, then the avatar file.

    The session must not have a transaction in progress: the cascade owns
    its unit of work and commits it before touching the filesystem.

    Args:
        db: Async session used for every statement
        user_id: Deletion subject
        avatars_dir: Avatar directory; None skips avatar disposal entirely
        on_warning: Optional sink, called with each warning as it occurs
        batch_size: Maximum ids per IN (...) clause

    Returns:
        DeletionReport with status COMPLETED

    Raises:
        UserDeletionError: A non-optional step failed; nothing was committed
    """
    if db.in_transaction():
        raise RuntimeError("delete_user_cascade requires a session with no transaction in progress")

    report = DeletionReport(user_id=user_id)
    run = _CascadeRun(db=db, user_id=user_id, report=report, batch_size=batch_size, on_warning=on_warning)
    step_name = "lock_user"

    logger.info(f"🗑️ Starting cascade deletion for user {user_id}")

    try:
        async with db.begin():
            # Captured before the user row is deleted
            result = await db.execute(
                select(User.id, User.avatar_path).where(User.id == user_id).with_for_update()
            )
            row = result.one_or_none()
            report.user_found = row is not None
            avatar_path = row.avatar_path if row is not None else None

            for step in CASCADE_STEPS:
                step_name = step.name
                if step.subsystem is not None:
                    if not await run.guarded(step.name, step.subsystem, step.action):
                        continue
                else:
                    await step.action(run)
                report.steps_completed.append(step.name)

            step_name = "commit"
    except SQLAlchemyError as e:
        report.status = DeletionStatus.ABORTED
        report.failed_step = step_name
        logger.error(f"❌ Cascade deletion for user {user_id} aborted at step '{step_name}': {e}")
        raise UserDeletionError(
            f"Deleting user {user_id} failed at step '{step_name}': {e}", report
        ) from e

    if avatars_dir is not None and avatar_path:
        try:
            report.avatar_removed = dispose_avatar(avatars_dir, avatar_path)
        except (OSError, ValueError) as e:
            run.warn(DeletionWarningType.FILESYSTEM, f"Could not remove avatar: {e}", step="avatar")

    if report.user_found:
        logger.info(
            f"✅ Deleted user {user_id} "
            f"(groups deleted: {len(report.deleted_group_ids)}, retained: {len(report.retained_group_ids)}, "
            f"warnings: {len(report.warnings)})"
        )
    else:
        logger.info(f"✅ Cascade for user {user_id} found no user row - nothing left to delete")

    return report


class UserDeletionService:
    """
    Account deletion with configured avatar directory and batch size.

    Every trigger (self-service route, admin route, admin commands) goes
    through this service so there is exactly one cascade implementation.
    """

    def __init__(self, settings: DeletionSettings | None = None):
        self.settings = settings or get_deletion_settings()

    async def find_user_by_username(self, username: str) -> User:
        """
        Resolve a username case-insensitively.

        Raises:
            UserNotFoundError: If no user has that username
        """
        async with get_db_session() as db:
            result = await db.execute(
                select(User).where(func.lower(User.username) == username.strip().lower())
            )
            user = result.scalar_one_or_none()

        if user is None:
            raise UserNotFoundError(f"User @{username} not found")
        return user

    async def list_users(self, exclude_ids: Sequence[int] = ()) -> List[User]:
        """List users ordered by id, optionally leaving some out."""
        query = select(User).order_by(User.id)
        if exclude_ids:
            query = query.where(User.id.not_in(exclude_ids))

        async with get_db_session() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def delete_user(self, user_id: int, on_warning: Optional[WarningSink] = None) -> DeletionReport:
        """
        Run the cascade for one user in a fresh session.

        Raises:
            UserDeletionError: The cascade was aborted and rolled back
        """
        async with get_db_session() as db:
            return await delete_user_cascade(
                db,
                user_id,
                avatars_dir=self.settings.avatars_dir,
                on_warning=on_warning,
                batch_size=self.settings.batch_size,
            )


# Global service instance (lazy-loaded)
_service: UserDeletionService | None = None


def get_user_deletion_service() -> UserDeletionService:
    """Get or create the global user deletion service instance."""
    global _service
    if _service is None:
        _service = UserDeletionService()
    return _service
