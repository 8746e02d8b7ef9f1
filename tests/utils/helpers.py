"""
Test utility helpers for Messenger testing

Row factories for seeding a chat graph and a reference scanner that
reports every row still pointing at a given user.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

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
    Message,
    MessageReaction,
    PasswordResetToken,
    Poll,
    PollVote,
    PrivacyHideFrom,
    PrivacySetting,
    User,
)


# ============================================================
# Row Factories
# ============================================================

async def create_user(
    session: AsyncSession,
    username: str,
    avatar_path: Optional[str] = None,
    is_admin: bool = False,
) -> User:
    user = User(username=username, display_name=username.title(), avatar_path=avatar_path, is_admin=is_admin)
    session.add(user)
    await session.flush()
    return user


async def send_message(session: AsyncSession, sender: User, receiver: User, content: str = "hi") -> Message:
    message = Message(sender_id=sender.id, receiver_id=receiver.id, content=content, message_type="text")
    session.add(message)
    await session.flush()
    return message


async def create_group(session: AsyncSession, creator: User, *members: User, name: str = "group") -> Group:
    """Create a group with the creator as admin plus any extra members."""
    group = Group(name=name, created_by_user_id=creator.id)
    session.add(group)
    await session.flush()

    session.add(GroupMember(group_id=group.id, user_id=creator.id, role="admin"))
    session.add(GroupRead(group_id=group.id, user_id=creator.id, last_read_message_id=0))
    for member in members:
        session.add(GroupMember(group_id=group.id, user_id=member.id, role="member"))
        session.add(GroupRead(group_id=group.id, user_id=member.id, last_read_message_id=0))
    await session.flush()
    return group


async def send_group_message(session: AsyncSession, group: Group, sender: User, content: str = "hello all") -> GroupMessage:
    message = GroupMessage(group_id=group.id, sender_id=sender.id, content=content, message_type="text")
    session.add(message)
    await session.flush()
    return message


async def create_poll(session: AsyncSession, message: Message, *voters: User) -> Poll:
    poll = Poll(message_id=message.id, question="Lunch?", options='["yes", "no"]')
    session.add(poll)
    await session.flush()
    for voter in voters:
        session.add(PollVote(poll_id=poll.id, user_id=voter.id, option_index=0))
    await session.flush()
    return poll


async def create_group_poll(session: AsyncSession, message: GroupMessage, *voters: User) -> GroupPoll:
    poll = GroupPoll(group_message_id=message.id, question="Meetup?", options='["sat", "sun"]')
    session.add(poll)
    await session.flush()
    for voter in voters:
        session.add(GroupPollVote(group_poll_id=poll.id, user_id=voter.id, option_index=1))
    await session.flush()
    return poll


async def add_social_rows(session: AsyncSession, user: User, other: User) -> None:
    """Contacts, friend requests, tokens, audit, privacy and block rows linking user and other."""
    session.add_all([
        Contact(user_id=user.id, contact_id=other.id),
        Contact(user_id=other.id, contact_id=user.id),
        FriendRequest(from_user_id=user.id, to_user_id=other.id, status="accepted"),
        FriendRequest(from_user_id=other.id, to_user_id=user.id, status="pending"),
        FcmToken(user_id=user.id, fcm_token="token-" + user.username, platform="android"),
        PasswordResetToken(user_id=user.id, token_hash="hash", expires_at=datetime(2030, 1, 1)),
        AuditLog(event_type="login", user_id=user.id),
        PrivacySetting(user_id=user.id, who_can_message="contacts"),
        PrivacyHideFrom(user_id=user.id, hidden_from_user_id=other.id),
        PrivacyHideFrom(user_id=other.id, hidden_from_user_id=user.id),
        BlockedUser(blocker_id=other.id, blocked_id=user.id),
    ])
    await session.flush()


# ============================================================
# Reference Scanner
# ============================================================

# Every column that references a user, except groups.created_by_user_id
USER_REFERENCES = [
    (User, [User.id]),
    (Message, [Message.sender_id, Message.receiver_id]),
    (Contact, [Contact.user_id, Contact.contact_id]),
    (FriendRequest, [FriendRequest.from_user_id, FriendRequest.to_user_id]),
    (PollVote, [PollVote.user_id]),
    (GroupPollVote, [GroupPollVote.user_id]),
    (GroupMessage, [GroupMessage.sender_id]),
    (MessageReaction, [MessageReaction.user_id]),
    (GroupMessageReaction, [GroupMessageReaction.user_id]),
    (GroupRead, [GroupRead.user_id]),
    (GroupMember, [GroupMember.user_id]),
    (FcmToken, [FcmToken.user_id]),
    (PasswordResetToken, [PasswordResetToken.user_id]),
    (AuditLog, [AuditLog.user_id]),
    (PrivacySetting, [PrivacySetting.user_id]),
    (PrivacyHideFrom, [PrivacyHideFrom.user_id, PrivacyHideFrom.hidden_from_user_id]),
    (BlockedUser, [BlockedUser.blocker_id, BlockedUser.blocked_id]),
]


async def rows_referencing(
    session: AsyncSession,
    user_id: int,
    skip_tables: tuple = (),
) -> Dict[str, int]:
    """
    Count rows that still reference user_id, per table.

    Returns:
        {table_name: count} for tables with at least one referencing row
    """
    leftovers = {}
    for model, columns in USER_REFERENCES:
        if model.__tablename__ in skip_tables:
            continue
        result = await session.execute(
            select(func.count()).select_from(model).where(or_(*(column == user_id for column in columns)))
        )
        count = result.scalar()
        if count:
            leftovers[model.__tablename__] = count
    return leftovers


async def count_rows(session: AsyncSession, model, *criteria) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar()


async def ids_of(session: AsyncSession, column, *criteria) -> List[int]:
    result = await session.execute(select(column).where(*criteria))
    return list(result.scalars().all())
