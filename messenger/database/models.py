"""
Messenger - SQLAlchemy ORM Models

Relational schema for users, 1:1 chats, groups, polls and per-user state.

Design Decisions:
- Integer autoincrement primary keys (matches the deployed schema)
- No ON DELETE CASCADE anywhere: account deletion clears dependents explicitly,
  in dependency order (the order lives in services/user_deletion.py)
- groups.created_by_user_id carries no FK constraint, so a group can outlive
  its creator while other members remain
- Poll tables are optional: older deployments may lack the group poll
  tables, or every poll table
"""

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    """
    Messenger account

    avatar_path is a filename relative to the configured avatar directory.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity
    username = Column(String(64), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False, default="")
    bio = Column(Text, nullable=True)
    avatar_path = Column(String(512), nullable=True)

    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class Message(Base):
    """1:1 chat message"""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    content = Column(Text, nullable=False, default="")
    message_type = Column(String(20), nullable=True)  # 'text', 'poll', 'voice', ...
    attachment_path = Column(String(512), nullable=True)
    attachment_filename = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("user_id", "contact_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")  # pending, accepted, rejected
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Group(Base):
    """
    Group chat

    created_by_user_id is informational only (no FK). Deleting the creator
    leaves it pointing at a removed account while other members remain.
    """

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    avatar_path = Column(String(512), nullable=True)
    created_by_user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class GroupMember(Base):
    __tablename__ = "group_members"

    group_id = Column(Integer, ForeignKey("groups.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)
    role = Column(String(20), nullable=False, default="member")  # 'admin' or 'member'
    joined_at = Column(DateTime(timezone=True), server_default=func.now())


class GroupMessage(Base):
    __tablename__ = "group_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    content = Column(Text, nullable=False, default="")
    message_type = Column(String(20), nullable=True)
    attachment_path = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class GroupRead(Base):
    """Per-member read marker for a group"""

    __tablename__ = "group_read"

    group_id = Column(Integer, ForeignKey("groups.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    last_read_message_id = Column(Integer, nullable=False, default=0)


class MessageReaction(Base):
    __tablename__ = "message_reactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, ForeignKey("messages.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    emoji = Column(String(32), nullable=False)


class GroupMessageReaction(Base):
    __tablename__ = "group_message_reactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_message_id = Column(Integer, ForeignKey("group_messages.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    emoji = Column(String(32), nullable=False)


# =============================================================================
# Polls (optional subsystem: created by a later migration)
# =============================================================================


class Poll(Base):
    __tablename__ = "polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, ForeignKey("messages.id"), nullable=False, unique=True)
    question = Column(Text, nullable=False)
    options = Column(Text, nullable=False)  # JSON-encoded list of option labels
    multiple = Column(Boolean, nullable=False, default=False)


class PollVote(Base):
    __tablename__ = "poll_votes"

    poll_id = Column(Integer, ForeignKey("polls.id"), primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    option_index = Column(Integer, primary_key=True)


class GroupPoll(Base):
    __tablename__ = "group_polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_message_id = Column(Integer, ForeignKey("group_messages.id"), nullable=False, unique=True)
    question = Column(Text, nullable=False)
    options = Column(Text, nullable=False)
    multiple = Column(Boolean, nullable=False, default=False)


class GroupPollVote(Base):
    __tablename__ = "group_poll_votes"

    group_poll_id = Column(Integer, ForeignKey("group_polls.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    option_index = Column(Integer, primary_key=True)


# Personal and group polls arrive in separate migrations
PERSONAL_POLL_TABLES = (Poll.__table__, PollVote.__table__)
GROUP_POLL_TABLES = (GroupPoll.__table__, GroupPollVote.__table__)
POLL_TABLES = PERSONAL_POLL_TABLES + GROUP_POLL_TABLES


# =============================================================================
# Tokens, audit, privacy
# =============================================================================


class FcmToken(Base):
    """Push notification device token"""

    __tablename__ = "user_fcm_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    fcm_token = Column(String(512), nullable=False)
    device_id = Column(String(255), nullable=True)
    device_name = Column(String(255), nullable=True)
    platform = Column(String(20), nullable=True)  # 'android', 'ios', 'web'


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    token_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(64), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    details = Column(Text, nullable=True)  # JSON string
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PrivacySetting(Base):
    __tablename__ = "user_privacy"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, autoincrement=False)
    who_can_see_status = Column(String(20), nullable=False, default="all")  # all, contacts, nobody
    who_can_message = Column(String(20), nullable=False, default="all")
    who_can_call = Column(String(20), nullable=False, default="all")


class PrivacyHideFrom(Base):
    __tablename__ = "user_privacy_hide_from"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    hidden_from_user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)


class BlockedUser(Base):
    __tablename__ = "blocked_users"

    blocker_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    blocked_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
