"""
Messenger - Database Module

Exports models and session management.

Usage:
    from messenger.database import User, Message, Group
    from messenger.database import get_db_session
"""

from messenger.database.models import Base, User, Message, Group, GroupMember, GroupMessage
from messenger.database.session import (
    get_db_session,
    check_db_connection,
)

__all__ = [
    # Models
    "Base",
    "User",
    "Message",
    "Group",
    "GroupMember",
    "GroupMessage",
    # Session management
    "get_db_session",
    "check_db_connection",
]
