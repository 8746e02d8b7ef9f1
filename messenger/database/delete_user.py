"""
Admin Tool: Delete One User

Permanently deletes a user (found by username, case-insensitive) and all
their data, including the avatar file under AVATARS_DIR.

Usage:
    python -m messenger.database.delete_user <username>

Exit codes:
    0 - user deleted
    1 - user not found, or the deletion failed (nothing was removed)
"""

import argparse
import asyncio
import sys

from sqlalchemy.exc import SQLAlchemyError

from messenger.config.logging_config import configure_logging
from messenger.services.user_deletion import (
    UserDeletionError,
    UserDeletionService,
    UserNotFoundError,
    get_user_deletion_service,
)


async def delete_user(username: str, service: UserDeletionService | None = None) -> int:
    """
    Delete a single user by username.

    Args:
        username: Username to delete (any case)
        service: Deletion service (defaults to the configured global one)

    Returns:
        Process exit code
    """
    service = service or get_user_deletion_service()

    try:
        user = await service.find_user_by_username(username)
    except UserNotFoundError:
        print(f"❌ User @{username} not found in the database")
        return 1
    except SQLAlchemyError as e:
        print(f"❌ Could not look up @{username}: {e}")
        return 1

    print(f"⚠️  WARNING: this permanently deletes @{user.username} (ID: {user.id}) and all their data!")
    print(f"Avatar directory: {service.settings.avatars_dir or '(not configured)'}\n")

    try:
        report = await service.delete_user(user.id, on_warning=lambda message: print(f"  ⚠ {message}"))
    except UserDeletionError as e:
        print(f"\n❌ Failed to delete user @{user.username}: {e}")
        return 1

    if report.deleted_group_ids:
        print(f"  🧹 Deleted memberless groups: {', '.join(map(str, report.deleted_group_ids))}")
    if report.retained_group_ids:
        print(f"  👥 Groups kept (still have members): {', '.join(map(str, report.retained_group_ids))}")

    print(f"\n✅ User @{user.username} deleted successfully!")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Permanently delete a user and all their data")
    parser.add_argument("username", help="Username of the account to delete (case-insensitive)")
    args = parser.parse_args(argv)

    configure_logging("ERROR")
    return asyncio.run(delete_user(args.username))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
