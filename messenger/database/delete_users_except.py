"""
Admin Tool: Delete Every User Except the Named Ones

Wipes a database down to a handful of accounts (staging resets, demo
environments). Each deletion goes through the same cascade engine as the
self-service endpoint.

Usage:
    python -m messenger.database.delete_users_except alice bob           # dry run
    python -m messenger.database.delete_users_except alice bob --apply   # delete

Safety:
    - Dry-run mode by default (lists the accounts that would be deleted)
    - Use --apply to actually delete
    - Aborts if none of the named users exist
"""

import argparse
import asyncio
import sys

from messenger.config.logging_config import configure_logging
from messenger.services.user_deletion import (
    UserDeletionError,
    UserDeletionService,
    UserNotFoundError,
    get_user_deletion_service,
)


async def delete_users_except(
    usernames: list[str],
    apply: bool = False,
    service: UserDeletionService | None = None,
) -> int:
    """
    Delete all users whose username is not in `usernames`.

    Args:
        usernames: Accounts to keep (any case)
        apply: If False, only list what would be deleted
        service: Deletion service (defaults to the configured global one)

    Returns:
        Process exit code (1 if nothing to keep was found or any deletion failed)
    """
    service = service or get_user_deletion_service()
    usernames = [name.strip().lower() for name in usernames if name.strip()]

    if not usernames:
        print("❌ No users to keep were given")
        print("Usage: python -m messenger.database.delete_users_except alice bob [--apply]")
        return 1

    keep_ids = []
    for username in usernames:
        try:
            user = await service.find_user_by_username(username)
        except UserNotFoundError:
            print(f"⚠ User @{username} not found")
            continue
        keep_ids.append(user.id)
        print(f"✓ Keeping @{user.username} (ID: {user.id})")

    if not keep_ids:
        print("❌ None of the users to keep exist - aborting")
        return 1

    targets = await service.list_users(exclude_ids=keep_ids)
    print(f"\nUsers to delete: {len(targets)}")

    if not targets:
        print("✓ Nothing to delete")
        return 0

    if not apply:
        for user in targets:
            print(f"  - @{user.username} (ID: {user.id})")
        print("\n💡 DRY RUN - no changes made. Re-run with --apply to delete these users.")
        return 0

    failures = 0
    for user in targets:
        print(f"Deleting @{user.username} (ID: {user.id})...")
        try:
            await service.delete_user(user.id, on_warning=lambda message: print(f"  ⚠ {message}"))
        except UserDeletionError as e:
            failures += 1
            print(f"  ❌ Failed to delete @{user.username}: {e}")
            continue
        print(f"  ✓ @{user.username} deleted")

    print("\n✅ Done!")
    print(f"Kept: {len(keep_ids)}")
    print(f"Deleted: {len(targets) - failures}")
    if failures:
        print(f"Failed: {failures}")

    print("\nRemaining users:")
    for user in await service.list_users():
        print(f"  - @{user.username} ({user.display_name or 'no display name'})")

    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete every user except the named ones")
    parser.add_argument("keep", nargs="*", help="Usernames to keep (case-insensitive)")
    parser.add_argument("--apply", action="store_true", help="Actually delete (default is a dry run)")
    args = parser.parse_args(argv)

    configure_logging("ERROR")
    if args.apply:
        print("⚠️  APPLY MODE - users WILL be deleted\n")
    return asyncio.run(delete_users_except(args.keep, apply=args.apply))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
