#!/usr/bin/env python3
"""
Purge soft-deleted uploads from the media host.

Files are soft-deleted when the last content that referenced them goes away.
This command lists those older than the retention window, asks for
confirmation and removes them from the media host and the database.

Usage:
    # Review and confirm interactively
    python -m backstage.commands.cleanup_media

    # Custom retention, no prompt
    python -m backstage.commands.cleanup_media --days 30 --yes
"""

import argparse
import asyncio
import logging

from backstage.config import get_settings
from backstage.infrastructure.database import close_db, init_db
from backstage.infrastructure.media_host import get_media_host
from backstage.infrastructure.observability import setup_logging
from backstage.services import media_cleanup
from backstage.services.documents import as_utc, utcnow

logger = logging.getLogger(__name__)


def describe(file: dict, now) -> str:
    deleted_at = as_utc(file.get("deletedAt"))
    age = f"{(now - deleted_at).days}d" if deleted_at else "?"
    size = file.get("size") or 0
    reason = file.get("deletionReason") or "unknown"
    return f"  {file['_id']}  {(file.get('name') or '')[:50]:<50}  {size:>9.1f} KB  {age:>5}  {reason}"


async def cleanup_media(days: int, assume_yes: bool) -> int:
    settings = get_settings()
    manager = init_db(settings.mongodb_uri, settings.mongodb_db_name)
    try:
        now = utcnow()
        files = await media_cleanup.find_purgeable(manager.db, days, now)
        if not files:
            print(f"No soft-deleted files older than {days} day(s).")
            return 0

        total_kb = sum(file.get("size") or 0 for file in files)
        print(f"{len(files)} file(s) purgeable ({total_kb / 1024:.1f} MB):")
        for file in files:
            print(describe(file, now))

        if not assume_yes:
            answer = input("Purge these files from the media host? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Aborted.")
                return 0

        ok, failed = await media_cleanup.purge(manager.db, get_media_host(), files)
        print(f"Purged {ok} file(s), {failed} failure(s).")
        return 1 if failed else 0
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description="Purge soft-deleted media files")
    parser.add_argument(
        "--days",
        type=int,
        default=get_settings().media_purge_min_age_days,
        help="Minimum days since soft deletion (default: MEDIA_PURGE_MIN_AGE_DAYS)",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Purge without asking for confirmation",
    )
    args = parser.parse_args()
    if args.days < 0:
        parser.error("--days must be zero or more")

    setup_logging(get_settings().log_level, "text")
    return asyncio.run(cleanup_media(args.days, args.yes))


if __name__ == "__main__":
    raise SystemExit(main())
