#!/usr/bin/env python3
"""
Create an approved super admin account.

Usage:
    python -m backstage.commands.create_super_admin --email ana@example.com --name "Ana"

The password is read from the terminal and never passed as an argument.
"""

import argparse
import asyncio
import getpass
import logging

from backstage.config import get_settings
from backstage.core.errors import ConflictError
from backstage.infrastructure.database import close_db, ensure_indexes, init_db
from backstage.infrastructure.observability import setup_logging
from backstage.services import accounts

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def read_password() -> str | None:
    password = getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Password must have at least {MIN_PASSWORD_LENGTH} characters.")
        return None
    if getpass.getpass("Confirm password: ") != password:
        print("Passwords do not match.")
        return None
    return password


async def create_super_admin(name: str, email: str, password: str) -> int:
    settings = get_settings()
    manager = init_db(settings.mongodb_uri, settings.mongodb_db_name)
    try:
        await ensure_indexes(manager.db)
        admin = await accounts.create_super_admin(manager.db, settings, name, email, password)
    except ConflictError as e:
        print(e.message)
        return 1
    finally:
        await close_db()
    print(f"Super admin {admin['email']} created ({admin['_id']}).")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a super admin account")
    parser.add_argument("--email", required=True, help="Login email")
    parser.add_argument("--name", required=True, help="Display name")
    args = parser.parse_args()

    setup_logging(get_settings().log_level, "text")
    password = read_password()
    if password is None:
        return 1
    return asyncio.run(create_super_admin(args.name, args.email, password))


if __name__ == "__main__":
    raise SystemExit(main())
