#!/usr/bin/env python3
"""
Mark documents that carry a publication date but a stale `status` as published.

Usage:
    python -m backstage.commands.repair_status
    python -m backstage.commands.repair_status --collection dvds
"""

import argparse
import asyncio
import logging

from backstage.config import get_settings
from backstage.core.domain_types import Collection
from backstage.infrastructure.database import close_db, init_db
from backstage.infrastructure.observability import setup_logging
from backstage.services.status_repair import repair_publication_status

logger = logging.getLogger(__name__)


async def repair_status(name: Collection) -> int:
    settings = get_settings()
    manager = init_db(settings.mongodb_uri, settings.mongodb_db_name)
    try:
        modified = await repair_publication_status(manager.db, name)
    finally:
        await close_db()
    print(f"{name.value}: {modified} document(s) repaired.")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Repair publication status fields")
    parser.add_argument(
        "--collection",
        default=Collection.CDS.value,
        choices=[c.value for c in Collection],
        help="Collection to repair (default: cds)",
    )
    args = parser.parse_args()

    setup_logging(get_settings().log_level, "text")
    return asyncio.run(repair_status(Collection(args.collection)))


if __name__ == "__main__":
    raise SystemExit(main())
