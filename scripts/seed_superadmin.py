#!/usr/bin/env python3
"""Create the platform super-admin in the control-plane database.

RUN:  python scripts/seed_superadmin.py --email ops@example.com --password '...'

Uses DATABASE_URL / CONTROL_PLANE_DB from the environment.  Without
DATABASE_URL the account only lives in this process's memory, which is
useful for nothing but a dry run.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from lms.core.config import SETTINGS
from lms.core.logging import setup_logging
from lms.db.control_plane import control_plane
from lms.db.engine import lifespan_db
from lms.services.auth_service import create_super_admin

logger = logging.getLogger("seed_superadmin")


async def _run(name: str, email: str, password: str) -> int:
    async with lifespan_db():
        try:
            admin = await create_super_admin(
                control_plane, name=name, email=email, password=password
            )
        except ValueError as e:
            logger.warning("%s", e)
            return 1
    print(f"Super-admin created: {admin.email} ({admin.id})")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--name", default="Super Admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    if not SETTINGS.database_url:
        logger.warning("DATABASE_URL is not set; the account will not be persisted")
    sys.exit(asyncio.run(_run(args.name, args.email, args.password)))


if __name__ == "__main__":
    main()
