#!/usr/bin/env python3
"""
Give every business a valid verification_status.

Empty values become "pending"; the legacy "approved" becomes "verified".
Also rewrites legacy "active"/"verified" deal statuses to "approved".

Run:
  python -m scripts.fix_missing_verification [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio

import structlog

from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.core.logging import configure_logging
from app.services.maintenance import fix_missing_verification, normalize_deal_statuses

logger = structlog.get_logger("scripts.fix_missing_verification")


async def _run(dry_run: bool) -> None:
    async with SessionLocal() as db:
        counts = await fix_missing_verification(db, dry_run=dry_run)
        deals = await normalize_deal_statuses(db, dry_run=dry_run)
    await engine.dispose()
    logger.info("done", dry_run=dry_run, deals_normalized=deals, **counts)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--dry-run", action="store_true", help="report without writing")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    asyncio.run(_run(args.dry_run))


if __name__ == "__main__":
    main()
