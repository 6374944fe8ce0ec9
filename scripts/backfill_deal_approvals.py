#!/usr/bin/env python3
"""
Create the missing deal_approvals row for deals that have none.

Run:
  python -m scripts.backfill_deal_approvals [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio

import structlog

from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.core.logging import configure_logging
from app.services.maintenance import backfill_deal_approvals

logger = structlog.get_logger("scripts.backfill_deal_approvals")


async def _run(dry_run: bool) -> None:
    async with SessionLocal() as db:
        ids = await backfill_deal_approvals(db, dry_run=dry_run)
    await engine.dispose()
    logger.info("done", dry_run=dry_run, created=len(ids), deal_ids=ids)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--dry-run", action="store_true", help="report without writing")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    asyncio.run(_run(args.dry_run))


if __name__ == "__main__":
    main()
