#!/usr/bin/env python3
"""
Create every table registered on the models' metadata.

Run:
  python -m scripts.create_tables
  python -m scripts.create_tables --drop   # drop first (dev only)
"""

from __future__ import annotations

import argparse
import asyncio

import structlog

import app.models  # noqa: F401
from app.core.config import settings
from app.core.db import Base, engine
from app.core.logging import configure_logging

logger = structlog.get_logger("scripts.create_tables")


async def _run(drop: bool) -> None:
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("tables_created", dropped=drop, tables=sorted(Base.metadata.tables))


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--drop", action="store_true", help="drop all tables before creating them")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    if args.drop and settings.APP_ENV == "prod":
        raise SystemExit("Refusing to drop tables with APP_ENV=prod")
    asyncio.run(_run(args.drop))


if __name__ == "__main__":
    main()
