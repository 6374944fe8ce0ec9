#!/usr/bin/env python3
"""
Print a JSON health report of deals and businesses. Read-only.

Run:
  python -m scripts.diagnose_deals
"""

from __future__ import annotations

import argparse
import asyncio
import json

from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.core.logging import configure_logging
from app.services.maintenance import diagnose_deals


async def _run() -> dict:
    async with SessionLocal() as db:
        report = await diagnose_deals(db)
    await engine.dispose()
    return report


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    report = asyncio.run(_run())
    print(json.dumps(report, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
