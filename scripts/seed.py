#!/usr/bin/env python3
"""
Seed a development database with an admin, two vendors, a customer and a few
deals in different review states. Safe to re-run: exits if the admin exists.

Run:
  python -m scripts.create_tables
  python -m scripts.seed [--password 'Seed&Pass42']
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta

import structlog

import app.models  # noqa: F401
from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.core.logging import configure_logging
from app.services.approvals import review_deal
from app.services.businesses import set_verification_status
from app.services.deal_lifecycle import utc_now
from app.services.deals import create_deal
from app.services.users import create_user, get_user_by_email, signup_business, signup_individual

logger = structlog.get_logger("scripts.seed")

ADMIN_EMAIL = "admin@pinnity.example.com"

VENDORS = (
    {
        "email": "brew@pinnity.example.com",
        "first_name": "Bea",
        "last_name": "Barista",
        "business": {
            "business_name": "Morning Brew",
            "business_category": "food_drink",
            "address": "12 Main St",
            "latitude": 40.7128,
            "longitude": -74.0060,
        },
        "verify": True,
    },
    {
        "email": "fit@pinnity.example.com",
        "first_name": "Finn",
        "last_name": "Trainer",
        "business": {
            "business_name": "Core Fitness",
            "business_category": "health_fitness",
            "address": "400 Elm Ave",
        },
        "verify": False,
    },
)


async def _seed(password: str) -> None:
    async with SessionLocal() as db:
        if await get_user_by_email(db, ADMIN_EMAIL):
            logger.info("seed_skipped", reason="admin already exists")
            return

        admin = await create_user(
            db, email=ADMIN_EMAIL, password=password, user_type="admin", first_name="Ada", last_name="Admin"
        )
        await db.commit()
        await db.refresh(admin)

        await signup_individual(
            db, email="customer@pinnity.example.com", password=password, first_name="Cal", last_name="Customer"
        )

        now = utc_now()
        for vendor in VENDORS:
            user, business = await signup_business(
                db,
                user_fields={
                    "email": vendor["email"],
                    "password": password,
                    "first_name": vendor["first_name"],
                    "last_name": vendor["last_name"],
                },
                business_fields=vendor["business"],
            )
            if not vendor["verify"]:
                continue

            await set_verification_status(
                db, business_id=business.id, status="verified", feedback=None, actor_user_id=admin.id
            )

            approved, _ = await create_deal(
                db,
                user=user,
                data={
                    "title": "2-for-1 lattes",
                    "category": "food_drink",
                    "deal_type": "bogo",
                    "discount": "BOGO",
                    "start_date": now - timedelta(days=1),
                    "end_date": now + timedelta(days=30),
                    "max_redemptions_per_user": 1,
                    "redemption_code": "LATTE2",
                },
            )
            await review_deal(db, deal_id=approved.id, reviewer_id=admin.id, decision="approved", feedback=None)

            await create_deal(
                db,
                user=user,
                data={
                    "title": "20% off pastries",
                    "category": "food_drink",
                    "deal_type": "percent_off",
                    "discount": "20%",
                    "start_date": now,
                    "end_date": now + timedelta(hours=36),
                },
            )

            await create_deal(
                db,
                user=user,
                data={
                    "title": "Free cookie with any drink",
                    "category": "food_drink",
                    "start_date": now,
                    "end_date": now + timedelta(days=14),
                    "as_draft": True,
                },
            )

    await engine.dispose()
    logger.info("seed_done", admin=ADMIN_EMAIL)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--password", default="Seed&Pass42", help="password for every seeded account")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    asyncio.run(_seed(args.password))


if __name__ == "__main__":
    main()
