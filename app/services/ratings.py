# app/services/ratings.py
from __future__ import annotations

import structlog
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.deal import Deal
from app.models.redemption_rating import RedemptionRating
from app.services.redemptions import RedemptionStatus, get_redemption_or_404

logger = structlog.get_logger(__name__)


async def get_rating_for_redemption(db: AsyncSession, redemption_id: int) -> RedemptionRating | None:
    res = await db.execute(select(RedemptionRating).where(RedemptionRating.redemption_id == redemption_id))
    return res.scalar_one_or_none()


async def rate_redemption(db: AsyncSession, *, redemption_id: int, user_id: int, data: dict) -> RedemptionRating:
    r = await get_redemption_or_404(db, redemption_id)
    if r.user_id != user_id:
        raise HTTPException(status_code=403, detail="Only the redeeming customer can rate this redemption")
    if r.status == RedemptionStatus.cancelled:
        raise HTTPException(status_code=409, detail="Cancelled redemptions cannot be rated")

    if await get_rating_for_redemption(db, redemption_id):
        raise HTTPException(status_code=409, detail="Redemption already rated")

    deal = await db.get(Deal, r.deal_id)
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")

    rating = RedemptionRating(
        redemption_id=r.id,
        user_id=user_id,
        deal_id=deal.id,
        business_id=deal.business_id,
        **data,
    )
    db.add(rating)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Redemption already rated")

    await db.refresh(rating)
    logger.info("redemption_rated", redemption_id=r.id, business_id=deal.business_id, rating=rating.rating)
    return rating


async def list_user_ratings(db: AsyncSession, *, user_id: int) -> list[tuple[RedemptionRating, Deal, Business]]:
    stmt = (
        select(RedemptionRating, Deal, Business)
        .join(Deal, Deal.id == RedemptionRating.deal_id)
        .join(Business, Business.id == RedemptionRating.business_id)
        .where(RedemptionRating.user_id == user_id)
        .order_by(RedemptionRating.created_at.desc())
    )
    res = await db.execute(stmt)
    return [(r, d, b) for r, d, b in res.all()]


async def list_business_ratings(db: AsyncSession, *, business_id: int) -> list[RedemptionRating]:
    res = await db.execute(
        select(RedemptionRating)
        .where(RedemptionRating.business_id == business_id)
        .order_by(RedemptionRating.created_at.desc(), RedemptionRating.id.desc())
    )
    return list(res.scalars().all())


async def business_rating_summary(db: AsyncSession, *, business_id: int) -> dict:
    if not await db.get(Business, business_id):
        raise HTTPException(status_code=404, detail="Business not found")

    res = await db.execute(
        select(RedemptionRating.rating, func.count(RedemptionRating.id))
        .where(RedemptionRating.business_id == business_id)
        .group_by(RedemptionRating.rating)
    )

    counts = {star: 0 for star in range(1, 6)}
    for star, n in res.all():
        counts[int(star)] = int(n)

    total = sum(counts.values())
    average = round(sum(star * n for star, n in counts.items()) / total, 1) if total else 0.0

    return {"average_rating": average, "total_ratings": total, "rating_counts": counts}

