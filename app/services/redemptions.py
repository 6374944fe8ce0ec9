# app/services/redemptions.py
"""
Redemption bookkeeping.

The table accepts any number of rows per (user, deal); the per-user and total
limits are enforced here, under a row lock on the deal.
"""
from __future__ import annotations

import secrets
import string
from datetime import datetime

import structlog
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.deal import Deal
from app.models.deal_redemption import DealRedemption
from app.models.user import User
from app.services.deal_lifecycle import DealStatus, as_utc, effective_status, utc_now
from app.services.deals import ensure_can_manage, get_deal_or_404

logger = structlog.get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


class RedemptionStatus:
    redeemed = "redeemed"
    verified = "verified"
    completed = "completed"
    cancelled = "cancelled"


def _generate_redemption_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


async def count_user_redemptions(db: AsyncSession, *, user_id: int, deal_id: int) -> int:
    n = await db.scalar(
        select(func.count(DealRedemption.id)).where(
            DealRedemption.user_id == user_id,
            DealRedemption.deal_id == deal_id,
            DealRedemption.status != RedemptionStatus.cancelled,
        )
    )
    return int(n or 0)


async def redeem_deal(
    db: AsyncSession,
    *,
    user: User,
    deal_id: int,
    now: datetime | None = None,
) -> DealRedemption:
    now = now or utc_now()
    deal = await get_deal_or_404(db, deal_id, for_update=True)

    if effective_status(deal, now) != DealStatus.approved.value:
        raise HTTPException(status_code=409, detail="Deal is not available for redemption")
    if as_utc(deal.start_date) > as_utc(now):
        raise HTTPException(status_code=409, detail="Deal has not started yet")

    if deal.max_redemptions_per_user is not None:
        used = await count_user_redemptions(db, user_id=user.id, deal_id=deal.id)
        if used >= deal.max_redemptions_per_user:
            raise HTTPException(status_code=409, detail="You have reached the redemption limit for this deal")

    if deal.total_redemptions_limit is not None and (deal.redemption_count or 0) >= deal.total_redemptions_limit:
        raise HTTPException(status_code=409, detail="This deal has been fully redeemed")

    try:
        redemption = DealRedemption(
            user_id=user.id,
            deal_id=deal.id,
            status=RedemptionStatus.redeemed,
            redemption_code=_generate_redemption_code(),
        )
        db.add(redemption)
        deal.redemption_count = (deal.redemption_count or 0) + 1

        await db.commit()
        await db.refresh(redemption)
    except Exception:
        await db.rollback()
        raise

    logger.info("deal_redeemed", deal_id=deal.id, user_id=user.id, redemption_id=redemption.id)
    return redemption


async def get_redemption_or_404(db: AsyncSession, redemption_id: int, *, for_update: bool = False) -> DealRedemption:
    stmt = select(DealRedemption).where(DealRedemption.id == redemption_id)
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    r = res.scalar_one_or_none()
    if not r:
        raise HTTPException(status_code=404, detail="Redemption not found")
    return r


async def list_user_redemptions(db: AsyncSession, *, user_id: int) -> list[tuple[DealRedemption, Deal, Business]]:
    stmt = (
        select(DealRedemption, Deal, Business)
        .join(Deal, Deal.id == DealRedemption.deal_id)
        .join(Business, Business.id == Deal.business_id)
        .where(DealRedemption.user_id == user_id)
        .order_by(DealRedemption.redeemed_at.desc(), DealRedemption.id.desc())
    )
    res = await db.execute(stmt)
    return [(r, d, b) for r, d, b in res.all()]


async def list_deal_redemptions(db: AsyncSession, *, deal_id: int, actor: User) -> list[DealRedemption]:
    deal = await get_deal_or_404(db, deal_id)
    await ensure_can_manage(db, actor, deal)

    res = await db.execute(
        select(DealRedemption)
        .where(DealRedemption.deal_id == deal_id)
        .order_by(DealRedemption.redeemed_at.desc(), DealRedemption.id.desc())
    )
    return list(res.scalars().all())


async def _vendor_transition(
    db: AsyncSession,
    *,
    redemption_id: int,
    actor: User,
    allowed_from: tuple[str, ...],
    target: str,
    deal_id: int | None = None,
) -> DealRedemption:
    r = await get_redemption_or_404(db, redemption_id, for_update=True)
    if deal_id is not None and r.deal_id != deal_id:
        raise HTTPException(status_code=404, detail="Redemption not found for this deal")

    deal = await get_deal_or_404(db, r.deal_id)
    await ensure_can_manage(db, actor, deal)

    if r.status not in allowed_from:
        raise HTTPException(status_code=409, detail=f"Redemption is {r.status}")

    r.status = target
    setattr(r, f"{target}_at", utc_now())
    await db.commit()
    await db.refresh(r)

    logger.info("redemption_status_changed", redemption_id=r.id, status=target, actor_user_id=actor.id)
    return r


async def verify_redemption(
    db: AsyncSession, *, redemption_id: int, actor: User, deal_id: int | None = None
) -> DealRedemption:
    return await _vendor_transition(
        db,
        redemption_id=redemption_id,
        actor=actor,
        allowed_from=(RedemptionStatus.redeemed,),
        target=RedemptionStatus.verified,
        deal_id=deal_id,
    )


async def complete_redemption(db: AsyncSession, *, redemption_id: int, actor: User) -> DealRedemption:
    return await _vendor_transition(
        db,
        redemption_id=redemption_id,
        actor=actor,
        allowed_from=(RedemptionStatus.redeemed, RedemptionStatus.verified),
        target=RedemptionStatus.completed,
    )


async def cancel_redemption(db: AsyncSession, *, redemption_id: int, user: User) -> DealRedemption:
    """Customer cancels an unused redemption; the slot is given back."""
    r = await get_redemption_or_404(db, redemption_id, for_update=True)
    if r.user_id != user.id and user.user_type != "admin":
        raise HTTPException(status_code=403, detail="Not your redemption")
    if r.status != RedemptionStatus.redeemed:
        raise HTTPException(status_code=409, detail=f"Redemption is {r.status}")

    deal = await get_deal_or_404(db, r.deal_id, for_update=True)

    try:
        r.status = RedemptionStatus.cancelled
        r.cancelled_at = utc_now()
        deal.redemption_count = max((deal.redemption_count or 0) - 1, 0)
        await db.commit()
        await db.refresh(r)
    except Exception:
        await db.rollback()
        raise

    logger.info("redemption_cancelled", redemption_id=r.id, deal_id=deal.id, user_id=user.id)
    return r


async def verify_redemption_code(db: AsyncSession, *, deal_id: int, code: str, actor: User) -> bool:
    deal = await get_deal_or_404(db, deal_id)
    await ensure_can_manage(db, actor, deal)

    if not deal.redemption_code:
        return False
    return deal.redemption_code.strip().upper() == code.strip().upper()
