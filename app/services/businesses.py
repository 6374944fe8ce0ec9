# app/services/businesses.py
from __future__ import annotations

import structlog
from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.user import User
from app.services.deal_lifecycle import (
    VERIFICATION_STATUS_SYNONYMS,
    VerificationStatus,
    ensure_verification_transition,
    normalize_verification_status,
    utc_now,
)
from app.services.notifications import queue_notification

logger = structlog.get_logger(__name__)


async def get_business_or_404(db: AsyncSession, business_id: int) -> Business:
    business = await db.get(Business, business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


async def get_business_by_user(db: AsyncSession, user_id: int) -> Business | None:
    res = await db.execute(select(Business).where(Business.user_id == user_id))
    return res.scalar_one_or_none()


async def require_own_business(db: AsyncSession, user: User) -> Business:
    business = await get_business_by_user(db, user.id)
    if not business:
        raise HTTPException(status_code=404, detail="No business profile for this account")
    return business


def stored_verification_status(business: Business) -> str:
    """Read-side normalisation for rows not yet repaired."""
    raw = (business.verification_status or VerificationStatus.pending.value).strip().lower()
    return VERIFICATION_STATUS_SYNONYMS.get(raw, raw)


async def update_business(db: AsyncSession, business: Business, data: dict) -> Business:
    for field, value in data.items():
        setattr(business, field, value)

    await db.commit()
    await db.refresh(business)
    return business


async def list_businesses(
    db: AsyncSession,
    *,
    verification_status: str | None = None,
    category: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[tuple[Business, str | None]]:
    stmt = select(Business, User.email).join(User, User.id == Business.user_id)

    if verification_status:
        wanted = normalize_verification_status(verification_status)
        # legacy rows may still say "approved"
        aliases = [wanted] + [k for k, v in VERIFICATION_STATUS_SYNONYMS.items() if v == wanted]
        stmt = stmt.where(Business.verification_status.in_(aliases))

    if category:
        stmt = stmt.where(Business.business_category == category)

    stmt = stmt.order_by(Business.created_at.desc(), Business.id.desc()).limit(limit).offset(offset)
    res = await db.execute(stmt)
    return [(b, email) for b, email in res.all()]


async def list_public_businesses(db: AsyncSession, *, search: str | None = None, limit: int = 200) -> list[Business]:
    verified = [VerificationStatus.verified.value] + list(VERIFICATION_STATUS_SYNONYMS)
    stmt = select(Business).where(Business.verification_status.in_(verified))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Business.business_name.ilike(like), Business.business_category.ilike(like)))
    res = await db.execute(stmt.order_by(Business.business_name.asc()).limit(limit))
    return list(res.scalars().all())


async def set_verification_status(
    db: AsyncSession,
    *,
    business_id: int,
    status: str,
    feedback: str | None,
    actor_user_id: int,
) -> Business:
    """
    Admin-only. The status change and the owner's notification commit together.
    """
    target = normalize_verification_status(status)

    stmt = select(Business).where(Business.id == business_id).with_for_update()
    res = await db.execute(stmt)
    business = res.scalar_one_or_none()
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")

    current = stored_verification_status(business)
    if target == VerificationStatus.rejected.value and not (feedback or "").strip():
        raise HTTPException(status_code=400, detail="Feedback is required when rejecting a business")

    if current != target:
        ensure_verification_transition(current, target)

    try:
        business.verification_status = target
        business.verification_feedback = feedback
        business.verified_at = utc_now() if target == VerificationStatus.verified.value else None

        if target == VerificationStatus.verified.value:
            title = "Your business has been verified"
        elif target == VerificationStatus.rejected.value:
            title = "Your business verification was rejected"
        else:
            title = "Your business is back under review"

        queue_notification(
            db,
            user_id=business.user_id,
            kind=f"business_{target}",
            title=title,
            message=feedback,
        )

        await db.commit()
        await db.refresh(business)
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "business_verification_changed",
        business_id=business.id,
        actor_user_id=actor_user_id,
        from_status=current,
        to_status=target,
    )
    return business
