# app/services/deals.py
from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import HTTPException
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.business import Business
from app.models.deal import Deal
from app.models.deal_approval import DealApproval
from app.models.deal_event import DealEvent
from app.models.deal_redemption import DealRedemption
from app.models.notification import Notification
from app.models.redemption_rating import RedemptionRating
from app.models.user import User
from app.models.user_favorite import UserFavorite
from app.schemas.businesses import BusinessSummaryOut
from app.schemas.deals import DealOut
from app.services.businesses import get_business_by_user, stored_verification_status
from app.services.deal_lifecycle import (
    DealStatus,
    VerificationStatus,
    as_utc,
    effective_status,
    effective_status_clause,
    ensure_transition,
    is_expired,
    is_expiring_soon,
    not_expired_clause,
    utc_now,
)

logger = structlog.get_logger(__name__)

# Fields copied by duplicate_deal()
COPY_FIELDS = (
    "business_id",
    "description",
    "category",
    "image_url",
    "deal_type",
    "discount",
    "terms",
    "start_date",
    "end_date",
    "max_redemptions_per_user",
    "total_redemptions_limit",
    "redemption_code",
)

NOT_EDITABLE = (DealStatus.rejected.value, DealStatus.expired.value)
REQUIRED_FIELDS = ("title", "category", "start_date", "end_date")


async def log_deal_event(
    db: AsyncSession,
    *,
    deal_id: int,
    actor_user_id: int | None,
    event_type: str,
    from_status: str | None = None,
    to_status: str | None = None,
    meta: dict | None = None,
):
    e = DealEvent(
        deal_id=deal_id,
        actor_user_id=actor_user_id,
        event_type=event_type,
        from_status=from_status,
        to_status=to_status,
        meta=meta or {},
    )
    db.add(e)


def deal_out(deal: Deal, business: Business | None = None, *, now: datetime | None = None) -> DealOut:
    now = now or utc_now()
    out = DealOut.model_validate(deal)
    out.effective_status = effective_status(deal, now)
    out.is_expiring_soon = is_expiring_soon(deal, now, hours=settings.EXPIRING_SOON_HOURS)
    if business is not None:
        out.business = BusinessSummaryOut.model_validate(business)
        out.business.verification_status = stored_verification_status(business)
    return out


async def get_deal_or_404(db: AsyncSession, deal_id: int, *, for_update: bool = False) -> Deal:
    stmt = select(Deal).where(Deal.id == deal_id)
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    deal = res.scalar_one_or_none()
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


async def get_deal_with_business(db: AsyncSession, deal_id: int) -> tuple[Deal, Business]:
    res = await db.execute(
        select(Deal, Business).join(Business, Business.id == Deal.business_id).where(Deal.id == deal_id)
    )
    row = res.first()
    if not row:
        raise HTTPException(status_code=404, detail="Deal not found")
    return row[0], row[1]


async def get_approval_for_deal(db: AsyncSession, deal_id: int) -> DealApproval | None:
    res = await db.execute(select(DealApproval).where(DealApproval.deal_id == deal_id))
    return res.scalar_one_or_none()


async def ensure_can_manage(db: AsyncSession, user: User, deal: Deal) -> Business | None:
    """Admins manage every deal; vendors only their own business's deals."""
    if user.user_type == "admin":
        return None
    business = await get_business_by_user(db, user.id)
    if not business or business.id != deal.business_id:
        raise HTTPException(status_code=403, detail="Not your deal")
    return business


def can_view_deal(deal: Deal, business: Business, viewer: User | None, now: datetime | None = None) -> bool:
    """Python twin of `_visible_to` for a single loaded deal."""
    if viewer is not None and (viewer.user_type == "admin" or viewer.id == business.user_id):
        return True
    return effective_status(deal, now) == DealStatus.approved.value


def ensure_visible(deal: Deal, business: Business, viewer: User | None, now: datetime | None = None) -> None:
    if not can_view_deal(deal, business, viewer, now):
        # unpublished deals look missing to everyone else
        raise HTTPException(status_code=404, detail="Deal not found")


def _visible_to(viewer: User | None, now: datetime):
    public = and_(Deal.status == DealStatus.approved.value, not_expired_clause(Deal, now))
    if viewer is None or viewer.user_type == "individual":
        return public
    if viewer.user_type == "admin":
        return None
    return or_(public, Business.user_id == viewer.id)


# -------------------------
# Create / submit
# -------------------------
async def create_deal(db: AsyncSession, *, user: User, data: dict) -> tuple[Deal, DealApproval]:
    """
    Vendor creates a deal. The deal, its approval row and the first event are
    written in one transaction.
    """
    business = await get_business_by_user(db, user.id)
    if not business:
        raise HTTPException(status_code=403, detail="Only businesses can create deals")
    if stored_verification_status(business) == VerificationStatus.rejected.value:
        raise HTTPException(status_code=403, detail="Business verification was rejected")

    as_draft = bool(data.pop("as_draft", False))
    data["start_date"] = as_utc(data["start_date"])
    data["end_date"] = as_utc(data["end_date"])
    if data["end_date"] <= utc_now():
        raise HTTPException(status_code=400, detail="end_date must be in the future")

    status = DealStatus.draft.value if as_draft else DealStatus.pending.value

    try:
        deal = Deal(business_id=business.id, status=status, **data)
        db.add(deal)
        await db.flush()

        approval = DealApproval(deal_id=deal.id, submitter_id=user.id, status=status, revision_count=0)
        db.add(approval)

        await log_deal_event(
            db,
            deal_id=deal.id,
            actor_user_id=user.id,
            event_type="drafted" if as_draft else "submitted",
            to_status=status,
        )

        await db.commit()
        await db.refresh(deal)
        await db.refresh(approval)
    except Exception:
        await db.rollback()
        raise

    logger.info("deal_created", deal_id=deal.id, business_id=business.id, status=status)
    return deal, approval


async def submit_draft(db: AsyncSession, *, deal_id: int, user: User) -> Deal:
    deal = await get_deal_or_404(db, deal_id, for_update=True)
    await ensure_can_manage(db, user, deal)
    if deal.status != DealStatus.draft.value:
        raise HTTPException(status_code=409, detail="Only draft deals can be submitted")
    if is_expired(deal):
        raise HTTPException(status_code=400, detail="end_date has already passed")

    try:
        approval = await _approval_or_new(db, deal, submitter_id=user.id)
        approval.status = DealStatus.pending.value
        approval.submitted_at = utc_now()

        await log_deal_event(
            db,
            deal_id=deal.id,
            actor_user_id=user.id,
            event_type="submitted",
            from_status=deal.status,
            to_status=DealStatus.pending.value,
        )
        deal.status = DealStatus.pending.value

        await db.commit()
        await db.refresh(deal)
    except Exception:
        await db.rollback()
        raise

    logger.info("deal_submitted", deal_id=deal.id, actor_user_id=user.id)
    return deal


async def _approval_or_new(db: AsyncSession, deal: Deal, *, submitter_id: int | None) -> DealApproval:
    approval = await get_approval_for_deal(db, deal.id)
    if approval is None:
        approval = DealApproval(deal_id=deal.id, submitter_id=submitter_id, status=deal.status, revision_count=0)
        db.add(approval)
    return approval


async def _resubmit(db: AsyncSession, deal: Deal, *, actor_user_id: int) -> DealApproval:
    """pending_revision -> pending. Caller commits."""
    ensure_transition(deal.status, DealStatus.pending.value)

    approval = await _approval_or_new(db, deal, submitter_id=actor_user_id)
    approval.revision_count = (approval.revision_count or 0) + 1
    approval.status = DealStatus.pending.value
    approval.submitted_at = utc_now()
    approval.reviewer_id = None
    approval.reviewed_at = None

    await log_deal_event(
        db,
        deal_id=deal.id,
        actor_user_id=actor_user_id,
        event_type="resubmitted",
        from_status=deal.status,
        to_status=DealStatus.pending.value,
        meta={"revision_count": approval.revision_count},
    )
    deal.status = DealStatus.pending.value
    return approval


async def resubmit_deal(db: AsyncSession, *, deal_id: int, user: User) -> tuple[Deal, DealApproval]:
    deal = await get_deal_or_404(db, deal_id, for_update=True)
    await ensure_can_manage(db, user, deal)

    if deal.status != DealStatus.pending_revision.value:
        raise HTTPException(status_code=409, detail="Only deals awaiting revision can be resubmitted")

    try:
        approval = await _resubmit(db, deal, actor_user_id=user.id)
        await db.commit()
        await db.refresh(deal)
        await db.refresh(approval)
    except Exception:
        await db.rollback()
        raise

    logger.info("deal_resubmitted", deal_id=deal.id, revision_count=approval.revision_count)
    return deal, approval


# -------------------------
# Edit / delete / duplicate
# -------------------------
async def update_deal(db: AsyncSession, *, deal_id: int, user: User, data: dict) -> Deal:
    """
    Content edit. A vendor editing a deal that is awaiting revision resubmits it.
    """
    deal = await get_deal_or_404(db, deal_id, for_update=True)
    await ensure_can_manage(db, user, deal)

    if effective_status(deal) in NOT_EDITABLE:
        raise HTTPException(status_code=409, detail=f"A {effective_status(deal)} deal cannot be edited")

    # required columns cannot be cleared
    data = {k: v for k, v in data.items() if v is not None or k not in REQUIRED_FIELDS}

    for key in ("start_date", "end_date"):
        if data.get(key) is not None:
            data[key] = as_utc(data[key])

    start = data.get("start_date") or deal.start_date
    end = data.get("end_date") or deal.end_date
    if as_utc(end) <= as_utc(start):
        raise HTTPException(status_code=400, detail="end_date must be after start_date")

    try:
        for field, value in data.items():
            setattr(deal, field, value)

        await log_deal_event(
            db,
            deal_id=deal.id,
            actor_user_id=user.id,
            event_type="updated",
            meta={"fields": sorted(data)},
        )

        if deal.status == DealStatus.pending_revision.value and user.user_type != "admin":
            await _resubmit(db, deal, actor_user_id=user.id)

        await db.commit()
        await db.refresh(deal)
    except Exception:
        await db.rollback()
        raise

    return deal


async def delete_deal(db: AsyncSession, *, deal_id: int, user: User) -> None:
    deal = await get_deal_or_404(db, deal_id, for_update=True)
    await ensure_can_manage(db, user, deal)

    try:
        await db.execute(delete(RedemptionRating).where(RedemptionRating.deal_id == deal.id))
        await db.execute(delete(DealRedemption).where(DealRedemption.deal_id == deal.id))
        await db.execute(delete(UserFavorite).where(UserFavorite.deal_id == deal.id))
        await db.execute(delete(DealEvent).where(DealEvent.deal_id == deal.id))
        await db.execute(delete(DealApproval).where(DealApproval.deal_id == deal.id))
        await db.execute(update(Notification).where(Notification.deal_id == deal.id).values(deal_id=None))
        await db.delete(deal)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("deal_deleted", deal_id=deal_id, actor_user_id=user.id)


async def duplicate_deal(db: AsyncSession, *, deal_id: int, user: User) -> Deal:
    source = await get_deal_or_404(db, deal_id)
    await ensure_can_manage(db, user, source)

    title = f"{source.title} (Copy)"[:255]

    try:
        copy = Deal(
            title=title,
            status=DealStatus.draft.value,
            featured=False,
            view_count=0,
            save_count=0,
            redemption_count=0,
            **{f: getattr(source, f) for f in COPY_FIELDS},
        )
        db.add(copy)
        await db.flush()

        db.add(DealApproval(deal_id=copy.id, submitter_id=user.id, status=DealStatus.draft.value))
        await log_deal_event(
            db,
            deal_id=copy.id,
            actor_user_id=user.id,
            event_type="duplicated",
            to_status=DealStatus.draft.value,
            meta={"source_deal_id": source.id},
        )

        await db.commit()
        await db.refresh(copy)
    except Exception:
        await db.rollback()
        raise

    return copy


# -------------------------
# Counters / flags
# -------------------------
async def record_view(db: AsyncSession, deal_id: int, *, viewer: User | None = None) -> int:
    deal, business = await get_deal_with_business(db, deal_id)
    ensure_visible(deal, business, viewer)

    res = await db.execute(
        update(Deal).where(Deal.id == deal_id).values(view_count=Deal.view_count + 1)
    )
    if not res.rowcount:
        await db.rollback()
        raise HTTPException(status_code=404, detail="Deal not found")
    await db.commit()

    count = await db.scalar(select(Deal.view_count).where(Deal.id == deal_id))
    return int(count or 0)


async def set_featured(db: AsyncSession, *, deal_id: int, featured: bool, actor_user_id: int) -> Deal:
    deal = await get_deal_or_404(db, deal_id, for_update=True)

    try:
        deal.featured = featured
        await log_deal_event(
            db,
            deal_id=deal.id,
            actor_user_id=actor_user_id,
            event_type="featured" if featured else "unfeatured",
        )
        await db.commit()
        await db.refresh(deal)
    except Exception:
        await db.rollback()
        raise

    return deal


# -------------------------
# Reads
# -------------------------
async def list_deals(
    db: AsyncSession,
    *,
    viewer: User | None,
    category: str | None = None,
    search: str | None = None,
    status: str | None = None,
    featured: bool | None = None,
    limit: int = 100,
    offset: int = 0,
    now: datetime | None = None,
) -> list[tuple[Deal, Business]]:
    now = now or utc_now()
    stmt = select(Deal, Business).join(Business, Business.id == Deal.business_id)

    visible = _visible_to(viewer, now)
    if visible is not None:
        stmt = stmt.where(visible)

    if status:
        stmt = stmt.where(effective_status_clause(Deal, status, now))
    if category:
        stmt = stmt.where(Deal.category == category)
    if featured is not None:
        stmt = stmt.where(Deal.featured == featured)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(Deal.title.ilike(like), Deal.description.ilike(like), Business.business_name.ilike(like))
        )

    stmt = stmt.order_by(Deal.created_at.desc(), Deal.id.desc()).limit(limit).offset(offset)
    res = await db.execute(stmt)
    return [(d, b) for d, b in res.all()]


async def list_featured_deals(db: AsyncSession, *, limit: int = 10, now: datetime | None = None):
    return await list_deals(db, viewer=None, featured=True, limit=limit, now=now)


async def list_business_deals(
    db: AsyncSession,
    *,
    business_id: int,
    viewer: User | None,
    status: str | None = None,
    now: datetime | None = None,
) -> list[tuple[Deal, Business]]:
    now = now or utc_now()
    business = await db.get(Business, business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")

    stmt = select(Deal, Business).join(Business, Business.id == Deal.business_id).where(
        Deal.business_id == business_id
    )

    is_owner = viewer is not None and (viewer.user_type == "admin" or viewer.id == business.user_id)
    if not is_owner:
        stmt = stmt.where(Deal.status == DealStatus.approved.value, not_expired_clause(Deal, now))
    if status:
        stmt = stmt.where(effective_status_clause(Deal, status, now))

    res = await db.execute(stmt.order_by(Deal.created_at.desc(), Deal.id.desc()))
    return [(d, b) for d, b in res.all()]


async def list_deals_by_status(
    db: AsyncSession, *, status: str, limit: int = 200, offset: int = 0, now: datetime | None = None
) -> list[tuple[Deal, Business]]:
    now = now or utc_now()
    stmt = (
        select(Deal, Business)
        .join(Business, Business.id == Deal.business_id)
        .where(effective_status_clause(Deal, status, now))
        .order_by(Deal.created_at.asc(), Deal.id.asc())
        .limit(limit)
        .offset(offset)
    )
    res = await db.execute(stmt)
    return [(d, b) for d, b in res.all()]


async def get_visible_deal(
    db: AsyncSession, *, deal_id: int, viewer: User | None, now: datetime | None = None
) -> tuple[Deal, Business]:
    deal, business = await get_deal_with_business(db, deal_id)
    ensure_visible(deal, business, viewer, now)
    return deal, business


async def status_overview(db: AsyncSession, *, now: datetime | None = None) -> dict:
    now = now or utc_now()
    res = await db.execute(select(Deal))
    deals = list(res.scalars().all())

    counts = {s.value: 0 for s in DealStatus}
    for d in deals:
        s = effective_status(d, now)
        counts[s] = counts.get(s, 0) + 1

    missing = await db.scalar(
        select(func.count(Deal.id))
        .select_from(Deal)
        .outerjoin(DealApproval, DealApproval.deal_id == Deal.id)
        .where(DealApproval.id.is_(None))
    )

    return {
        "total_deals": len(deals),
        "status_counts": counts,
        "deals_without_approval": int(missing or 0),
    }


async def list_deal_events(db: AsyncSession, deal_id: int) -> list[DealEvent]:
    res = await db.execute(
        select(DealEvent).where(DealEvent.deal_id == deal_id).order_by(DealEvent.created_at.asc(), DealEvent.id.asc())
    )
    return list(res.scalars().all())
