# app/services/maintenance.py
"""
Repairs and reports run from scripts/. Each writer accepts `dry_run` and
rolls back instead of committing when it is set.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.deal import Deal
from app.models.deal_approval import DealApproval
from app.services.deal_lifecycle import (
    DEAL_STATUS_SYNONYMS,
    EXPIRABLE_STATUSES,
    VERIFICATION_STATUS_SYNONYMS,
    VERIFICATION_TRANSITIONS,
    DealStatus,
    VerificationStatus,
    effective_status,
    expired_clause,
    utc_now,
)
from app.services.deals import log_deal_event
from app.services.notifications import queue_notification

logger = structlog.get_logger(__name__)


async def _finish(db: AsyncSession, *, dry_run: bool) -> None:
    if dry_run:
        await db.rollback()
    else:
        await db.commit()


async def fix_missing_verification(db: AsyncSession, *, dry_run: bool = False) -> dict[str, int]:
    """
    Businesses with an empty status go back to pending; synonyms and stray
    casing are rewritten to the canonical value.
    """
    counts = {"missing": 0, "normalized": 0}

    try:
        res = await db.execute(
            update(Business)
            .where(or_(Business.verification_status.is_(None), Business.verification_status == ""))
            .values(verification_status=VerificationStatus.pending.value)
        )
        counts["missing"] = int(res.rowcount or 0)

        res = await db.execute(
            select(Business).where(Business.verification_status.not_in(tuple(VERIFICATION_TRANSITIONS)))
        )
        for business in res.scalars().all():
            raw = (business.verification_status or "").strip().lower()
            fixed = VERIFICATION_STATUS_SYNONYMS.get(raw, raw)
            if fixed not in VERIFICATION_TRANSITIONS:
                fixed = VerificationStatus.pending.value
            business.verification_status = fixed
            counts["normalized"] += 1

        await _finish(db, dry_run=dry_run)
    except Exception:
        await db.rollback()
        raise

    logger.info("fix_missing_verification", dry_run=dry_run, **counts)
    return counts


async def normalize_deal_statuses(db: AsyncSession, *, dry_run: bool = False) -> int:
    """Rewrite legacy "active"/"verified" deal rows to "approved"."""
    try:
        res = await db.execute(
            update(Deal)
            .where(Deal.status.in_(tuple(DEAL_STATUS_SYNONYMS)))
            .values(status=DealStatus.approved.value)
            .execution_options(synchronize_session=False)
        )
        n = int(res.rowcount or 0)
        await _finish(db, dry_run=dry_run)
    except Exception:
        await db.rollback()
        raise

    logger.info("normalize_deal_statuses", dry_run=dry_run, updated=n)
    return n


async def backfill_deal_approvals(db: AsyncSession, *, dry_run: bool = False) -> list[int]:
    """Create the missing approval row for every deal that has none."""
    res = await db.execute(
        select(Deal)
        .outerjoin(DealApproval, DealApproval.deal_id == Deal.id)
        .where(DealApproval.id.is_(None))
        .order_by(Deal.id.asc())
    )
    deals = list(res.scalars().all())
    ids = [d.id for d in deals]

    try:
        for deal in deals:
            db.add(
                DealApproval(
                    deal_id=deal.id,
                    status=deal.status,
                    revision_count=0,
                    submitted_at=deal.created_at,
                )
            )
            await log_deal_event(
                db,
                deal_id=deal.id,
                actor_user_id=None,
                event_type="approval_backfilled",
                meta={"status": deal.status},
            )
        await _finish(db, dry_run=dry_run)
    except Exception:
        await db.rollback()
        raise

    logger.info("backfill_deal_approvals", dry_run=dry_run, created=len(ids))
    return ids


async def expire_deals(
    db: AsyncSession, *, now: datetime | None = None, dry_run: bool = False
) -> list[int]:
    """
    Persist "expired" for every deal whose end_date has passed. Uses the same
    rule as `effective_status`, so the stored value matches what readers saw.
    """
    now = now or utc_now()
    res = await db.execute(
        select(Deal, Business.user_id)
        .join(Business, Business.id == Deal.business_id)
        .where(Deal.status.in_(EXPIRABLE_STATUSES), expired_clause(Deal, now))
        .order_by(Deal.id.asc())
        .with_for_update(of=Deal)
    )
    rows = res.all()
    ids = [deal.id for deal, _ in rows]

    try:
        for deal, owner_id in rows:
            previous = deal.status
            deal.status = DealStatus.expired.value
            await log_deal_event(
                db,
                deal_id=deal.id,
                actor_user_id=None,
                event_type="expired",
                from_status=previous,
                to_status=DealStatus.expired.value,
            )
            queue_notification(
                db,
                user_id=owner_id,
                kind="deal_expired",
                title="Your deal has expired",
                message=deal.title,
                deal_id=deal.id,
            )
        await _finish(db, dry_run=dry_run)
    except Exception:
        await db.rollback()
        raise

    logger.info("expire_deals", dry_run=dry_run, expired=len(ids))
    return ids


async def diagnose_deals(db: AsyncSession, *, now: datetime | None = None) -> dict:
    """Read-only health report of deal and business rows."""
    now = now or utc_now()

    res = await db.execute(select(Deal))
    deals = list(res.scalars().all())

    stored = Counter(d.status for d in deals)
    effective = Counter(effective_status(d, now) for d in deals)
    stale = sorted(d.id for d in deals if d.status != effective_status(d, now))

    without_approval = await db.scalar(
        select(func.count(Deal.id))
        .select_from(Deal)
        .outerjoin(DealApproval, DealApproval.deal_id == Deal.id)
        .where(DealApproval.id.is_(None))
    )

    bad_verification = await db.scalar(
        select(func.count(Business.id)).where(
            or_(
                Business.verification_status.is_(None),
                Business.verification_status.not_in(tuple(VERIFICATION_TRANSITIONS)),
            )
        )
    )

    return {
        "total_deals": len(deals),
        "stored_status_counts": dict(stored),
        "effective_status_counts": dict(effective),
        "expired_not_persisted": stale,
        "deals_without_approval": int(without_approval or 0),
        "businesses_with_invalid_verification": int(bad_verification or 0),
    }
