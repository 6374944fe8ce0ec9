# app/services/approvals.py
from __future__ import annotations

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.deal import Deal
from app.models.deal_approval import DealApproval
from app.services.deal_lifecycle import (
    DealStatus,
    ensure_transition,
    is_expired,
    normalize_deal_status,
    utc_now,
)
from app.services.deals import (
    get_approval_for_deal,
    get_deal_or_404,
    log_deal_event,
)
from app.services.notifications import queue_notification

logger = structlog.get_logger(__name__)

REVIEW_EVENTS = {
    DealStatus.approved.value: "approved",
    DealStatus.rejected.value: "rejected",
    DealStatus.pending_revision.value: "revision_requested",
}

REVIEW_TITLES = {
    DealStatus.approved.value: "Your deal was approved",
    DealStatus.rejected.value: "Your deal was rejected",
    DealStatus.pending_revision.value: "Your deal needs changes",
    DealStatus.expired.value: "Your deal has expired",
}


async def get_approval_or_404(db: AsyncSession, deal_id: int) -> DealApproval:
    approval = await get_approval_for_deal(db, deal_id)
    if not approval:
        raise HTTPException(status_code=404, detail="Approval not found")
    return approval


async def _apply_status(
    db: AsyncSession,
    *,
    deal: Deal,
    target: str,
    reviewer_id: int,
    feedback: str | None,
    event_type: str,
) -> tuple[DealApproval, Business]:
    """
    Moves the deal and its approval row, appends the event and queues the
    vendor notification. Everything commits together or not at all.
    """
    business = await db.get(Business, deal.business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")

    current = deal.status

    try:
        approval = await get_approval_for_deal(db, deal.id)
        if approval is None:
            # deals created before approval rows were mandatory
            approval = DealApproval(deal_id=deal.id, status=current, revision_count=0)
            db.add(approval)

        now = utc_now()
        deal.status = target
        approval.status = target
        approval.reviewer_id = reviewer_id
        approval.feedback = feedback
        approval.reviewed_at = now

        await log_deal_event(
            db,
            deal_id=deal.id,
            actor_user_id=reviewer_id,
            event_type=event_type,
            from_status=current,
            to_status=target,
            meta={"feedback": feedback} if feedback else None,
        )

        queue_notification(
            db,
            user_id=business.user_id,
            kind=f"deal_{target}",
            title=REVIEW_TITLES.get(target, f"Your deal is now {target}"),
            message=feedback or deal.title,
            deal_id=deal.id,
        )

        await db.commit()
        await db.refresh(deal)
        await db.refresh(approval)
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "deal_reviewed",
        deal_id=deal.id,
        actor_user_id=reviewer_id,
        from_status=current,
        to_status=target,
    )
    return approval, business


async def review_deal(
    db: AsyncSession,
    *,
    deal_id: int,
    reviewer_id: int,
    decision: str,
    feedback: str | None,
) -> tuple[DealApproval, Deal, Business]:
    """Admin approve / reject / request revision of a pending deal."""
    target = normalize_deal_status(decision)
    if target not in REVIEW_EVENTS:
        raise HTTPException(status_code=400, detail=f"Invalid review decision: {decision!r}")

    feedback = (feedback or "").strip() or None
    if target != DealStatus.approved.value and not feedback:
        raise HTTPException(status_code=400, detail="Feedback is required to reject or request changes")

    deal = await get_deal_or_404(db, deal_id, for_update=True)
    if deal.status != DealStatus.pending.value:
        raise HTTPException(status_code=409, detail=f"Deal is {deal.status}, only pending deals can be reviewed")
    if target == DealStatus.approved.value and is_expired(deal):
        raise HTTPException(status_code=409, detail="Deal has already expired")

    approval, business = await _apply_status(
        db,
        deal=deal,
        target=target,
        reviewer_id=reviewer_id,
        feedback=feedback,
        event_type=REVIEW_EVENTS[target],
    )
    return approval, deal, business


async def admin_set_deal_status(
    db: AsyncSession,
    *,
    deal_id: int,
    status: str,
    actor_user_id: int,
    feedback: str | None = None,
) -> Deal:
    """
    Direct status change from the admin console. Goes through the same
    transition table as every other path.
    """
    target = normalize_deal_status(status)
    deal = await get_deal_or_404(db, deal_id, for_update=True)

    if deal.status == DealStatus.pending.value and target in REVIEW_EVENTS:
        _, deal, _ = await review_deal(
            db, deal_id=deal_id, reviewer_id=actor_user_id, decision=target, feedback=feedback
        )
        return deal

    if deal.status == target:
        return deal

    ensure_transition(deal.status, target)
    if target == DealStatus.rejected.value and not (feedback or "").strip():
        raise HTTPException(status_code=400, detail="Feedback is required to reject a deal")

    await _apply_status(
        db,
        deal=deal,
        target=target,
        reviewer_id=actor_user_id,
        feedback=(feedback or "").strip() or None,
        event_type="status_changed",
    )
    return deal
