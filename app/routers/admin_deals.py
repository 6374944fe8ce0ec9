# app/routers/admin_deals.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.schemas.approvals import DealApprovalOut, DealEventOut, DealReviewIn, DealReviewOut
from app.schemas.deals import DealFeaturedIn, DealOut, DealStatusIn, DealStatusOverviewOut
from app.services.approvals import admin_set_deal_status, get_approval_or_404, review_deal
from app.services.deals import (
    deal_out,
    get_deal_or_404,
    get_deal_with_business,
    list_deal_events,
    list_deals,
    list_deals_by_status,
    set_featured,
    status_overview,
)

router = APIRouter(prefix="/admin/deals", tags=["Admin - Deals"])


@router.get("", response_model=list[DealOut])
async def admin_list_deals(
    status: str | None = Query(default=None),
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    rows = await list_deals(
        db,
        viewer=admin_user,
        status=status,
        category=category,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [deal_out(d, b) for d, b in rows]


@router.get("/overview", response_model=DealStatusOverviewOut)
async def admin_deal_overview(
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await status_overview(db)


@router.get("/status/{status}", response_model=list[DealOut])
async def admin_deals_by_status(
    status: str,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    # "pending" also returns deals waiting on a vendor revision
    rows = await list_deals_by_status(db, status=status, limit=limit, offset=offset)
    return [deal_out(d, b) for d, b in rows]


@router.put("/{deal_id}/review", response_model=DealReviewOut)
async def admin_review_deal(
    deal_id: int,
    body: DealReviewIn,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    approval, deal, business = await review_deal(
        db,
        deal_id=deal_id,
        reviewer_id=admin_user.id,
        decision=body.status.value,
        feedback=body.feedback,
    )
    return DealReviewOut(approval=DealApprovalOut.model_validate(approval), deal=deal_out(deal, business))


@router.put("/{deal_id}/status", response_model=DealOut)
async def admin_update_deal_status(
    deal_id: int,
    body: DealStatusIn,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    await admin_set_deal_status(db, deal_id=deal_id, status=body.status, actor_user_id=admin_user.id, feedback=body.feedback)
    deal, business = await get_deal_with_business(db, deal_id)
    return deal_out(deal, business)


@router.put("/{deal_id}/featured", response_model=DealOut)
async def admin_set_featured(
    deal_id: int,
    body: DealFeaturedIn,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await set_featured(db, deal_id=deal_id, featured=body.featured, actor_user_id=admin_user.id)
    return deal_out(deal)


@router.get("/{deal_id}/approval", response_model=DealApprovalOut)
async def admin_get_approval(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await get_approval_or_404(db, deal_id)


@router.get("/{deal_id}/history", response_model=list[DealEventOut])
async def admin_deal_history(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    await get_deal_or_404(db, deal_id)
    return await list_deal_events(db, deal_id)
