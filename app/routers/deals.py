# app/routers/deals.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_optional_user, require_business, require_business_or_admin
from app.models.user import User
from app.schemas.approvals import DealApprovalOut, DealEventOut
from app.schemas.deals import DealCreate, DealOut, DealUpdate, VerifyCodeIn, VerifyCodeOut, ViewCountOut
from app.schemas.redemptions import RedemptionOut, VerifyRedemptionIn
from app.services.approvals import get_approval_or_404
from app.services.deals import (
    create_deal,
    deal_out,
    delete_deal,
    duplicate_deal,
    ensure_can_manage,
    get_deal_or_404,
    get_deal_with_business,
    get_visible_deal,
    list_deal_events,
    list_deals,
    list_featured_deals,
    record_view,
    resubmit_deal,
    submit_draft,
    update_deal,
)
from app.services.redemptions import list_deal_redemptions, verify_redemption, verify_redemption_code

router = APIRouter(prefix="/deals", tags=["Deals"])


@router.get("", response_model=list[DealOut])
async def browse_deals(
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    featured: Optional[bool] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    rows = await list_deals(
        db,
        viewer=viewer,
        category=category,
        search=search,
        status=status,
        featured=featured,
        limit=limit,
        offset=offset,
    )
    return [deal_out(d, b) for d, b in rows]


@router.get("/featured", response_model=list[DealOut])
async def featured_deals(
    limit: int = Query(default=10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    rows = await list_featured_deals(db, limit=limit)
    return [deal_out(d, b) for d, b in rows]


@router.post("", response_model=DealOut, status_code=201)
async def create_deal_route(
    body: DealCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business),
):
    deal, _ = await create_deal(db, user=current_user, data=body.model_dump())
    return deal_out(deal)


@router.get("/{deal_id}", response_model=DealOut)
async def get_deal(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    deal, business = await get_visible_deal(db, deal_id=deal_id, viewer=viewer)
    return deal_out(deal, business)


@router.put("/{deal_id}", response_model=DealOut)
async def update_deal_route(
    deal_id: int,
    body: DealUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    await update_deal(db, deal_id=deal_id, user=current_user, data=body.model_dump(exclude_unset=True))
    deal, business = await get_deal_with_business(db, deal_id)
    return deal_out(deal, business)


@router.delete("/{deal_id}", status_code=204)
async def delete_deal_route(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    await delete_deal(db, deal_id=deal_id, user=current_user)
    return Response(status_code=204)


@router.post("/{deal_id}/submit", response_model=DealOut)
async def submit_deal_route(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business),
):
    deal = await submit_draft(db, deal_id=deal_id, user=current_user)
    return deal_out(deal)


@router.post("/{deal_id}/resubmit", response_model=DealApprovalOut)
async def resubmit_deal_route(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business),
):
    _, approval = await resubmit_deal(db, deal_id=deal_id, user=current_user)
    return approval


@router.post("/{deal_id}/duplicate", response_model=DealOut, status_code=201)
async def duplicate_deal_route(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    deal = await duplicate_deal(db, deal_id=deal_id, user=current_user)
    return deal_out(deal)


@router.post("/{deal_id}/view", response_model=ViewCountOut)
async def record_view_route(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    return ViewCountOut(view_count=await record_view(db, deal_id, viewer=viewer))


@router.get("/{deal_id}/approval", response_model=DealApprovalOut)
async def deal_approval(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    deal = await get_deal_or_404(db, deal_id)
    await ensure_can_manage(db, current_user, deal)
    return await get_approval_or_404(db, deal_id)


@router.get("/{deal_id}/history", response_model=list[DealEventOut])
async def deal_history(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    deal = await get_deal_or_404(db, deal_id)
    await ensure_can_manage(db, current_user, deal)
    return await list_deal_events(db, deal_id)


@router.get("/{deal_id}/redemptions", response_model=list[RedemptionOut])
async def deal_redemptions(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    return await list_deal_redemptions(db, deal_id=deal_id, actor=current_user)


@router.post("/{deal_id}/verify-code", response_model=VerifyCodeOut)
async def verify_code(
    deal_id: int,
    body: VerifyCodeIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    valid = await verify_redemption_code(db, deal_id=deal_id, code=body.code, actor=current_user)
    return VerifyCodeOut(valid=valid)


@router.post("/{deal_id}/verify-redemption", response_model=RedemptionOut)
async def verify_deal_redemption(
    deal_id: int,
    body: VerifyRedemptionIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    return await verify_redemption(db, redemption_id=body.redemption_id, actor=current_user, deal_id=deal_id)
