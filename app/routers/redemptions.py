# app/routers/redemptions.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user, require_business_or_admin
from app.models.user import User
from app.schemas.redemptions import RedeemIn, RedemptionOut, RedemptionWithDealOut
from app.services.deals import deal_out
from app.services.redemptions import (
    cancel_redemption,
    complete_redemption,
    list_user_redemptions,
    redeem_deal,
    verify_redemption,
)

router = APIRouter(prefix="/redemptions", tags=["Redemptions"])


@router.post("", response_model=RedemptionOut, status_code=201)
async def redeem(
    body: RedeemIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await redeem_deal(db, user=current_user, deal_id=body.deal_id)


@router.get("", response_model=list[RedemptionWithDealOut])
async def my_redemptions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = await list_user_redemptions(db, user_id=current_user.id)
    out = []
    for r, d, b in rows:
        item = RedemptionWithDealOut.model_validate(r)
        item.deal = deal_out(d, b)
        out.append(item)
    return out


@router.post("/{redemption_id}/cancel", response_model=RedemptionOut)
async def cancel(
    redemption_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await cancel_redemption(db, redemption_id=redemption_id, user=current_user)


@router.post("/{redemption_id}/verify", response_model=RedemptionOut)
async def verify(
    redemption_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    return await verify_redemption(db, redemption_id=redemption_id, actor=current_user)


@router.post("/{redemption_id}/complete", response_model=RedemptionOut)
async def complete(
    redemption_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    return await complete_redemption(db, redemption_id=redemption_id, actor=current_user)
