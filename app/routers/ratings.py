# app/routers/ratings.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.redemption_rating import RedemptionRating
from app.models.user import User
from app.schemas.ratings import RatingIn, RatingOut, RatingSummaryOut
from app.services.businesses import get_business_or_404
from app.services.ratings import (
    business_rating_summary,
    get_rating_for_redemption,
    list_business_ratings,
    list_user_ratings,
    rate_redemption,
)
from app.services.redemptions import get_redemption_or_404

router = APIRouter(tags=["Ratings"])


def _public(rating: RedemptionRating) -> RatingOut:
    out = RatingOut.model_validate(rating)
    if rating.anonymous:
        out.user_id = None
    return out


@router.post("/redemptions/{redemption_id}/rating", response_model=RatingOut, status_code=201)
async def rate(
    redemption_id: int,
    body: RatingIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await rate_redemption(
        db, redemption_id=redemption_id, user_id=current_user.id, data=body.model_dump()
    )


@router.get("/redemptions/{redemption_id}/rating", response_model=RatingOut)
async def get_rating(
    redemption_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    r = await get_redemption_or_404(db, redemption_id)
    if r.user_id != current_user.id and current_user.user_type != "admin":
        raise HTTPException(status_code=403, detail="Not your redemption")

    rating = await get_rating_for_redemption(db, redemption_id)
    if not rating:
        raise HTTPException(status_code=404, detail="Rating not found")
    return rating


@router.get("/ratings/mine", response_model=list[RatingOut])
async def my_ratings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = await list_user_ratings(db, user_id=current_user.id)
    return [rating for rating, _, _ in rows]


@router.get("/businesses/{business_id}/ratings", response_model=list[RatingOut])
async def business_ratings(
    business_id: int,
    db: AsyncSession = Depends(get_db),
):
    await get_business_or_404(db, business_id)
    return [_public(r) for r in await list_business_ratings(db, business_id=business_id)]


@router.get("/businesses/{business_id}/ratings/summary", response_model=RatingSummaryOut)
async def business_ratings_summary(
    business_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await business_rating_summary(db, business_id=business_id)
