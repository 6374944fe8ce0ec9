# app/routers/favorites.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.favorites import FavoriteOut, FavoriteStatusOut
from app.services.deals import deal_out
from app.services.favorites import add_favorite, is_favorite, list_favorites, remove_favorite

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("", response_model=list[FavoriteOut])
async def my_favorites(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = await list_favorites(db, user_id=current_user.id)
    return [
        FavoriteOut(id=f.id, deal_id=f.deal_id, created_at=f.created_at, deal=deal_out(d, b))
        for f, d, b in rows
    ]


@router.get("/{deal_id}", response_model=FavoriteStatusOut)
async def favorite_status(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return FavoriteStatusOut(
        deal_id=deal_id,
        is_favorite=await is_favorite(db, user=current_user, deal_id=deal_id),
    )


@router.post("/{deal_id}", response_model=FavoriteOut)
async def add_to_favorites(
    deal_id: int,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    fav, created = await add_favorite(db, user=current_user, deal_id=deal_id)
    response.status_code = 201 if created else 200
    return FavoriteOut(id=fav.id, deal_id=fav.deal_id, created_at=fav.created_at)


@router.delete("/{deal_id}", status_code=204)
async def remove_from_favorites(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await remove_favorite(db, user_id=current_user.id, deal_id=deal_id)
    return Response(status_code=204)
