# app/services/favorites.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.deal import Deal
from app.models.user import User
from app.models.user_favorite import UserFavorite
from app.services.deals import ensure_visible, get_deal_or_404, get_deal_with_business


async def find_favorite(db: AsyncSession, *, user_id: int, deal_id: int) -> UserFavorite | None:
    res = await db.execute(
        select(UserFavorite)
        .where(UserFavorite.user_id == user_id, UserFavorite.deal_id == deal_id)
        .order_by(UserFavorite.id.asc())
        .limit(1)
    )
    return res.scalar_one_or_none()


async def add_favorite(db: AsyncSession, *, user: User, deal_id: int) -> tuple[UserFavorite, bool]:
    """
    Returns (favorite, created). Adding a deal twice returns the existing row
    and leaves save_count alone. Only deals the user can see may be added.
    """
    deal = await get_deal_or_404(db, deal_id, for_update=True)
    business = await db.get(Business, deal.business_id)
    ensure_visible(deal, business, user)

    user_id = user.id
    existing = await find_favorite(db, user_id=user_id, deal_id=deal_id)
    if existing:
        return existing, False

    try:
        fav = UserFavorite(user_id=user_id, deal_id=deal_id)
        db.add(fav)
        deal.save_count = (deal.save_count or 0) + 1
        await db.commit()
        await db.refresh(fav)
    except Exception:
        await db.rollback()
        raise

    return fav, True


async def remove_favorite(db: AsyncSession, *, user_id: int, deal_id: int) -> bool:
    res = await db.execute(
        select(UserFavorite).where(UserFavorite.user_id == user_id, UserFavorite.deal_id == deal_id)
    )
    rows = list(res.scalars().all())
    if not rows:
        return False

    deal = await db.get(Deal, deal_id)
    try:
        for row in rows:
            await db.delete(row)
        if deal is not None:
            deal.save_count = max((deal.save_count or 0) - 1, 0)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return True


async def list_favorites(db: AsyncSession, *, user_id: int) -> list[tuple[UserFavorite, Deal, Business]]:
    stmt = (
        select(UserFavorite, Deal, Business)
        .join(Deal, Deal.id == UserFavorite.deal_id)
        .join(Business, Business.id == Deal.business_id)
        .where(UserFavorite.user_id == user_id)
        .order_by(UserFavorite.created_at.desc(), UserFavorite.id.desc())
    )
    res = await db.execute(stmt)

    seen: set[int] = set()
    out: list[tuple[UserFavorite, Deal, Business]] = []
    for fav, deal, business in res.all():
        # rows written before add_favorite() checked for duplicates
        if deal.id in seen:
            continue
        seen.add(deal.id)
        out.append((fav, deal, business))
    return out


async def is_favorite(db: AsyncSession, *, user: User, deal_id: int) -> bool:
    if await find_favorite(db, user_id=user.id, deal_id=deal_id) is not None:
        return True
    deal, business = await get_deal_with_business(db, deal_id)
    ensure_visible(deal, business, user)
    return False
