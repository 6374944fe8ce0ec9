from __future__ import annotations

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from app.models.deal import Deal
from app.models.user_favorite import UserFavorite
from app.services.favorites import add_favorite, is_favorite, list_favorites, remove_favorite
from tests.factories import make_business, make_deal, make_user


async def _rows(db, user_id: int, deal_id: int) -> int:
    return await db.scalar(
        select(func.count(UserFavorite.id)).where(UserFavorite.user_id == user_id, UserFavorite.deal_id == deal_id)
    )


@pytest.mark.asyncio
async def test_table_has_no_uniqueness_on_user_and_deal(db) -> None:
    _, business = await make_business(db)
    customer = await make_user(db)
    deal = await make_deal(db, business)

    db.add(UserFavorite(user_id=customer.id, deal_id=deal.id))
    db.add(UserFavorite(user_id=customer.id, deal_id=deal.id))
    await db.commit()

    assert await _rows(db, customer.id, deal.id) == 2
    assert len(await list_favorites(db, user_id=customer.id)) == 1


@pytest.mark.asyncio
async def test_adding_twice_keeps_one_row(db) -> None:
    _, business = await make_business(db)
    customer = await make_user(db)
    deal = await make_deal(db, business)

    first, created = await add_favorite(db, user=customer, deal_id=deal.id)
    assert created is True
    second, created = await add_favorite(db, user=customer, deal_id=deal.id)
    assert created is False

    assert first.id == second.id
    assert await _rows(db, customer.id, deal.id) == 1
    assert await db.scalar(select(Deal.save_count).where(Deal.id == deal.id)) == 1
    assert await is_favorite(db, user=customer, deal_id=deal.id) is True


@pytest.mark.asyncio
async def test_remove_is_a_noop_when_absent(db) -> None:
    _, business = await make_business(db)
    customer = await make_user(db)
    deal = await make_deal(db, business)

    assert await remove_favorite(db, user_id=customer.id, deal_id=deal.id) is False

    await add_favorite(db, user=customer, deal_id=deal.id)
    assert await remove_favorite(db, user_id=customer.id, deal_id=deal.id) is True
    assert await _rows(db, customer.id, deal.id) == 0
    assert await db.scalar(select(Deal.save_count).where(Deal.id == deal.id)) == 0


@pytest.mark.asyncio
async def test_unpublished_deals_cannot_be_favorited(db) -> None:
    owner, business = await make_business(db)
    customer = await make_user(db)
    pending = await make_deal(db, business, status="pending")
    draft = await make_deal(db, business, status="draft")
    pending_id, draft_id = pending.id, draft.id

    for deal_id in (pending_id, draft_id):
        with pytest.raises(HTTPException) as exc:
            await add_favorite(db, user=customer, deal_id=deal_id)
        assert exc.value.status_code == 404

        with pytest.raises(HTTPException):
            await is_favorite(db, user=customer, deal_id=deal_id)

    assert await _rows(db, customer.id, pending_id) == 0
    assert await db.scalar(select(Deal.save_count).where(Deal.id == pending_id)) == 0

    # the vendor still sees its own pending deal
    _, created = await add_favorite(db, user=owner, deal_id=pending_id)
    assert created is True
