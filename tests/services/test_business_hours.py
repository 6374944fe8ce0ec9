from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.services.business_hours import (
    add_business_hours,
    delete_business_hours,
    list_business_hours,
    update_business_hours,
)
from tests.factories import make_business, make_user


def _monday(**overrides) -> dict:
    data = {"day_of_week": 1, "open_time": "09:00", "close_time": "17:00", "is_closed": False}
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_owner_manages_week(db) -> None:
    owner, business = await make_business(db)

    sunday = await add_business_hours(db, actor=owner, business_id=business.id, data=_monday(day_of_week=0, is_closed=True))
    monday = await add_business_hours(db, actor=owner, business_id=business.id, data=_monday())

    assert sunday.open_time is None and sunday.close_time is None
    assert [h.day_of_week for h in await list_business_hours(db, business.id)] == [0, 1]

    monday = await update_business_hours(db, actor=owner, hours_id=monday.id, data={"close_time": "02:00"})
    assert (monday.open_time, monday.close_time) == ("09:00", "02:00")

    await delete_business_hours(db, actor=owner, hours_id=sunday.id)
    assert [h.id for h in await list_business_hours(db, business.id)] == [monday.id]


@pytest.mark.asyncio
async def test_one_row_per_day(db) -> None:
    owner, business = await make_business(db)
    await add_business_hours(db, actor=owner, business_id=business.id, data=_monday())
    tuesday = await add_business_hours(db, actor=owner, business_id=business.id, data=_monday(day_of_week=2))

    with pytest.raises(HTTPException) as exc:
        await add_business_hours(db, actor=owner, business_id=business.id, data=_monday())
    assert exc.value.status_code == 409

    with pytest.raises(HTTPException) as exc:
        await update_business_hours(db, actor=owner, hours_id=tuesday.id, data={"day_of_week": 1})
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_open_day_needs_both_times(db) -> None:
    owner, business = await make_business(db)

    with pytest.raises(HTTPException) as exc:
        await add_business_hours(db, actor=owner, business_id=business.id, data=_monday(close_time=None))
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        await add_business_hours(db, actor=owner, business_id=business.id, data=_monday(close_time="09:00"))
    assert exc.value.status_code == 400

    assert await list_business_hours(db, business.id) == []


@pytest.mark.asyncio
async def test_only_owner_or_admin_may_edit(db) -> None:
    owner, business = await make_business(db)
    rival, _ = await make_business(db, name="Rival Cafe")
    customer = await make_user(db)
    admin = await make_user(db, user_type="admin")

    for actor in (rival, customer):
        with pytest.raises(HTTPException) as exc:
            await add_business_hours(db, actor=actor, business_id=business.id, data=_monday())
        assert exc.value.status_code == 403

    hours = await add_business_hours(db, actor=admin, business_id=business.id, data=_monday())
    hours_id = hours.id

    with pytest.raises(HTTPException) as exc:
        await delete_business_hours(db, actor=rival, hours_id=hours_id)
    assert exc.value.status_code == 403

    await delete_business_hours(db, actor=owner, hours_id=hours_id)
    assert await list_business_hours(db, business.id) == []


@pytest.mark.asyncio
async def test_missing_rows_are_404(db) -> None:
    owner, _ = await make_business(db)

    with pytest.raises(HTTPException) as exc:
        await list_business_hours(db, 999_999)
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        await update_business_hours(db, actor=owner, hours_id=999_999, data={"is_closed": True})
    assert exc.value.status_code == 404
