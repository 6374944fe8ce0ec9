from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.core.security import verify_password
from app.services.notifications import (
    get_preferences,
    list_notifications,
    mark_all_read,
    mark_read,
    queue_notification,
    upsert_preferences,
)
from app.services.users import authenticate, change_password, signup_individual
from tests.factories import PASSWORD, make_user


@pytest.mark.asyncio
async def test_signup_derives_unique_usernames(db) -> None:
    a = await signup_individual(db, email="sam@example.com", password=PASSWORD, first_name="Sam")
    b = await signup_individual(db, email="sam@example.org", password=PASSWORD, first_name="Sam")

    assert a.username == "sam"
    assert b.username.startswith("sam-")
    assert a.user_type == b.user_type == "individual"


@pytest.mark.asyncio
async def test_authenticate(db) -> None:
    user = await make_user(db, email="login@example.com")

    assert (await authenticate(db, email="LOGIN@example.com", password=PASSWORD)).id == user.id

    with pytest.raises(HTTPException) as exc:
        await authenticate(db, email="login@example.com", password="Wrong&Pass99")
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_change_password_checks(db) -> None:
    user = await make_user(db)

    with pytest.raises(HTTPException):
        await change_password(
            db, user, current_password=PASSWORD, new_password="New&Coffee77", confirm_new_password="Other&Coffee77"
        )
    with pytest.raises(HTTPException):
        await change_password(
            db, user, current_password=PASSWORD, new_password=PASSWORD, confirm_new_password=PASSWORD
        )

    await change_password(
        db, user, current_password=PASSWORD, new_password="New&Coffee77", confirm_new_password="New&Coffee77"
    )
    assert verify_password("New&Coffee77", user.password_hash)


@pytest.mark.asyncio
async def test_preferences_are_created_on_first_update(db) -> None:
    user = await make_user(db)
    assert await get_preferences(db, user.id) is None

    prefs = await upsert_preferences(db, user_id=user.id, data={"deal_alerts": True})
    assert prefs.deal_alerts is True
    assert prefs.push_notifications is False

    prefs = await upsert_preferences(db, user_id=user.id, data={"push_notifications": True, "deal_alerts": None})
    assert prefs.deal_alerts is True
    assert prefs.push_notifications is True


@pytest.mark.asyncio
async def test_notifications_read_flow(db) -> None:
    user = await make_user(db)
    other = await make_user(db)
    queue_notification(db, user_id=user.id, kind="deal_approved", title="one")
    queue_notification(db, user_id=user.id, kind="deal_rejected", title="two")
    await db.commit()

    notes = await list_notifications(db, user_id=user.id)
    assert len(notes) == 2

    with pytest.raises(HTTPException) as exc:
        await mark_read(db, user_id=other.id, notification_id=notes[0].id)
    assert exc.value.status_code == 404

    await mark_read(db, user_id=user.id, notification_id=notes[0].id)
    assert len(await list_notifications(db, user_id=user.id, unread_only=True)) == 1
    assert await mark_all_read(db, user_id=user.id) == 1
