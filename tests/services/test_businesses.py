from __future__ import annotations

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from app.models.business import Business
from app.models.notification import Notification
from app.services.businesses import list_businesses, set_verification_status
from app.services.maintenance import fix_missing_verification
from app.services.users import signup_business
from tests.factories import PASSWORD, make_business, make_user


@pytest.mark.asyncio
async def test_business_signup_always_sets_verification_status(db) -> None:
    user, business = await signup_business(
        db,
        user_fields={"email": "owner@example.com", "password": PASSWORD, "first_name": "Olive"},
        business_fields={"business_name": "Olive Deli", "business_category": "food_drink"},
    )

    assert user.user_type == "business"
    assert business.user_id == user.id
    assert business.verification_status == "pending"

    statuses = (await db.execute(select(Business.verification_status))).scalars().all()
    assert None not in statuses


@pytest.mark.asyncio
async def test_duplicate_email_is_a_conflict(db) -> None:
    await make_user(db, email="taken@example.com")

    with pytest.raises(HTTPException) as exc:
        await signup_business(
            db,
            user_fields={"email": "TAKEN@example.com", "password": PASSWORD},
            business_fields={"business_name": "Dup", "business_category": "retail"},
        )
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_approved_is_stored_as_verified_and_owner_notified(db) -> None:
    owner, business = await make_business(db, verification_status="pending")
    admin = await make_user(db, user_type="admin")

    business = await set_verification_status(
        db, business_id=business.id, status="approved", feedback=None, actor_user_id=admin.id
    )

    assert business.verification_status == "verified"
    assert business.verified_at is not None
    notes = (await db.execute(select(Notification).where(Notification.user_id == owner.id))).scalars().all()
    assert [n.kind for n in notes] == ["business_verified"]


@pytest.mark.asyncio
async def test_rejection_needs_feedback_and_can_be_reopened(db) -> None:
    _, business = await make_business(db, verification_status="pending")
    admin = await make_user(db, user_type="admin")

    with pytest.raises(HTTPException) as exc:
        await set_verification_status(db, business_id=business.id, status="rejected", feedback=None, actor_user_id=admin.id)
    assert exc.value.status_code == 400

    business = await set_verification_status(
        db, business_id=business.id, status="rejected", feedback="Licence missing", actor_user_id=admin.id
    )
    assert business.verification_status == "rejected"
    assert business.verification_feedback == "Licence missing"

    business = await set_verification_status(
        db, business_id=business.id, status="pending", feedback=None, actor_user_id=admin.id
    )
    assert business.verification_status == "pending"


@pytest.mark.asyncio
async def test_verified_cannot_go_back_to_pending(db) -> None:
    _, business = await make_business(db, verification_status="verified")
    admin = await make_user(db, user_type="admin")

    with pytest.raises(HTTPException) as exc:
        await set_verification_status(db, business_id=business.id, status="pending", feedback=None, actor_user_id=admin.id)
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_list_filter_matches_legacy_synonym_rows(db) -> None:
    _, legacy = await make_business(db, verification_status="approved", name="Legacy")
    _, current = await make_business(db, verification_status="verified", name="Current")
    await make_business(db, verification_status="pending", name="Waiting")

    rows = await list_businesses(db, verification_status="verified")
    assert {b.id for b, _ in rows} == {legacy.id, current.id}


@pytest.mark.asyncio
async def test_repair_script_normalises_bad_rows(db) -> None:
    _, blank = await make_business(db, verification_status="", name="Blank")
    _, legacy = await make_business(db, verification_status="approved", name="Legacy")
    _, shouty = await make_business(db, verification_status="Rejected", name="Shouty")
    _, fine = await make_business(db, verification_status="pending", name="Fine")
    ids = {"blank": blank.id, "legacy": legacy.id, "shouty": shouty.id, "fine": fine.id}

    counts = await fix_missing_verification(db)

    assert counts == {"missing": 1, "normalized": 2}
    db.expire_all()
    rows = dict((await db.execute(select(Business.id, Business.verification_status))).all())
    assert rows == {
        ids["blank"]: "pending",
        ids["legacy"]: "verified",
        ids["shouty"]: "rejected",
        ids["fine"]: "pending",
    }


@pytest.mark.asyncio
async def test_repair_dry_run_writes_nothing(db) -> None:
    _, legacy = await make_business(db, verification_status="approved")
    legacy_id = legacy.id

    await fix_missing_verification(db, dry_run=True)

    db.expire_all()
    status = await db.scalar(select(Business.verification_status).where(Business.id == legacy_id))
    assert status == "approved"
