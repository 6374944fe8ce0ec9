from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from app.models.deal import Deal
from app.models.deal_approval import DealApproval
from app.models.deal_event import DealEvent
from app.models.deal_redemption import DealRedemption
from app.models.user_favorite import UserFavorite
from app.services.deal_lifecycle import utc_now
from app.services.deals import (
    create_deal,
    deal_out,
    delete_deal,
    duplicate_deal,
    list_business_deals,
    list_deals,
    list_deals_by_status,
    record_view,
    resubmit_deal,
    status_overview,
    submit_draft,
    update_deal,
)
from tests.factories import make_business, make_deal, make_user


def _payload(**overrides) -> dict:
    now = utc_now()
    data = {
        "title": "Half-price bagels",
        "category": "food_drink",
        "start_date": now,
        "end_date": now + timedelta(days=10),
        "max_redemptions_per_user": 2,
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_create_deal_writes_approval_and_event(db) -> None:
    owner, business = await make_business(db)

    deal, approval = await create_deal(db, user=owner, data=_payload())

    assert deal.status == "pending"
    assert deal.business_id == business.id
    assert approval.deal_id == deal.id
    assert approval.revision_count == 0
    assert approval.submitter_id == owner.id

    events = (await db.execute(select(DealEvent).where(DealEvent.deal_id == deal.id))).scalars().all()
    assert [e.event_type for e in events] == ["submitted"]


@pytest.mark.asyncio
async def test_create_as_draft_then_submit(db) -> None:
    owner, _ = await make_business(db)

    deal, approval = await create_deal(db, user=owner, data=_payload(as_draft=True))
    assert deal.status == "draft"
    assert approval.status == "draft"

    deal = await submit_draft(db, deal_id=deal.id, user=owner)
    assert deal.status == "pending"

    with pytest.raises(HTTPException) as exc:
        await submit_draft(db, deal_id=deal.id, user=owner)
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_rejected_business_cannot_create_deals(db) -> None:
    owner, _ = await make_business(db, verification_status="rejected")

    with pytest.raises(HTTPException) as exc:
        await create_deal(db, user=owner, data=_payload())
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_create_rejects_end_date_in_the_past(db) -> None:
    owner, _ = await make_business(db)
    now = utc_now()

    with pytest.raises(HTTPException) as exc:
        await create_deal(db, user=owner, data=_payload(start_date=now - timedelta(days=3), end_date=now - timedelta(days=1)))
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_resubmit_increments_revision_count_by_one(db) -> None:
    owner, business = await make_business(db)
    deal = await make_deal(db, business, status="pending_revision")

    deal, approval = await resubmit_deal(db, deal_id=deal.id, user=owner)

    assert deal.status == "pending"
    assert approval.status == "pending"
    assert approval.revision_count == 1

    with pytest.raises(HTTPException) as exc:
        await resubmit_deal(db, deal_id=deal.id, user=owner)
    assert exc.value.status_code == 409

    approval = (await db.execute(select(DealApproval).where(DealApproval.deal_id == deal.id))).scalar_one()
    assert approval.revision_count == 1


@pytest.mark.asyncio
async def test_vendor_edit_of_revision_request_resubmits(db) -> None:
    owner, business = await make_business(db)
    deal = await make_deal(db, business, status="pending_revision")

    deal = await update_deal(db, deal_id=deal.id, user=owner, data={"title": "Clearer title"})

    assert deal.title == "Clearer title"
    assert deal.status == "pending"
    approval = (await db.execute(select(DealApproval).where(DealApproval.deal_id == deal.id))).scalar_one()
    assert approval.revision_count == 1


@pytest.mark.asyncio
async def test_edit_keeps_approved_deal_approved(db) -> None:
    owner, business = await make_business(db)
    deal = await make_deal(db, business, status="approved")

    deal = await update_deal(db, deal_id=deal.id, user=owner, data={"description": "now with jam", "title": None})

    assert deal.status == "approved"
    assert deal.description == "now with jam"
    assert deal.title.startswith("Deal ")


@pytest.mark.asyncio
async def test_rejected_and_expired_deals_are_read_only(db) -> None:
    owner, business = await make_business(db)
    rejected = await make_deal(db, business, status="rejected")
    lapsed = await make_deal(db, business, status="approved", ends_in=timedelta(hours=-1))

    for deal in (rejected, lapsed):
        with pytest.raises(HTTPException) as exc:
            await update_deal(db, deal_id=deal.id, user=owner, data={"title": "x"})
        assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_only_owner_or_admin_can_edit(db) -> None:
    _, business = await make_business(db)
    other_owner, _ = await make_business(db, name="Other")
    admin = await make_user(db, user_type="admin")
    deal = await make_deal(db, business, status="pending")

    with pytest.raises(HTTPException) as exc:
        await update_deal(db, deal_id=deal.id, user=other_owner, data={"title": "mine now"})
    assert exc.value.status_code == 403

    deal = await update_deal(db, deal_id=deal.id, user=admin, data={"title": "fixed typo"})
    assert deal.title == "fixed typo"


@pytest.mark.asyncio
async def test_update_rejects_inverted_dates(db) -> None:
    owner, business = await make_business(db)
    deal = await make_deal(db, business, status="pending")

    with pytest.raises(HTTPException) as exc:
        await update_deal(db, deal_id=deal.id, user=owner, data={"end_date": utc_now() - timedelta(days=5)})
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_resets_counters_and_starts_as_draft(db) -> None:
    owner, business = await make_business(db)
    source = await make_deal(
        db, business, status="approved", title="Taco Tuesday", featured=True, view_count=40, save_count=3, redemption_count=9
    )

    copy = await duplicate_deal(db, deal_id=source.id, user=owner)

    assert copy.id != source.id
    assert copy.title == "Taco Tuesday (Copy)"
    assert copy.status == "draft"
    assert (copy.view_count, copy.save_count, copy.redemption_count) == (0, 0, 0)
    assert copy.featured is False
    approval = (await db.execute(select(DealApproval).where(DealApproval.deal_id == copy.id))).scalar_one()
    assert approval.status == "draft"


@pytest.mark.asyncio
async def test_delete_removes_dependent_rows(db) -> None:
    owner, business = await make_business(db)
    customer = await make_user(db)
    deal = await make_deal(db, business)
    db.add(UserFavorite(user_id=customer.id, deal_id=deal.id))
    db.add(DealRedemption(user_id=customer.id, deal_id=deal.id, redemption_code="ABCD1234"))
    await db.commit()

    deal_id = deal.id

    await delete_deal(db, deal_id=deal_id, user=owner)

    for model in (Deal, DealApproval, UserFavorite, DealRedemption):
        column = model.id if model is Deal else model.deal_id
        n = await db.scalar(select(func.count()).select_from(model).where(column == deal_id))
        assert n == 0, model.__tablename__


@pytest.mark.asyncio
async def test_record_view_counts_each_call(db) -> None:
    _, business = await make_business(db)
    deal = await make_deal(db, business)

    assert await record_view(db, deal.id) == 1
    assert await record_view(db, deal.id) == 2

    with pytest.raises(HTTPException) as exc:
        await record_view(db, 999_999)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_customers_only_see_live_approved_deals(db) -> None:
    owner, business = await make_business(db)
    customer = await make_user(db)
    admin = await make_user(db, user_type="admin")

    live = await make_deal(db, business, status="approved")
    await make_deal(db, business, status="approved", ends_in=timedelta(hours=-2))
    pending = await make_deal(db, business, status="pending")

    seen = {d.id for d, _ in await list_deals(db, viewer=customer)}
    assert seen == {live.id}
    assert {d.id for d, _ in await list_deals(db, viewer=None)} == {live.id}

    vendor_seen = {d.id for d, _ in await list_deals(db, viewer=owner)}
    assert pending.id in vendor_seen

    assert len(await list_deals(db, viewer=admin)) == 3


@pytest.mark.asyncio
async def test_business_deals_hidden_from_public_unless_live(db) -> None:
    owner, business = await make_business(db)
    live = await make_deal(db, business, status="approved")
    await make_deal(db, business, status="draft")

    public = await list_business_deals(db, business_id=business.id, viewer=None)
    assert [d.id for d, _ in public] == [live.id]

    mine = await list_business_deals(db, business_id=business.id, viewer=owner)
    assert len(mine) == 2


@pytest.mark.asyncio
async def test_list_by_status_pending_includes_revisions(db) -> None:
    _, business = await make_business(db)
    a = await make_deal(db, business, status="pending")
    b = await make_deal(db, business, status="pending_revision")
    await make_deal(db, business, status="pending", ends_in=timedelta(hours=-1))

    rows = await list_deals_by_status(db, status="pending")
    assert {d.id for d, _ in rows} == {a.id, b.id}


@pytest.mark.asyncio
async def test_status_overview_uses_effective_status(db) -> None:
    _, business = await make_business(db)
    await make_deal(db, business, status="approved")
    await make_deal(db, business, status="approved", ends_in=timedelta(hours=-1))
    await make_deal(db, business, status="pending", with_approval=False)

    overview = await status_overview(db)

    assert overview["total_deals"] == 3
    assert overview["status_counts"]["approved"] == 1
    assert overview["status_counts"]["expired"] == 1
    assert overview["status_counts"]["pending"] == 1
    assert overview["deals_without_approval"] == 1


@pytest.mark.asyncio
async def test_deal_out_flags(db) -> None:
    _, business = await make_business(db)
    soon = await make_deal(db, business, status="approved", ends_in=timedelta(hours=5))
    lapsed = await make_deal(db, business, status="approved", ends_in=timedelta(hours=-5))

    out = deal_out(soon, business)
    assert out.effective_status == "approved"
    assert out.is_expiring_soon is True
    assert out.business.business_name == business.business_name

    out = deal_out(lapsed)
    assert out.effective_status == "expired"
    assert out.status == "approved"
    assert out.is_expiring_soon is False


@pytest.mark.asyncio
async def test_record_view_hides_unpublished_deals(db) -> None:
    owner, business = await make_business(db)
    customer = await make_user(db)
    admin = await make_user(db, user_type="admin")
    pending = await make_deal(db, business, status="pending")
    deal_id = pending.id

    for viewer in (None, customer):
        with pytest.raises(HTTPException) as exc:
            await record_view(db, deal_id, viewer=viewer)
        assert exc.value.status_code == 404

    assert await record_view(db, deal_id, viewer=owner) == 1
    assert await record_view(db, deal_id, viewer=admin) == 2
