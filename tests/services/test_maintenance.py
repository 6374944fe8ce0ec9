from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.models.deal import Deal
from app.models.deal_approval import DealApproval
from app.models.notification import Notification
from app.services.maintenance import backfill_deal_approvals, diagnose_deals, expire_deals
from tests.factories import make_business, make_deal


@pytest.mark.asyncio
async def test_backfill_creates_missing_approvals_only(db) -> None:
    _, business = await make_business(db)
    covered = await make_deal(db, business, status="approved")
    orphan = await make_deal(db, business, status="pending", with_approval=False)

    created = await backfill_deal_approvals(db)

    assert created == [orphan.id]
    approvals = (await db.execute(select(DealApproval))).scalars().all()
    assert sorted(a.deal_id for a in approvals) == sorted([covered.id, orphan.id])

    assert await backfill_deal_approvals(db) == []


@pytest.mark.asyncio
async def test_backfill_dry_run(db) -> None:
    _, business = await make_business(db)
    await make_deal(db, business, with_approval=False)

    assert len(await backfill_deal_approvals(db, dry_run=True)) == 1
    assert (await db.execute(select(DealApproval))).scalars().all() == []


@pytest.mark.asyncio
async def test_expire_sweep_persists_status_and_notifies(db) -> None:
    owner, business = await make_business(db)
    lapsed = await make_deal(db, business, status="approved", ends_in=timedelta(hours=-3))
    live = await make_deal(db, business, status="approved")
    await make_deal(db, business, status="rejected", ends_in=timedelta(days=-3))

    lapsed_id, live_id, owner_id = lapsed.id, live.id, owner.id

    expired = await expire_deals(db)

    assert expired == [lapsed_id]
    db.expire_all()
    statuses = dict((await db.execute(select(Deal.id, Deal.status))).all())
    assert statuses[lapsed_id] == "expired"
    assert statuses[live_id] == "approved"

    notes = (await db.execute(select(Notification).where(Notification.user_id == owner_id))).scalars().all()
    assert [(n.kind, n.deal_id) for n in notes] == [("deal_expired", lapsed_id)]

    assert await expire_deals(db) == []


@pytest.mark.asyncio
async def test_diagnose_reports_problems(db) -> None:
    _, business = await make_business(db)
    await make_business(db, verification_status="approved", name="Legacy")
    lapsed = await make_deal(db, business, status="approved", ends_in=timedelta(hours=-1))
    await make_deal(db, business, status="pending", with_approval=False)

    report = await diagnose_deals(db)

    assert report["total_deals"] == 2
    assert report["stored_status_counts"] == {"approved": 1, "pending": 1}
    assert report["effective_status_counts"] == {"expired": 1, "pending": 1}
    assert report["expired_not_persisted"] == [lapsed.id]
    assert report["deals_without_approval"] == 1
    assert report["businesses_with_invalid_verification"] == 1


@pytest.mark.asyncio
async def test_expire_sweep_dry_run_reports_without_writing(db) -> None:
    owner, business = await make_business(db)
    lapsed = await make_deal(db, business, status="pending", ends_in=timedelta(hours=-1))
    lapsed_id, owner_id = lapsed.id, owner.id

    assert await expire_deals(db, dry_run=True) == [lapsed_id]

    db.expire_all()
    assert await db.scalar(select(Deal.status).where(Deal.id == lapsed_id)) == "pending"
    notes = (await db.execute(select(Notification).where(Notification.user_id == owner_id))).scalars().all()
    assert notes == []
