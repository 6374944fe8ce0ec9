from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from app.models.deal import Deal
from app.services.deal_lifecycle import (
    DEAL_TRANSITIONS,
    can_transition,
    effective_status,
    effective_status_clause,
    ensure_transition,
    is_expired,
    is_expiring_soon,
    normalize_deal_status,
    normalize_verification_status,
    utc_now,
)
from app.services.maintenance import expire_deals
from tests.factories import make_business, make_deal

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _deal(status: str, end: datetime) -> SimpleNamespace:
    return SimpleNamespace(status=status, end_date=end)


def test_synonyms_normalize_to_canonical_values() -> None:
    assert normalize_deal_status("active") == "approved"
    assert normalize_deal_status(" Verified ") == "approved"
    assert normalize_deal_status("pending_revision") == "pending_revision"
    assert normalize_verification_status("approved") == "verified"


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(HTTPException) as exc:
        normalize_deal_status("live")
    assert exc.value.status_code == 400


def test_transition_table() -> None:
    assert can_transition("pending", "approved")
    assert can_transition("pending_revision", "pending")
    assert not can_transition("approved", "pending")
    assert not can_transition("draft", "approved")
    assert DEAL_TRANSITIONS["rejected"] == frozenset()
    assert DEAL_TRANSITIONS["expired"] == frozenset()

    with pytest.raises(HTTPException) as exc:
        ensure_transition("rejected", "approved")
    assert exc.value.status_code == 409


def test_is_expired_is_strictly_after_end_date() -> None:
    assert not is_expired(_deal("approved", NOW), NOW)
    assert is_expired(_deal("approved", NOW - timedelta(seconds=1)), NOW)


def test_naive_end_dates_are_treated_as_utc() -> None:
    naive = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    assert is_expired(_deal("approved", naive), NOW)


def test_effective_status_only_expires_live_statuses() -> None:
    past = NOW - timedelta(days=1)
    assert effective_status(_deal("approved", past), NOW) == "expired"
    assert effective_status(_deal("pending_revision", past), NOW) == "expired"
    assert effective_status(_deal("draft", past), NOW) == "draft"
    assert effective_status(_deal("rejected", past), NOW) == "rejected"
    assert effective_status(_deal("approved", NOW + timedelta(days=1)), NOW) == "approved"


def test_expiring_soon_window() -> None:
    assert is_expiring_soon(_deal("approved", NOW + timedelta(hours=47)), NOW, hours=48)
    assert not is_expiring_soon(_deal("approved", NOW + timedelta(hours=49)), NOW, hours=48)
    assert not is_expiring_soon(_deal("approved", NOW - timedelta(hours=1)), NOW, hours=48)


@pytest.mark.asyncio
async def test_sql_filter_badge_and_sweep_agree(db) -> None:
    _, business = await make_business(db)
    await make_deal(db, business, status="approved", ends_in=timedelta(days=3))
    await make_deal(db, business, status="approved", ends_in=timedelta(minutes=-5))
    await make_deal(db, business, status="pending", ends_in=timedelta(days=-2))
    await make_deal(db, business, status="pending_revision", ends_in=timedelta(days=1))
    await make_deal(db, business, status="draft", ends_in=timedelta(days=-1))
    await make_deal(db, business, status="rejected", ends_in=timedelta(days=-1))
    await make_deal(db, business, status="expired", ends_in=timedelta(days=-9))

    now = utc_now()
    deals = list((await db.execute(select(Deal))).scalars().all())

    for status in ("approved", "pending_revision", "draft", "rejected", "expired"):
        res = await db.execute(select(Deal.id).where(effective_status_clause(Deal, status, now)))
        from_sql = set(res.scalars().all())
        from_python = {d.id for d in deals if effective_status(d, now) == status}
        assert from_sql == from_python, status

    badge_expired = {d.id for d in deals if effective_status(d, now) == "expired" and d.status != "expired"}
    swept = await expire_deals(db, now=now)
    assert set(swept) == badge_expired


@pytest.mark.asyncio
async def test_pending_filter_includes_revision_requests(db) -> None:
    _, business = await make_business(db)
    pending = await make_deal(db, business, status="pending")
    revision = await make_deal(db, business, status="pending_revision")
    await make_deal(db, business, status="approved")

    res = await db.execute(select(Deal.id).where(effective_status_clause(Deal, "pending", utc_now())))
    assert set(res.scalars().all()) == {pending.id, revision.id}
