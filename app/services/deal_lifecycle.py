# app/services/deal_lifecycle.py
"""
Deal and business status rules.

Everything that decides "is this deal expired", "what status does the UI show"
or "may the deal move from A to B" lives here, so list filters, badges and the
expiry sweep all answer the same way for the same `now`.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import and_, or_


class DealStatus(str, Enum):
    draft = "draft"
    pending = "pending"
    pending_revision = "pending_revision"
    approved = "approved"
    rejected = "rejected"
    expired = "expired"


class VerificationStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    rejected = "rejected"


# Older clients and rows use these interchangeably
DEAL_STATUS_SYNONYMS = {
    "active": DealStatus.approved.value,
    "verified": DealStatus.approved.value,
}
VERIFICATION_STATUS_SYNONYMS = {
    "approved": VerificationStatus.verified.value,
}

# Statuses that turn into "expired" once end_date has passed
EXPIRABLE_STATUSES = (
    DealStatus.pending.value,
    DealStatus.pending_revision.value,
    DealStatus.approved.value,
)

DEAL_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"pending"}),
    "pending": frozenset({"approved", "rejected", "pending_revision", "expired"}),
    "pending_revision": frozenset({"pending", "expired"}),
    "approved": frozenset({"rejected", "expired"}),
    "rejected": frozenset(),
    "expired": frozenset(),
}

VERIFICATION_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"verified", "rejected"}),
    "verified": frozenset({"rejected"}),
    "rejected": frozenset({"pending", "verified"}),
}


def normalize_deal_status(value: str) -> str:
    v = (value or "").strip().lower()
    v = DEAL_STATUS_SYNONYMS.get(v, v)
    if v not in DEAL_TRANSITIONS:
        raise HTTPException(status_code=400, detail=f"Invalid deal status: {value!r}")
    return v


def normalize_verification_status(value: str) -> str:
    v = (value or "").strip().lower()
    v = VERIFICATION_STATUS_SYNONYMS.get(v, v)
    if v not in VERIFICATION_TRANSITIONS:
        raise HTTPException(status_code=400, detail=f"Invalid verification status: {value!r}")
    return v


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in DEAL_TRANSITIONS.get(from_status, frozenset())


def ensure_transition(from_status: str, to_status: str) -> None:
    if not can_transition(from_status, to_status):
        raise HTTPException(
            status_code=409,
            detail=f"Deal cannot move from '{from_status}' to '{to_status}'",
        )


def ensure_verification_transition(from_status: str, to_status: str) -> None:
    if to_status not in VERIFICATION_TRANSITIONS.get(from_status, frozenset()):
        raise HTTPException(
            status_code=409,
            detail=f"Business cannot move from '{from_status}' to '{to_status}'",
        )


# -------------------------
# Time
# -------------------------
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """
    SQLite hands back naive datetimes; everything stored is UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_expired(deal, now: Optional[datetime] = None) -> bool:
    if deal.end_date is None:
        return False
    now = as_utc(now or utc_now())
    return as_utc(deal.end_date) < now


def is_expiring_soon(deal, now: Optional[datetime] = None, *, hours: int = 48) -> bool:
    if deal.end_date is None:
        return False
    now = as_utc(now or utc_now())
    end = as_utc(deal.end_date)
    return now <= end <= now + timedelta(hours=hours)


def effective_status(deal, now: Optional[datetime] = None) -> str:
    if deal.status in EXPIRABLE_STATUSES and is_expired(deal, now):
        return DealStatus.expired.value
    return deal.status


def expired_clause(deal_model, now: datetime):
    """SQL twin of `is_expired`."""
    return and_(deal_model.end_date.is_not(None), deal_model.end_date < as_utc(now))


def not_expired_clause(deal_model, now: datetime):
    return or_(deal_model.end_date.is_(None), deal_model.end_date >= as_utc(now))


def effective_status_clause(deal_model, status: str, now: datetime):
    """
    SQL twin of `effective_status`: rows whose computed status equals `status`.
    Listing by "pending" also returns deals waiting on a vendor revision.
    """
    status = normalize_deal_status(status)

    if status == DealStatus.expired.value:
        return or_(
            deal_model.status == DealStatus.expired.value,
            and_(deal_model.status.in_(EXPIRABLE_STATUSES), expired_clause(deal_model, now)),
        )

    if status == DealStatus.pending.value:
        return and_(
            deal_model.status.in_((DealStatus.pending.value, DealStatus.pending_revision.value)),
            not_expired_clause(deal_model, now),
        )

    if status in EXPIRABLE_STATUSES:
        return and_(deal_model.status == status, not_expired_clause(deal_model, now))

    return deal_model.status == status
