# app/services/business_hours.py
"""
Weekly opening hours, one row per business and weekday. Times are "HH:MM"
strings on the business's local clock; a close time earlier than the open
time means the business closes after midnight.
"""
from __future__ import annotations

import structlog
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business
from app.models.business_hours import BusinessHours
from app.models.user import User
from app.services.businesses import get_business_or_404

logger = structlog.get_logger(__name__)


def _ensure_can_edit(actor: User, business: Business) -> None:
    if actor.user_type == "admin":
        return
    if actor.user_type != "business" or business.user_id != actor.id:
        raise HTTPException(status_code=403, detail="You can only manage hours for your own business")


def _check_window(hours: BusinessHours) -> None:
    if hours.is_closed:
        hours.open_time = None
        hours.close_time = None
        return
    if not hours.open_time or not hours.close_time:
        raise HTTPException(status_code=400, detail="open_time and close_time are required unless the day is closed")
    if hours.open_time == hours.close_time:
        raise HTTPException(status_code=400, detail="open_time and close_time must differ")


async def _ensure_day_free(db: AsyncSession, *, business_id: int, day_of_week: int, exclude_id: int | None = None) -> None:
    stmt = select(BusinessHours.id).where(
        BusinessHours.business_id == business_id,
        BusinessHours.day_of_week == day_of_week,
    )
    if exclude_id is not None:
        stmt = stmt.where(BusinessHours.id != exclude_id)
    if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Hours for this day already exist")


async def list_business_hours(db: AsyncSession, business_id: int) -> list[BusinessHours]:
    await get_business_or_404(db, business_id)
    res = await db.execute(
        select(BusinessHours)
        .where(BusinessHours.business_id == business_id)
        .order_by(BusinessHours.day_of_week.asc(), BusinessHours.id.asc())
    )
    return list(res.scalars().all())


async def get_hours_or_404(db: AsyncSession, hours_id: int, *, for_update: bool = False) -> BusinessHours:
    stmt = select(BusinessHours).where(BusinessHours.id == hours_id)
    if for_update:
        stmt = stmt.with_for_update()
    hours = (await db.execute(stmt)).scalar_one_or_none()
    if not hours:
        raise HTTPException(status_code=404, detail="Business hours not found")
    return hours


async def add_business_hours(db: AsyncSession, *, actor: User, business_id: int, data: dict) -> BusinessHours:
    business = await get_business_or_404(db, business_id)
    _ensure_can_edit(actor, business)
    await _ensure_day_free(db, business_id=business_id, day_of_week=data["day_of_week"])

    hours = BusinessHours(business_id=business_id, **data)
    _check_window(hours)

    try:
        db.add(hours)
        await db.commit()
        await db.refresh(hours)
    except Exception:
        await db.rollback()
        raise

    logger.info("business_hours_added", business_id=business_id, hours_id=hours.id, actor_user_id=actor.id)
    return hours


async def update_business_hours(db: AsyncSession, *, actor: User, hours_id: int, data: dict) -> BusinessHours:
    hours = await get_hours_or_404(db, hours_id, for_update=True)
    business = await get_business_or_404(db, hours.business_id)
    _ensure_can_edit(actor, business)

    data.pop("business_id", None)
    if data.get("day_of_week") is not None and data["day_of_week"] != hours.day_of_week:
        await _ensure_day_free(db, business_id=hours.business_id, day_of_week=data["day_of_week"], exclude_id=hours.id)

    for field, value in data.items():
        if field in ("day_of_week", "is_closed") and value is None:
            continue
        setattr(hours, field, value)

    try:
        _check_window(hours)
        await db.commit()
        await db.refresh(hours)
    except Exception:
        await db.rollback()
        raise

    logger.info("business_hours_updated", hours_id=hours.id, actor_user_id=actor.id)
    return hours


async def delete_business_hours(db: AsyncSession, *, actor: User, hours_id: int) -> None:
    hours = await get_hours_or_404(db, hours_id, for_update=True)
    business = await get_business_or_404(db, hours.business_id)
    _ensure_can_edit(actor, business)

    try:
        await db.delete(hours)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("business_hours_deleted", hours_id=hours_id, actor_user_id=actor.id)
