# app/services/notifications.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, NotificationPreferences

PREFERENCE_FIELDS = (
    "deal_alerts",
    "expiring_deals",
    "new_businesses",
    "special_promotions",
    "email_notifications",
    "push_notifications",
)


def queue_notification(
    db: AsyncSession,
    *,
    user_id: int,
    kind: str,
    title: str,
    message: str | None = None,
    deal_id: int | None = None,
) -> Notification:
    """
    Add a notification to the caller's transaction. The caller commits, so the
    notification lands together with the state change it describes.
    """
    n = Notification(
        user_id=user_id,
        kind=kind,
        title=title,
        message=message,
        deal_id=deal_id,
    )
    db.add(n)
    return n


async def list_notifications(
    db: AsyncSession, *, user_id: int, unread_only: bool = False, limit: int = 100
) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def mark_read(db: AsyncSession, *, user_id: int, notification_id: int) -> Notification:
    n = await db.get(Notification, notification_id)
    if not n or n.user_id != user_id:
        raise HTTPException(status_code=404, detail="Notification not found")
    n.is_read = True
    await db.commit()
    await db.refresh(n)
    return n


async def mark_all_read(db: AsyncSession, *, user_id: int) -> int:
    res = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return int(res.rowcount or 0)


# -------------------------
# Preferences
# -------------------------
async def get_preferences(db: AsyncSession, user_id: int) -> NotificationPreferences | None:
    res = await db.execute(
        select(NotificationPreferences).where(NotificationPreferences.user_id == user_id)
    )
    return res.scalar_one_or_none()


async def upsert_preferences(db: AsyncSession, *, user_id: int, data: dict) -> NotificationPreferences:
    prefs = await get_preferences(db, user_id)
    if prefs is None:
        prefs = NotificationPreferences(
            user_id=user_id,
            **{f: bool(data.get(f) or False) for f in PREFERENCE_FIELDS},
        )
        db.add(prefs)
    else:
        for field, value in data.items():
            if field in PREFERENCE_FIELDS and value is not None:
                setattr(prefs, field, bool(value))

    await db.commit()
    await db.refresh(prefs)
    return prefs
