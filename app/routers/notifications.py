# app/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.notifications import NotificationOut, NotificationPreferencesIn, NotificationPreferencesOut
from app.services.notifications import (
    get_preferences,
    list_notifications,
    mark_all_read,
    mark_read,
    upsert_preferences,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationOut])
async def my_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await list_notifications(db, user_id=current_user.id, unread_only=unread_only, limit=limit)


@router.post("/read-all")
async def read_all(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"updated": await mark_all_read(db, user_id=current_user.id)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def read_one(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await mark_read(db, user_id=current_user.id, notification_id=notification_id)


@router.get("/preferences", response_model=NotificationPreferencesOut)
async def my_preferences(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    prefs = await get_preferences(db, current_user.id)
    if not prefs:
        raise HTTPException(status_code=404, detail="Notification preferences not set")
    return prefs


@router.put("/preferences", response_model=NotificationPreferencesOut)
async def update_my_preferences(
    body: NotificationPreferencesIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await upsert_preferences(db, user_id=current_user.id, data=body.model_dump(exclude_unset=True))
