from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    title: str
    message: Optional[str] = None
    deal_id: Optional[int] = None
    is_read: bool
    created_at: datetime


class NotificationPreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    deal_alerts: bool
    expiring_deals: bool
    new_businesses: bool
    special_promotions: bool
    email_notifications: bool
    push_notifications: bool


class NotificationPreferencesIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    deal_alerts: Optional[bool] = None
    expiring_deals: Optional[bool] = None
    new_businesses: Optional[bool] = None
    special_promotions: Optional[bool] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
