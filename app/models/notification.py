from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base, BigIntId, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    kind: Mapped[str] = mapped_column(String(64), nullable=False)  # deal_approved, business_verified, ...
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deal_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("deals.id", ondelete="SET NULL"), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class NotificationPreferences(Base):
    __tablename__ = "user_notification_preferences"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    deal_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    expiring_deals: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    new_businesses: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    special_promotions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    push_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
