from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base, BigIntId, utcnow


class DealRedemption(Base):
    __tablename__ = "deal_redemptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('redeemed','verified','completed','cancelled')",
            name="deal_redemptions_status_check",
        ),
        # Per-user limits live in services/redemptions.py, not here
        Index("ix_deal_redemptions_user_deal", "user_id", "deal_id"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    deal_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="redeemed", server_default="redeemed")
    redemption_code: Mapped[str] = mapped_column(String(16), nullable=False)

    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
