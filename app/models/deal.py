from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base, BigIntId, utcnow


class Deal(Base):
    __tablename__ = "deals"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','pending','pending_revision','approved','rejected','expired')",
            name="deals_status_check",
        ),
        CheckConstraint(
            "max_redemptions_per_user IS NULL OR max_redemptions_per_user > 0",
            name="deals_max_per_user_check",
        ),
        CheckConstraint(
            "total_redemptions_limit IS NULL OR total_redemptions_limit > 0",
            name="deals_total_limit_check",
        ),
        Index("ix_deals_status_end_date", "status", "end_date"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    business_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    deal_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # percent_off, bogo, ...
    discount: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending", server_default="pending")

    max_redemptions_per_user: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_redemptions_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    redemption_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    save_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    redemption_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=utcnow)
