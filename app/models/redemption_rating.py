from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base, BigIntId, utcnow


class RedemptionRating(Base):
    __tablename__ = "redemption_ratings"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="redemption_ratings_rating_check"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    redemption_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("deal_redemptions.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    deal_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False)
    business_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    experience_quality: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    value_for_money: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    would_recommend: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
