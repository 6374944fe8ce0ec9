from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base, BigIntId, utcnow


class DealApproval(Base):
    """
    Review state of a deal. One row per deal, written in the same
    transaction as the deal itself and updated on every review cycle.
    """

    __tablename__ = "deal_approvals"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    deal_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("deals.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    submitter_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("users.id"), nullable=True)
    reviewer_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("users.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending", server_default="pending")
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
