# app/models/deal_event.py
from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Text, func
from sqlalchemy.dialects.postgresql import JSONB

from app.core.db import Base, BigIntId, utcnow


class DealEvent(Base):
    __tablename__ = "deal_events"

    id = Column(BigIntId, primary_key=True, index=True)
    deal_id = Column(BigIntId, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True)

    actor_user_id = Column(BigIntId, ForeignKey("users.id"), nullable=True)

    event_type = Column(Text, nullable=False)  # e.g. submitted, approved, revision_requested, expired
    from_status = Column(Text, nullable=True)
    to_status = Column(Text, nullable=True)
    meta = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
