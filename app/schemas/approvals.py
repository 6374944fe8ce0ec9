from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.deals import DealOut


class ReviewDecision(str, Enum):
    approved = "approved"
    rejected = "rejected"
    pending_revision = "pending_revision"


class DealReviewIn(BaseModel):
    status: ReviewDecision
    # rejection reason or revision notes; required for both
    feedback: Optional[str] = None


class DealApprovalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    submitter_id: Optional[int] = None
    reviewer_id: Optional[int] = None
    status: str
    feedback: Optional[str] = None
    revision_count: int
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None


class DealReviewOut(BaseModel):
    approval: DealApprovalOut
    deal: DealOut


class DealEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    actor_user_id: Optional[int] = None
    event_type: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    meta: dict[str, Any]
    created_at: datetime
