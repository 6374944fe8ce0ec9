from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RatingIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)
    experience_quality: Optional[int] = Field(default=None, ge=1, le=5)
    value_for_money: Optional[int] = Field(default=None, ge=1, le=5)
    would_recommend: Optional[bool] = None
    anonymous: bool = False


class RatingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    redemption_id: int
    user_id: Optional[int] = None  # hidden for anonymous ratings
    deal_id: int
    business_id: int
    rating: int
    comment: Optional[str] = None
    experience_quality: Optional[int] = None
    value_for_money: Optional[int] = None
    would_recommend: Optional[bool] = None
    anonymous: bool
    created_at: datetime


class RatingSummaryOut(BaseModel):
    average_rating: float
    total_ratings: int
    rating_counts: dict[int, int]
