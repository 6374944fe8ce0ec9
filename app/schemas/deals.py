# app/schemas/deals.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.businesses import BusinessSummaryOut
from app.services.deal_lifecycle import as_utc


class DealBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(min_length=1, max_length=64)
    image_url: Optional[str] = None
    deal_type: Optional[str] = Field(default=None, max_length=32)
    discount: Optional[str] = Field(default=None, max_length=64)
    terms: Optional[str] = None

    start_date: datetime
    end_date: datetime

    max_redemptions_per_user: Optional[int] = Field(default=None, ge=1)
    total_redemptions_limit: Optional[int] = Field(default=None, ge=1)
    redemption_code: Optional[str] = Field(default=None, max_length=64)

    # naive timestamps are taken as UTC
    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class DealCreate(DealBase):
    model_config = ConfigDict(extra="forbid")

    # Save without submitting for review
    as_draft: bool = False

    @model_validator(mode="after")
    def _dates_in_order(self) -> "DealCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class DealUpdate(BaseModel):
    """Vendor edit. Status is never set here, see the lifecycle endpoints."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=64)
    image_url: Optional[str] = None
    deal_type: Optional[str] = Field(default=None, max_length=32)
    discount: Optional[str] = Field(default=None, max_length=64)
    terms: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_redemptions_per_user: Optional[int] = Field(default=None, ge=1)
    total_redemptions_limit: Optional[int] = Field(default=None, ge=1)
    redemption_code: Optional[str] = Field(default=None, max_length=64)

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class DealOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: int
    title: str
    description: Optional[str] = None
    category: str
    image_url: Optional[str] = None
    deal_type: Optional[str] = None
    discount: Optional[str] = None
    terms: Optional[str] = None
    featured: bool

    start_date: datetime
    end_date: datetime
    status: str

    max_redemptions_per_user: Optional[int] = None
    total_redemptions_limit: Optional[int] = None

    view_count: int
    save_count: int
    redemption_count: int
    created_at: datetime

    # computed from status + end_date at response time
    effective_status: Optional[str] = None
    is_expiring_soon: bool = False

    business: Optional[BusinessSummaryOut] = None


class DealStatusIn(BaseModel):
    # synonyms "active" and "verified" are accepted for "approved"
    status: str
    feedback: Optional[str] = None


class DealFeaturedIn(BaseModel):
    featured: bool


class ViewCountOut(BaseModel):
    view_count: int


class DealStatusOverviewOut(BaseModel):
    total_deals: int
    status_counts: dict[str, int]
    deals_without_approval: int


class VerifyCodeIn(BaseModel):
    code: str = Field(min_length=1, max_length=64)


class VerifyCodeOut(BaseModel):
    valid: bool
