from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BusinessSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_name: str
    business_category: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    verification_status: str


class BusinessOut(BusinessSummaryOut):
    user_id: int
    description: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    verification_feedback: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime


class BusinessUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    business_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    business_category: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=512)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    phone: Optional[str] = Field(default=None, max_length=32)
    website: Optional[str] = Field(default=None, max_length=255)
    image_url: Optional[str] = None


class VerificationUpdateIn(BaseModel):
    # "approved" is accepted and stored as "verified"
    status: str
    feedback: Optional[str] = None


class BusinessWithOwnerOut(BusinessOut):
    owner_email: Optional[str] = None
