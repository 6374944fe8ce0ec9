from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserType(str, Enum):
    individual = "individual"
    business = "business"
    admin = "admin"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    user_type: str

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    marketing_consent: bool
    is_active: bool
    created_at: datetime


class UserUpdate(BaseModel):
    """Self-service profile edit. user_type is not editable here."""

    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=512)
    marketing_consent: Optional[bool] = None


class AdminUserUpdate(UserUpdate):
    email: Optional[EmailStr] = None
    user_type: Optional[UserType] = None
    is_active: Optional[bool] = None
