from __future__ import annotations

from pydantic import BaseModel, Field

from app.schemas.auth import StrongPassword
from app.schemas.businesses import BusinessOut
from app.schemas.users import UserOut


class MeOut(BaseModel):
    user: UserOut
    business: BusinessOut | None = None


class ChangePasswordIn(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: StrongPassword
    confirm_new_password: str = Field(..., min_length=8)
