from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.deals import DealOut


class RedeemIn(BaseModel):
    deal_id: int


class RedemptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    deal_id: int
    status: str
    redemption_code: str
    redeemed_at: datetime
    verified_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class RedemptionWithDealOut(RedemptionOut):
    deal: Optional[DealOut] = None


class VerifyRedemptionIn(BaseModel):
    redemption_id: int
