from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.deals import DealOut


class FavoriteOut(BaseModel):
    id: int
    deal_id: int
    created_at: datetime
    deal: Optional[DealOut] = None


class FavoriteStatusOut(BaseModel):
    deal_id: int
    is_favorite: bool
