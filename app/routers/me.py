from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user, require_business
from app.models.user import User
from app.schemas.businesses import BusinessOut, BusinessUpdate
from app.schemas.me import MeOut
from app.schemas.users import UserOut, UserUpdate
from app.services.businesses import get_business_by_user, require_own_business, update_business
from app.services.users import update_user

router = APIRouter(tags=["Me"])


async def _me(db: AsyncSession, user: User) -> MeOut:
    business = None
    if user.user_type == "business":
        business = await get_business_by_user(db, user.id)
    return MeOut(
        user=UserOut.model_validate(user),
        business=BusinessOut.model_validate(business) if business else None,
    )


@router.get("/me", response_model=MeOut)
async def me(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MeOut:
    return await _me(db, current_user)


@router.patch("/me", response_model=MeOut)
async def update_me(
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MeOut:
    user = await update_user(db, current_user, body.model_dump(exclude_unset=True))
    return await _me(db, user)


@router.patch("/me/business", response_model=BusinessOut)
async def update_my_business(
    body: BusinessUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business),
):
    business = await require_own_business(db, current_user)
    data = body.model_dump(exclude_unset=True)
    # business_name and business_category are NOT NULL
    data = {k: v for k, v in data.items() if v is not None or k not in ("business_name", "business_category")}
    return await update_business(db, business, data)
