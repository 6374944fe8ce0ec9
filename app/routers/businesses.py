# app/routers/businesses.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_optional_user, require_business_or_admin
from app.models.user import User
from app.schemas.business_hours import BusinessHoursIn, BusinessHoursOut, BusinessHoursUpdate
from app.schemas.businesses import BusinessOut
from app.schemas.deals import DealOut
from app.services.business_hours import (
    add_business_hours,
    delete_business_hours,
    list_business_hours,
    update_business_hours,
)
from app.services.businesses import get_business_or_404, list_public_businesses, stored_verification_status
from app.services.deals import deal_out, list_business_deals

router = APIRouter(prefix="/businesses", tags=["Businesses"])


def _business_out(business) -> BusinessOut:
    out = BusinessOut.model_validate(business)
    out.verification_status = stored_verification_status(business)
    return out


@router.get("", response_model=list[BusinessOut])
async def list_verified_businesses(
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return [_business_out(b) for b in await list_public_businesses(db, search=search, limit=limit)]


@router.get("/{business_id}", response_model=BusinessOut)
async def get_business(
    business_id: int,
    db: AsyncSession = Depends(get_db),
):
    return _business_out(await get_business_or_404(db, business_id))


@router.get("/{business_id}/deals", response_model=list[DealOut])
async def business_deals(
    business_id: int,
    status: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    rows = await list_business_deals(db, business_id=business_id, viewer=viewer, status=status)
    return [deal_out(d, b) for d, b in rows]


# -------------------------
# Opening hours
# -------------------------
@router.get("/{business_id}/hours", response_model=list[BusinessHoursOut])
async def business_hours(
    business_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await list_business_hours(db, business_id)


@router.post("/{business_id}/hours", response_model=BusinessHoursOut, status_code=201)
async def add_hours(
    business_id: int,
    body: BusinessHoursIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    return await add_business_hours(db, actor=current_user, business_id=business_id, data=body.model_dump())


@router.put("/hours/{hours_id}", response_model=BusinessHoursOut)
async def update_hours(
    hours_id: int,
    body: BusinessHoursUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    return await update_business_hours(
        db, actor=current_user, hours_id=hours_id, data=body.model_dump(exclude_unset=True)
    )


@router.delete("/hours/{hours_id}", status_code=204)
async def delete_hours(
    hours_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_business_or_admin),
):
    await delete_business_hours(db, actor=current_user, hours_id=hours_id)
    return Response(status_code=204)
