# app/routers/admin_businesses.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.schemas.businesses import BusinessOut, BusinessWithOwnerOut, VerificationUpdateIn
from app.services.businesses import list_businesses, set_verification_status, stored_verification_status

router = APIRouter(prefix="/admin/businesses", tags=["Admin - Businesses"])


@router.get("", response_model=list[BusinessWithOwnerOut])
async def admin_list_businesses(
    verification_status: str | None = Query(default=None),
    category: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    rows = await list_businesses(
        db,
        verification_status=verification_status,
        category=category,
        limit=limit,
        offset=offset,
    )
    out = []
    for business, email in rows:
        item = BusinessWithOwnerOut.model_validate(business)
        item.verification_status = stored_verification_status(business)
        item.owner_email = email
        out.append(item)
    return out


@router.put("/{business_id}/verification", response_model=BusinessOut)
async def admin_set_verification(
    business_id: int,
    body: VerificationUpdateIn,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await set_verification_status(
        db,
        business_id=business_id,
        status=body.status,
        feedback=body.feedback,
        actor_user_id=admin_user.id,
    )
