# app/routers/admin_users.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.schemas.users import AdminUserUpdate, UserOut, UserType
from app.services.users import get_user_or_404, list_users, update_user

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])


@router.get("", response_model=list[UserOut])
async def admin_list_users(
    user_type: UserType | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=2000),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_users(db, user_type=user_type.value if user_type else None, limit=limit)


@router.get("/{user_id}", response_model=UserOut)
async def admin_get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await get_user_or_404(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
async def admin_update_user(
    user_id: int,
    body: AdminUserUpdate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    user = await get_user_or_404(db, user_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("user_type") is not None:
        data["user_type"] = UserType(data["user_type"]).value
    if user.id == admin_user.id and data.get("is_active") is False:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    data = {k: v for k, v in data.items() if v is not None or k not in ("email", "user_type", "is_active")}

    return await update_user(db, user, data)


@router.post("/{user_id}/deactivate", response_model=UserOut)
async def admin_deactivate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    if user_id == admin_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    user = await get_user_or_404(db, user_id)
    return await update_user(db, user, {"is_active": False})
