# app/services/users.py
from __future__ import annotations

import re
import secrets

import structlog
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password, verify_password
from app.models.business import Business
from app.models.user import User
from app.services.deal_lifecycle import VerificationStatus

logger = structlog.get_logger(__name__)


def _username_base(email: str) -> str:
    local = email.split("@", 1)[0].lower()
    base = re.sub(r"[^a-z0-9_.-]", "", local)
    return base or "user"


async def _unique_username(db: AsyncSession, email: str) -> str:
    base = _username_base(email)
    candidate = base
    for _ in range(5):
        res = await db.execute(select(User.id).where(User.username == candidate))
        if res.scalar_one_or_none() is None:
            return candidate
        candidate = f"{base}-{secrets.token_hex(2)}"
    return f"{base}-{secrets.token_hex(4)}"


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    res = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return res.scalar_one_or_none()


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    if await get_user_by_email(db, email):
        raise HTTPException(status_code=409, detail="Email already registered")


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    user_type: str,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    marketing_consent: bool = False,
) -> User:
    """Add a user to the session without committing."""
    await _ensure_email_free(db, email)
    user = User(
        username=await _unique_username(db, email),
        email=email.strip().lower(),
        password_hash=hash_password(password),
        user_type=user_type,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        address=address,
        marketing_consent=marketing_consent,
    )
    db.add(user)
    return user


async def signup_individual(db: AsyncSession, **fields) -> User:
    try:
        user = await create_user(db, user_type="individual", **fields)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    await db.refresh(user)
    logger.info("user_signed_up", user_id=user.id, user_type=user.user_type)
    return user


async def signup_business(
    db: AsyncSession,
    *,
    user_fields: dict,
    business_fields: dict,
) -> tuple[User, Business]:
    """
    User and business are written in one transaction. The business always
    starts with an explicit verification_status.
    """
    try:
        user = await create_user(db, user_type="business", **user_fields)
        await db.flush()

        business = Business(
            user_id=user.id,
            verification_status=VerificationStatus.pending.value,
            **business_fields,
        )
        db.add(business)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    except Exception:
        await db.rollback()
        raise

    await db.refresh(user)
    await db.refresh(business)
    logger.info("business_signed_up", user_id=user.id, business_id=business.id)
    return user, business


async def authenticate(db: AsyncSession, *, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)

    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")

    return user


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def update_user(db: AsyncSession, user: User, data: dict) -> User:
    if "email" in data and data["email"] is not None:
        new_email = str(data["email"]).strip().lower()
        if new_email != user.email:
            await _ensure_email_free(db, new_email)
        data["email"] = new_email

    for field, value in data.items():
        setattr(user, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    await db.refresh(user)
    return user


async def change_password(
    db: AsyncSession,
    user: User,
    *,
    current_password: str,
    new_password: str,
    confirm_new_password: str,
) -> None:
    if new_password != confirm_new_password:
        raise HTTPException(status_code=400, detail="New password and confirmation do not match.")

    if not verify_password(current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")

    if verify_password(new_password, user.password_hash):
        raise HTTPException(status_code=400, detail="New password must be different from current password.")

    user.password_hash = hash_password(new_password)
    db.add(user)
    await db.commit()
    logger.info("password_changed", user_id=user.id)


async def list_users(db: AsyncSession, *, user_type: str | None = None, limit: int = 500) -> list[User]:
    stmt = select(User).order_by(User.created_at.desc(), User.id.desc())
    if user_type:
        stmt = stmt.where(User.user_type == user_type)
    res = await db.execute(stmt.limit(limit))
    return list(res.scalars().all())
