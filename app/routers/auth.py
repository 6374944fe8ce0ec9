from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.security import TokenError, create_access_token, create_refresh_token, decode_token
from app.models.user import User
from app.schemas.auth import (
    BusinessSignupRequest,
    IndividualSignupRequest,
    LoginRequest,
    RefreshRequest,
    TokenPair,
)
from app.schemas.me import MeOut
from app.schemas.businesses import BusinessOut
from app.schemas.users import UserOut
from app.services.users import authenticate, get_user_or_404, signup_business, signup_individual

router = APIRouter(prefix="/auth", tags=["auth"])

USER_FIELDS = ("email", "password", "first_name", "last_name", "phone", "address", "marketing_consent")


def _tokens(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id=user.id, user_type=user.user_type),
        refresh_token=create_refresh_token(user_id=user.id),
    )


@router.post("/login", response_model=TokenPair)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate(db, email=body.email, password=body.password)
    return _tokens(user)


@router.post("/token", response_model=TokenPair, include_in_schema=False)
async def login_form(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    # OAuth2 form flow for the interactive docs; username is the email
    user = await authenticate(db, email=form_data.username, password=form_data.password)
    return _tokens(user)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        payload = decode_token(body.refresh_token, expected_type="refresh")
        user_id = int(payload["sub"])
    except (TokenError, KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    user = await get_user_or_404(db, user_id)
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")
    return _tokens(user)


@router.post("/signup/individual", response_model=UserOut, status_code=201)
async def signup_individual_route(
    body: IndividualSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    return await signup_individual(db, **body.model_dump(include=set(USER_FIELDS)))


@router.post("/signup/business", response_model=MeOut, status_code=201)
async def signup_business_route(
    body: BusinessSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    user, business = await signup_business(
        db,
        user_fields=body.model_dump(include=set(USER_FIELDS)),
        business_fields={
            "business_name": body.business_name,
            "business_category": body.business_category,
            "description": body.description,
            "address": body.business_address or body.address,
            "latitude": body.latitude,
            "longitude": body.longitude,
            "phone": body.phone,
            "website": body.website,
        },
    )
    return MeOut(user=UserOut.model_validate(user), business=BusinessOut.model_validate(business))
