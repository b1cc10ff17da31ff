"""Authentication API — login and profile."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import settings
from caseflow.api.deps import get_db, get_request_context
from caseflow.auth.context import RequestContext
from caseflow.auth.jwt import create_access_token
from caseflow.auth.passwords import verify_password
from caseflow.repositories.users import UserRepository
from caseflow.schemas.schemas import LoginRequest, ProfileResponse, TokenResponse, UserSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate with email + password, receive a JWT access token."""
    user = await UserRepository(db).get_by_email(body.email)

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")

    access_token = create_access_token(user.id, user.email, user.role)
    logger.info("Login: %s (%s)", user.email, user.role)

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserSchema.model_validate(user),
    )


@router.get("/me", response_model=ProfileResponse)
async def me(ctx: RequestContext = Depends(get_request_context), db: AsyncSession = Depends(get_db)):
    """Current user's profile plus every permission token they hold, grants included."""
    user = await UserRepository(db).get(ctx.user_id)
    profile = ProfileResponse.model_validate(user)
    profile.permissions = sorted(ctx.permissions)
    return profile
