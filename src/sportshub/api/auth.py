"""Auth API — registration, login, token refresh, logout.

Learn: Routes for the student credential lifecycle:
- POST /register → create an account (201)
- POST /login → email/password → profile + token pair
- POST /auth/refresh → single-use refresh token → new pair
- POST /logout → revoke the presented refresh token

Admin login lives with the other admin routes (admin.py) but goes
through the same TokenService.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.auth.dependencies import CurrentIdentity, get_current_user
from sportshub.db.engine import get_db
from sportshub.errors import AuthenticationError
from sportshub.schemas.common import MessageResponse
from sportshub.schemas.user import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from sportshub.services.token_service import TokenService
from sportshub.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(body: RegisterRequest, svc: UserService = Depends(_svc)):
    """Create a new student account."""
    await svc.register(
        full_name=body.full_name,
        student_id=body.student_id,
        email=body.email,
        password=body.password,
    )
    return MessageResponse(message="User registered successfully!")


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, svc: UserService = Depends(_svc)):
    """Login with email and password → profile + token pair."""
    user = await svc.authenticate(body.email, body.password)
    pair = await TokenService(svc.db).issue_pair(user, commit=False)
    await svc.record_login(user)
    await svc.db.commit()

    logger.info("auth.login", user_id=str(user.id))
    return LoginResponse(
        message="Login successful!",
        user=UserRead.model_validate(await svc.profile(user)),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


# ─── Refresh ────────────────────────────────────────────


@router.post("/auth/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new pair. The old token dies."""
    if not body.refresh_token:
        raise AuthenticationError("Refresh token required")
    pair = await TokenService(db).rotate(body.refresh_token)
    return TokenResponse(
        access_token=pair.access_token, refresh_token=pair.refresh_token
    )


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: Optional[LogoutRequest] = None,
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if body is not None and body.refresh_token:
        await TokenService(db).revoke(body.refresh_token)
    logger.info("auth.logout", user_id=identity.user_id)
    return MessageResponse(message="Logged out successfully")
