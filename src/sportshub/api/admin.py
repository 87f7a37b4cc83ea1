"""Admin API — admin login, user management, analytics.

Learn: Everything except /admin/login is mounted behind require_admin
(see api/__init__.py), so handlers here never re-check the role. The
admin identity still arrives as a parameter where a handler needs to
know who acted.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.config import settings
from sportshub.db.engine import get_db
from sportshub.schemas.admin import AnalyticsRead
from sportshub.schemas.common import MessageResponse
from sportshub.schemas.user import (
    AdminLoginResponse,
    AdminRead,
    AdminUserRead,
    AdminUserUpdate,
    LoginRequest,
    PasswordResetResponse,
)
from sportshub.services.analytics_service import AnalyticsService
from sportshub.services.token_service import TokenService
from sportshub.services.user_service import UserService

logger = structlog.get_logger()

login_router = APIRouter(prefix="/admin")
router = APIRouter(prefix="/admin")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ─── Login (open) ───────────────────────────────────────

@login_router.post("/login", response_model=AdminLoginResponse)
async def admin_login(body: LoginRequest, svc: UserService = Depends(_svc)):
    admin = await svc.authenticate_admin(body.email, body.password)
    pair = await TokenService(svc.db).issue_pair(admin, commit=False)
    await svc.db.commit()
    logger.info("admin.login", admin_id=str(admin.id), role=admin.role)
    return AdminLoginResponse(
        message="Admin login successful!",
        admin=AdminRead.model_validate(admin),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


# ─── Users ──────────────────────────────────────────────

@router.get("/users", response_model=list[AdminUserRead])
async def list_users(svc: UserService = Depends(_svc)):
    """Every student account, newest first. Password hashes never leave."""
    return [
        AdminUserRead.model_validate(await svc.admin_view(u))
        for u in await svc.list_users()
    ]


@router.put("/users/{user_id}", response_model=MessageResponse)
async def update_user(
    user_id: uuid.UUID, body: AdminUserUpdate, svc: UserService = Depends(_svc)
):
    await svc.admin_update(
        user_id,
        full_name=body.full_name,
        student_id=body.student_id,
        email=body.email,
        mobile_number=body.mobile_number,
        status=body.status,
    )
    return MessageResponse(message="User updated successfully!")


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    """Delete the account and drop it from every team roster."""
    await svc.delete_user(user_id)
    return MessageResponse(message="User deleted successfully.")


@router.post("/users/{user_id}/reset-password", response_model=PasswordResetResponse)
async def reset_password(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    """Issue a temporary password and invalidate the user's refresh tokens.

    The temporary password is only echoed back in development; elsewhere
    it has to reach the user out of band.
    """
    temp = await svc.reset_password(user_id)
    return PasswordResetResponse(
        message="Password reset successfully! Temporary password sent to user email.",
        temp_password=temp if settings.environment == "development" else None,
    )


# ─── Analytics ──────────────────────────────────────────

@router.get("/analytics", response_model=AnalyticsRead)
async def analytics(db: AsyncSession = Depends(get_db)):
    return AnalyticsRead(**await AnalyticsService(db).summary())
