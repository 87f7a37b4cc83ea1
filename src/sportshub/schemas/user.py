"""Pydantic schemas for accounts, tokens and profiles."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from sportshub.schemas.common import CamelModel


# ─── Auth ────────────────────────────────────────────────

class RegisterRequest(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=150)
    student_id: str = Field(..., min_length=1, max_length=50, alias="studentID")
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str


# ─── Profile ─────────────────────────────────────────────

class NotificationRead(CamelModel):
    icon: str
    title: str
    body: str
    priority: str
    timestamp: datetime
    read: bool


class JoinedTeamRead(CamelModel):
    event_id: int
    event_name: str
    team_name: str
    emoji: str
    joined_at: datetime


class UserRead(CamelModel):
    id: uuid.UUID
    full_name: str
    email: str
    student_id: str = Field(alias="studentID")
    mobile_number: str = ""
    avatar_url: Optional[str] = None
    joined_teams: list[JoinedTeamRead] = []
    notifications: list[NotificationRead] = []


class LoginResponse(TokenResponse):
    message: str
    user: UserRead


class ProfileUpdate(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=150)
    mobile_number: Optional[str] = Field(None, max_length=30)


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserRead


# ─── Admin view of users ─────────────────────────────────

class AdminUserRead(CamelModel):
    id: uuid.UUID
    full_name: str
    email: str
    student_id: str = Field(alias="studentID")
    mobile_number: str = ""
    avatar_url: Optional[str] = None
    status: str
    last_login: Optional[datetime] = None
    created_at: datetime
    joined_teams: list[JoinedTeamRead] = []


class AdminUserUpdate(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=150)
    student_id: str = Field(..., min_length=1, max_length=50, alias="studentID")
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    mobile_number: Optional[str] = Field(None, max_length=30)
    status: str = Field(default="active", pattern=r"^(active|suspended)$")


class PasswordResetResponse(CamelModel):
    message: str
    temp_password: Optional[str] = None


class AdminRead(CamelModel):
    id: uuid.UUID
    email: str
    full_name: str
    role: str


class AdminLoginResponse(TokenResponse):
    message: str
    admin: AdminRead
