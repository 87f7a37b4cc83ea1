"""Pydantic schemas for categories, system settings and analytics."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from sportshub.schemas.common import CamelModel


# ─── Categories ──────────────────────────────────────────

class CategoryWrite(CamelModel):
    name: str = Field(..., max_length=100)
    icon: Optional[str] = Field(None, max_length=16)


class CategoryRead(CamelModel):
    id: uuid.UUID
    name: str
    icon: str
    created_at: datetime


class CategoryWriteResponse(CamelModel):
    message: str
    category: CategoryRead


# ─── System settings ─────────────────────────────────────

class SystemSettingsUpdate(BaseModel):
    """Known tunables are type-checked; unknown keys pass through.

    Learn: Keys are kept exactly as the admin UI sends them (appName,
    maxTeamSize, ...) because the row is a free-form JSON map.
    """

    appName: Optional[str] = None
    maxTeamSize: Optional[int] = Field(None, ge=1)
    emailDomain: Optional[str] = None
    eventDuration: Optional[float] = Field(None, ge=0)
    minPasswordLength: Optional[int] = Field(None, ge=1)
    sessionTimeout: Optional[int] = Field(None, ge=1)
    requireEmailVerification: Optional[bool] = None

    model_config = {"extra": "allow"}


# ─── Analytics ───────────────────────────────────────────

class AnalyticsRead(CamelModel):
    total_users: int
    total_events: int
    total_categories: int
    new_users_today: int
    new_users_this_month: int
    events_this_month: int
    notifications_sent_today: int
    notifications_this_month: int
    active_teams: int
    total_registrations: int
    team_completion_rate: int
