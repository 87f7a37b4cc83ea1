"""Pydantic schemas for admin notification send + history."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from sportshub.schemas.common import CamelModel


class NotificationSend(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    icon: str = Field(..., min_length=1, max_length=16)
    target: str = Field(
        ..., pattern=r"^(all|team-members|non-team-members|specific|bulk)$"
    )
    priority: str = Field(default="normal", max_length=20)
    specific_email: Optional[str] = None
    bulk_emails: Optional[str] = None
    scheduled: bool = False
    schedule_date_time: Optional[datetime] = None


class NotificationSendResult(CamelModel):
    message: str
    sent_count: int
    real_time_delivered: int


class NotificationHistoryRead(CamelModel):
    id: int
    title: str
    message: str
    icon: str
    target: str
    priority: str
    sent_count: int
    realtime_delivered: int
    target_users: list[str]
    sent_by: str
    scheduled_for: Optional[datetime] = None
    sent_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class NotificationHistoryPage(CamelModel):
    notifications: list[NotificationHistoryRead]
    pagination: Pagination
