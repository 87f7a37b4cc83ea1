"""Analytics service — dashboard counters for the admin UI.

Learn: Every figure is a COUNT over live tables; nothing is cached or
pre-aggregated. "Today" and "this month" are UTC calendar boundaries.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.db.models import Category, Event, NotificationHistory, TeamMember, User


def _boundaries(now: datetime) -> tuple[datetime, datetime]:
    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return day, day.replace(day=1)


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, column, *conditions) -> int:
        query = select(func.count(column))
        if conditions:
            query = query.where(*conditions)
        return (await self.db.execute(query)).scalar_one()

    async def summary(self, now: Optional[datetime] = None) -> dict[str, int]:
        today, month = _boundaries(now or datetime.now(timezone.utc))

        active_teams = await self._count(
            Event.id, Event.team_name.is_not(None), Event.member_count > 0
        )
        full_teams = await self._count(
            Event.id,
            Event.team_name.is_not(None),
            Event.member_count > 0,
            Event.member_count >= Event.max_slots,
        )

        return {
            "total_users": await self._count(User.id),
            "total_events": await self._count(Event.id),
            "total_categories": await self._count(Category.id),
            "new_users_today": await self._count(User.id, User.created_at >= today),
            "new_users_this_month": await self._count(User.id, User.created_at >= month),
            "events_this_month": await self._count(Event.id, Event.created_at >= month),
            "notifications_sent_today": await self._count(
                NotificationHistory.id, NotificationHistory.sent_at >= today
            ),
            "notifications_this_month": await self._count(
                NotificationHistory.id, NotificationHistory.sent_at >= month
            ),
            "active_teams": active_teams,
            "total_registrations": await self._count(TeamMember.id),
            "team_completion_rate": (
                round(full_teams / active_teams * 100) if active_teams else 0
            ),
        }
