"""Notification service — bounded per-user logs + admin fan-out.

Learn: One logical notification takes two delivery paths:

1. Durable: a row in every targeted user's notification log. The log
   keeps the newest `notification_log_limit` rows per user; older rows
   are evicted in insertion order (id order). `priority` is carried
   along but never reorders anything.
2. Best-effort: a frame pushed to the user's live notification socket,
   if the realtime registry has an open one for their email.

The two counts are reported separately — persisted always happens,
realtime only reaches whoever is connected right now. Every send also
appends a NotificationHistory row for the admin audit view.

Scheduled sends are accepted but dispatched immediately; the schedule
time only becomes the notification's timestamp.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, func, insert, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.config import settings
from sportshub.db.models import NotificationHistory, TeamMember, User, UserNotification, utcnow
from sportshub.errors import ValidationError
from sportshub.realtime.registry import RealtimeRegistry
from sportshub.services.roster_service import membership_of

logger = structlog.get_logger()

TARGETS = ("all", "team-members", "non-team-members", "specific", "bulk")


@dataclass
class NotificationPayload:
    title: str
    body: str
    icon: str = ""
    priority: str = "normal"
    timestamp: datetime = field(default_factory=utcnow)

    def as_frame(self) -> dict:
        """Shape pushed over the notification socket."""
        return {
            "icon": self.icon,
            "title": self.title,
            "body": self.body,
            "priority": self.priority,
            "timestamp": self.timestamp.isoformat(),
            "read": False,
        }


@dataclass
class FanoutResult:
    persisted_count: int
    realtime_delivered: int
    recipients: list[str]


def split_bulk_emails(raw: str) -> list[str]:
    """Comma-separated list → trimmed, non-empty, de-duplicated emails (order kept)."""
    return list(dict.fromkeys(e.strip() for e in raw.split(",") if e.strip()))


class NotificationService:
    """Business logic for notification logs and fan-out."""

    def __init__(
        self,
        db: AsyncSession,
        registry: Optional[RealtimeRegistry] = None,
        log_limit: Optional[int] = None,
    ):
        self.db = db
        self.registry = registry
        self.log_limit = log_limit or settings.notification_log_limit

    # ─── Bounded log ────────────────────────────────────

    async def push_to_users(
        self, user_ids: Sequence[uuid.UUID], payload: NotificationPayload
    ) -> int:
        """Append to each user's log and evict past the limit (no commit)."""
        if not user_ids:
            return 0
        await self.db.execute(
            insert(UserNotification),
            [
                {
                    "user_id": uid,
                    "icon": payload.icon,
                    "title": payload.title,
                    "body": payload.body,
                    "priority": payload.priority,
                    "read": False,
                    "timestamp": payload.timestamp,
                }
                for uid in user_ids
            ],
        )
        await self._trim(user_ids)
        return len(user_ids)

    async def _trim(self, user_ids: Sequence[uuid.UUID]) -> None:
        ranked = (
            select(
                UserNotification.id.label("id"),
                func.row_number()
                .over(
                    partition_by=UserNotification.user_id,
                    order_by=UserNotification.id.desc(),
                )
                .label("rn"),
            )
            .where(UserNotification.user_id.in_(user_ids))
            .subquery()
        )
        await self.db.execute(
            delete(UserNotification)
            .where(
                UserNotification.id.in_(
                    select(ranked.c.id).where(ranked.c.rn > self.log_limit)
                )
            )
            .execution_options(synchronize_session=False)
        )

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserNotification]:
        result = await self.db.execute(
            select(UserNotification)
            .where(UserNotification.user_id == user_id)
            .order_by(UserNotification.id)
        )
        return list(result.scalars().all())

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(UserNotification)
            .where(UserNotification.user_id == user_id, UserNotification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    # ─── Fan-out ────────────────────────────────────────

    async def resolve_targets(
        self,
        target: str,
        specific_email: Optional[str] = None,
        bulk_emails: Optional[str] = None,
    ) -> tuple[list[str], list[uuid.UUID]]:
        """Selector → (recipient emails, matching user ids).

        For `specific` and `bulk` the recipient list is what the admin
        typed, even addresses with no account (they simply persist
        nowhere). For the other selectors it is the matching users.
        """
        has_team = membership_of(User)
        explicit: Optional[list[str]] = None

        if target == "all":
            condition = true()
        elif target == "team-members":
            condition = select(TeamMember.id).where(has_team).exists()
        elif target == "non-team-members":
            condition = ~select(TeamMember.id).where(has_team).exists()
        elif target == "specific":
            if not specific_email or not specific_email.strip():
                raise ValidationError("Specific user email is required.")
            explicit = [specific_email.strip()]
            condition = User.email == explicit[0]
        elif target == "bulk":
            explicit = split_bulk_emails(bulk_emails or "")
            if not explicit:
                raise ValidationError("Bulk emails are required.")
            condition = User.email.in_(explicit)
        else:
            raise ValidationError(
                f"Invalid notification target. Use one of: {', '.join(TARGETS)}."
            )

        rows = (
            await self.db.execute(
                select(User.id, User.email).where(condition).order_by(User.created_at)
            )
        ).all()
        user_ids = [r.id for r in rows]
        recipients = explicit if explicit is not None else [r.email for r in rows]
        return recipients, user_ids

    async def send(
        self,
        payload: NotificationPayload,
        target: str,
        *,
        specific_email: Optional[str] = None,
        bulk_emails: Optional[str] = None,
        sent_by: str = "System",
        scheduled_for: Optional[datetime] = None,
    ) -> FanoutResult:
        """Persist to every targeted log, push to live sockets, record history."""
        recipients, user_ids = await self.resolve_targets(
            target, specific_email, bulk_emails
        )

        if scheduled_for is not None:
            # No job queue: the schedule only sets the timestamp.
            payload.timestamp = scheduled_for
            logger.info(
                "notifications.scheduled_dispatched_now",
                scheduled_for=scheduled_for.isoformat(),
            )

        persisted = await self.push_to_users(user_ids, payload)
        await self.db.commit()

        delivered = 0
        if self.registry is not None:
            frame = payload.as_frame()
            for email in recipients:
                if await self.registry.send_notification(email, frame):
                    delivered += 1

        self.db.add(
            NotificationHistory(
                title=payload.title,
                message=payload.body,
                icon=payload.icon,
                target=target,
                priority=payload.priority,
                sent_count=persisted,
                realtime_delivered=delivered,
                target_users=recipients,
                sent_by=sent_by,
                scheduled_for=scheduled_for,
                sent_at=utcnow(),
            )
        )
        await self.db.commit()

        logger.info(
            "notifications.sent",
            target=target,
            persisted=persisted,
            realtime=delivered,
            sent_by=sent_by,
        )
        return FanoutResult(
            persisted_count=persisted,
            realtime_delivered=delivered,
            recipients=recipients,
        )

    # ─── History ────────────────────────────────────────

    async def history(
        self, page: int = 1, limit: int = 20
    ) -> tuple[list[NotificationHistory], int]:
        """One page of send history, newest first, plus the total count."""
        total = (
            await self.db.execute(select(func.count(NotificationHistory.id)))
        ).scalar_one()
        result = await self.db.execute(
            select(NotificationHistory)
            .order_by(NotificationHistory.sent_at.desc(), NotificationHistory.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total
