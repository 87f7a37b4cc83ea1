"""Event service — the event catalogue and its admin CRUD.

Learn: Event ids are small integers the client shows and routes on,
assigned as max(id) + 1. Two admins creating events at the same moment
can compute the same id; the primary key rejects the loser and we
simply recompute.
"""

from typing import Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportshub.db.models import Event, TeamMember
from sportshub.errors import ConflictError, NotFoundError
from sportshub.schemas.event import EventWrite

logger = structlog.get_logger()

_CREATE_ATTEMPTS = 3


class EventService:
    """Business logic for events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_events(self) -> list[Event]:
        """Every event with its roster, ascending id."""
        result = await self.db.execute(
            select(Event)
            .options(selectinload(Event.members))
            .order_by(Event.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_event(self, event_id: int) -> Optional[Event]:
        result = await self.db.execute(
            select(Event)
            .where(Event.id == event_id)
            .options(selectinload(Event.members))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _require(self, event_id: int) -> Event:
        event = await self.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found.")
        return event

    # ─── Admin CRUD ─────────────────────────────────────

    @staticmethod
    def _apply(event: Event, data: EventWrite) -> None:
        event.name = data.name.strip()
        event.date = data.date
        event.time = data.time
        event.location = data.location
        event.category = data.category
        event.emoji = data.emoji
        event.difficulty = data.difficulty
        event.description = data.description
        event.team_name = data.team_name.strip()
        event.max_slots = data.max_slots
        event.min_reg_year = data.min_reg_year
        event.min_experience = data.min_experience

    async def create_event(self, data: EventWrite) -> Event:
        """Create an event with an empty roster."""
        for attempt in range(_CREATE_ATTEMPTS):
            next_id = (
                await self.db.execute(select(func.coalesce(func.max(Event.id), 0)))
            ).scalar_one() + 1
            event = Event(id=next_id, member_count=0)
            self._apply(event, data)
            self.db.add(event)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.info("events.id_collision", event_id=next_id, attempt=attempt)
                continue
            logger.info("events.created", event_id=next_id, team=event.team_name)
            return await self._require(next_id)
        raise ConflictError("Could not allocate an event id, please retry.")

    async def update_event(self, event_id: int, data: EventWrite) -> Event:
        """Replace the descriptive and team fields; the roster is kept."""
        event = await self._require(event_id)
        self._apply(event, data)
        if event.member_count > event.max_slots:
            logger.warning(
                "events.over_capacity",
                event_id=event_id,
                member_count=event.member_count,
                max_slots=event.max_slots,
            )
        await self.db.commit()
        logger.info("events.updated", event_id=event_id)
        return await self._require(event_id)

    async def delete_event(self, event_id: int) -> None:
        """Delete the event; its roster (and so every joined-team entry) goes too."""
        await self._require(event_id)
        await self.db.execute(delete(TeamMember).where(TeamMember.event_id == event_id))
        await self.db.execute(delete(Event).where(Event.id == event_id))
        await self.db.commit()
        logger.info("events.deleted", event_id=event_id)
