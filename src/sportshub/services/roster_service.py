"""Roster service — team join/leave admission.

Learn: The roster has exactly one home: the team_members table. A
user's "joined teams" is read from the same rows, so the two views the
UI shows (event roster, my teams) cannot disagree.

Join checks run in a fixed order and stop at the first failure:
  event exists + has a team → not already a member → registration year
  → experience → capacity
The order is observable: it decides which message the applicant sees.

Capacity is enforced twice:
1. A per-event KeyedLock serialises joins/leaves inside the process.
2. The write itself is conditional —
     UPDATE events SET member_count = member_count + 1
     WHERE id = :id AND member_count < max_slots
   — so even unserialised writers (another process) can never push a
   team past max_slots. Zero rows updated means "full".
The counter bump and the roster row insert share one transaction.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportshub.auth.dependencies import CurrentIdentity
from sportshub.db.models import Event, TeamMember, User, utcnow
from sportshub.errors import (
    JoinRejectedError,
    NotAMemberError,
    NotFoundError,
    RejectionReason,
    ValidationError,
)
from sportshub.services.locks import KeyedLock

logger = structlog.get_logger()

_REG_YEAR = re.compile(r"^\s*(\d{4})", re.ASCII)


def parse_registration_year(reg_number: object) -> Optional[int]:
    """Leading 4-digit year of a registration number, or None if malformed."""
    match = _REG_YEAR.match(str(reg_number))
    return int(match.group(1)) if match else None


@dataclass
class JoinResult:
    event_id: int
    event_name: str
    team_name: str
    member_count: int
    max_slots: int


@dataclass
class JoinedTeam:
    """One entry of a user's derived joined-teams list."""

    event_id: int
    event_name: str
    team_name: str
    emoji: str
    joined_at: datetime


def membership_of(user: User):
    """SQL condition: roster rows that belong to this user.

    Rows linked by account id, plus unlinked rows carrying the user's
    full name (seeded rosters list people before they sign up).
    """
    return or_(
        TeamMember.user_id == user.id,
        and_(TeamMember.user_id.is_(None), TeamMember.member_name == user.full_name),
    )


def _holds_row(member: TeamMember, user: Optional[User], name: str) -> bool:
    if user is None:
        return member.member_name == name
    return member.user_id == user.id or (
        member.user_id is None and member.member_name == name
    )


class RosterService:
    """Business logic for team membership."""

    def __init__(self, db: AsyncSession, locks: Optional[KeyedLock] = None):
        self.db = db
        self.locks = locks if locks is not None else KeyedLock()

    async def _load_event(self, event_id: int) -> Optional[Event]:
        result = await self.db.execute(
            select(Event)
            .where(Event.id == event_id)
            .options(selectinload(Event.members))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _account(self, identity: CurrentIdentity) -> Optional[User]:
        """The users row behind the identity; its name beats the token claim."""
        if identity.account_id is None:
            return None
        return await self.db.get(User, identity.account_id, populate_existing=True)

    # ─── Join ───────────────────────────────────────────

    async def join(
        self,
        event_id: int,
        applicant: CurrentIdentity,
        reg_number: str,
        experience: float,
    ) -> JoinResult:
        """Admit the applicant to the event's team or raise why not.

        Raises NotFoundError or JoinRejectedError. A rejected join
        leaves the database untouched.
        """
        log = logger.bind(event_id=event_id, applicant=applicant.full_name)

        async with self.locks.hold(event_id):
            event = await self._load_event(event_id)
            if event is None:
                raise NotFoundError("Event not found.")
            if not event.has_team:
                raise NotFoundError("Team information not found for this event.")

            account = await self._account(applicant)
            member_name = account.full_name if account else applicant.full_name
            if any(_holds_row(m, account, member_name) for m in event.members):
                log.info("roster.join_rejected", reason="already_member")
                raise JoinRejectedError(
                    RejectionReason.ALREADY_MEMBER,
                    "You are already a member of this team.",
                )

            applicant_year = parse_registration_year(reg_number)
            if applicant_year is None:
                log.info("roster.join_rejected", reason="invalid_registration")
                raise JoinRejectedError(
                    RejectionReason.INVALID_REGISTRATION,
                    "Application rejected. Registration number must start "
                    "with a 4-digit year.",
                )
            # The threshold means "enrolled in this year or earlier".
            if applicant_year > int(event.min_reg_year):
                log.info("roster.join_rejected", reason="registration_year")
                raise JoinRejectedError(
                    RejectionReason.REGISTRATION_YEAR,
                    "Application rejected. Minimum registration year is "
                    f"{event.min_reg_year}.",
                )

            if experience < event.min_experience:
                log.info("roster.join_rejected", reason="experience")
                raise JoinRejectedError(
                    RejectionReason.EXPERIENCE,
                    f"Application rejected. Minimum {event.min_experience} "
                    "years of experience required.",
                )

            if event.member_count >= event.max_slots:
                log.info("roster.join_rejected", reason="team_full")
                raise JoinRejectedError(
                    RejectionReason.TEAM_FULL, "Sorry, this team is full."
                )

            result = await self.db.execute(
                update(Event)
                .where(Event.id == event_id, Event.member_count < Event.max_slots)
                .values(member_count=Event.member_count + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                log.info("roster.join_rejected", reason="team_full")
                raise JoinRejectedError(
                    RejectionReason.TEAM_FULL, "Sorry, this team is full."
                )

            self.db.add(
                TeamMember(
                    event_id=event_id,
                    member_name=member_name,
                    user_id=applicant.account_id,
                    joined_at=utcnow(),
                )
            )
            try:
                await self.db.commit()
            except IntegrityError:
                # Unique (event_id, member_name): someone with this name got in first.
                await self.db.rollback()
                log.info("roster.join_rejected", reason="already_member")
                raise JoinRejectedError(
                    RejectionReason.ALREADY_MEMBER,
                    "You are already a member of this team.",
                )

        log.info("roster.join_accepted", team=event.team_name)
        return JoinResult(
            event_id=event.id,
            event_name=event.name,
            team_name=event.team_name,
            member_count=event.member_count + 1,
            max_slots=event.max_slots,
        )

    # ─── Leave ──────────────────────────────────────────

    async def leave(self, team_name: str, identity: CurrentIdentity) -> int:
        """Remove the identity from the team with this name.

        Returns the id of the event left. Team names are not unique
        across events; when several match, the lowest event id is used
        and the collision is logged.
        """
        if not team_name:
            raise ValidationError("Team name is required.")

        event_ids = list(
            (
                await self.db.execute(
                    select(Event.id)
                    .where(Event.team_name == team_name)
                    .order_by(Event.id)
                )
            ).scalars().all()
        )
        if not event_ids:
            raise NotFoundError("Team not found.")
        if len(event_ids) > 1:
            logger.warning(
                "roster.leave_ambiguous_team",
                team_name=team_name,
                event_ids=event_ids,
            )
        event_id = event_ids[0]

        async with self.locks.hold(event_id):
            account = await self._account(identity)
            held = (
                membership_of(account)
                if account
                else TeamMember.member_name == identity.full_name
            )
            result = await self.db.execute(
                delete(TeamMember).where(
                    TeamMember.event_id == event_id,
                    held,
                )
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise NotAMemberError()
            await self.db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(
                    member_count=Event.member_count - result.rowcount,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()

        logger.info(
            "roster.left", team=team_name, event_id=event_id, member=identity.full_name
        )
        return event_id

    # ─── Derived views + cascades ───────────────────────

    async def joined_teams(self, user: User) -> list[JoinedTeam]:
        """The user's joined teams, oldest membership first."""
        result = await self.db.execute(
            select(TeamMember, Event)
            .join(Event, Event.id == TeamMember.event_id)
            .where(membership_of(user))
            .order_by(TeamMember.id)
        )
        return [
            JoinedTeam(
                event_id=event.id,
                event_name=event.name,
                team_name=event.team_name or "",
                emoji=event.emoji,
                joined_at=member.joined_at,
            )
            for member, event in result.all()
        ]

    async def rename_member(self, user: User, new_name: str) -> None:
        """Carry a user's rename onto their roster rows (no commit)."""
        if new_name == user.full_name:
            return
        await self.db.execute(
            update(TeamMember)
            .where(membership_of(user))
            .values(member_name=new_name, user_id=user.id)
            .execution_options(synchronize_session=False)
        )

    async def remove_user_everywhere(self, user: User) -> int:
        """Drop a user from every roster and fix the counters (no commit)."""
        counts = (
            await self.db.execute(
                select(TeamMember.event_id, func.count(TeamMember.id))
                .where(membership_of(user))
                .group_by(TeamMember.event_id)
            )
        ).all()
        if not counts:
            return 0
        await self.db.execute(
            delete(TeamMember)
            .where(membership_of(user))
            .execution_options(synchronize_session=False)
        )
        for event_id, n in counts:
            await self.db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(member_count=Event.member_count - n, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        removed = sum(n for _, n in counts)
        logger.info("roster.user_removed", user_id=str(user.id), memberships=removed)
        return removed
