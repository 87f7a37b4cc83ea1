"""Event, team and roster API routes.

Learn: Two routers in one module. `router` is the public surface
(catalogue, join, leave); `admin_router` is the event CRUD the admin
UI drives and is mounted behind require_admin in api/__init__.py.
Both speak the nested event shape (event.team.requirements) built by
EventRead.from_event.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.api.deps import get_roster_locks
from sportshub.auth.dependencies import CurrentIdentity, get_current_user
from sportshub.db.engine import get_db
from sportshub.schemas.common import MessageResponse
from sportshub.schemas.event import (
    EventRead,
    EventWrite,
    EventWriteResponse,
    JoinRequest,
    JoinResponse,
    LeaveRequest,
)
from sportshub.services.event_service import EventService
from sportshub.services.locks import KeyedLock
from sportshub.services.roster_service import RosterService

router = APIRouter()
admin_router = APIRouter(prefix="/admin/events")


def _svc(db: AsyncSession = Depends(get_db)) -> EventService:
    return EventService(db)


def _roster(
    db: AsyncSession = Depends(get_db),
    locks: KeyedLock = Depends(get_roster_locks),
) -> RosterService:
    return RosterService(db, locks)


# ─── Catalogue ──────────────────────────────────────────

@router.get("/events", response_model=list[EventRead])
async def list_events(svc: EventService = Depends(_svc)):
    """All events, ascending id, each with its current roster."""
    return [EventRead.from_event(e) for e in await svc.list_events()]


# ─── Roster ─────────────────────────────────────────────

@router.post("/events/{event_id}/join", response_model=JoinResponse)
async def join_team(
    event_id: int,
    body: JoinRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    roster: RosterService = Depends(_roster),
):
    """Apply to the event's team. 400 with the rejection reason, 404 if no team."""
    result = await roster.join(
        event_id,
        identity,
        reg_number=body.user_reg_number,
        experience=body.user_experience,
    )
    return JoinResponse(
        message=f"Successfully joined {result.team_name}!",
        event_id=result.event_id,
        team_name=result.team_name,
        member_count=result.member_count,
        max_slots=result.max_slots,
    )


@router.post("/teams/leave", response_model=MessageResponse)
async def leave_team(
    body: LeaveRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    roster: RosterService = Depends(_roster),
):
    await roster.leave(body.team_name.strip(), identity)
    return MessageResponse(message=f"You have left {body.team_name.strip()}.")


# ─── Admin CRUD ─────────────────────────────────────────

@admin_router.get("", response_model=list[EventRead])
async def admin_list_events(svc: EventService = Depends(_svc)):
    return [EventRead.from_event(e) for e in await svc.list_events()]


@admin_router.post("", response_model=EventWriteResponse, status_code=201)
async def admin_create_event(body: EventWrite, svc: EventService = Depends(_svc)):
    event = await svc.create_event(body)
    return EventWriteResponse(
        message="Event created successfully!", event=EventRead.from_event(event)
    )


@admin_router.put("/{event_id}", response_model=EventWriteResponse)
async def admin_update_event(
    event_id: int, body: EventWrite, svc: EventService = Depends(_svc)
):
    """Replace event fields. The roster is preserved."""
    event = await svc.update_event(event_id, body)
    return EventWriteResponse(
        message="Event updated successfully!", event=EventRead.from_event(event)
    )


@admin_router.delete("/{event_id}", response_model=MessageResponse)
async def admin_delete_event(event_id: int, svc: EventService = Depends(_svc)):
    await svc.delete_event(event_id)
    return MessageResponse(message="Event deleted successfully.")
