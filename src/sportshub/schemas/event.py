"""Pydantic schemas for events, teams and roster requests.

Learn: The API keeps the nested document shape clients expect
(event.team.requirements.minRegNumber) even though the database
flattens the team into event columns. EventRead.from_event does the
re-nesting.
"""

from typing import Optional, Union

from pydantic import Field, field_validator

from sportshub.db.models import Event
from sportshub.schemas.common import CamelModel


class TeamRequirements(CamelModel):
    min_reg_number: str
    min_experience: int


class TeamRead(CamelModel):
    name: str
    max_slots: int
    members: list[str]
    requirements: TeamRequirements


class EventRead(CamelModel):
    id: int
    name: str
    date: str
    time: str
    location: str
    category: str
    emoji: str
    difficulty: str
    description: str
    team: Optional[TeamRead] = None

    @classmethod
    def from_event(cls, event: Event) -> "EventRead":
        team = None
        if event.has_team:
            team = TeamRead(
                name=event.team_name,
                max_slots=event.max_slots,
                members=[m.member_name for m in event.members],
                requirements=TeamRequirements(
                    min_reg_number=event.min_reg_year,
                    min_experience=event.min_experience,
                ),
            )
        return cls(
            id=event.id,
            name=event.name,
            date=event.date,
            time=event.time,
            location=event.location,
            category=event.category,
            emoji=event.emoji,
            difficulty=event.difficulty,
            description=event.description,
            team=team,
        )


class EventWrite(CamelModel):
    """Admin create/update body — team fields arrive flattened."""

    name: str = Field(..., min_length=1, max_length=200)
    team_name: str = Field(..., min_length=1, max_length=100)
    date: str = ""
    time: str = ""
    location: str = ""
    category: str = ""
    emoji: str = ""
    difficulty: str = ""
    description: str = ""
    max_slots: int = Field(..., ge=1)
    min_reg_year: str
    min_experience: int = Field(0, ge=0)

    @field_validator("min_reg_year", mode="before")
    @classmethod
    def four_digit_year(cls, v: Union[str, int]) -> str:
        v = str(v).strip()
        if len(v) != 4 or not v.isascii() or not v.isdigit():
            raise ValueError("minRegYear must be a 4-digit year")
        return v


class EventWriteResponse(CamelModel):
    message: str
    event: EventRead


class JoinRequest(CamelModel):
    user_reg_number: str = Field(..., min_length=1)
    user_experience: float

    @field_validator("user_reg_number", mode="before")
    @classmethod
    def coerce_reg_number(cls, v):
        return str(v) if isinstance(v, int) else v


class JoinResponse(CamelModel):
    message: str
    event_id: int
    team_name: str
    member_count: int
    max_slots: int


class LeaveRequest(CamelModel):
    team_name: str = Field(..., min_length=1)
