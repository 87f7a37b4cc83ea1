"""Bootstrap data for an empty database.

Learn: Each block seeds only when its table is empty, so running the
seed on every startup is harmless. Seed roster members are plain names
with no account behind them; if someone later registers under the same
full name, the roster row is treated as theirs.
"""

from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.auth.password import hash_password
from sportshub.config import settings
from sportshub.db.models import Admin, Category, Event, SystemSettings, TeamMember

logger = structlog.get_logger()

DEFAULT_CATEGORIES = [
    ("Cricket", "🏏"),
    ("Football", "⚽"),
    ("Badminton", "🏸"),
    ("Table Tennis", "🏓"),
    ("Basketball", "🏀"),
    ("Volleyball", "🏐"),
]

DEFAULT_SETTINGS: dict[str, Any] = {
    "appName": "SportsHub",
    "maxTeamSize": 11,
    "emailDomain": "@college.edu",
    "eventDuration": 2,
    "minPasswordLength": 6,
    "sessionTimeout": 30,
    "requireEmailVerification": False,
}

DEFAULT_EVENTS: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "Cricket Intercollege Championship",
        "date": "2025-10-12",
        "time": "09:00 AM",
        "location": "Main Cricket Ground",
        "category": "Cricket",
        "emoji": "🏏",
        "difficulty": "Advanced",
        "description": "Annual intercollege cricket championship featuring top "
        "teams from across the region.",
        "team_name": "Warriors",
        "max_slots": 11,
        "min_reg_year": "2020",
        "min_experience": 2,
        "members": ["Aditya Kumar"],
    },
    {
        "id": 2,
        "name": "Annual Badminton Tournament",
        "date": "2025-11-08",
        "time": "10:00 AM",
        "location": "Indoor Sports Hall",
        "category": "Badminton",
        "emoji": "🏸",
        "difficulty": "Intermediate",
        "description": "Singles and doubles badminton tournament open to all skill levels.",
        "team_name": "Shuttlers",
        "max_slots": 4,
        "min_reg_year": "2021",
        "min_experience": 1,
        "members": ["Rahul Patel"],
    },
    {
        "id": 3,
        "name": "Football Premier League",
        "date": "2025-12-02",
        "time": "03:30 PM",
        "location": "Central Stadium",
        "category": "Football",
        "emoji": "⚽",
        "difficulty": "Expert",
        "description": "Professional-level football league with experienced players only.",
        "team_name": "Strikers United",
        "max_slots": 11,
        "min_reg_year": "2019",
        "min_experience": 3,
        "members": ["Krishna Rao"],
    },
    {
        "id": 4,
        "name": "Table Tennis Championship",
        "date": "2025-12-15",
        "time": "12:30 PM",
        "location": "TT Arena",
        "category": "Table Tennis",
        "emoji": "🏓",
        "difficulty": "Intermediate",
        "description": "Fast-paced table tennis tournament with singles and "
        "doubles categories.",
        "team_name": "Spin Masters",
        "max_slots": 4,
        "min_reg_year": "2021",
        "min_experience": 1,
        "members": ["Priya Jain"],
    },
]


async def _is_empty(db: AsyncSession, model) -> bool:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one() == 0


async def seed_database(db: AsyncSession) -> list[str]:
    """Seed every empty table. Returns the names of the blocks seeded."""
    seeded: list[str] = []

    if await _is_empty(db, Admin):
        db.add(
            Admin(
                email=settings.default_admin_email,
                password_hash=hash_password(settings.default_admin_password),
                full_name="SportsHub Administrator",
                role="super_admin",
            )
        )
        seeded.append("admin")

    if await _is_empty(db, Category):
        db.add_all(Category(name=name, icon=icon) for name, icon in DEFAULT_CATEGORIES)
        seeded.append("categories")

    if await _is_empty(db, SystemSettings):
        db.add(SystemSettings(id=1, data=dict(DEFAULT_SETTINGS)))
        seeded.append("settings")

    if await _is_empty(db, Event):
        for entry in DEFAULT_EVENTS:
            fields = {k: v for k, v in entry.items() if k != "members"}
            db.add(Event(**fields, member_count=len(entry["members"])))
        await db.flush()
        db.add_all(
            TeamMember(event_id=entry["id"], member_name=name)
            for entry in DEFAULT_EVENTS
            for name in entry["members"]
        )
        seeded.append("events")

    await db.commit()
    if seeded:
        logger.info("seed.applied", blocks=seeded)
    return seeded
