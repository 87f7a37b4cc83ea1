"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Relationships, constraints, and indexes defined here.

Key concepts:
- UUID primary keys for people and categories, integer ids where the
  public API exposes a number (events) or where insertion order matters
  (notification log, chat, roster)
- Generic Uuid/JSON types so the same schema runs on PostgreSQL
  (JSONB) and on SQLite for tests
- The team roster lives in team_members only. A user's "joined teams"
  is a read over those rows, never a second copy that can drift.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


# ══════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A student account.

    Learn: token_version is bumped to kill every outstanding refresh
    token at once (admin password reset). Refresh tokens embed the
    version they were minted with and are refused on mismatch.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    student_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active, suspended
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def role(self) -> str:
        return "user"

    @property
    def token_kind(self) -> str:
        return "user"


class Admin(Base):
    """An administrator account (separate from students)."""

    __tablename__ = "admins"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="admin"
    )  # admin, super_admin
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def token_kind(self) -> str:
        return "admin"


class RefreshToken(Base):
    """Server-side allow-list of live refresh tokens.

    Learn: Only the SHA-256 digest is stored (same idea as hashed API
    keys) — a database leak does not hand out usable tokens. A refresh
    token is accepted only while its row exists, which is what makes
    logout and rotation real revocations.
    """

    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index("idx_refresh_tokens_owner", "owner_id"),
        Index("idx_refresh_tokens_expires", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    owner_kind: Mapped[str] = mapped_column(
        String(10), nullable=False, default="user"
    )  # user, admin
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ══════════════════════════════════════════════════════════════
# Events + rosters
# ══════════════════════════════════════════════════════════════


class Event(Base):
    """A sports event with (at most) one embedded team.

    Learn: The team is flattened into columns; team_name NULL means the
    event has no team. member_count mirrors len(members) and exists so
    the capacity check can be a single conditional UPDATE
    (member_count < max_slots) evaluated by the database.
    """

    __tablename__ = "events"
    __table_args__ = (Index("idx_events_team_name", "team_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    time: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    emoji: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    difficulty: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    team_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    max_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_reg_year: Mapped[str] = mapped_column(String(4), nullable=False, default="9999")
    min_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    members: Mapped[list["TeamMember"]] = relationship(
        back_populates="event",
        order_by="TeamMember.id",
    )

    @property
    def has_team(self) -> bool:
        return self.team_name is not None


class TeamMember(Base):
    """One roster slot on an event's team.

    Learn: Membership is identified by full name (seed rosters contain
    people without accounts). user_id links the row to an account when
    there is one, so renames and account deletion can follow it.
    """

    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("event_id", "member_name", name="uq_team_members_event_name"),
        Index("idx_team_members_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    member_name: Mapped[str] = mapped_column(String(150), nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    event: Mapped["Event"] = relationship(back_populates="members")


class Category(Base):
    """Informational sport taxonomy (not linked to events)."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="🏷️")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Notifications + chat
# ══════════════════════════════════════════════════════════════


class UserNotification(Base):
    """One entry in a user's bounded notification log.

    Learn: id order is insertion order, and insertion order is the
    eviction order — the log keeps the newest N rows per user.
    """

    __tablename__ = "user_notifications"
    __table_args__ = (Index("idx_user_notifications_user", "user_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class NotificationHistory(Base):
    """Append-only audit row for every admin notification send."""

    __tablename__ = "notification_history"
    __table_args__ = (
        Index("idx_notification_history_sent", "sent_at"),
        Index("idx_notification_history_target", "target"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    target: Mapped[str] = mapped_column(String(30), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    sent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    realtime_delivered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_users: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    sent_by: Mapped[str] = mapped_column(String(150), nullable=False, default="System")
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ChatMessage(Base):
    """A persisted team chat message."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_chat_messages_team", "team_name", "id"),
        Index("idx_chat_messages_timestamp", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_name: Mapped[str] = mapped_column(String(100), nullable=False)
    sender: Mapped[str] = mapped_column(String(150), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# ══════════════════════════════════════════════════════════════
# System settings
# ══════════════════════════════════════════════════════════════


class SystemSettings(Base):
    """Single-row tunables document (id is always 1).

    Learn: Settings are a free-form JSON map — new tunables need no
    migration. Known keys are validated at the API edge.
    """

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
