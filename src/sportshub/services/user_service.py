"""User service — accounts, credentials and profiles.

Learn: Registration and login both leave a trace in the user's
notification log (a welcome, a welcome-back), so the log a client sees
right after authenticating is never empty.

Uniqueness (email, student ID) is checked up front for a friendly
message, and the database's unique constraints catch whatever slips
through a race between two registrations.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.auth.password import (
    generate_temporary_password,
    hash_password,
    verify_password,
)
from sportshub.db.models import Admin, RefreshToken, User, UserNotification, utcnow
from sportshub.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    conflict_from_integrity,
)
from sportshub.services.notification_service import (
    NotificationPayload,
    NotificationService,
)
from sportshub.services.roster_service import RosterService

logger = structlog.get_logger()

_USER_UNIQUE_FIELDS = {"email": "email", "student_id": "student ID"}


class UserService:
    """Business logic for student and admin accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)
        self.roster = RosterService(db)

    async def _check_unique(
        self, email: str, student_id: str, exclude: Optional[uuid.UUID] = None
    ) -> None:
        query = select(User).where(
            or_(User.email == email, User.student_id == student_id)
        )
        if exclude is not None:
            query = query.where(User.id != exclude)
        clash = (await self.db.execute(query)).scalars().first()
        if clash is None:
            return
        if clash.email == email:
            raise ConflictError("User with this email already exists.", field="email")
        raise ConflictError(
            "User with this student ID already exists.", field="student ID"
        )

    # ─── Registration + login ───────────────────────────

    async def register(
        self, full_name: str, student_id: str, email: str, password: str
    ) -> User:
        """Create an account and greet it with a welcome notification."""
        full_name, student_id, email = full_name.strip(), student_id.strip(), email.strip()
        if not (full_name and student_id and email and password):
            raise ValidationError("All fields are required.")
        await self._check_unique(email, student_id)

        user = User(
            full_name=full_name,
            student_id=student_id,
            email=email,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.flush()
            await self.notifications.push_to_users(
                [user.id],
                NotificationPayload(
                    icon="🎉",
                    title=f"Welcome {full_name}!",
                    body="Your account has been created successfully. "
                    "Explore events and join the fun.",
                ),
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise conflict_from_integrity(e, _USER_UNIQUE_FIELDS, subject="User")

        logger.info("users.registered", user_id=str(user.id))
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Credential check. Unknown email and wrong password look the same."""
        user = (
            await self.db.execute(select(User).where(User.email == email.strip()))
        ).scalars().first()
        if user is None or not verify_password(password, user.password_hash):
            logger.info("users.login_failed")
            raise ValidationError("Invalid credentials.", code="INVALID_CREDENTIALS")
        if user.status == "suspended":
            raise AuthorizationError("Account suspended.", code="ACCOUNT_SUSPENDED")
        return user

    async def record_login(self, user: User) -> None:
        """Stamp last_login and queue the welcome-back notification (no commit)."""
        user.last_login = utcnow()
        await self.notifications.push_to_users(
            [user.id],
            NotificationPayload(
                icon="👋",
                title=f"Welcome back, {user.full_name}!",
                body="Ready to join some exciting tournaments?",
            ),
        )

    async def authenticate_admin(self, email: str, password: str) -> Admin:
        admin = (
            await self.db.execute(select(Admin).where(Admin.email == email.strip()))
        ).scalars().first()
        if admin is None or not verify_password(password, admin.password_hash):
            logger.info("admins.login_failed")
            raise ValidationError(
                "Invalid admin credentials.", code="INVALID_CREDENTIALS"
            )
        admin.last_login = utcnow()
        return admin

    # ─── Profile ────────────────────────────────────────

    async def get_user(self, user_id: Optional[uuid.UUID]) -> User:
        user = await self.db.get(User, user_id) if user_id is not None else None
        if user is None:
            raise NotFoundError("User not found.")
        return user

    async def profile(self, user: User) -> dict:
        """User plus the two derived lists the client renders."""
        return {
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "student_id": user.student_id,
            "mobile_number": user.mobile_number,
            "avatar_url": user.avatar_url,
            "joined_teams": await self.roster.joined_teams(user),
            "notifications": await self.notifications.list_for_user(user.id),
        }

    async def update_profile(
        self, user: User, full_name: str, mobile_number: Optional[str] = None
    ) -> User:
        """Rename (carried onto roster rows) and/or change the mobile number."""
        full_name = full_name.strip()
        if not full_name:
            raise ValidationError("Full name is required.")
        await self.roster.rename_member(user, full_name)
        user.full_name = full_name
        user.mobile_number = (mobile_number or "").strip()
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                "Another member of one of your teams already uses this name.",
                field="full name",
            )
        logger.info("users.profile_updated", user_id=str(user.id))
        return user

    # ─── Admin management ───────────────────────────────

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def admin_view(self, user: User) -> dict:
        return {
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "student_id": user.student_id,
            "mobile_number": user.mobile_number,
            "avatar_url": user.avatar_url,
            "status": user.status,
            "last_login": user.last_login,
            "created_at": user.created_at,
            "joined_teams": await self.roster.joined_teams(user),
        }

    async def admin_update(
        self,
        user_id: uuid.UUID,
        full_name: str,
        student_id: str,
        email: str,
        mobile_number: Optional[str] = None,
        status: str = "active",
    ) -> User:
        user = await self.get_user(user_id)
        email, student_id, full_name = email.strip(), student_id.strip(), full_name.strip()
        await self._check_unique(email, student_id, exclude=user.id)

        await self.roster.rename_member(user, full_name)
        user.full_name = full_name
        user.student_id = student_id
        user.email = email
        if mobile_number is not None:
            user.mobile_number = mobile_number.strip()
        user.status = status
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise conflict_from_integrity(e, _USER_UNIQUE_FIELDS, subject="User")
        logger.info("users.admin_updated", user_id=str(user.id), status=status)
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Remove the account, its rosters, notifications and refresh tokens."""
        user = await self.get_user(user_id)
        await self.roster.remove_user_everywhere(user)
        await self.db.execute(
            delete(UserNotification).where(UserNotification.user_id == user.id)
        )
        await self.db.execute(
            delete(RefreshToken).where(
                RefreshToken.owner_id == user.id, RefreshToken.owner_kind == "user"
            )
        )
        await self.db.execute(delete(User).where(User.id == user.id))
        await self.db.commit()
        logger.info("users.deleted", user_id=str(user_id))

    async def reset_password(self, user_id: uuid.UUID) -> str:
        """Set a temporary password and invalidate every refresh token."""
        user = await self.get_user(user_id)
        temp = generate_temporary_password()
        user.password_hash = hash_password(temp)
        user.token_version += 1
        await self.db.commit()
        logger.info(
            "users.password_reset", user_id=str(user.id), token_version=user.token_version
        )
        return temp
