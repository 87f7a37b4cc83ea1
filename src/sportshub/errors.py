"""Application error taxonomy.

Learn: Services raise these instead of HTTPException so they stay
usable outside a request (CLI, WebSocket handlers, background workers).
main.py registers one exception handler that renders every AppError as
{"detail": message, "code": code} with the class's status code.
"""

import enum
from typing import Optional

from sqlalchemy.exc import IntegrityError


class AppError(Exception):
    """Base class for every caller-visible failure."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class AuthenticationError(AppError):
    """Bad credentials or no credential at all."""

    status_code = 401
    code = "authentication_required"
    default_message = "Authentication required"


class AuthorizationError(AppError):
    """Credential present but not good enough."""

    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(AppError):
    """Duplicate value for a unique field."""

    status_code = 400
    code = "conflict"
    default_message = "Duplicate value"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InternalError(AppError):
    """Unexpected store or infrastructure failure."""


# ─── Roster ──────────────────────────────────────────────


class RejectionReason(str, enum.Enum):
    ALREADY_MEMBER = "already_member"
    INVALID_REGISTRATION = "invalid_registration_number"
    REGISTRATION_YEAR = "registration_year"
    EXPERIENCE = "insufficient_experience"
    TEAM_FULL = "team_full"


class JoinRejectedError(ValidationError):
    """A join request failed an admission rule."""

    def __init__(self, reason: RejectionReason, message: str):
        self.reason = reason
        super().__init__(message, code=reason.value)


class NotAMemberError(ValidationError):
    code = "not_a_member"
    default_message = "You were not a member of this team."


# ─── Tokens ──────────────────────────────────────────────


class InvalidRefreshTokenError(AuthorizationError):
    code = "INVALID_REFRESH_TOKEN"
    default_message = "Invalid refresh token"


class RefreshTokenNotFoundError(AuthorizationError):
    code = "REFRESH_TOKEN_NOT_FOUND"
    default_message = "Refresh token not found or expired"


class TokenVersionMismatchError(AuthorizationError):
    code = "TOKEN_VERSION_MISMATCH"
    default_message = "Token version mismatch"


# ─── Helpers ─────────────────────────────────────────────


def conflict_from_integrity(
    exc: IntegrityError,
    fields: dict[str, str],
    subject: str = "Record",
) -> ConflictError:
    """Translate a unique-constraint violation into a ConflictError.

    `fields` maps column names (as they appear in the driver message)
    to the public field name used in the error text. Postgres names the
    constraint ("users_email_key"), SQLite names the column
    ("users.email"); both contain the column name.
    """
    text = str(exc.orig).lower()
    for column, public_name in fields.items():
        if column.lower() in text:
            return ConflictError(
                f"{subject} with this {public_name} already exists.",
                field=public_name,
            )
    return ConflictError(f"{subject} already exists.")
