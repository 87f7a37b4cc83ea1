"""JWT token creation and verification.

Learn: Two token kinds, two secrets:
- Access token: short-lived (15min), carries who you are (id, email,
  display name, role). Signed with jwt_access_secret.
- Refresh token: long-lived (7 days), carries only the owner id and the
  owner's token_version. Signed with jwt_refresh_secret.

Verification raises TokenExpiredError separately from TokenError so the
caller can tell "try refreshing" apart from "log in again".
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from sportshub.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpiredError(TokenError):
    """Raised when a token is well-formed but past its exp claim."""


def create_access_token(
    subject_id: str,
    email: str,
    full_name: str,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject_id,
        "email": email,
        "fullName": full_name,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(
            minutes=expires_minutes or settings.access_token_expire_minutes
        ),
    }
    return jwt.encode(
        payload, settings.jwt_access_secret, algorithm=settings.jwt_algorithm
    )


def create_refresh_token(
    subject_id: str,
    token_version: int,
    kind: str = "user",
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token.

    jti makes every token unique, even two minted for the same owner in
    the same second (the stored digest has a unique index).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject_id,
        "tokenVersion": token_version,
        "kind": kind,
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(
            days=expires_days or settings.refresh_token_expire_days
        ),
    }
    return jwt.encode(
        payload, settings.jwt_refresh_secret, algorithm=settings.jwt_algorithm
    )


def _decode(token: str, secret: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != expected_type:
        raise TokenError(f"Not an {expected_type} token")
    if "sub" not in payload:
        raise TokenError("Invalid token: missing subject")
    return payload


def verify_access_token(token: str) -> dict:
    """Verify and decode an access token.

    Returns the claims dict on success.
    Raises TokenExpiredError or TokenError on failure.
    """
    return _decode(token, settings.jwt_access_secret, "access")


def verify_refresh_token(token: str) -> dict:
    """Verify and decode a refresh token (signature + type only).

    Whether the token is still live is the token service's job.
    """
    payload = _decode(token, settings.jwt_refresh_secret, "refresh")
    if not isinstance(payload.get("tokenVersion"), int):
        raise TokenError("Invalid token: missing token version")
    return payload
