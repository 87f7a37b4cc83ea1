"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request. The identity is a
plain value handed to the handler as a parameter — nothing is stashed
on the request object.

Failure codes:
- no bearer token → 401
- expired access token → 401 with code TOKEN_EXPIRED (client should refresh)
- any other bad token → 403
- valid token without an admin role on admin routes → 403
"""

import uuid
from typing import Optional

from fastapi import Depends, Header

from sportshub.auth.jwt import TokenError, TokenExpiredError, verify_access_token
from sportshub.errors import AuthenticationError, AuthorizationError

ADMIN_ROLES = frozenset({"admin", "super_admin"})


class CurrentIdentity:
    """Represents the authenticated identity making the request.

    Learn: Built from access-token claims alone. The fullName claim can
    go stale after a rename, so roster code looks the account up by id
    and only falls back to the claim for admins.
    """

    def __init__(
        self,
        user_id: str,
        email: str,
        full_name: str,
        role: str = "user",
    ):
        self.user_id = user_id
        self.email = email
        self.full_name = full_name
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def account_id(self) -> Optional[uuid.UUID]:
        """The users.id this identity maps to (None for admins)."""
        if self.is_admin:
            return None
        try:
            return uuid.UUID(self.user_id)
        except ValueError:
            return None

    @classmethod
    def from_claims(cls, claims: dict) -> "CurrentIdentity":
        return cls(
            user_id=claims["sub"],
            email=claims.get("email", ""),
            full_name=claims.get("fullName", ""),
            role=claims.get("role", "user"),
        )


def identity_from_token(token: str) -> CurrentIdentity:
    """Verify an access token and map failures onto the error taxonomy."""
    try:
        claims = verify_access_token(token)
    except TokenExpiredError:
        raise AuthenticationError("Token expired", code="TOKEN_EXPIRED")
    except TokenError:
        raise AuthorizationError("Invalid token", code="INVALID_TOKEN")
    return CurrentIdentity.from_claims(claims)


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Access token required")
    token = authorization[7:].strip()
    if not token:
        raise AuthenticationError("Access token required")
    return identity_from_token(token)


async def require_admin(
    identity: CurrentIdentity = Depends(get_current_user),
) -> CurrentIdentity:
    """Require an admin or super_admin role claim."""
    if not identity.is_admin:
        raise AuthorizationError("Admin access required", code="ADMIN_REQUIRED")
    return identity
