"""Token service — refresh-token allow-list, rotation and revocation.

Learn: Signed JWTs alone can't be revoked. Every refresh token we hand
out also gets a row in refresh_tokens, and a refresh token is honoured
only while that row exists. That buys three things:

1. Logout deletes the row → the token is dead even though its signature
   is still valid.
2. Rotation deletes the old row and inserts the new one in ONE
   transaction → a refresh token works exactly once.
3. An admin password reset bumps the owner's token_version → every
   outstanding refresh token fails the version check on its next use,
   without enumerating them.

Rotation never returns a token whose row wasn't committed.
"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.auth.jwt import (
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
)
from sportshub.config import settings
from sportshub.db.models import Admin, RefreshToken, User
from sportshub.errors import (
    InternalError,
    InvalidRefreshTokenError,
    NotFoundError,
    RefreshTokenNotFoundError,
    TokenVersionMismatchError,
)

logger = structlog.get_logger()

TokenOwner = Union[User, Admin]


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


def digest_token(token: str) -> str:
    """SHA-256 hex digest — what we store instead of the token itself."""
    return hashlib.sha256(token.encode()).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue, rotate and revoke access/refresh token pairs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Issue ──────────────────────────────────────────

    def _mint(self, owner: TokenOwner) -> TokenPair:
        return TokenPair(
            access_token=create_access_token(
                str(owner.id), owner.email, owner.full_name, owner.role
            ),
            refresh_token=create_refresh_token(
                str(owner.id), owner.token_version, kind=owner.token_kind
            ),
        )

    def _record(self, owner: TokenOwner, refresh_token: str) -> RefreshToken:
        now = _utcnow()
        return RefreshToken(
            token_hash=digest_token(refresh_token),
            owner_id=owner.id,
            owner_kind=owner.token_kind,
            created_at=now,
            expires_at=now + timedelta(days=settings.refresh_token_expire_days),
        )

    async def issue_pair(self, owner: TokenOwner, commit: bool = True) -> TokenPair:
        """Mint a pair and store the refresh token's record."""
        pair = self._mint(owner)
        self.db.add(self._record(owner, pair.refresh_token))
        if commit:
            await self.db.commit()
        logger.info("tokens.issued", owner_id=str(owner.id), kind=owner.token_kind)
        return pair

    # ─── Rotate ─────────────────────────────────────────

    async def _load_owner(self, claims: dict) -> Optional[TokenOwner]:
        try:
            owner_id = uuid.UUID(claims["sub"])
        except (ValueError, TypeError):
            return None
        model = Admin if claims.get("kind") == "admin" else User
        return await self.db.get(model, owner_id, populate_existing=True)

    async def rotate(self, refresh_token: str) -> TokenPair:
        """Exchange a live refresh token for a fresh pair (single use).

        Raises InvalidRefreshTokenError, RefreshTokenNotFoundError,
        NotFoundError (owner gone) or TokenVersionMismatchError.
        """
        try:
            claims = verify_refresh_token(refresh_token)
        except TokenError as e:
            logger.info("tokens.rotate_rejected", reason="invalid", error=str(e))
            raise InvalidRefreshTokenError()

        token_hash = digest_token(refresh_token)
        try:
            record = (
                await self.db.execute(
                    select(RefreshToken).where(
                        RefreshToken.token_hash == token_hash,
                        RefreshToken.expires_at > _utcnow(),
                    )
                )
            ).scalars().first()
            if record is None:
                logger.info("tokens.rotate_rejected", reason="not_found")
                raise RefreshTokenNotFoundError()

            owner = await self._load_owner(claims)
            if owner is None:
                raise NotFoundError("User not found")

            if owner.token_version != claims["tokenVersion"]:
                logger.info(
                    "tokens.rotate_rejected",
                    reason="version_mismatch",
                    owner_id=str(owner.id),
                )
                raise TokenVersionMismatchError()

            # Delete-by-hash doubles as the single-use guard: if a
            # concurrent rotation already removed the row, nothing is
            # deleted and this attempt loses.
            result = await self.db.execute(
                delete(RefreshToken).where(RefreshToken.token_hash == token_hash)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise RefreshTokenNotFoundError()

            pair = self._mint(owner)
            self.db.add(self._record(owner, pair.refresh_token))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("tokens.rotate_store_failed")
            raise InternalError("Failed to refresh token") from e

        logger.info("tokens.rotated", owner_id=str(owner.id))
        return pair

    # ─── Revoke ─────────────────────────────────────────

    async def revoke(self, refresh_token: str) -> bool:
        """Delete a refresh token's record. Returns True if one existed."""
        result = await self.db.execute(
            delete(RefreshToken).where(
                RefreshToken.token_hash == digest_token(refresh_token)
            )
        )
        await self.db.commit()
        revoked = result.rowcount > 0
        logger.info("tokens.revoked", found=revoked)
        return revoked

    async def purge_expired(self) -> int:
        """Delete expired records (the store-side TTL safety net)."""
        result = await self.db.execute(
            delete(RefreshToken).where(RefreshToken.expires_at <= _utcnow())
        )
        await self.db.commit()
        return result.rowcount
