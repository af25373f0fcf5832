"""Bearer-token session lifecycle.

Tokens are 32 random alphanumeric characters stored in ``auth_tokens`` with
a 24 hour lifetime. A user holds at most one active token: issuing a new one
deactivates the previous ones. Expired tokens are flipped inactive lazily,
when they are next validated or by ``cleanup_expired_tokens``.

Degraded mode
-------------
``initialize()`` probes the table once. If the probe fails the service runs
in degraded mode for the rest of its life:

* ``create_token`` hands out a generated token without storing it.
* ``validate_token`` accepts ANY 32 character alphanumeric string and binds
  it to a placeholder admin identity.

Degraded mode is therefore not a security boundary at all. It exists so that
login keeps working while the token table is missing, and it is kept as-is.
"""
from datetime import datetime, timedelta, timezone
import logging
import re
import secrets
import string
from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from schemas.token_schema import (
    CleanupResult,
    CreateTokenResult,
    OperationResult,
    RefreshResult,
    TokenRecord,
    TokenUser,
    ValidationResult,
)
from services.token_store import TokenStore

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 32
TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
TOKEN_PATTERN = re.compile(r"[A-Za-z0-9]{%d}" % TOKEN_LENGTH)

MODE_NORMAL = "normal"
MODE_DEGRADED = "degraded"

# Identity every well-formed token maps to in degraded mode
PLACEHOLDER_USER = TokenUser(id="temp-user", role="admin", name="Admin User")

VALID_ROLES = ("admin", "member")


def generate_token() -> str:
    """Generate a 32-character alphanumeric bearer token"""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def is_well_formed(token: Optional[str]) -> bool:
    return bool(token) and TOKEN_PATTERN.fullmatch(token) is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    def __init__(self, store: TokenStore, ttl: Optional[timedelta] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.ttl = ttl or timedelta(hours=settings.TOKEN_TTL_HOURS)
        self._clock = clock
        self._degraded = False

    async def initialize(self) -> str:
        """Probe the token table once and fix the operating mode."""
        self._degraded = not await self.store.probe()
        if self._degraded:
            logger.warning("Token store unavailable; running in degraded mode (tokens are not persisted)")
        else:
            logger.info("Token store ready")
        return self.mode

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def mode(self) -> str:
        return MODE_DEGRADED if self._degraded else MODE_NORMAL

    async def create_token(self, user_id: str, role: str, name: str) -> CreateTokenResult:
        if not user_id or not name:
            return CreateTokenResult(success=False, error="user id and name are required")
        if role not in VALID_ROLES:
            return CreateTokenResult(success=False, error=f"Unknown role: {role}")

        token = generate_token()
        if self._degraded:
            logger.info("Auth tokens table not found, using simple token")
            return CreateTokenResult(success=True, token=token)

        await self.deactivate_user_tokens(user_id)

        now = self._clock()
        try:
            await self.store.insert(token, user_id, role, name, expires_at=now + self.ttl, created_at=now)
        except SQLAlchemyError as e:
            # The session must not be blocked by a storage hiccup
            logger.warning(f"Token creation error for user {user_id}, using simple token: {e}")
        return CreateTokenResult(success=True, token=token)

    async def validate_token(self, token: Optional[str]) -> ValidationResult:
        if self._degraded:
            if is_well_formed(token):
                return ValidationResult(valid=True, user=PLACEHOLDER_USER)
            return ValidationResult(valid=False, error="Invalid token")

        if not token:
            return ValidationResult(valid=False, error="Invalid token")

        try:
            record = await self.store.find_active(token)
        except (SQLAlchemyError, ValidationError) as e:
            # ValidationError: row no longer fits TokenRecord (e.g. unknown role)
            logger.error(f"Token validation failed: {e}")
            return ValidationResult(valid=False, error="Failed to validate token")

        if record is None:
            return ValidationResult(valid=False, error="Invalid token")

        if record.expires_at <= self._clock():
            try:
                await self.store.mark_inactive(record.id)
            except SQLAlchemyError as e:
                logger.warning(f"Could not deactivate expired token {record.id}: {e}")
            return ValidationResult(valid=False, error="Token has expired")

        return ValidationResult(
            valid=True,
            user=TokenUser(id=record.user_id, role=record.user_role, name=record.user_name),
        )

    async def deactivate_token(self, token: str) -> OperationResult:
        """Deactivate a token. Always reports success so logout never fails."""
        if self._degraded or not token:
            return OperationResult(success=True)
        try:
            await self.store.deactivate_token(token)
        except SQLAlchemyError as e:
            logger.warning(f"Token deactivation error: {e}")
        return OperationResult(success=True)

    async def deactivate_user_tokens(self, user_id: str) -> OperationResult:
        if self._degraded:
            return OperationResult(success=True)
        try:
            count = await self.store.deactivate_user(user_id)
            if count:
                logger.debug(f"Deactivated {count} token(s) for user {user_id}")
        except SQLAlchemyError as e:
            logger.warning(f"User token deactivation error: {e}")
        return OperationResult(success=True)

    async def refresh_token(self, token: str) -> RefreshResult:
        """Swap a valid token for a new one with a fresh lifetime."""
        validation = await self.validate_token(token)
        if not validation.valid or validation.user is None:
            return RefreshResult(success=False, error=validation.error or "Invalid token")

        await self.deactivate_token(token)
        created = await self.create_token(validation.user.id, validation.user.role, validation.user.name)
        return RefreshResult(success=created.success, new_token=created.token, error=created.error)

    async def cleanup_expired_tokens(self) -> CleanupResult:
        if self._degraded:
            return CleanupResult(success=True, cleaned=0)

        now = self._clock()
        try:
            cleaned = await self.store.deactivate_expired(now)
        except SQLAlchemyError as e:
            logger.error(f"Failed to cleanup expired tokens: {e}")
            return CleanupResult(success=False, cleaned=0, error="Failed to cleanup expired tokens")

        logger.info(f"Cleaned up {cleaned} expired token(s)")
        return CleanupResult(success=True, cleaned=cleaned)

    async def get_active_tokens(self) -> List[TokenRecord]:
        if self._degraded:
            return []
        try:
            return await self.store.list_active()
        except SQLAlchemyError as e:
            logger.error(f"Error getting active tokens: {e}")
            return []
