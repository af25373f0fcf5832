"""Client-side session holder.

An ``AuthSession`` owns one bearer token for one signed-in user:

    init  --start()/sign_in()-->  active  --logout()-->  closed

While active, a background task refreshes the token every
``SESSION_REFRESH_INTERVAL_HOURS``. A failed refresh logs the session out.
The token itself lives in a ``SessionStorage`` so a restarted client can pick
the session up again with ``start()``.
"""
import asyncio
from datetime import timedelta
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from core.config import settings
from schemas.user_schema import User
from services.token_service import TokenService

logger = logging.getLogger(__name__)

STATE_INIT = "init"
STATE_ACTIVE = "active"
STATE_CLOSED = "closed"

UserLookup = Callable[[str], Awaitable[Optional[User]]]


class SessionStorage:
    """Holds exactly one token string."""

    def load(self) -> Optional[str]:
        raise NotImplementedError

    def save(self, token: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemorySessionStorage(SessionStorage):
    def __init__(self, token: Optional[str] = None):
        self._token = token

    def load(self) -> Optional[str]:
        return self._token

    def save(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileSessionStorage(SessionStorage):
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.SESSION_TOKEN_FILE)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        token = self.path.read_text(encoding="utf-8").strip()
        return token or None

    def save(self, token: str) -> None:
        self.path.write_text(token, encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class AuthSession:
    def __init__(self, token_service: TokenService, user_lookup: UserLookup,
                 storage: SessionStorage, refresh_interval: Optional[timedelta] = None):
        self.token_service = token_service
        self.user_lookup = user_lookup
        self.storage = storage
        self.refresh_interval = refresh_interval or timedelta(hours=settings.SESSION_REFRESH_INTERVAL_HOURS)
        self.state = STATE_INIT
        self.user: Optional[User] = None
        self.token: Optional[str] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self.state == STATE_ACTIVE

    async def start(self) -> bool:
        """Resume the persisted session, if any. Returns True when one was resumed."""
        token = self.storage.load()
        if not token:
            return False

        validation = await self.token_service.validate_token(token)
        if not validation.valid or validation.user is None:
            logger.info(f"Stored token rejected: {validation.error}")
            self._forget()
            return False

        # The token row only carries a snapshot; load the current user record
        user = await self.user_lookup(validation.user.id)
        if user is None:
            logger.info(f"User {validation.user.id} for stored token no longer exists")
            self._forget()
            return False

        self._activate(user, token)
        return True

    async def sign_in(self, user: User) -> bool:
        """Open a session for a user whose identity was already verified."""
        result = await self.token_service.create_token(user.id, user.role, user.name)
        if not result.success or not result.token:
            logger.error(f"Error creating token: {result.error}")
            return False
        self._activate(user, result.token)
        return True

    async def refresh(self) -> bool:
        if not self.token:
            return False

        try:
            result = await self.token_service.refresh_token(self.token)
            if not result.success or not result.new_token:
                logger.info(f"Token refresh failed ({result.error}); logging out")
                await self.logout()
                return False

            self.token = result.new_token
            self.storage.save(result.new_token)
            return True
        except Exception as e:
            logger.error(f"Token refresh error, logging out: {e}")
            await self.logout()
            return False

    async def logout(self) -> None:
        self._stop_refresh_timer()
        if self.token:
            await self.token_service.deactivate_token(self.token)
        self._forget()
        self.state = STATE_CLOSED

    def _activate(self, user: User, token: str) -> None:
        self.user = user
        self.token = token
        self.storage.save(token)
        self.state = STATE_ACTIVE
        self._start_refresh_timer()

    def _forget(self) -> None:
        self.user = None
        self.token = None
        self.storage.clear()

    def _start_refresh_timer(self) -> None:
        self._stop_refresh_timer()
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    def _stop_refresh_timer(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        # A refresh that fails logs out from inside the loop; don't cancel ourselves
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _refresh_loop(self) -> None:
        interval = self.refresh_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            if not await self.refresh():
                return
