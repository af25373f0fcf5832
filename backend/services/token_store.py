"""Persistence access for ``auth_tokens``.

Every method opens its own session and commits before returning. Errors from
the database are not caught here; ``TokenService`` decides which of them the
caller gets to see.
"""
from datetime import datetime, timezone
import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.models.auth_token import AuthToken
from schemas.token_schema import TokenRecord

logger = logging.getLogger(__name__)


def to_db_time(value: datetime) -> datetime:
    """Aware datetime -> naive UTC as stored in the table."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_record(row: AuthToken) -> TokenRecord:
    return TokenRecord(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        user_role=row.user_role,
        user_name=row.user_name,
        expires_at=from_db_time(row.expires_at),
        is_active=bool(row.is_active),
        created_at=from_db_time(row.created_at),
    )


class TokenStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def probe(self) -> bool:
        """Return True when ``auth_tokens`` can be queried."""
        try:
            async with self._session_factory() as db:
                await db.execute(select(AuthToken.id).limit(1))
            return True
        except (ProgrammingError, OperationalError) as e:
            logger.warning(f"auth_tokens table unavailable: {e}")
            return False

    async def insert(self, token: str, user_id: str, role: str, name: str,
                     expires_at: datetime, created_at: datetime) -> TokenRecord:
        async with self._session_factory() as db:
            row = AuthToken(
                token=token,
                user_id=user_id,
                user_role=role,
                user_name=name,
                expires_at=to_db_time(expires_at),
                is_active=True,
                created_at=to_db_time(created_at),
            )
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return to_record(row)

    async def find_active(self, token: str) -> Optional[TokenRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AuthToken).where(AuthToken.token == token, AuthToken.is_active.is_(True))
            )
            row = result.scalars().first()
            return to_record(row) if row is not None else None

    async def get_by_token(self, token: str) -> Optional[TokenRecord]:
        async with self._session_factory() as db:
            result = await db.execute(select(AuthToken).where(AuthToken.token == token))
            row = result.scalars().first()
            return to_record(row) if row is not None else None

    async def mark_inactive(self, record_id: str) -> int:
        return await self._deactivate_where(AuthToken.id == record_id)

    async def deactivate_token(self, token: str) -> int:
        return await self._deactivate_where(AuthToken.token == token)

    async def deactivate_user(self, user_id: str) -> int:
        return await self._deactivate_where(AuthToken.user_id == user_id)

    async def list_active(self) -> List[TokenRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AuthToken)
                .where(AuthToken.is_active.is_(True))
                .order_by(AuthToken.created_at.desc())
            )
            return [to_record(row) for row in result.scalars().all()]

    async def deactivate_expired(self, now: datetime) -> int:
        return await self._deactivate_where(AuthToken.expires_at < to_db_time(now))

    async def _deactivate_where(self, *criteria) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                update(AuthToken)
                .where(AuthToken.is_active.is_(True), *criteria)
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount or 0
