from db.session import Base, engine
from db.models.user import User  # noqa: F401
from db.models.auth_token import AuthToken  # noqa: F401
import logging
from sqlalchemy.ext.asyncio import AsyncEngine
from typing import Optional

logger = logging.getLogger(__name__)

async def initialize_database(target: Optional[AsyncEngine] = None):
    """Create tables only. Seeding the bootstrap admin happens on first admin login."""
    target = target or engine
    try:
        # Run DDL in async context
        assert isinstance(target, AsyncEngine)
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise e
