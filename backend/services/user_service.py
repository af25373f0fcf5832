from schemas.user_schema import User, LoginResponse, RegisterResponse
from db.session import get_or_use_session
from db.models.user import User as UserModel
from core.config import settings
from fastapi import HTTPException
import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from services.token_service import TokenService
from utils.db import safe_commit
from utils.timing import timeit

logger = logging.getLogger(__name__)

def is_reserved_national_id(national_id: str) -> bool:
    return national_id.strip().lower() == settings.ADMIN_NATIONAL_ID.lower()

async def get_user_by_id(user_id: str, db: AsyncSession = None) -> Optional[User]:
    async with get_or_use_session(db) as _db:
        result = await _db.execute(select(UserModel).where(UserModel.id == user_id))
        row = result.scalars().first()
        return User.model_validate(row) if row else None

async def get_user_by_national_id(national_id: str, db: AsyncSession = None) -> Optional[User]:
    async with get_or_use_session(db) as _db:
        result = await _db.execute(select(UserModel).where(UserModel.national_id == national_id))
        row = result.scalars().first()
        return User.model_validate(row) if row else None

async def get_user_by_credentials(national_id: str, name: str, db: AsyncSession = None) -> Optional[User]:
    """Regular login: national ID and name must both match"""
    async with get_or_use_session(db) as _db:
        result = await _db.execute(
            select(UserModel).where(UserModel.national_id == national_id, UserModel.name == name)
        )
        row = result.scalars().first()
        return User.model_validate(row) if row else None

async def _create_user(name: str, national_id: str, role: str, db: AsyncSession) -> User:
    row = UserModel(name=name, national_id=national_id, role=role)
    db.add(row)
    await safe_commit(db, client_error_message="A user with this National ID already exists")
    await db.refresh(row)
    return User.model_validate(row)

async def _get_or_create_admin(db: AsyncSession) -> User:
    admin = await get_user_by_national_id(settings.ADMIN_NATIONAL_ID, db)
    if admin is not None:
        return admin
    logger.info("Admin user not found, creating it")
    return await _create_user(settings.ADMIN_DISPLAY_NAME, settings.ADMIN_NATIONAL_ID, "admin", db)

async def authenticate(national_id: str, name: str, db: AsyncSession = None) -> Optional[User]:
    """Resolve a user from login input. Returns None when nothing matches.

    The bootstrap admin logs in with ADMIN_NATIONAL_ID (any case) and
    ADMIN_LOGIN_SECRET in the name field; the admin row is created on first use.
    """
    national_id = national_id.strip()
    async with get_or_use_session(db) as _db:
        if is_reserved_national_id(national_id):
            if name != settings.ADMIN_LOGIN_SECRET:
                return None
            return await _get_or_create_admin(_db)
        return await get_user_by_credentials(national_id, name.strip(), _db)

@timeit("login_user")
async def login_user(national_id: str, name: str, token_service: TokenService, db: AsyncSession = None) -> dict:
    user = await authenticate(national_id, name, db)
    if user is None:
        logger.info("Login failed: no user for provided credentials")
        raise HTTPException(status_code=401, detail="Invalid National ID or name")

    result = await token_service.create_token(user.id, user.role, user.name)
    if not result.success or not result.token:
        logger.error(f"Error creating token for {user.id}: {result.error}")
        raise HTTPException(status_code=500, detail="Could not create session")

    logger.info(f"User {user.id} logged in")
    return LoginResponse(success=True, token=result.token, user=user).model_dump(mode="json")

async def register_member(national_id: str, name: str, db: AsyncSession = None) -> RegisterResponse:
    """Create a member account. Admin rights are never granted here."""
    national_id = national_id.strip()
    name = name.strip()
    if is_reserved_national_id(national_id):
        return RegisterResponse(success=False, message="This username is reserved for system administration.")

    async with get_or_use_session(db) as _db:
        if await get_user_by_national_id(national_id, _db) is not None:
            return RegisterResponse(success=False, message="A user with this National ID already exists")
        user = await _create_user(name, national_id, "member", _db)

    logger.info(f"Registered member {user.id}")
    return RegisterResponse(
        success=True,
        message="Member account created successfully! You can now log in. "
                "Admin privileges can only be granted by existing administrators.",
    )
