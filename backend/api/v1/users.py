from fastapi import APIRouter, Depends, HTTPException
from schemas.user_schema import User
from services.user_service import get_user_by_id
from api.dependencies import CurrentSession, get_current_session
from db.session import get_db_session
from sqlalchemy.ext.asyncio import AsyncSession
from utils.responses import no_store_json
from utils.timing import timeit

router = APIRouter()

@router.get("/me", response_model=User)
@timeit("me")
async def me(session: CurrentSession = Depends(get_current_session), db: AsyncSession = Depends(get_db_session)):
    # Name and role in the token row may be stale; always read the user record
    user = await get_user_by_id(session.user.id, db)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return no_store_json(user)
