from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from schemas.user_schema import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from schemas.token_schema import OperationResult, RefreshResult, ValidationResult
from services.user_service import login_user, register_member
from services.token_service import TokenService
from api.dependencies import get_bearer_token, get_token_service
from utils.responses import no_store_json
from utils.timing import timeit
from db.session import get_db_session
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()

@router.post("/login", response_model=LoginResponse)
@timeit("login")
async def login(payload: LoginRequest, token_service: TokenService = Depends(get_token_service), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await login_user(payload.national_id, payload.name, token_service, db))

@router.post("/register", response_model=RegisterResponse)
@timeit("register")
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db_session)):
    result = await register_member(payload.national_id, payload.name, db)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)
    return no_store_json(result)

@router.post("/logout", response_model=OperationResult)
@timeit("logout")
async def logout(token: Optional[str] = Depends(get_bearer_token), token_service: TokenService = Depends(get_token_service)):
    # Logout succeeds even without a token or when the write fails
    if token:
        return no_store_json(await token_service.deactivate_token(token))
    return no_store_json(OperationResult(success=True))

@router.post("/refresh", response_model=RefreshResult)
@timeit("refresh")
async def refresh(token: Optional[str] = Depends(get_bearer_token), token_service: TokenService = Depends(get_token_service)):
    result = await token_service.refresh_token(token or "")
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error or "Invalid token", headers={"WWW-Authenticate": "Bearer"})
    return no_store_json(result)

@router.get("/validate", response_model=ValidationResult)
@timeit("validate")
async def validate(token: Optional[str] = Depends(get_bearer_token), token_service: TokenService = Depends(get_token_service)):
    return no_store_json(await token_service.validate_token(token))
