from typing import List

from fastapi import APIRouter, Depends, HTTPException
from schemas.token_schema import CleanupResult, DeactivateTokenRequest, OperationResult, TokenRecord
from services.token_service import TokenService
from api.dependencies import CurrentSession, admin_required, get_token_service
from utils.responses import no_store_json
from utils.timing import timeit
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/admin/tokens", response_model=List[TokenRecord])
@timeit("admin_tokens")
async def active_tokens(session: CurrentSession = Depends(admin_required), token_service: TokenService = Depends(get_token_service)):
    return no_store_json(await token_service.get_active_tokens())

@router.post("/admin/tokens/deactivate", response_model=OperationResult)
@timeit("admin_deactivate_token")
async def deactivate_token(request: DeactivateTokenRequest, session: CurrentSession = Depends(admin_required), token_service: TokenService = Depends(get_token_service)):
    if request.token == session.token:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own active token")
    logger.info(f"Admin {session.user.id} force-deactivating a token")
    return no_store_json(await token_service.deactivate_token(request.token))

@router.post("/admin/tokens/cleanup", response_model=CleanupResult)
@timeit("admin_cleanup_tokens")
async def cleanup_tokens(session: CurrentSession = Depends(admin_required), token_service: TokenService = Depends(get_token_service)):
    return no_store_json(await token_service.cleanup_expired_tokens())
