from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from schemas.token_schema import TokenUser
from services.token_service import TokenService
from utils.logging_config import bind_user_id
import logging

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentSession:
    token: str
    user: TokenUser


def get_token_service(request: Request) -> TokenService:
    token_service = getattr(request.app.state, "token_service", None)
    if token_service is None:
        raise HTTPException(status_code=503, detail="Token service not initialized")
    return token_service


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_current_session(
    token: Optional[str] = Depends(get_bearer_token),
    token_service: TokenService = Depends(get_token_service),
) -> CurrentSession:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    validation = await token_service.validate_token(token)
    if not validation.valid or validation.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=validation.error or "Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    bind_user_id(validation.user.id)
    return CurrentSession(token=token, user=validation.user)


# Trusts the role copied into the token row; no user lookup
async def admin_required(session: CurrentSession = Depends(get_current_session)) -> CurrentSession:
    if session.user.role != "admin":
        logger.warning(f"Non-admin {session.user.id} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return session
