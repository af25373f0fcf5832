from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

Role = Literal["admin", "member"]


class TokenRecord(BaseModel):
    """One row of ``auth_tokens``. Timestamps are timezone-aware UTC."""
    id: str
    token: str
    user_id: str
    user_role: Role
    user_name: str
    expires_at: datetime
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenUser(BaseModel):
    id: str
    role: Role
    name: str


class ValidationResult(BaseModel):
    valid: bool
    user: Optional[TokenUser] = None
    error: Optional[str] = None


class CreateTokenResult(BaseModel):
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None


class RefreshResult(BaseModel):
    success: bool
    new_token: Optional[str] = None
    error: Optional[str] = None


class CleanupResult(BaseModel):
    success: bool
    cleaned: int = 0
    error: Optional[str] = None


class OperationResult(BaseModel):
    success: bool
    error: Optional[str] = None


class DeactivateTokenRequest(BaseModel):
    token: str
