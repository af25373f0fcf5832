from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional

from schemas.token_schema import Role

class UserBase(BaseModel):
    name: str
    national_id: str

class User(UserBase):
    id: str
    role: Role
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        extra = "ignore"

class LoginRequest(BaseModel):
    national_id: str = Field(min_length=1)
    # For the bootstrap admin this carries the login secret instead of a name
    name: str = Field(min_length=1)

class RegisterRequest(BaseModel):
    national_id: str = Field(min_length=1)
    name: str = Field(min_length=1)

class LoginResponse(BaseModel):
    success: bool
    token: str
    token_type: str = "bearer"
    user: User

class RegisterResponse(BaseModel):
    success: bool
    message: str
