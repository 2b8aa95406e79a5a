from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import Optional
from modules.documents.models.user import UserRole

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    user_id: int
    user_name: str
    user_role: str

class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: UserRole = UserRole.MEMBER
    team_id: Optional[int] = None

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    team_id: Optional[int] = None
    is_active: bool
    two_factor_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}

class TwoFactorSetupResponse(BaseModel):
    secret: str
    uri: str

class TwoFactorEnableRequest(BaseModel):
    token: str
