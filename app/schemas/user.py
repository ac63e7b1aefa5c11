# app/schemas/user.py
from typing import Optional
from pydantic import BaseModel, EmailStr
from app.core.auth import SubscriptionStatus

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int

class AccessInfo(BaseModel):
    status: SubscriptionStatus
    has_full_access: bool
    days_remaining: Optional[int] = None
    message: str
