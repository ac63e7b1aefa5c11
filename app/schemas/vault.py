# app/schemas/vault.py
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
import uuid
from app.models.vault import VaultRole

class VaultCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    image_url: Optional[str] = None
    is_private: bool = False

class VaultUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    image_url: Optional[str] = None
    is_private: Optional[bool] = None

class VaultRead(BaseModel):
    id: uuid.UUID
    name: str
    image_url: Optional[str] = None
    is_private: bool
    owner_id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True

class VaultMemberRead(BaseModel):
    user_id: uuid.UUID
    role: VaultRole
    joined_at: datetime

    class Config:
        from_attributes = True
