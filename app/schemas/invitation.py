# app/schemas/invitation.py
from typing import Optional
from pydantic import BaseModel, EmailStr
from datetime import datetime
import uuid
from app.models.invitation import InvitationType, InvitationStatus

class InvitationCreate(BaseModel):
    type: InvitationType
    target_id: uuid.UUID
    email: EmailStr

class InvitationRead(BaseModel):
    id: uuid.UUID
    type: InvitationType
    target_id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: Optional[uuid.UUID] = None
    receiver_email: str
    status: InvitationStatus
    created_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
