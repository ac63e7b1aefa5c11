# app/schemas/goal.py
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
import uuid
from app.core.owner import OwnerType
from app.models.goal import GoalVisibility
from app.models.vault import VaultRole

class GoalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, description="E.g. Viagem para o Japão")
    emoji: str = Field("💰", max_length=16)
    target_amount: Decimal = Field(..., gt=0)
    visibility: GoalVisibility = GoalVisibility.shared
    is_featured: bool = False

class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    emoji: Optional[str] = Field(None, max_length=16)
    target_amount: Optional[Decimal] = Field(None, gt=0)

class GoalMovementRequest(BaseModel):
    amount: Decimal
    account_id: Optional[uuid.UUID] = Field(None, description="Account debited on deposit / credited on withdrawal")
    description: Optional[str] = None
    date: Optional[datetime] = None

class VisibilityChangeRequest(BaseModel):
    visibility: GoalVisibility
    confirmed: bool = False

class FeaturedRequest(BaseModel):
    is_featured: bool

class ParticipantAdd(BaseModel):
    user_id: uuid.UUID

class GoalParticipantRead(BaseModel):
    user_id: uuid.UUID
    role: VaultRole
    joined_at: datetime

    class Config:
        from_attributes = True

class GoalRead(BaseModel):
    id: uuid.UUID
    name: str
    emoji: str
    target_amount: Decimal
    current_amount: Decimal
    visibility: GoalVisibility
    is_featured: bool
    progress_percent: float
    is_completed: bool
    owner_id: uuid.UUID
    owner_type: OwnerType
    created_at: datetime

    class Config:
        from_attributes = True

class VisibilityChangeRead(BaseModel):
    actor_id: Optional[uuid.UUID] = None
    from_visibility: GoalVisibility
    to_visibility: GoalVisibility
    participant_ids: List[str]
    created_at: datetime

    class Config:
        from_attributes = True
