# app/schemas/transaction.py
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
import uuid
from app.core.owner import OwnerType
from app.models.transaction import TransactionType, PaymentMethod, GoalMovement

class TransactionBase(BaseModel):
    description: str = Field(..., min_length=1, max_length=255, description="E.g. Mercado do mês")
    amount: Decimal = Field(..., description="Per-installment amount for installment purchases")
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=100)
    payment_method: Optional[PaymentMethod] = None
    date: datetime = Field(..., description="ISO 8601 date/time of transaction")
    source_account_id: Optional[uuid.UUID] = None
    destination_account_id: Optional[uuid.UUID] = None
    is_recurring: bool = False
    total_installments: Optional[int] = Field(None, ge=1)

class TransactionCreate(TransactionBase):
    goal_id: Optional[uuid.UUID] = None
    goal_movement: Optional[GoalMovement] = None
    # True when the first installment is settled at purchase time
    first_installment_paid: bool = False

class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    payment_method: Optional[PaymentMethod] = None
    date: Optional[datetime] = None
    source_account_id: Optional[uuid.UUID] = None
    destination_account_id: Optional[uuid.UUID] = None
    is_recurring: Optional[bool] = None

class TransactionRead(TransactionBase):
    id: uuid.UUID
    goal_id: Optional[uuid.UUID] = None
    goal_movement: Optional[GoalMovement] = None
    actor_id: Optional[uuid.UUID] = None
    paid_installments: List[int] = []
    owner_id: uuid.UUID
    owner_type: OwnerType
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class InstallmentToggle(BaseModel):
    paid: Optional[bool] = Field(None, description="Omit to flip the current state")

class InstallmentProgress(BaseModel):
    transaction_id: uuid.UUID
    description: str
    amount: Decimal
    total_installments: int
    paid_installments: List[int]
    paid_amount: Decimal
    total_amount: Decimal
    progress_percent: float
    remaining_installments: int
    next_unpaid: Optional[int] = None

class RecurringGroup(BaseModel):
    description: str
    category: str
    type: TransactionType
    amount: Decimal
    occurrences: int
    last_date: datetime
    transaction_ids: List[uuid.UUID]

class RecurringOverview(BaseModel):
    recurring: List[RecurringGroup]
    installments: List[InstallmentProgress]
