# app/schemas/account.py
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
import uuid
from app.core.owner import OwnerType
from app.models.account import AccountType

class AccountBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, description="E.g. Conta Corrente")
    bank: str = Field(..., min_length=1, max_length=120)
    type: AccountType
    credit_limit: Optional[Decimal] = Field(None, ge=0, description="Credit cards only; informational")
    logo_url: Optional[str] = None
    visible_in: List[uuid.UUID] = Field(default_factory=list, description="Vaults where a personal account is shown")

class AccountCreate(AccountBase):
    # Opening balance; ignored for credit cards, which always start at 0
    balance: Decimal = Decimal("0")

class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    bank: Optional[str] = Field(None, min_length=1, max_length=120)
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    logo_url: Optional[str] = None
    visible_in: Optional[List[uuid.UUID]] = None

class AccountRead(BaseModel):
    id: uuid.UUID
    name: str
    bank: str
    type: AccountType
    balance: Decimal
    credit_limit: Optional[Decimal] = None
    logo_url: Optional[str] = None
    visible_in: List[str] = []
    owner_id: uuid.UUID
    owner_type: OwnerType
    created_at: datetime

    class Config:
        from_attributes = True

class BalanceSummary(BaseModel):
    liquid: Decimal
    invested: Decimal
    credit_card_debt: Decimal
    net_worth: Decimal
