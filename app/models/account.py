# app/models/account.py
import enum
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, DateTime, Enum, JSON, Uuid, Index
from app.core.database import Base
from app.core.owner import OwnedMixin, OwnerType
from app.utils.dates import utcnow

class AccountType(str, enum.Enum):
    checking = "checking"
    savings = "savings"
    investment = "investment"
    credit_card = "credit_card"
    other = "other"

class Account(OwnedMixin, Base):
    __tablename__ = "accounts"
    __table_args__ = (Index("ix_accounts_owner", "owner_id", "owner_type"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(length=120), nullable=False)
    bank = Column(String(length=120), nullable=False)
    type = Column(Enum(AccountType), nullable=False)
    # Authoritative current value, written only by the ledger engine
    balance = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    # Informational only, never enforced
    credit_limit = Column(Numeric(14, 2), nullable=True)
    logo_url = Column(String, nullable=True)
    # Vault ids in which a personal account is also visible
    visible_in = Column(JSON, nullable=False, default=list)

    owner_id = Column(Uuid(as_uuid=True), nullable=False)
    owner_type = Column(Enum(OwnerType), nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def is_visible_in(self, vault_id: uuid.UUID) -> bool:
        return str(vault_id) in (self.visible_in or [])

    def __repr__(self):
        return f"<Account name={self.name} balance={self.balance} owner={self.owner_type}:{self.owner_id}>"
