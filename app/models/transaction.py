# app/models/transaction.py
import enum
import uuid
from sqlalchemy import Column, String, ForeignKey, Numeric, DateTime, Boolean, Enum, Integer, JSON, Uuid, Index
from app.core.database import Base
from app.core.owner import OwnedMixin, OwnerType
from app.utils.dates import utcnow

class TransactionType(str, enum.Enum):
    income = "income"
    expense = "expense"
    transfer = "transfer"

class PaymentMethod(str, enum.Enum):
    pix = "pix"
    credit_card = "credit_card"
    debit_card = "debit_card"
    transfer = "transfer"
    boleto = "boleto"
    cash = "cash"

class GoalMovement(str, enum.Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"

class Transaction(OwnedMixin, Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_owner_date", "owner_id", "owner_type", "date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    description = Column(String(length=255), nullable=False)
    # Per-installment amount for installment purchases; always > 0
    amount = Column(Numeric(14, 2), nullable=False)
    type = Column(Enum(TransactionType), nullable=False)
    category = Column(String(length=100), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    date = Column(DateTime, nullable=False)

    source_account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id"), nullable=True)
    destination_account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.id"), nullable=True)
    goal_id = Column(Uuid(as_uuid=True), ForeignKey("goals.id", ondelete="SET NULL"), nullable=True, index=True)
    goal_movement = Column(Enum(GoalMovement), nullable=True)
    actor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    is_recurring = Column(Boolean, nullable=False, default=False)
    total_installments = Column(Integer, nullable=True)
    # Sorted list of paid installment numbers, each in [1, total_installments]
    paid_installments = Column(JSON, nullable=False, default=list)

    owner_id = Column(Uuid(as_uuid=True), nullable=False)
    owner_type = Column(Enum(OwnerType), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_installment(self) -> bool:
        return bool(self.total_installments)

    def __repr__(self):
        return f"<Transaction {self.type} amount={self.amount} date={self.date} owner={self.owner_type}:{self.owner_id}>"
