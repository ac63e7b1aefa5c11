# app/models/goal.py
import enum
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Boolean, Enum, JSON, Uuid, UniqueConstraint, Index
from app.core.database import Base
from app.core.owner import OwnedMixin, OwnerType
from app.models.vault import VaultRole
from app.utils.dates import utcnow

class GoalVisibility(str, enum.Enum):
    private = "private"
    shared = "shared"

class Goal(OwnedMixin, Base):
    __tablename__ = "goals"
    __table_args__ = (Index("ix_goals_owner", "owner_id", "owner_type"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(length=120), nullable=False)
    emoji = Column(String(length=16), nullable=False, default="💰")
    target_amount = Column(Numeric(14, 2), nullable=False)
    # Not clamped: above target means completed, below zero means over-withdrawn
    current_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    visibility = Column(Enum(GoalVisibility), nullable=False, default=GoalVisibility.shared)
    is_featured = Column(Boolean, nullable=False, default=False)

    owner_id = Column(Uuid(as_uuid=True), nullable=False)
    owner_type = Column(Enum(OwnerType), nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def progress_percent(self) -> float:
        if not self.target_amount:
            return 0.0
        return min(100.0, float(self.current_amount or 0) / float(self.target_amount) * 100)

    @property
    def is_completed(self) -> bool:
        return (self.current_amount or 0) >= self.target_amount

    def __repr__(self):
        return f"<Goal name={self.name} current={self.current_amount} target={self.target_amount}>"

class GoalParticipant(Base):
    __tablename__ = "goal_participants"
    __table_args__ = (UniqueConstraint("goal_id", "user_id", name="uq_goal_participant"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    goal_id = Column(Uuid(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(VaultRole), nullable=False, default=VaultRole.member)
    joined_at = Column(DateTime, default=utcnow)

class GoalVisibilityChange(Base):
    """One row per confirmed private <-> shared transition."""
    __tablename__ = "goal_visibility_changes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    goal_id = Column(Uuid(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    from_visibility = Column(Enum(GoalVisibility), nullable=False)
    to_visibility = Column(Enum(GoalVisibility), nullable=False)
    # user ids (as strings) who could see the goal right after the change
    participant_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow)
