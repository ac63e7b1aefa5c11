# app/crud/goal.py
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update, delete
from app.models.goal import Goal, GoalParticipant, GoalVisibilityChange
from app.models.vault import VaultRole
from app.core.owner import Owner
from typing import List, Optional
import uuid

async def get_goal_by_id(goal_id: uuid.UUID, db: AsyncSession) -> Optional[Goal]:
    # current_amount is written with SQL increments; never trust the identity map
    result = await db.execute(
        select(Goal).where(Goal.id == goal_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()

async def get_goals_for_owner(owner: Owner, db: AsyncSession, featured_only: bool = False) -> List[Goal]:
    query = select(Goal).where(Goal.owned_by(owner))
    if featured_only:
        query = query.where(Goal.is_featured.is_(True))
    result = await db.execute(
        query.order_by(Goal.created_at.desc()).execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def get_goals_with_participant(user_id: uuid.UUID, db: AsyncSession) -> List[Goal]:
    result = await db.execute(
        select(Goal)
        .join(GoalParticipant, GoalParticipant.goal_id == Goal.id)
        .where(GoalParticipant.user_id == user_id)
        .order_by(Goal.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def delete_goal(goal: Goal, db: AsyncSession) -> None:
    """Remove the goal with its participants and visibility history; the caller commits."""
    await db.execute(delete(GoalParticipant).where(GoalParticipant.goal_id == goal.id))
    await db.execute(delete(GoalVisibilityChange).where(GoalVisibilityChange.goal_id == goal.id))
    await db.delete(goal)

async def get_current_amount(goal_id: uuid.UUID, db: AsyncSession) -> Optional[Decimal]:
    result = await db.execute(select(Goal.current_amount).where(Goal.id == goal_id))
    return result.scalar_one_or_none()

async def apply_amount_delta(goal_id: uuid.UUID, delta: Decimal, db: AsyncSession) -> int:
    """Atomic ``current_amount = current_amount + delta``; no clamping."""
    result = await db.execute(
        update(Goal)
        .where(Goal.id == goal_id)
        .values(current_amount=Goal.current_amount + delta)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

async def get_participants(goal_id: uuid.UUID, db: AsyncSession) -> List[GoalParticipant]:
    result = await db.execute(
        select(GoalParticipant).where(GoalParticipant.goal_id == goal_id).order_by(GoalParticipant.joined_at)
    )
    return result.scalars().all()

async def get_participant(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[GoalParticipant]:
    result = await db.execute(
        select(GoalParticipant).where(GoalParticipant.goal_id == goal_id, GoalParticipant.user_id == user_id)
    )
    return result.scalar_one_or_none()

def add_participant(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession, role: VaultRole = VaultRole.member) -> GoalParticipant:
    """Stage a participant row; the caller commits."""
    participant = GoalParticipant(goal_id=goal_id, user_id=user_id, role=role)
    db.add(participant)
    return participant

async def remove_participant(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(
        delete(GoalParticipant).where(GoalParticipant.goal_id == goal_id, GoalParticipant.user_id == user_id)
    )
    return result.rowcount

async def get_visibility_history(goal_id: uuid.UUID, db: AsyncSession) -> List[GoalVisibilityChange]:
    result = await db.execute(
        select(GoalVisibilityChange)
        .where(GoalVisibilityChange.goal_id == goal_id)
        .order_by(GoalVisibilityChange.created_at)
    )
    return result.scalars().all()
