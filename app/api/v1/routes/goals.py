# app/api/v1/routes/goals.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.core.owner import Owner
from app.api.deps import get_current_user, get_workspace_owner
from app.schemas.goal import (
    FeaturedRequest,
    GoalCreate,
    GoalMovementRequest,
    GoalParticipantRead,
    GoalRead,
    GoalUpdate,
    ParticipantAdd,
    VisibilityChangeRead,
    VisibilityChangeRequest,
)
from app.schemas.transaction import TransactionRead
from app.services import goals as goal_service

router = APIRouter(prefix="/goals", tags=["goals"])

@router.get("", response_model=List[GoalRead])
async def read_goals(
    featured_only: bool = Query(False, description="Only goals pinned to the dashboard"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await goal_service.list_goals(owner, user, db, featured_only)

@router.post("", response_model=GoalRead, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal_in: GoalCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await goal_service.create_goal(goal_in, owner, user, db)

@router.get("/{goal_id}", response_model=GoalRead)
async def read_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.get_visible_goal(goal_id, user, db)

@router.patch("/{goal_id}", response_model=GoalRead)
async def update_goal(
    goal_id: uuid.UUID,
    goal_in: GoalUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.update_goal(goal_id, goal_in, user, db)

@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    await goal_service.delete_goal(goal_id, user, db)

@router.post("/{goal_id}/deposit", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def deposit(
    goal_id: uuid.UUID,
    body: GoalMovementRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    """
    Add money to a goal. When ``account_id`` is given the amount leaves that account.
    Reaching the target notifies everyone who can see the goal.
    """
    return await goal_service.deposit(
        goal_id, body.amount, owner, user, db,
        account_id=body.account_id, description=body.description, date=body.date,
    )

@router.post("/{goal_id}/withdraw", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def withdraw(
    goal_id: uuid.UUID,
    body: GoalMovementRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await goal_service.withdraw(
        goal_id, body.amount, owner, user, db,
        account_id=body.account_id, description=body.description, date=body.date,
    )

@router.get("/{goal_id}/transactions", response_model=List[TransactionRead])
async def read_goal_transactions(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.goal_transactions(goal_id, user, db)

@router.post("/{goal_id}/visibility", response_model=GoalRead)
async def change_visibility(
    goal_id: uuid.UUID,
    body: VisibilityChangeRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.change_visibility(goal_id, body.visibility, body.confirmed, user, db)

@router.get("/{goal_id}/visibility-history", response_model=List[VisibilityChangeRead])
async def read_visibility_history(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.visibility_history(goal_id, user, db)

@router.put("/{goal_id}/featured", response_model=GoalRead)
async def set_featured(
    goal_id: uuid.UUID,
    body: FeaturedRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.set_featured(goal_id, body.is_featured, user, db)

@router.get("/{goal_id}/participants", response_model=List[GoalParticipantRead])
async def read_participants(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.list_participants(goal_id, user, db)

@router.post("/{goal_id}/participants", response_model=GoalParticipantRead, status_code=status.HTTP_201_CREATED)
async def add_participant(
    goal_id: uuid.UUID,
    body: ParticipantAdd,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await goal_service.add_participant(goal_id, body.user_id, user, db)

@router.delete("/{goal_id}/participants/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_participant(
    goal_id: uuid.UUID,
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    await goal_service.remove_participant(goal_id, user_id, user, db)
