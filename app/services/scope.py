# app/services/scope.py
"""
Resolve which owner a request acts on, and who may see an owned goal.

Membership is looked up on every call. Nothing here is cached because a
member may be removed from a vault between two requests.
"""
import logging
import uuid
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotAMember
from app.core.owner import Owner, PersonalOwner, VaultOwner, OwnerType
from app.crud import vault as vault_crud
from app.crud import goal as goal_crud
from app.models.goal import Goal, GoalVisibility

logger = logging.getLogger(__name__)


async def resolve_scope(user_id: uuid.UUID, workspace_id: uuid.UUID, db: AsyncSession) -> Owner:
    if workspace_id == user_id:
        return PersonalOwner(user_id)
    if await vault_crud.is_member(workspace_id, user_id, db):
        return VaultOwner(workspace_id)
    logger.warning(f"User {user_id} requested workspace {workspace_id} without membership")
    raise NotAMember("You are not a member of this workspace")


async def scope_member_ids(owner: Owner, db: AsyncSession) -> List[uuid.UUID]:
    """Users acting inside ``owner``: the user itself, or every vault member."""
    if owner.is_personal:
        return [owner.user_id]
    return await vault_crud.get_member_ids(owner.vault_id, db)


async def goal_viewer_ids(goal: Goal, db: AsyncSession) -> List[uuid.UUID]:
    """
    Users who can see ``goal``:
      - personal goal: its owner and participants
      - vault goal, shared: every vault member
      - vault goal, private: participants only
    """
    participant_ids = [p.user_id for p in await goal_crud.get_participants(goal.id, db)]
    if goal.owner_type == OwnerType.user:
        return list(dict.fromkeys([goal.owner_id, *participant_ids]))
    if goal.visibility == GoalVisibility.shared:
        return await vault_crud.get_member_ids(goal.owner_id, db)
    return participant_ids


async def can_view_goal(goal: Goal, user_id: uuid.UUID, db: AsyncSession) -> bool:
    return user_id in await goal_viewer_ids(goal, db)
