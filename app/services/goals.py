# app/services/goals.py
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import User
from app.core.db_utils import with_db_retry
from app.core.errors import GoalNotFound, NotAMember, NotFound, PermissionDenied, ValidationError
from app.core.owner import Owner, OwnerType
from app.crud import goal as goal_crud
from app.crud import transaction as transaction_crud
from app.crud import user as user_crud
from app.crud import vault as vault_crud
from app.models.goal import Goal, GoalParticipant, GoalVisibility, GoalVisibilityChange
from app.models.notification import NotificationType
from app.models.transaction import GoalMovement, PaymentMethod, Transaction, TransactionType
from app.models.vault import VaultRole
from app.schemas.goal import GoalCreate, GoalUpdate
from app.schemas.transaction import TransactionCreate
from app.services import ledger
from app.services.access import require_creation_access
from app.services.scope import can_view_goal, goal_viewer_ids
from app.utils.dates import utcnow
from app.utils.notifications import emit_event, goal_completed_email, send_email_via_sendgrid

logger = logging.getLogger(__name__)

GOAL_CATEGORY = "Caixinha"


async def get_visible_goal(goal_id: uuid.UUID, user: User, db: AsyncSession) -> Goal:
    """Private goals are reported as missing to users who cannot see them."""
    goal = await goal_crud.get_goal_by_id(goal_id, db)
    if goal is None or not await can_view_goal(goal, user.id, db):
        raise GoalNotFound("Goal not found")
    return goal


async def _require_manager(goal: Goal, user: User, db: AsyncSession) -> None:
    if goal.owner_type == OwnerType.user:
        if goal.owner_id == user.id:
            return
    else:
        participant = await goal_crud.get_participant(goal.id, user.id, db)
        if participant is not None and participant.role == VaultRole.owner:
            return
        vault = await vault_crud.get_vault_by_id(goal.owner_id, db)
        if vault is not None and vault.owner_id == user.id:
            return
    raise PermissionDenied("Only the goal owner can do this")


async def list_goals(owner: Owner, user: User, db: AsyncSession, featured_only: bool = False) -> List[Goal]:
    """
    Personal workspace: the user's goals plus personal goals shared with them.
    Vault workspace: the vault's shared goals plus private ones the user joined.
    """
    if owner.is_personal:
        goals = list(await goal_crud.get_goals_for_owner(owner, db, featured_only))
        seen = {goal.id for goal in goals}
        for goal in await goal_crud.get_goals_with_participant(user.id, db):
            if goal.id in seen or goal.owner_type != OwnerType.user:
                continue
            if featured_only and not goal.is_featured:
                continue
            goals.append(goal)
        return goals

    visible = []
    for goal in await goal_crud.get_goals_for_owner(owner, db, featured_only):
        if goal.visibility == GoalVisibility.shared or await goal_crud.get_participant(goal.id, user.id, db):
            visible.append(goal)
    return visible


@with_db_retry()
async def create_goal(goal_in: GoalCreate, owner: Owner, actor: User, db: AsyncSession, now: Optional[datetime] = None) -> Goal:
    await require_creation_access(actor, owner, db, now)
    target = ledger.to_amount(goal_in.target_amount, field="target_amount")

    goal = Goal(
        name=goal_in.name.strip(),
        emoji=goal_in.emoji,
        target_amount=target,
        current_amount=Decimal("0"),
        visibility=goal_in.visibility,
        is_featured=goal_in.is_featured,
    )
    goal.set_owner(owner)
    db.add(goal)
    await db.flush()
    goal_crud.add_participant(goal.id, actor.id, db, role=VaultRole.owner)
    await db.commit()
    await db.refresh(goal)
    logger.info(f"Created goal {goal.id} '{goal.name}' for {owner}, target {target}")
    return goal


async def update_goal(goal_id: uuid.UUID, goal_in: GoalUpdate, user: User, db: AsyncSession) -> Goal:
    goal = await get_visible_goal(goal_id, user, db)
    await _require_manager(goal, user, db)
    changes = goal_in.model_dump(exclude_unset=True)
    if "target_amount" in changes:
        changes["target_amount"] = ledger.to_amount(changes["target_amount"], field="target_amount")
    if "name" in changes:
        if not changes["name"]:
            raise ValidationError("name cannot be empty", field="name")
        changes["name"] = changes["name"].strip()
    if "emoji" in changes and not changes["emoji"]:
        raise ValidationError("emoji cannot be empty", field="emoji")

    for field, value in changes.items():
        setattr(goal, field, value)
    await db.commit()
    await db.refresh(goal)
    return goal


async def delete_goal(goal_id: uuid.UUID, user: User, db: AsyncSession) -> None:
    """Linked transactions stay, with their account effects; only the goal link is cleared."""
    goal = await get_visible_goal(goal_id, user, db)
    await _require_manager(goal, user, db)
    try:
        detached = await transaction_crud.detach_goal(goal.id, db)
        await goal_crud.delete_goal(goal, db)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info(f"Deleted goal {goal_id}; detached {detached} transaction(s)")


# ── funding ─────────────────────────────────────────────────────────────────
async def _move(
    goal: Goal,
    movement: GoalMovement,
    amount: Any,
    owner: Owner,
    actor: User,
    db: AsyncSession,
    account_id: Optional[uuid.UUID],
    description: Optional[str],
    date: Optional[datetime],
    now: Optional[datetime],
) -> Transaction:
    now = now or utcnow()
    value = ledger.to_amount(amount)
    before = Decimal(goal.current_amount or 0)
    is_deposit = movement == GoalMovement.deposit

    tx_in = TransactionCreate(
        description=description or (f"Depósito em {goal.name}" if is_deposit else f"Resgate de {goal.name}"),
        amount=value,
        type=TransactionType.transfer,
        category=GOAL_CATEGORY,
        payment_method=PaymentMethod.transfer if account_id else None,
        date=date or now,
        source_account_id=account_id if is_deposit else None,
        destination_account_id=None if is_deposit else account_id,
        goal_id=goal.id,
        goal_movement=movement,
    )
    tx = await ledger.post_transaction(tx_in, owner, actor, db, now=now)

    after = await goal_crud.get_current_amount(goal.id, db)
    logger.info(f"Goal {goal.id} {movement.value} {value}: {before} -> {after}")

    if is_deposit and before < goal.target_amount <= after:
        await _celebrate(goal, after, db)
    return tx


async def deposit(
    goal_id: uuid.UUID,
    amount: Any,
    owner: Owner,
    actor: User,
    db: AsyncSession,
    account_id: Optional[uuid.UUID] = None,
    description: Optional[str] = None,
    date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    """``current_amount += amount``; debits ``account_id`` when given. Never clamped."""
    goal = await get_visible_goal(goal_id, actor, db)
    return await _move(goal, GoalMovement.deposit, amount, owner, actor, db, account_id, description, date, now)


async def withdraw(
    goal_id: uuid.UUID,
    amount: Any,
    owner: Owner,
    actor: User,
    db: AsyncSession,
    account_id: Optional[uuid.UUID] = None,
    description: Optional[str] = None,
    date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    """``current_amount -= amount``; credits ``account_id`` when given. May go below zero."""
    goal = await get_visible_goal(goal_id, actor, db)
    return await _move(goal, GoalMovement.withdrawal, amount, owner, actor, db, account_id, description, date, now)


async def _celebrate(goal: Goal, current_amount: Decimal, db: AsyncSession) -> None:
    viewer_ids = await goal_viewer_ids(goal, db)
    await emit_event(
        db,
        viewer_ids,
        NotificationType.goal_completed,
        title=f"{goal.emoji} Meta atingida!",
        message=f"A caixinha '{goal.name}' chegou a R$ {current_amount:.2f} de R$ {goal.target_amount:.2f}.",
        link=f"/goals/{goal.id}",
    )
    body = goal_completed_email(goal.name, current_amount, goal.target_amount)
    for user in await user_crud.get_users_by_ids(viewer_ids, db):
        await send_email_via_sendgrid(user.email, f"Meta atingida: {goal.name}", body)


async def goal_transactions(goal_id: uuid.UUID, user: User, db: AsyncSession) -> List[Transaction]:
    goal = await get_visible_goal(goal_id, user, db)
    return await transaction_crud.get_transactions_for_goal(goal.id, db)


# ── visibility / participants ───────────────────────────────────────────────
async def change_visibility(
    goal_id: uuid.UUID,
    new_visibility: GoalVisibility,
    confirmed: bool,
    actor: User,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Goal:
    """
    Explicit private <-> shared transition. Each one is stored with the list
    of users who can see the goal afterwards.
    """
    if not confirmed:
        raise ValidationError("Changing who can see a goal must be confirmed", field="confirmed")
    goal = await get_visible_goal(goal_id, actor, db)
    await _require_manager(goal, actor, db)
    if goal.visibility == new_visibility:
        raise ValidationError(f"Goal is already {new_visibility.value}", field="visibility")

    previous = goal.visibility
    goal.visibility = new_visibility
    goal.updated_at = now or utcnow()
    viewer_ids = await goal_viewer_ids(goal, db)
    db.add(
        GoalVisibilityChange(
            goal_id=goal.id,
            actor_id=actor.id,
            from_visibility=previous,
            to_visibility=new_visibility,
            participant_ids=[str(user_id) for user_id in viewer_ids],
            created_at=goal.updated_at,
        )
    )
    await db.commit()
    await db.refresh(goal)
    logger.info(
        f"Goal {goal.id} visibility {previous.value} -> {new_visibility.value} by {actor.id}; "
        f"visible to {len(viewer_ids)} user(s)"
    )
    return goal


async def visibility_history(goal_id: uuid.UUID, user: User, db: AsyncSession) -> List[GoalVisibilityChange]:
    goal = await get_visible_goal(goal_id, user, db)
    return await goal_crud.get_visibility_history(goal.id, db)


async def join_goal(goal: Goal, user_id: uuid.UUID, db: AsyncSession) -> GoalParticipant:
    """Stage ``user_id`` as a participant; vault goals only take vault members."""
    if goal.owner_type == OwnerType.vault and not await vault_crud.is_member(goal.owner_id, user_id, db):
        raise NotAMember("Only vault members can join this goal")
    if await goal_crud.get_participant(goal.id, user_id, db) is not None:
        raise ValidationError("User already participates in this goal", field="user_id")
    return goal_crud.add_participant(goal.id, user_id, db)


async def add_participant(goal_id: uuid.UUID, user_id: uuid.UUID, actor: User, db: AsyncSession) -> GoalParticipant:
    goal = await get_visible_goal(goal_id, actor, db)
    await _require_manager(goal, actor, db)
    if await user_crud.get_user_by_id(user_id, db) is None:
        raise NotFound("User not found")
    participant = await join_goal(goal, user_id, db)
    await db.commit()
    await db.refresh(participant)
    logger.info(f"User {user_id} added to goal {goal.id}")
    return participant


async def remove_participant(goal_id: uuid.UUID, user_id: uuid.UUID, actor: User, db: AsyncSession) -> None:
    """The manager may remove anyone but the owner; participants may leave."""
    goal = await get_visible_goal(goal_id, actor, db)
    if user_id != actor.id:
        await _require_manager(goal, actor, db)
    participant = await goal_crud.get_participant(goal.id, user_id, db)
    if participant is None:
        raise NotFound("Participant not found")
    if participant.role == VaultRole.owner:
        raise ValidationError("The goal owner cannot be removed", field="user_id")
    await goal_crud.remove_participant(goal.id, user_id, db)
    await db.commit()
    logger.info(f"User {user_id} removed from goal {goal.id}")


async def list_participants(goal_id: uuid.UUID, user: User, db: AsyncSession) -> List[GoalParticipant]:
    goal = await get_visible_goal(goal_id, user, db)
    return await goal_crud.get_participants(goal.id, db)


async def set_featured(goal_id: uuid.UUID, value: bool, user: User, db: AsyncSession) -> Goal:
    """Idempotent; setting the current value writes nothing."""
    goal = await get_visible_goal(goal_id, user, db)
    if goal.is_featured != value:
        goal.is_featured = value
        await db.commit()
        await db.refresh(goal)
    return goal
