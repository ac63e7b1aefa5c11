# app/crud/transaction.py
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc, and_, or_, func, update
from app.models.transaction import GoalMovement, Transaction, TransactionType
from app.core.owner import Owner
from typing import List, Optional, Iterable
import uuid

def _scope(owner: Owner, extra_goal_ids: Iterable[uuid.UUID]):
    goal_ids = list(extra_goal_ids)
    scope = Transaction.owned_by(owner)
    if goal_ids:
        scope = or_(scope, Transaction.goal_id.in_(goal_ids))
    return scope

async def get_transactions_for_owner(
    owner: Owner,
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tx_type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    extra_goal_ids: Iterable[uuid.UUID] = (),
) -> List[Transaction]:
    """
    Transactions owned by ``owner``, newest first, optionally limited to the
    half-open date range [start, end). ``extra_goal_ids`` widens the scope to
    movements into those goals recorded under another owner.
    """
    query = select(Transaction).where(_scope(owner, extra_goal_ids))
    if start is not None:
        query = query.where(Transaction.date >= start)
    if end is not None:
        query = query.where(Transaction.date < end)
    if tx_type is not None:
        query = query.where(Transaction.type == tx_type)
    if category:
        query = query.where(func.lower(Transaction.category) == category.lower())
    result = await db.execute(
        query.order_by(desc(Transaction.date), desc(Transaction.created_at)).execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def get_transactions_for_goal(goal_id: uuid.UUID, db: AsyncSession) -> List[Transaction]:
    result = await db.execute(
        select(Transaction).where(Transaction.goal_id == goal_id).order_by(desc(Transaction.date))
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def get_transaction_by_id(transaction_id: uuid.UUID, db: AsyncSession) -> Optional[Transaction]:
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()

async def detach_goal(goal_id: uuid.UUID, db: AsyncSession) -> int:
    """
    Clear the goal link of a deleted goal's movements. Deposits become
    expenses and withdrawals become income, so the rows keep their account
    effects; ``goal_movement`` stays as a marker of where they came from.
    """
    detached = 0
    for movement, tx_type in (
        (GoalMovement.deposit, TransactionType.expense),
        (GoalMovement.withdrawal, TransactionType.income),
    ):
        result = await db.execute(
            update(Transaction)
            .where(Transaction.goal_id == goal_id, Transaction.goal_movement == movement)
            .values(goal_id=None, type=tx_type)
            .execution_options(synchronize_session=False)
        )
        detached += result.rowcount
    return detached
async def latest_change_in_range(
    owner: Owner,
    start: datetime,
    end: datetime,
    db: AsyncSession,
    extra_goal_ids: Iterable[uuid.UUID] = (),
) -> Optional[datetime]:
    """
    max(created_at, updated_at) over the owner's transactions dated in
    [start, end), computed in one aggregate query.
    """
    result = await db.execute(
        select(func.max(func.coalesce(Transaction.updated_at, Transaction.created_at)))
        .where(
            and_(
                _scope(owner, extra_goal_ids),
                Transaction.date >= start,
                Transaction.date < end,
            )
        )
    )
    return result.scalar_one_or_none()

async def get_transaction_dates(
    owner: Owner,
    db: AsyncSession,
    extra_goal_ids: Iterable[uuid.UUID] = (),
) -> List[datetime]:
    result = await db.execute(
        select(Transaction.date).where(_scope(owner, extra_goal_ids)).order_by(desc(Transaction.date))
    )
    return [row[0] for row in result.all()]
