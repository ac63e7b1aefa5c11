# app/crud/account.py
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update, func, or_
from app.models.account import Account
from app.models.transaction import Transaction
from app.core.owner import Owner, OwnerType
from typing import List, Optional
import uuid

async def get_account_by_id(account_id: uuid.UUID, db: AsyncSession) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.id == account_id).execution_options(populate_existing=True))
    return result.scalar_one_or_none()

async def get_accounts_for_owner(owner: Owner, db: AsyncSession) -> List[Account]:
    result = await db.execute(
        select(Account).where(Account.owned_by(owner)).order_by(Account.created_at)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def get_personal_accounts_of_users(user_ids: List[uuid.UUID], db: AsyncSession) -> List[Account]:
    if not user_ids:
        return []
    result = await db.execute(
        select(Account)
        .where(Account.owner_type == OwnerType.user, Account.owner_id.in_(user_ids))
        .order_by(Account.created_at)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def get_balance(account_id: uuid.UUID, db: AsyncSession) -> Optional[Decimal]:
    result = await db.execute(select(Account.balance).where(Account.id == account_id))
    return result.scalar_one_or_none()

async def apply_balance_delta(account_id: uuid.UUID, delta: Decimal, db: AsyncSession) -> int:
    """
    Atomic in-database increment. Never read-then-write the balance in Python:
    two concurrent requests would lose one of the updates.
    """
    result = await db.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(balance=Account.balance + delta)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

async def count_transactions_referencing(account_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Transaction)
        .where(or_(Transaction.source_account_id == account_id, Transaction.destination_account_id == account_id))
    )
    return result.scalar_one() or 0

async def delete_account(account: Account, db: AsyncSession) -> None:
    await db.delete(account)
    await db.commit()
