# app/services/ledger.py
"""
Ledger engine: every change to an account balance or goal amount goes
through here.

A transaction's effect on balances is derived from its own fields by
``effects_of``. Posting applies that effect, editing reverses the stored
effect before applying the new one, and deleting reverses it. Each of these
is a single database transaction: the row change and the SQL-level
``balance = balance + delta`` updates commit or roll back together.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import User
from app.core.db_utils import with_db_retry
from app.core.errors import (
    AccountNotFound,
    CrossScopeAccountReference,
    GoalNotFound,
    InvalidAmount,
    NotAMember,
    PermissionDenied,
    TransactionNotFound,
    ValidationError,
)
from app.core.owner import Owner, OwnerType
from app.crud import account as account_crud
from app.crud import goal as goal_crud
from app.crud import report as report_crud
from app.crud import transaction as transaction_crud
from app.crud import vault as vault_crud
from app.models.account import Account, AccountType
from app.models.goal import GoalVisibility
from app.models.transaction import GoalMovement, Transaction, TransactionType
from app.schemas.account import AccountCreate, AccountUpdate
from app.schemas.transaction import TransactionCreate, TransactionUpdate
from app.services.access import require_creation_access
from app.services.scope import can_view_goal
from app.utils.dates import month_bounds, month_key, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_amount(value: Any, field: str = "amount") -> Decimal:
    """Parse a money value, rounded to cents; must be strictly positive."""
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount("Amount must be a number", field=field)
    if amount <= 0:
        raise InvalidAmount(field=field)
    return amount


# ── effects ─────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Effects:
    accounts: Tuple[Tuple[uuid.UUID, Decimal], ...] = ()
    goal: Optional[Tuple[uuid.UUID, Decimal]] = None

    def reversed(self) -> "Effects":
        goal = (self.goal[0], -self.goal[1]) if self.goal else None
        return Effects(tuple((account_id, -delta) for account_id, delta in self.accounts), goal)


def effects_of(tx: Transaction) -> Effects:
    """
    Balance and goal deltas implied by a transaction.

    An installment purchase moves its per-installment ``amount`` like any
    other expense; which installments are paid is tracked separately and
    never touches balances.
    """
    amount = Decimal(tx.amount)
    accounts: List[Tuple[uuid.UUID, Decimal]] = []

    if tx.type == TransactionType.income:
        if tx.destination_account_id:
            accounts.append((tx.destination_account_id, amount))
    elif tx.type == TransactionType.expense:
        if tx.source_account_id:
            accounts.append((tx.source_account_id, -amount))
    else:
        if tx.source_account_id:
            accounts.append((tx.source_account_id, -amount))
        if tx.destination_account_id:
            accounts.append((tx.destination_account_id, amount))

    goal = None
    if tx.goal_id is not None and tx.goal_movement is not None:
        goal = (tx.goal_id, amount if tx.goal_movement == GoalMovement.deposit else -amount)
    return Effects(tuple(accounts), goal)


async def _apply(effects: Effects, db: AsyncSession) -> None:
    for account_id, delta in effects.accounts:
        if await account_crud.apply_balance_delta(account_id, delta, db) != 1:
            raise AccountNotFound(f"Account {account_id} not found")
    if effects.goal is not None:
        goal_id, delta = effects.goal
        if await goal_crud.apply_amount_delta(goal_id, delta, db) != 1:
            raise GoalNotFound(f"Goal {goal_id} not found")


# ── validation ──────────────────────────────────────────────────────────────
def _check_shape(
    tx_type: TransactionType,
    source_id: Optional[uuid.UUID],
    destination_id: Optional[uuid.UUID],
    goal_id: Optional[uuid.UUID],
    goal_movement: Optional[GoalMovement],
    total_installments: Optional[int] = None,
) -> None:
    if goal_movement is not None and total_installments:
        raise ValidationError("Goal movements cannot be split in installments", field="total_installments")

    if goal_id is not None:
        # The goal stands in for the missing side of a transfer
        if tx_type != TransactionType.transfer:
            raise ValidationError("Goal movements are recorded as transfers", field="type")
        if goal_movement == GoalMovement.deposit and destination_id is not None:
            raise ValidationError("A goal deposit has no destination account", field="destination_account_id")
        if goal_movement == GoalMovement.withdrawal and source_id is not None:
            raise ValidationError("A goal withdrawal has no source account", field="source_account_id")
        return

    if goal_movement is not None:
        # Movement of a deleted goal: kept as expense or income, account side optional
        expected = TransactionType.expense if goal_movement == GoalMovement.deposit else TransactionType.income
        if tx_type != expected:
            raise ValidationError(f"This movement of a deleted goal is recorded as {expected.value}", field="type")
        if expected == TransactionType.expense and destination_id is not None:
            raise ValidationError("Expense takes no destination account", field="destination_account_id")
        if expected == TransactionType.income and source_id is not None:
            raise ValidationError("Income takes no source account", field="source_account_id")
        return

    if tx_type == TransactionType.income:
        if destination_id is None:
            raise ValidationError("Income requires a destination account", field="destination_account_id")
        if source_id is not None:
            raise ValidationError("Income takes no source account", field="source_account_id")
    elif tx_type == TransactionType.expense:
        if source_id is None:
            raise ValidationError("Expense requires a source account", field="source_account_id")
        if destination_id is not None:
            raise ValidationError("Expense takes no destination account", field="destination_account_id")
    else:
        if source_id is None:
            raise ValidationError("Transfer requires a source account", field="source_account_id")
        if destination_id is None:
            raise ValidationError("Transfer requires a destination account", field="destination_account_id")
        if source_id == destination_id:
            raise ValidationError("Source and destination must be different accounts", field="destination_account_id")


async def _resolve_account(account_id: uuid.UUID, owner: Owner, db: AsyncSession) -> Account:
    """
    An account may be used by a transaction of ``owner`` when ``owner`` holds
    it, or, inside a vault, when it is a member's personal account shared
    with that vault.
    """
    account = await account_crud.get_account_by_id(account_id, db)
    if account is None:
        raise AccountNotFound(f"Account {account_id} not found")
    if account.owner == owner:
        return account
    if (
        not owner.is_personal
        and account.owner_type == OwnerType.user
        and account.is_visible_in(owner.vault_id)
        and await vault_crud.is_member(owner.vault_id, account.owner_id, db)
    ):
        return account
    logger.warning(f"Account {account_id} rejected for transaction owned by {owner}")
    raise CrossScopeAccountReference("Account does not belong to this workspace")


async def _validate_references(
    owner: Owner,
    actor: User,
    db: AsyncSession,
    tx_type: TransactionType,
    source_id: Optional[uuid.UUID],
    destination_id: Optional[uuid.UUID],
    goal_id: Optional[uuid.UUID],
    goal_movement: Optional[GoalMovement],
    total_installments: Optional[int] = None,
) -> None:
    _check_shape(tx_type, source_id, destination_id, goal_id, goal_movement, total_installments)
    for account_id in (source_id, destination_id):
        if account_id is not None:
            await _resolve_account(account_id, owner, db)
    if goal_id is not None:
        goal = await goal_crud.get_goal_by_id(goal_id, db)
        if goal is None or not await can_view_goal(goal, actor.id, db):
            raise GoalNotFound("Goal not found")


# ── transactions ────────────────────────────────────────────────────────────
@with_db_retry()
async def post_transaction(
    tx_in: TransactionCreate,
    owner: Owner,
    actor: User,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Transaction:
    now = now or utcnow()
    await require_creation_access(actor, owner, db, now)

    amount = to_amount(tx_in.amount)
    if (tx_in.goal_id is None) != (tx_in.goal_movement is None):
        raise ValidationError("goal_id and goal_movement must be given together", field="goal_movement")
    await _validate_references(
        owner, actor, db, tx_in.type,
        tx_in.source_account_id, tx_in.destination_account_id,
        tx_in.goal_id, tx_in.goal_movement, tx_in.total_installments,
    )
    if tx_in.first_installment_paid and not tx_in.total_installments:
        raise ValidationError("Only installment purchases have installments to mark", field="first_installment_paid")

    tx = Transaction(
        description=tx_in.description.strip(),
        amount=amount,
        type=tx_in.type,
        category=tx_in.category.strip(),
        payment_method=tx_in.payment_method,
        date=to_naive_utc(tx_in.date),
        source_account_id=tx_in.source_account_id,
        destination_account_id=tx_in.destination_account_id,
        goal_id=tx_in.goal_id,
        goal_movement=tx_in.goal_movement,
        actor_id=actor.id,
        is_recurring=tx_in.is_recurring,
        total_installments=tx_in.total_installments,
        paid_installments=[1] if tx_in.first_installment_paid else [],
        created_at=now,
        updated_at=now,
    )
    tx.set_owner(owner)
    effects = effects_of(tx)

    db.add(tx)
    try:
        await db.flush()
        await _apply(effects, db)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(tx)

    logger.info(f"Posted {tx.type.value} {tx.id} amount={amount} effects={effects} by user {actor.id}")
    return tx


async def get_owned_transaction(transaction_id: uuid.UUID, owner: Owner, db: AsyncSession) -> Transaction:
    tx = await transaction_crud.get_transaction_by_id(transaction_id, db)
    if tx is None or tx.owner != owner:
        raise TransactionNotFound("Transaction not found")
    return tx


async def _report_owners(tx: Transaction, owner: Owner, db: AsyncSession) -> List[Owner]:
    """Owners whose monthly reports include ``tx``: its own, and the vault of a shared goal it funds."""
    owners = [owner]
    if tx.goal_id is not None:
        goal = await goal_crud.get_goal_by_id(tx.goal_id, db)
        if (
            goal is not None
            and not goal.owner.is_personal
            and goal.visibility == GoalVisibility.shared
            and goal.owner != owner
        ):
            owners.append(goal.owner)
    return owners


_REQUIRED_FIELDS = ("description", "amount", "type", "category", "date", "is_recurring")


@with_db_retry()
async def update_transaction(
    transaction_id: uuid.UUID,
    tx_in: TransactionUpdate,
    owner: Owner,
    actor: User,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Transaction:
    """Correction edit: reverse the stored effect, then apply the edited one."""
    now = now or utcnow()
    tx = await get_owned_transaction(transaction_id, owner, db)
    original = effects_of(tx)
    original_month = month_key(tx.date)

    changes = tx_in.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be empty", field=field)
    if "amount" in changes:
        changes["amount"] = to_amount(changes["amount"])
    if "date" in changes:
        changes["date"] = to_naive_utc(changes["date"])
    for field in ("description", "category"):
        if field in changes:
            changes[field] = changes[field].strip()

    merged = {
        name: changes.get(name, getattr(tx, name))
        for name in ("type", "source_account_id", "destination_account_id")
    }
    await _validate_references(
        owner, actor, db, merged["type"],
        merged["source_account_id"], merged["destination_account_id"],
        tx.goal_id, tx.goal_movement, tx.total_installments,
    )

    try:
        for field, value in changes.items():
            setattr(tx, field, value)
        tx.updated_at = now
        updated = effects_of(tx)
        await _apply(original.reversed(), db)
        await _apply(updated, db)
        if month_key(tx.date) != original_month:
            for report_owner in await _report_owners(tx, owner, db):
                await report_crud.invalidate_reports(report_owner, original_month, now, db)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(tx)

    logger.info(f"Edited transaction {tx.id}: reversed {original}, applied {updated}")
    return tx


@with_db_retry()
async def delete_transaction(
    transaction_id: uuid.UUID,
    owner: Owner,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> None:
    now = now or utcnow()
    tx = await get_owned_transaction(transaction_id, owner, db)
    reversal = effects_of(tx).reversed()
    try:
        await _apply(reversal, db)
        # The deleted row no longer shows up in the month's timestamps
        for report_owner in await _report_owners(tx, owner, db):
            await report_crud.invalidate_reports(report_owner, month_key(tx.date), now, db)
        await db.delete(tx)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info(f"Deleted transaction {transaction_id}, applied reversal {reversal}")


# ── reads ───────────────────────────────────────────────────────────────────
async def list_visible_accounts(owner: Owner, db: AsyncSession) -> List[Account]:
    accounts = list(await account_crud.get_accounts_for_owner(owner, db))
    if not owner.is_personal:
        member_ids = await vault_crud.get_member_ids(owner.vault_id, db)
        shared = await account_crud.get_personal_accounts_of_users(member_ids, db)
        accounts.extend(a for a in shared if a.is_visible_in(owner.vault_id))
    return accounts


async def shared_goal_ids(owner: Owner, db: AsyncSession) -> List[uuid.UUID]:
    """Shared vault goals; members' contributions to them show up in the vault."""
    if owner.is_personal:
        return []
    goals = await goal_crud.get_goals_for_owner(owner, db)
    return [goal.id for goal in goals if goal.visibility == GoalVisibility.shared]


async def list_transactions(
    owner: Owner,
    db: AsyncSession,
    month_year: Optional[str] = None,
    tx_type: Optional[TransactionType] = None,
    category: Optional[str] = None,
) -> List[Transaction]:
    start = end = None
    if month_year:
        try:
            start, end = month_bounds(month_year)
        except ValueError as e:
            raise ValidationError(str(e), field="month_year")
    return await transaction_crud.get_transactions_for_owner(
        owner, db, start, end, tx_type, category,
        extra_goal_ids=await shared_goal_ids(owner, db),
    )


async def current_month_transactions(owner: Owner, db: AsyncSession, now: Optional[datetime] = None) -> List[Transaction]:
    return await list_transactions(owner, db, month_year=month_key(now or utcnow()))


async def summarize_balances(owner: Owner, db: AsyncSession) -> Dict[str, Decimal]:
    liquid = invested = debt = ZERO
    for account in await list_visible_accounts(owner, db):
        balance = Decimal(account.balance or 0)
        if account.type == AccountType.credit_card:
            # A negative card balance is consumed credit
            if balance < 0:
                debt += -balance
        elif account.type == AccountType.investment:
            invested += balance
        else:
            liquid += balance
    return {
        "liquid": liquid,
        "invested": invested,
        "credit_card_debt": debt,
        "net_worth": liquid + invested - debt,
    }


# ── accounts ────────────────────────────────────────────────────────────────
async def _check_visible_in(vault_ids: List[uuid.UUID], owner: Owner, db: AsyncSession) -> List[str]:
    if not vault_ids:
        return []
    if not owner.is_personal:
        raise ValidationError("Only personal accounts can be shown in other vaults", field="visible_in")
    for vault_id in vault_ids:
        if not await vault_crud.is_member(vault_id, owner.user_id, db):
            raise NotAMember(f"You are not a member of vault {vault_id}")
    return list(dict.fromkeys(str(vault_id) for vault_id in vault_ids))


@with_db_retry()
async def create_account(
    account_in: AccountCreate,
    owner: Owner,
    actor: User,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Account:
    await require_creation_access(actor, owner, db, now)
    visible_in = await _check_visible_in(account_in.visible_in, owner, db)

    is_card = account_in.type == AccountType.credit_card
    try:
        opening = ZERO if is_card else Decimal(str(account_in.balance)).quantize(CENT)
    except InvalidOperation:
        raise ValidationError("Balance must be a number", field="balance")

    account = Account(
        name=account_in.name.strip(),
        bank=account_in.bank.strip(),
        type=account_in.type,
        balance=opening,
        credit_limit=account_in.credit_limit if is_card else None,
        logo_url=account_in.logo_url,
        visible_in=visible_in,
    )
    account.set_owner(owner)
    db.add(account)
    await db.commit()
    await db.refresh(account)
    logger.info(f"Created {account.type.value} account {account.id} for {owner} with opening balance {opening}")
    return account


async def get_owned_account(account_id: uuid.UUID, owner: Owner, db: AsyncSession) -> Account:
    account = await account_crud.get_account_by_id(account_id, db)
    if account is None:
        raise AccountNotFound("Account not found")
    if account.owner != owner:
        raise PermissionDenied("This account belongs to another workspace")
    return account


async def update_account(account_id: uuid.UUID, account_in: AccountUpdate, owner: Owner, db: AsyncSession) -> Account:
    """Edit descriptive fields. The balance is never writable here."""
    account = await get_owned_account(account_id, owner, db)
    changes = account_in.model_dump(exclude_unset=True)

    for field in ("name", "bank"):
        if field in changes:
            if not changes[field]:
                raise ValidationError(f"{field} cannot be empty", field=field)
            changes[field] = changes[field].strip()
    if "visible_in" in changes:
        changes["visible_in"] = await _check_visible_in(changes["visible_in"] or [], owner, db)
    if changes.get("credit_limit") is not None and account.type != AccountType.credit_card:
        raise ValidationError("Only credit cards have a credit limit", field="credit_limit")

    for field, value in changes.items():
        setattr(account, field, value)
    await db.commit()
    await db.refresh(account)
    return account


async def delete_account(account_id: uuid.UUID, owner: Owner, db: AsyncSession) -> None:
    account = await get_owned_account(account_id, owner, db)
    references = await account_crud.count_transactions_referencing(account.id, db)
    if references:
        raise ValidationError(
            f"Account is used by {references} transaction(s); delete them first",
            field="account_id",
        )
    await account_crud.delete_account(account, db)
    logger.info(f"Deleted account {account_id}")
