# app/services/installments.py
"""
Installment purchases and recurring transactions.

A purchase split in N installments is a single transaction whose ``amount``
is the per-installment value. Which installments are paid is a set of
installment numbers; marking one paid is bookkeeping only and never moves
money (the ledger applied the row's ``amount`` once, when it was posted).
"""
import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError
from app.core.owner import Owner
from app.models.transaction import Transaction
from app.services import ledger
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


class InstallmentSet:
    """Sorted set of paid installment numbers, each in ``[1, total]``."""

    def __init__(self, total: int, paid: Iterable[int] = ()):
        if not isinstance(total, int) or total < 1:
            raise ValidationError("total_installments must be at least 1", field="total_installments")
        self.total = total
        self._paid = set()
        for number in paid:
            self.add(number)

    def _check(self, number: int) -> None:
        if isinstance(number, bool) or not isinstance(number, int) or not 1 <= number <= self.total:
            raise ValidationError(f"Installment must be between 1 and {self.total}", field="installment")

    def add(self, number: int) -> None:
        self._check(number)
        self._paid.add(number)

    def remove(self, number: int) -> None:
        self._check(number)
        self._paid.discard(number)

    def toggle(self, number: int) -> bool:
        """Flip ``number``; returns whether it is paid afterwards."""
        if number in self:
            self.remove(number)
            return False
        self.add(number)
        return True

    def __contains__(self, number: object) -> bool:
        return number in self._paid

    def __len__(self) -> int:
        return len(self._paid)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._paid))

    def to_list(self) -> List[int]:
        return sorted(self._paid)

    @property
    def remaining(self) -> int:
        return self.total - len(self._paid)

    @property
    def next_unpaid(self) -> Optional[int]:
        return next((n for n in range(1, self.total + 1) if n not in self._paid), None)

    def progress_percent(self) -> float:
        return len(self._paid) / self.total * 100


def installment_progress(tx: Transaction) -> Dict:
    installments = InstallmentSet(tx.total_installments, tx.paid_installments or [])
    amount = Decimal(tx.amount)
    return {
        "transaction_id": tx.id,
        "description": tx.description,
        "amount": amount,
        "total_installments": installments.total,
        "paid_installments": installments.to_list(),
        "paid_amount": amount * len(installments),
        "total_amount": amount * installments.total,
        "progress_percent": installments.progress_percent(),
        "remaining_installments": installments.remaining,
        "next_unpaid": installments.next_unpaid,
    }


async def _update_installments(
    transaction_id: uuid.UUID,
    owner: Owner,
    db: AsyncSession,
    change,
    now: Optional[datetime],
) -> Transaction:
    tx = await ledger.get_owned_transaction(transaction_id, owner, db)
    if not tx.is_installment:
        raise ValidationError("This transaction is not an installment purchase", field="installment")

    installments = InstallmentSet(tx.total_installments, tx.paid_installments or [])
    change(installments)
    # JSON column: assign a new list so the change is detected
    tx.paid_installments = installments.to_list()
    tx.updated_at = now or utcnow()
    await db.commit()
    await db.refresh(tx)
    logger.info(f"Transaction {tx.id} installments paid: {tx.paid_installments}/{tx.total_installments}")
    return tx


async def mark_installment(
    transaction_id: uuid.UUID,
    number: int,
    paid: bool,
    owner: Owner,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Transaction:
    def change(installments: InstallmentSet) -> None:
        if paid:
            installments.add(number)
        else:
            installments.remove(number)

    return await _update_installments(transaction_id, owner, db, change, now)


async def toggle_installment(
    transaction_id: uuid.UUID,
    number: int,
    owner: Owner,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Transaction:
    return await _update_installments(transaction_id, owner, db, lambda s: s.toggle(number), now)


def _normalize(description: str) -> str:
    return " ".join(description.lower().split())


def group_recurring(transactions: Sequence[Transaction]) -> List[Dict]:
    """
    Group recurring occurrences by description (case and spacing ignored).
    Groups and their members are ordered newest first.
    """
    ordered = sorted(
        (tx for tx in transactions if tx.is_recurring),
        key=lambda tx: tx.date,
        reverse=True,
    )
    groups: "OrderedDict[str, List[Transaction]]" = OrderedDict()
    for tx in ordered:
        groups.setdefault(_normalize(tx.description), []).append(tx)

    result = []
    for occurrences in groups.values():
        latest = occurrences[0]
        result.append({
            "description": latest.description,
            "category": latest.category,
            "type": latest.type,
            "amount": Decimal(latest.amount),
            "occurrences": len(occurrences),
            "last_date": latest.date,
            "transaction_ids": [tx.id for tx in occurrences],
        })
    return result


async def recurring_overview(owner: Owner, db: AsyncSession) -> Dict:
    transactions = await ledger.list_transactions(owner, db)
    return {
        "recurring": group_recurring(transactions),
        "installments": [installment_progress(tx) for tx in transactions if tx.is_installment],
    }
