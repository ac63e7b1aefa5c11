# app/api/v1/routes/transactions.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.core.owner import Owner
from app.api.deps import get_current_user, get_workspace_owner
from app.models.transaction import TransactionType
from app.schemas.transaction import (
    TransactionCreate,
    TransactionRead,
    TransactionUpdate,
    InstallmentToggle,
)
from app.services import installments, ledger

router = APIRouter(prefix="/transactions", tags=["Transactions"])

@router.get("", response_model=List[TransactionRead])
async def read_transactions(
    month_year: Optional[str] = Query(None, description="YYYY-MM"),
    type: Optional[TransactionType] = Query(None),
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.list_transactions(owner, db, month_year, type, category)

@router.get("/current-month", response_model=List[TransactionRead])
async def read_current_month(
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.current_month_transactions(owner, db)

@router.post("", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    tx_in: TransactionCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.post_transaction(tx_in, owner, user, db)

@router.get("/{transaction_id}", response_model=TransactionRead)
async def read_transaction(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.get_owned_transaction(transaction_id, owner, db)

@router.patch("/{transaction_id}", response_model=TransactionRead)
async def update_transaction(
    transaction_id: uuid.UUID,
    tx_in: TransactionUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.update_transaction(transaction_id, tx_in, owner, user, db)

@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    await ledger.delete_transaction(transaction_id, owner, db)

@router.post("/{transaction_id}/installments/{number}", response_model=TransactionRead)
async def set_installment(
    transaction_id: uuid.UUID,
    number: int,
    body: InstallmentToggle,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    """Mark installment ``number`` paid or unpaid; omit ``paid`` to flip it."""
    if body.paid is None:
        return await installments.toggle_installment(transaction_id, number, owner, db)
    return await installments.mark_installment(transaction_id, number, body.paid, owner, db)
