# app/api/v1/routes/accounts.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.core.owner import Owner
from app.api.deps import get_current_user, get_workspace_owner
from app.schemas.account import AccountCreate, AccountRead, AccountUpdate, BalanceSummary
from app.services import ledger

router = APIRouter(prefix="/accounts", tags=["Accounts"])

@router.get("", response_model=List[AccountRead])
async def read_accounts(
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    """Accounts of the workspace, plus members' accounts shared into a vault."""
    return await ledger.list_visible_accounts(owner, db)

@router.get("/summary", response_model=BalanceSummary)
async def read_balance_summary(
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.summarize_balances(owner, db)

@router.post("", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_in: AccountCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.create_account(account_in, owner, user, db)

@router.get("/{account_id}", response_model=AccountRead)
async def read_account(
    account_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.get_owned_account(account_id, owner, db)

@router.patch("/{account_id}", response_model=AccountRead)
async def update_account(
    account_id: uuid.UUID,
    account_in: AccountUpdate,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await ledger.update_account(account_id, account_in, owner, db)

@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    await ledger.delete_account(account_id, owner, db)
