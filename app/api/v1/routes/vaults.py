# app/api/v1/routes/vaults.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.api.deps import get_current_user
from app.schemas.vault import VaultCreate, VaultRead, VaultUpdate, VaultMemberRead
from app.services import vaults as vault_service

router = APIRouter(prefix="/vaults", tags=["Vaults"])

@router.get("", response_model=List[VaultRead])
async def read_vaults(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.list_vaults(user, db)

@router.post("", response_model=VaultRead, status_code=status.HTTP_201_CREATED)
async def create_vault(
    vault_in: VaultCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.create_vault(vault_in, user, db)

@router.get("/{vault_id}", response_model=VaultRead)
async def read_vault(
    vault_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.get_vault_for_member(vault_id, user, db)

@router.patch("/{vault_id}", response_model=VaultRead)
async def update_vault(
    vault_id: uuid.UUID,
    vault_in: VaultUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.update_vault(vault_id, vault_in, user, db)

@router.get("/{vault_id}/members", response_model=List[VaultMemberRead])
async def read_members(
    vault_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.list_members(vault_id, user, db)

@router.delete("/{vault_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    vault_id: uuid.UUID,
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    await vault_service.remove_member(vault_id, user_id, user, db)
