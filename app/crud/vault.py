# app/crud/vault.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete
from app.models.vault import Vault, VaultMember, VaultRole
from typing import List, Optional
import uuid

async def get_vault_by_id(vault_id: uuid.UUID, db: AsyncSession) -> Optional[Vault]:
    result = await db.execute(select(Vault).where(Vault.id == vault_id))
    return result.scalar_one_or_none()

async def get_membership(vault_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[VaultMember]:
    result = await db.execute(
        select(VaultMember).where(VaultMember.vault_id == vault_id, VaultMember.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def is_member(vault_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> bool:
    return await get_membership(vault_id, user_id, db) is not None

async def get_members(vault_id: uuid.UUID, db: AsyncSession) -> List[VaultMember]:
    result = await db.execute(
        select(VaultMember).where(VaultMember.vault_id == vault_id).order_by(VaultMember.joined_at)
    )
    return result.scalars().all()

async def get_member_ids(vault_id: uuid.UUID, db: AsyncSession) -> List[uuid.UUID]:
    result = await db.execute(select(VaultMember.user_id).where(VaultMember.vault_id == vault_id))
    return [row[0] for row in result.all()]

async def get_vaults_for_user(user_id: uuid.UUID, db: AsyncSession) -> List[Vault]:
    """Vaults in which the user is a member (owner included)."""
    result = await db.execute(
        select(Vault)
        .join(VaultMember, VaultMember.vault_id == Vault.id)
        .where(VaultMember.user_id == user_id)
        .order_by(Vault.created_at)
    )
    return result.scalars().all()

def add_member(vault_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession, role: VaultRole = VaultRole.member) -> VaultMember:
    """Stage a membership row; the caller commits."""
    member = VaultMember(vault_id=vault_id, user_id=user_id, role=role)
    db.add(member)
    return member

async def remove_member(vault_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(
        delete(VaultMember).where(VaultMember.vault_id == vault_id, VaultMember.user_id == user_id)
    )
    return result.rowcount
