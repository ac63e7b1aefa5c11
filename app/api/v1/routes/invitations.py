# app/api/v1/routes/invitations.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.api.deps import get_current_user
from app.schemas.invitation import InvitationCreate, InvitationRead
from app.services import vaults as vault_service

router = APIRouter(prefix="/invitations", tags=["Invitations"])

@router.get("/received", response_model=List[InvitationRead])
async def read_received(
    pending_only: bool = Query(True),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.received_invitations(user, db, pending_only)

@router.get("/sent", response_model=List[InvitationRead])
async def read_sent(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.sent_invitations(user, db)

@router.post("", response_model=InvitationRead, status_code=status.HTTP_201_CREATED)
async def send_invitation(
    invitation_in: InvitationCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.invite(invitation_in, user, db)

@router.post("/{invitation_id}/accept", response_model=InvitationRead)
async def accept_invitation(
    invitation_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.accept_invitation(invitation_id, user, db)

@router.post("/{invitation_id}/decline", response_model=InvitationRead)
async def decline_invitation(
    invitation_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await vault_service.decline_invitation(invitation_id, user, db)

@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_invitation(
    invitation_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    await vault_service.cancel_invitation(invitation_id, user, db)
