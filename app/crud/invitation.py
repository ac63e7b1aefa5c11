# app/crud/invitation.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update, desc, or_
from app.models.invitation import Invitation, InvitationStatus, InvitationType
from typing import List, Optional
import uuid

async def get_invitation_by_id(invitation_id: uuid.UUID, db: AsyncSession) -> Optional[Invitation]:
    result = await db.execute(
        select(Invitation).where(Invitation.id == invitation_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()

async def get_pending_invitation(
    invitation_type: InvitationType,
    target_id: uuid.UUID,
    receiver_email: str,
    db: AsyncSession,
) -> Optional[Invitation]:
    result = await db.execute(
        select(Invitation).where(
            Invitation.type == invitation_type,
            Invitation.target_id == target_id,
            Invitation.receiver_email == receiver_email.lower(),
            Invitation.status == InvitationStatus.pending,
        )
    )
    return result.scalars().first()

async def get_received_invitations(user, db: AsyncSession, pending_only: bool = True) -> List[Invitation]:
    """Invitations addressed to the user, matched by id or by email."""
    query = select(Invitation).where(
        or_(Invitation.receiver_id == user.id, Invitation.receiver_email == user.email.lower())
    )
    if pending_only:
        query = query.where(Invitation.status == InvitationStatus.pending)
    # receiver_id may have been set by a bulk update at registration
    result = await db.execute(query.order_by(desc(Invitation.created_at)).execution_options(populate_existing=True))
    return result.scalars().all()

async def get_sent_invitations(sender_id: uuid.UUID, db: AsyncSession) -> List[Invitation]:
    result = await db.execute(
        select(Invitation).where(Invitation.sender_id == sender_id).order_by(desc(Invitation.created_at))
    )
    return result.scalars().all()

async def bind_invitations_to_user(user, db: AsyncSession) -> int:
    """Attach invitations sent to the user's email before they registered."""
    result = await db.execute(
        update(Invitation)
        .where(Invitation.receiver_email == user.email.lower(), Invitation.receiver_id.is_(None))
        .values(receiver_id=user.id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

async def delete_invitation(invitation: Invitation, db: AsyncSession) -> None:
    await db.delete(invitation)
    await db.commit()
