# app/services/vaults.py
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import User
from app.core.errors import (
    InvitationNotFound,
    NotAMember,
    NotFound,
    PermissionDenied,
    ValidationError,
    VaultNotFound,
)
from app.crud import goal as goal_crud
from app.crud import invitation as invitation_crud
from app.crud import user as user_crud
from app.crud import vault as vault_crud
from app.models.invitation import Invitation, InvitationStatus, InvitationType
from app.models.notification import NotificationType
from app.models.vault import Vault, VaultMember, VaultRole
from app.schemas.invitation import InvitationCreate
from app.schemas.vault import VaultCreate, VaultUpdate
from app.services import goals as goal_service
from app.services.access import require_full_access
from app.utils.dates import utcnow
from app.utils.notifications import emit_event, invitation_email, send_email_via_sendgrid

logger = logging.getLogger(__name__)


# ── vaults ──────────────────────────────────────────────────────────────────
async def create_vault(vault_in: VaultCreate, actor: User, db: AsyncSession, now: Optional[datetime] = None) -> Vault:
    """Gated: the creator needs full access and becomes the owner member."""
    require_full_access(actor, now)
    vault = Vault(
        name=vault_in.name.strip(),
        image_url=vault_in.image_url,
        is_private=vault_in.is_private,
        owner_id=actor.id,
    )
    db.add(vault)
    await db.flush()
    vault_crud.add_member(vault.id, actor.id, db, role=VaultRole.owner)
    await db.commit()
    await db.refresh(vault)
    logger.info(f"User {actor.id} created vault {vault.id} '{vault.name}'")
    return vault


async def get_vault_for_member(vault_id: uuid.UUID, user: User, db: AsyncSession) -> Vault:
    vault = await vault_crud.get_vault_by_id(vault_id, db)
    if vault is None:
        raise VaultNotFound("Vault not found")
    if not await vault_crud.is_member(vault_id, user.id, db):
        raise NotAMember("You are not a member of this vault")
    return vault


async def list_vaults(user: User, db: AsyncSession) -> List[Vault]:
    return await vault_crud.get_vaults_for_user(user.id, db)


async def list_members(vault_id: uuid.UUID, user: User, db: AsyncSession) -> List[VaultMember]:
    await get_vault_for_member(vault_id, user, db)
    return await vault_crud.get_members(vault_id, db)


async def update_vault(vault_id: uuid.UUID, vault_in: VaultUpdate, actor: User, db: AsyncSession) -> Vault:
    vault = await get_vault_for_member(vault_id, actor, db)
    if vault.owner_id != actor.id:
        raise PermissionDenied("Only the vault owner can edit it")
    changes = vault_in.model_dump(exclude_unset=True)
    if "name" in changes:
        if not changes["name"]:
            raise ValidationError("name cannot be empty", field="name")
        changes["name"] = changes["name"].strip()
    if changes.get("is_private") is None:
        changes.pop("is_private", None)
    for field, value in changes.items():
        setattr(vault, field, value)
    await db.commit()
    await db.refresh(vault)
    return vault


async def remove_member(vault_id: uuid.UUID, user_id: uuid.UUID, actor: User, db: AsyncSession) -> None:
    """The vault owner removes members; a member may leave. The owner always stays."""
    vault = await get_vault_for_member(vault_id, actor, db)
    if user_id != actor.id and vault.owner_id != actor.id:
        raise PermissionDenied("Only the vault owner can remove members")
    if user_id == vault.owner_id:
        raise ValidationError("The vault owner cannot be removed", field="user_id")
    if await vault_crud.remove_member(vault_id, user_id, db) == 0:
        raise NotFound("Member not found")
    await db.commit()
    logger.info(f"User {user_id} removed from vault {vault_id} by {actor.id}")


# ── invitations ─────────────────────────────────────────────────────────────
async def _target_name(invitation_type: InvitationType, target_id: uuid.UUID, db: AsyncSession) -> str:
    if invitation_type == InvitationType.vault:
        vault = await vault_crud.get_vault_by_id(target_id, db)
        return vault.name if vault else ""
    goal = await goal_crud.get_goal_by_id(target_id, db)
    return goal.name if goal else ""


async def invite(invitation_in: InvitationCreate, sender: User, db: AsyncSession) -> Invitation:
    """
    Invite someone by email to a vault (sender must be a member) or to a goal
    (sender must see it). The invitee does not need an account yet.
    """
    email = invitation_in.email.lower()
    receiver = await user_crud.get_user_by_email(email, db)
    if receiver is not None and receiver.id == sender.id:
        raise ValidationError("You cannot invite yourself", field="email")

    if invitation_in.type == InvitationType.vault:
        await get_vault_for_member(invitation_in.target_id, sender, db)
        if receiver is not None and await vault_crud.is_member(invitation_in.target_id, receiver.id, db):
            raise ValidationError("This user is already a member of the vault", field="email")
    else:
        goal = await goal_service.get_visible_goal(invitation_in.target_id, sender, db)
        if receiver is not None and await goal_crud.get_participant(goal.id, receiver.id, db):
            raise ValidationError("This user already participates in the goal", field="email")

    if await invitation_crud.get_pending_invitation(invitation_in.type, invitation_in.target_id, email, db):
        raise ValidationError("An invitation is already pending for this email", field="email")

    invitation = Invitation(
        type=invitation_in.type,
        target_id=invitation_in.target_id,
        sender_id=sender.id,
        receiver_id=receiver.id if receiver else None,
        receiver_email=email,
        status=InvitationStatus.pending,
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)
    logger.info(f"User {sender.id} invited {email} to {invitation.type.value} {invitation.target_id}")

    target_name = await _target_name(invitation.type, invitation.target_id, db)
    if receiver is not None:
        is_vault = invitation.type == InvitationType.vault
        await emit_event(
            db,
            [receiver.id],
            NotificationType.vault_invite if is_vault else NotificationType.goal_invite,
            title="Novo convite",
            message=f"{sender.name} convidou você para {'o cofre' if is_vault else 'a caixinha'} '{target_name}'.",
            link="/invitations",
        )
    await send_email_via_sendgrid(
        email,
        f"{sender.name} enviou um convite: {target_name}",
        invitation_email(sender.name, target_name, invitation.type.value),
    )
    return invitation


def _is_receiver(invitation: Invitation, user: User) -> bool:
    return invitation.receiver_id == user.id or invitation.receiver_email == user.email.lower()


async def _pending_for_receiver(invitation_id: uuid.UUID, user: User, db: AsyncSession) -> Invitation:
    invitation = await invitation_crud.get_invitation_by_id(invitation_id, db)
    if invitation is None:
        raise InvitationNotFound("Invitation not found")
    if not _is_receiver(invitation, user):
        raise PermissionDenied("This invitation was sent to someone else")
    if invitation.status != InvitationStatus.pending:
        raise ValidationError(f"Invitation was already {invitation.status.value}", field="status")
    return invitation


async def accept_invitation(
    invitation_id: uuid.UUID,
    user: User,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Invitation:
    """Not gated: joining someone else's vault or goal works without a subscription."""
    invitation = await _pending_for_receiver(invitation_id, user, db)

    if invitation.type == InvitationType.vault:
        vault = await vault_crud.get_vault_by_id(invitation.target_id, db)
        if vault is None:
            raise VaultNotFound("Vault no longer exists")
        if not await vault_crud.is_member(vault.id, user.id, db):
            vault_crud.add_member(vault.id, user.id, db)
    else:
        goal = await goal_crud.get_goal_by_id(invitation.target_id, db)
        if goal is None:
            raise NotFound("Goal no longer exists")
        if await goal_crud.get_participant(goal.id, user.id, db) is None:
            await goal_service.join_goal(goal, user.id, db)

    invitation.status = InvitationStatus.accepted
    invitation.receiver_id = user.id
    invitation.responded_at = now or utcnow()
    await db.commit()
    await db.refresh(invitation)
    logger.info(f"User {user.id} accepted invitation {invitation.id}")

    if invitation.type == InvitationType.vault:
        member_ids = [m for m in await vault_crud.get_member_ids(invitation.target_id, db) if m != user.id]
        target_name = await _target_name(invitation.type, invitation.target_id, db)
        await emit_event(
            db,
            member_ids,
            NotificationType.vault_member_added,
            title="Novo membro",
            message=f"{user.name} entrou no cofre '{target_name}'.",
            link=f"/vaults/{invitation.target_id}",
        )
    return invitation


async def decline_invitation(
    invitation_id: uuid.UUID,
    user: User,
    db: AsyncSession,
    now: Optional[datetime] = None,
) -> Invitation:
    invitation = await _pending_for_receiver(invitation_id, user, db)
    invitation.status = InvitationStatus.declined
    invitation.receiver_id = user.id
    invitation.responded_at = now or utcnow()
    await db.commit()
    await db.refresh(invitation)
    logger.info(f"User {user.id} declined invitation {invitation.id}")
    return invitation


async def cancel_invitation(invitation_id: uuid.UUID, sender: User, db: AsyncSession) -> None:
    invitation = await invitation_crud.get_invitation_by_id(invitation_id, db)
    if invitation is None or invitation.sender_id != sender.id:
        raise InvitationNotFound("Invitation not found")
    if invitation.status != InvitationStatus.pending:
        raise ValidationError("Only pending invitations can be cancelled", field="status")
    await invitation_crud.delete_invitation(invitation, db)
    logger.info(f"User {sender.id} cancelled invitation {invitation_id}")


async def received_invitations(user: User, db: AsyncSession, pending_only: bool = True) -> List[Invitation]:
    return await invitation_crud.get_received_invitations(user, db, pending_only)


async def sent_invitations(user: User, db: AsyncSession) -> List[Invitation]:
    return await invitation_crud.get_sent_invitations(user.id, db)
