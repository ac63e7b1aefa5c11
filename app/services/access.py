# app/services/access.py
"""
Subscription / trial gate.

A trial turns inactive once ``trial_expires_at`` has passed. The check is
lazy: nothing rewrites the stored status, every caller evaluates it again
against ``now``.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import SubscriptionStatus, User
from app.core.config import settings
from app.core.errors import AccessDenied, VaultNotFound
from app.core.owner import Owner
from app.crud import user as user_crud
from app.crud import vault as vault_crud
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def _trial_expired(user: User, now: datetime) -> bool:
    # A trial with no expiry recorded is treated as still running
    return user.trial_expires_at is not None and now > user.trial_expires_at


def effective_status(user: User, now: Optional[datetime] = None) -> SubscriptionStatus:
    now = now or utcnow()
    if user.subscription_status == SubscriptionStatus.trial and _trial_expired(user, now):
        return SubscriptionStatus.inactive
    return user.subscription_status


def has_full_access(user: User, now: Optional[datetime] = None) -> bool:
    return effective_status(user, now) != SubscriptionStatus.inactive


def require_full_access(user: User, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    if has_full_access(user, now):
        return
    if user.subscription_status == SubscriptionStatus.trial:
        logger.info(f"User {user.id} blocked: trial expired at {user.trial_expires_at}")
        raise AccessDenied(AccessDenied.TRIAL_EXPIRED, "Your free trial has ended. Subscribe to keep creating.")
    logger.info(f"User {user.id} blocked: subscription inactive")
    raise AccessDenied(AccessDenied.SUBSCRIPTION_INACTIVE, "An active subscription is required for this action.")


async def require_creation_access(user: User, owner: Owner, db: AsyncSession, now: Optional[datetime] = None) -> None:
    """
    Gate creating accounts, goals and transactions.

    In a personal workspace the actor's own access counts. In a vault the
    vault owner's access counts, so an inactive member can still work inside
    someone else's active vault.
    """
    if owner.is_personal:
        require_full_access(user, now)
        return

    vault = await vault_crud.get_vault_by_id(owner.vault_id, db)
    if vault is None:
        raise VaultNotFound("Vault not found")
    if vault.owner_id == user.id:
        require_full_access(user, now)
        return
    vault_owner = await user_crud.get_user_by_id(vault.owner_id, db)
    if vault_owner is not None:
        require_full_access(vault_owner, now)


def access_info(user: User, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    status = effective_status(user, now)
    days_remaining = None

    if status == SubscriptionStatus.active:
        message = "Assinatura ativa"
    elif status == SubscriptionStatus.trial:
        if user.trial_expires_at is not None:
            days_remaining = max(0, math.ceil((user.trial_expires_at - now).total_seconds() / 86400))
            message = f"Período de teste: {days_remaining} dia(s) restante(s)"
        else:
            message = "Período de teste"
    elif user.subscription_status == SubscriptionStatus.trial:
        days_remaining = 0
        message = "Seu período de teste terminou"
    else:
        message = "Assinatura inativa"

    return {
        "status": status,
        "has_full_access": status != SubscriptionStatus.inactive,
        "days_remaining": days_remaining,
        "message": message,
    }


# Billing provider events (Kiwify naming)
ACTIVATING_EVENTS = {"order_approved", "subscription_renewed"}
DEACTIVATING_EVENTS = {"order_refunded", "chargeback", "subscription_canceled"}


async def apply_billing_event(email: str, event: str, db: AsyncSession, now: Optional[datetime] = None) -> Optional[User]:
    """
    Move a user's subscription according to a billing webhook. Unknown users
    and events that carry no state change are logged and ignored.
    """
    now = now or utcnow()
    user = await user_crud.get_user_by_email(email, db)
    if user is None:
        logger.warning(f"Billing event {event} for unknown email {email}; ignored")
        return None

    if event in ACTIVATING_EVENTS:
        user.subscription_status = SubscriptionStatus.active
        user.trial_expires_at = now + timedelta(days=settings.PAID_ACCESS_DAYS)
    elif event in DEACTIVATING_EVENTS:
        user.subscription_status = SubscriptionStatus.inactive
    else:
        logger.info(f"Billing event {event} for user {user.id} needs no status change")
        return user

    await db.commit()
    await db.refresh(user)
    logger.info(f"Billing event {event}: user {user.id} is now {user.subscription_status.value}")
    return user
