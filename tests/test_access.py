"""Tests for the trial / subscription access gate."""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.core.auth import SubscriptionStatus
from app.core.errors import AccessDenied
from app.core.owner import PersonalOwner, VaultOwner
from app.models.account import AccountType
from app.models.invitation import InvitationType
from app.schemas.account import AccountCreate
from app.schemas.invitation import InvitationCreate
from app.schemas.vault import VaultCreate
from app.services import access, ledger
from app.services import vaults as vault_service
from app.utils.dates import utcnow

NOW = datetime(2025, 6, 1, 12, 0)


class FakeUser:
    def __init__(self, status, trial_expires_at=None):
        self.id = None
        self.subscription_status = status
        self.trial_expires_at = trial_expires_at


class TestEffectiveStatus:
    def test_running_trial_has_access(self):
        user = FakeUser(SubscriptionStatus.trial, NOW + timedelta(days=3))
        assert access.effective_status(user, NOW) == SubscriptionStatus.trial
        assert access.has_full_access(user, NOW)

    def test_expired_trial_is_inactive(self):
        user = FakeUser(SubscriptionStatus.trial, NOW - timedelta(seconds=1))
        assert access.effective_status(user, NOW) == SubscriptionStatus.inactive
        with pytest.raises(AccessDenied) as exc:
            access.require_full_access(user, NOW)
        assert exc.value.reason == AccessDenied.TRIAL_EXPIRED

    def test_inactive_subscription(self):
        user = FakeUser(SubscriptionStatus.inactive)
        with pytest.raises(AccessDenied) as exc:
            access.require_full_access(user, NOW)
        assert exc.value.reason == AccessDenied.SUBSCRIPTION_INACTIVE

    def test_active_ignores_expiry(self):
        user = FakeUser(SubscriptionStatus.active, NOW - timedelta(days=400))
        assert access.has_full_access(user, NOW)

    def test_access_info_days_remaining(self):
        info = access.access_info(FakeUser(SubscriptionStatus.trial, NOW + timedelta(days=2, hours=1)), NOW)
        assert info["days_remaining"] == 3
        assert info["has_full_access"] is True


class TestGate:
    async def test_expired_trial_cannot_create_vault_but_can_accept_invitation(self, db, alice, make_user, make_vault):
        vault = await make_vault(alice)
        carol = await make_user(name="Carol", email="carol@example.com", trial_days=-1)
        invitation = await vault_service.invite(
            InvitationCreate(type=InvitationType.vault, target_id=vault.id, email=carol.email), alice, db
        )

        with pytest.raises(AccessDenied):
            await vault_service.create_vault(VaultCreate(name="Minha"), carol, db)

        accepted = await vault_service.accept_invitation(invitation.id, carol, db)
        assert accepted.receiver_id == carol.id

    async def test_expired_trial_blocks_personal_creation(self, db, make_user):
        carol = await make_user(name="Carol", email="carol@example.com", trial_days=-1)
        with pytest.raises(AccessDenied):
            await ledger.create_account(
                AccountCreate(name="Conta", bank="Nubank", type=AccountType.checking),
                PersonalOwner(carol.id), carol, db,
            )

    async def test_inactive_member_works_in_active_owners_vault(self, db, alice, make_user, make_vault):
        carol = await make_user(name="Carol", email="carol@example.com", status=SubscriptionStatus.inactive)
        vault = await make_vault(alice, members=[carol])

        account = await ledger.create_account(
            AccountCreate(name="Conjunta", bank="Itaú", type=AccountType.checking, balance=Decimal("10")),
            VaultOwner(vault.id), carol, db,
        )

        assert account.owner == VaultOwner(vault.id)

    async def test_lapsed_vault_owner_blocks_members(self, db, alice, bob, make_vault):
        vault = await make_vault(alice, members=[bob])
        alice.subscription_status = SubscriptionStatus.inactive
        await db.commit()

        with pytest.raises(AccessDenied):
            await ledger.create_account(
                AccountCreate(name="Conjunta", bank="Itaú", type=AccountType.checking),
                VaultOwner(vault.id), bob, db,
            )


class TestBillingEvents:
    async def test_order_approved_activates(self, db, bob):
        user = await access.apply_billing_event(bob.email, "order_approved", db, now=NOW)
        assert user.subscription_status == SubscriptionStatus.active
        assert user.trial_expires_at == NOW + timedelta(days=365)

    async def test_refund_deactivates(self, db, alice):
        user = await access.apply_billing_event(alice.email, "order_refunded", db)
        assert user.subscription_status == SubscriptionStatus.inactive
        assert not access.has_full_access(user, utcnow())

    async def test_unknown_user_is_ignored(self, db):
        assert await access.apply_billing_event("ghost@example.com", "order_approved", db) is None

    async def test_unrelated_event_changes_nothing(self, db, bob):
        user = await access.apply_billing_event(bob.email, "pix_created", db)
        assert user.subscription_status == SubscriptionStatus.trial
