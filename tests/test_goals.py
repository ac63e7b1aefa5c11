"""Tests for savings goals (caixinhas): funding, visibility and participants."""
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.errors import GoalNotFound, InvalidAmount, NotAMember, PermissionDenied, ValidationError
from app.core.owner import PersonalOwner, VaultOwner
from app.crud import account as account_crud
from app.crud import goal as goal_crud
from app.crud import notification as notification_crud
from app.models.goal import GoalVisibility
from app.models.notification import NotificationType
from app.models.transaction import GoalMovement, TransactionType
from app.schemas.goal import GoalCreate, GoalUpdate
from app.schemas.transaction import TransactionCreate, TransactionUpdate
from app.services import goals as goal_service


@pytest.fixture
def make_goal(db):
    async def _make(owner, actor, target="5000", visibility=GoalVisibility.shared, name="Viagem"):
        return await goal_service.create_goal(
            GoalCreate(name=name, target_amount=Decimal(target), visibility=visibility),
            owner, actor, db,
        )

    return _make


async def current(goal, db):
    return await goal_crud.get_current_amount(goal.id, db)


class TestFunding:
    async def test_deposit_past_target_is_kept(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice, target="5000")
        await goal_service.deposit(goal.id, "4900", personal, alice, db)

        await goal_service.deposit(goal.id, "150", personal, alice, db)

        assert await current(goal, db) == Decimal("5050")
        refreshed = await goal_crud.get_goal_by_id(goal.id, db)
        assert refreshed.is_completed
        assert refreshed.progress_percent == 100.0

    async def test_deposit_debits_source_account(self, db, alice, personal, make_goal, make_account):
        checking = await make_account(personal, alice, balance="1000")
        goal = await make_goal(personal, alice)

        tx = await goal_service.deposit(goal.id, "250", personal, alice, db, account_id=checking.id)

        assert await account_crud.get_balance(checking.id, db) == Decimal("750")
        assert await current(goal, db) == Decimal("250")
        assert tx.goal_id == goal.id

    async def test_withdraw_credits_destination(self, db, alice, personal, make_goal, make_account):
        checking = await make_account(personal, alice, balance="0")
        goal = await make_goal(personal, alice)
        await goal_service.deposit(goal.id, "300", personal, alice, db)

        await goal_service.withdraw(goal.id, "100", personal, alice, db, account_id=checking.id)

        assert await account_crud.get_balance(checking.id, db) == Decimal("100")
        assert await current(goal, db) == Decimal("200")

    async def test_over_withdrawal_goes_negative(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice)
        await goal_service.deposit(goal.id, "50", personal, alice, db)

        await goal_service.withdraw(goal.id, "80", personal, alice, db)

        assert await current(goal, db) == Decimal("-30")

    async def test_invalid_amount(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice)
        with pytest.raises(InvalidAmount):
            await goal_service.deposit(goal.id, "0", personal, alice, db)
        assert await current(goal, db) == Decimal("0")

    async def test_completion_notifies_viewers_once(self, db, alice, bob, make_vault, make_goal):
        vault = await make_vault(alice, members=[bob])
        owner = VaultOwner(vault.id)
        goal = await make_goal(owner, alice, target="100")

        await goal_service.deposit(goal.id, "100", owner, bob, db)
        await goal_service.deposit(goal.id, "10", owner, bob, db)

        for user in (alice, bob):
            notifications = await notification_crud.get_notifications_for_user(db, user.id)
            assert [n.type for n in notifications] == [NotificationType.goal_completed]

    async def test_deleting_goal_movement_reverses_it(self, db, alice, personal, make_goal, make_account):
        from app.services import ledger

        checking = await make_account(personal, alice, balance="500")
        goal = await make_goal(personal, alice)
        tx = await goal_service.deposit(goal.id, "200", personal, alice, db, account_id=checking.id)

        await ledger.delete_transaction(tx.id, personal, db)

        assert await current(goal, db) == Decimal("0")
        assert await account_crud.get_balance(checking.id, db) == Decimal("500")

    async def test_deleting_goal_keeps_transactions(self, db, alice, personal, make_goal, make_account):
        from app.services import ledger

        checking = await make_account(personal, alice, balance="500")
        goal = await make_goal(personal, alice)
        tx = await goal_service.deposit(goal.id, "200", personal, alice, db, account_id=checking.id)

        await goal_service.delete_goal(goal.id, alice, db)

        kept = await ledger.get_owned_transaction(tx.id, personal, db)
        assert kept.goal_id is None
        assert await account_crud.get_balance(checking.id, db) == Decimal("300")

    async def test_deposit_cannot_be_split_in_installments(self, db, alice, personal, make_goal):
        from app.services import ledger

        goal = await make_goal(personal, alice)
        tx_in = TransactionCreate(
            description="Depósito",
            amount=Decimal("100"),
            type=TransactionType.transfer,
            category="Caixinha",
            date=datetime(2025, 1, 10),
            goal_id=goal.id,
            goal_movement=GoalMovement.deposit,
            total_installments=3,
        )
        with pytest.raises(ValidationError) as exc:
            await ledger.post_transaction(tx_in, personal, alice, db)

        assert exc.value.field == "total_installments"
        assert await current(goal, db) == Decimal("0")

    async def test_movements_of_deleted_goal_stay_editable(self, db, alice, personal, make_goal, make_account):
        from app.services import ledger

        checking = await make_account(personal, alice, balance="500")
        goal = await make_goal(personal, alice)
        deposit = await goal_service.deposit(goal.id, "200", personal, alice, db, account_id=checking.id)
        withdrawal = await goal_service.withdraw(goal.id, "50", personal, alice, db)

        await goal_service.delete_goal(goal.id, alice, db)

        kept = await ledger.get_owned_transaction(deposit.id, personal, db)
        assert kept.type == TransactionType.expense
        assert kept.goal_movement == GoalMovement.deposit
        edited = await ledger.update_transaction(
            deposit.id, TransactionUpdate(amount=Decimal("150")), personal, alice, db
        )
        assert edited.amount == Decimal("150")
        assert await account_crud.get_balance(checking.id, db) == Decimal("350")

        edited = await ledger.update_transaction(
            withdrawal.id, TransactionUpdate(description="Resgate antigo"), personal, alice, db
        )
        assert edited.type == TransactionType.income
        assert edited.description == "Resgate antigo"


class TestVisibility:
    async def test_private_vault_goal_hidden_from_non_participants(self, db, alice, bob, make_vault, make_goal):
        vault = await make_vault(alice, members=[bob])
        owner = VaultOwner(vault.id)
        goal = await make_goal(owner, alice, visibility=GoalVisibility.private)

        with pytest.raises(GoalNotFound):
            await goal_service.get_visible_goal(goal.id, bob, db)
        assert await goal_service.list_goals(owner, bob, db) == []

    async def test_change_requires_confirmation(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice)
        with pytest.raises(ValidationError):
            await goal_service.change_visibility(goal.id, GoalVisibility.private, False, alice, db)

    async def test_change_is_recorded_with_viewers(self, db, alice, bob, make_vault, make_goal):
        vault = await make_vault(alice, members=[bob])
        goal = await make_goal(VaultOwner(vault.id), alice, visibility=GoalVisibility.private)

        await goal_service.change_visibility(goal.id, GoalVisibility.shared, True, alice, db)

        history = await goal_service.visibility_history(goal.id, bob, db)
        assert len(history) == 1
        assert history[0].from_visibility == GoalVisibility.private
        assert set(history[0].participant_ids) == {str(alice.id), str(bob.id)}

    async def test_same_visibility_is_rejected(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice, visibility=GoalVisibility.shared)
        with pytest.raises(ValidationError):
            await goal_service.change_visibility(goal.id, GoalVisibility.shared, True, alice, db)

    async def test_only_manager_changes_visibility(self, db, alice, bob, make_vault, make_goal):
        vault = await make_vault(alice, members=[bob])
        goal = await make_goal(VaultOwner(vault.id), alice)
        with pytest.raises(PermissionDenied):
            await goal_service.change_visibility(goal.id, GoalVisibility.private, True, bob, db)


class TestParticipants:
    async def test_participant_sees_personal_goal(self, db, alice, bob, personal, make_goal):
        goal = await make_goal(personal, alice)
        await goal_service.add_participant(goal.id, bob.id, alice, db)

        goals = await goal_service.list_goals(PersonalOwner(bob.id), bob, db)

        assert [g.id for g in goals] == [goal.id]

    async def test_non_member_cannot_join_vault_goal(self, db, alice, bob, make_vault, make_goal):
        vault = await make_vault(alice)
        goal = await make_goal(VaultOwner(vault.id), alice)
        with pytest.raises(NotAMember):
            await goal_service.add_participant(goal.id, bob.id, alice, db)

    async def test_duplicate_participant(self, db, alice, bob, personal, make_goal):
        goal = await make_goal(personal, alice)
        await goal_service.add_participant(goal.id, bob.id, alice, db)
        with pytest.raises(ValidationError):
            await goal_service.add_participant(goal.id, bob.id, alice, db)

    async def test_owner_cannot_be_removed(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice)
        with pytest.raises(ValidationError):
            await goal_service.remove_participant(goal.id, alice.id, alice, db)

    async def test_participant_can_leave(self, db, alice, bob, personal, make_goal):
        goal = await make_goal(personal, alice)
        await goal_service.add_participant(goal.id, bob.id, alice, db)

        await goal_service.remove_participant(goal.id, bob.id, bob, db)

        assert [p.user_id for p in await goal_crud.get_participants(goal.id, db)] == [alice.id]


class TestFeatured:
    async def test_featured_flag_is_idempotent(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice)
        await goal_service.set_featured(goal.id, True, alice, db)
        await goal_service.set_featured(goal.id, True, alice, db)

        featured = await goal_service.list_goals(personal, alice, db, featured_only=True)

        assert [g.id for g in featured] == [goal.id]

    async def test_update_goal_target(self, db, alice, personal, make_goal):
        goal = await make_goal(personal, alice)
        updated = await goal_service.update_goal(goal.id, GoalUpdate(target_amount=Decimal("8000")), alice, db)
        assert updated.target_amount == Decimal("8000")
