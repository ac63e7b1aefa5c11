"""Tests for installment tracking and recurring grouping."""
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.errors import ValidationError
from app.crud import account as account_crud
from app.models.account import AccountType
from app.models.transaction import TransactionType
from app.schemas.transaction import TransactionCreate
from app.services import installments, ledger
from app.services.installments import InstallmentSet, group_recurring, installment_progress


class TestInstallmentSet:
    def test_add_and_contains(self):
        paid = InstallmentSet(6, [4, 1])
        paid.add(2)
        assert 2 in paid and 3 not in paid
        assert paid.to_list() == [1, 2, 4]

    def test_remove_missing_is_noop(self):
        paid = InstallmentSet(3, [1])
        paid.remove(2)
        assert paid.to_list() == [1]

    def test_toggle_twice_restores(self):
        paid = InstallmentSet(4, [1, 3])
        assert paid.toggle(2) is True
        assert paid.toggle(2) is False
        assert paid.to_list() == [1, 3]

    @pytest.mark.parametrize("number", [0, 7, -1])
    def test_out_of_range(self, number):
        with pytest.raises(ValidationError):
            InstallmentSet(6).add(number)

    def test_remaining_and_next_unpaid(self):
        paid = InstallmentSet(5, [1, 2, 4])
        assert paid.remaining == 2
        assert paid.next_unpaid == 3
        assert InstallmentSet(2, [1, 2]).next_unpaid is None


def purchase(card_id, amount="100", total=6, **kwargs):
    return TransactionCreate(
        description="Geladeira",
        amount=Decimal(amount),
        type=TransactionType.expense,
        category="Casa",
        date=datetime(2025, 3, 10),
        source_account_id=card_id,
        total_installments=total,
        **kwargs,
    )


class TestMarkingInstallments:
    async def test_progress_of_marked_installments(self, db, alice, personal, make_account):
        card = await make_account(personal, alice, type=AccountType.credit_card)
        tx = await ledger.post_transaction(purchase(card.id), personal, alice, db)

        for number in (1, 2, 4):
            tx = await installments.mark_installment(tx.id, number, True, personal, db)

        progress = installment_progress(tx)
        assert progress["paid_amount"] == Decimal("300")
        assert progress["progress_percent"] == 50.0
        assert progress["paid_installments"] == [1, 2, 4]

    async def test_marking_does_not_move_money(self, db, alice, personal, make_account):
        card = await make_account(personal, alice, type=AccountType.credit_card)
        tx = await ledger.post_transaction(purchase(card.id), personal, alice, db)

        await installments.mark_installment(tx.id, 1, True, personal, db)
        await installments.mark_installment(tx.id, 1, False, personal, db)

        assert await account_crud.get_balance(card.id, db) == Decimal("-100")

    async def test_toggle_twice_is_noop(self, db, alice, personal, make_account):
        card = await make_account(personal, alice, type=AccountType.credit_card)
        tx = await ledger.post_transaction(purchase(card.id, first_installment_paid=True), personal, alice, db)

        await installments.toggle_installment(tx.id, 3, personal, db)
        tx = await installments.toggle_installment(tx.id, 3, personal, db)

        assert tx.paid_installments == [1]

    async def test_plain_expense_has_no_installments(self, db, alice, personal, make_account):
        checking = await make_account(personal, alice, balance="100")
        tx = await ledger.post_transaction(purchase(checking.id, amount="10", total=None), personal, alice, db)
        with pytest.raises(ValidationError):
            await installments.mark_installment(tx.id, 1, True, personal, db)


class TestRecurring:
    async def test_grouped_by_description(self, db, alice, personal, make_account):
        checking = await make_account(personal, alice, balance="1000")
        for month, name in ((1, "Netflix"), (2, "netflix "), (3, "Netflix"), (2, "Academia")):
            await ledger.post_transaction(
                TransactionCreate(
                    description=name,
                    amount=Decimal("39.90"),
                    type=TransactionType.expense,
                    category="Assinaturas",
                    date=datetime(2025, month, 5),
                    source_account_id=checking.id,
                    is_recurring=True,
                ),
                personal, alice, db,
            )

        groups = group_recurring(await ledger.list_transactions(personal, db))

        assert [(g["description"], g["occurrences"]) for g in groups] == [("Netflix", 3), ("Academia", 1)]
        assert groups[0]["last_date"] == datetime(2025, 3, 5)

    async def test_overview_lists_installments(self, db, alice, personal, make_account):
        card = await make_account(personal, alice, type=AccountType.credit_card)
        await ledger.post_transaction(purchase(card.id), personal, alice, db)

        overview = await installments.recurring_overview(personal, db)

        assert overview["recurring"] == []
        assert overview["installments"][0]["total_amount"] == Decimal("600")
