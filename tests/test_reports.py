"""Tests for the monthly report cache and its staleness rule."""
from datetime import datetime, timedelta
from decimal import Decimal

import httpx
import pytest

from app.core.config import settings
from app.core.errors import ReportNotFound, ValidationError
from app.core.owner import PersonalOwner, VaultOwner
from app.crud import notification as notification_crud
from app.models.notification import NotificationType
from app.models.transaction import TransactionType
from app.schemas.goal import GoalCreate
from app.schemas.transaction import TransactionCreate, TransactionUpdate
from app.services import goals as goal_service
from app.services import ledger
from app.services import reports as report_service
from app.utils import analysis

T = datetime(2025, 2, 1, 9, 0)


def grocery(account_id, amount="80", date=datetime(2025, 1, 12)):
    return TransactionCreate(
        description="Mercado",
        amount=Decimal(amount),
        type=TransactionType.expense,
        category="Alimentação",
        date=date,
        source_account_id=account_id,
    )


@pytest.fixture
async def checking(personal, alice, make_account):
    return await make_account(personal, alice, balance="1000")


class TestStatus:
    async def test_missing_report_offers_generate(self, db, personal):
        status = await report_service.get_report_status(personal, "2025-01", db)
        assert status["exists"] is False
        assert status["label"] == report_service.LABEL_GENERATE

    async def test_fresh_report_is_served_from_cache(self, db, alice, personal, checking):
        await ledger.post_transaction(grocery(checking.id), personal, alice, db, now=T - timedelta(days=1))
        report = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        status = await report_service.get_report_status(personal, "2025-01", db)
        again = await report_service.get_or_generate_report(personal, "2025-01", db, now=T + timedelta(hours=1))

        assert status["label"] == report_service.LABEL_VIEW
        assert status["is_outdated"] is False
        assert again.id == report.id

    async def test_newer_transaction_in_vault_month_makes_report_outdated(self, db, alice, make_vault, make_account):
        vault = await make_vault(alice)
        owner = VaultOwner(vault.id)
        joint = await make_account(owner, alice, balance="500")
        await report_service.get_or_generate_report(owner, "2025-01", db, now=T)

        await ledger.post_transaction(grocery(joint.id), owner, alice, db, now=T + timedelta(seconds=1))

        status = await report_service.get_report_status(owner, "2025-01", db)
        assert status["is_outdated"] is True
        assert status["label"] == report_service.LABEL_REFRESH

    async def test_member_deposit_into_shared_vault_goal_outdates_vault_report(
        self, db, alice, bob, make_vault, make_account
    ):
        vault = await make_vault(alice, members=[bob])
        owner = VaultOwner(vault.id)
        goal = await goal_service.create_goal(
            GoalCreate(name="Viagem", target_amount=Decimal("5000")), owner, alice, db
        )
        bobs = PersonalOwner(bob.id)
        wallet = await make_account(bobs, bob, balance="1000")
        await report_service.get_or_generate_report(owner, "2025-01", db, now=T)

        tx = await goal_service.deposit(
            goal.id, "300", bobs, bob, db,
            account_id=wallet.id, date=datetime(2025, 1, 20), now=T + timedelta(hours=1),
        )

        listed = await ledger.list_transactions(owner, db, month_year="2025-01")
        status = await report_service.get_report_status(owner, "2025-01", db)
        assert [t.id for t in listed] == [tx.id]
        assert status["is_outdated"] is True
        assert await report_service.months_with_transactions(owner, db) == [
            {"value": "2025-01", "label": "Janeiro de 2025"},
        ]

        await report_service.get_or_generate_report(owner, "2025-01", db, now=T + timedelta(hours=2))
        assert (await report_service.get_report_status(owner, "2025-01", db))["is_outdated"] is False

        await ledger.delete_transaction(tx.id, bobs, db, now=T + timedelta(hours=3))
        assert (await report_service.get_report_status(owner, "2025-01", db))["is_outdated"] is True

    async def test_other_months_and_owners_do_not_affect_status(self, db, alice, bob, personal, checking, make_account):
        await report_service.get_or_generate_report(personal, "2025-01", db, now=T)
        await ledger.post_transaction(grocery(checking.id, date=datetime(2025, 2, 3)), personal, alice, db, now=T + timedelta(minutes=1))
        bobs = await make_account(PersonalOwner(bob.id), bob, balance="100")
        await ledger.post_transaction(grocery(bobs.id), PersonalOwner(bob.id), bob, db, now=T + timedelta(minutes=2))

        status = await report_service.get_report_status(personal, "2025-01", db)

        assert status["is_outdated"] is False

    async def test_delete_in_month_outdates_report(self, db, alice, personal, checking):
        tx = await ledger.post_transaction(grocery(checking.id), personal, alice, db, now=T - timedelta(days=1))
        await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        await ledger.delete_transaction(tx.id, personal, db, now=T + timedelta(minutes=1))

        assert (await report_service.get_report_status(personal, "2025-01", db))["is_outdated"] is True

    async def test_moving_transaction_out_of_month_outdates_report(self, db, alice, personal, checking):
        tx = await ledger.post_transaction(grocery(checking.id), personal, alice, db, now=T - timedelta(days=1))
        await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        await ledger.update_transaction(
            tx.id, TransactionUpdate(date=datetime(2025, 2, 2)), personal, alice, db, now=T + timedelta(minutes=1)
        )

        assert (await report_service.get_report_status(personal, "2025-01", db))["is_outdated"] is True

    async def test_stale_report_stays_stale_until_regenerated(self, db, alice, personal, checking):
        old = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)
        await ledger.post_transaction(grocery(checking.id), personal, alice, db, now=T + timedelta(minutes=1))
        assert await report_service.is_report_stale(old, db)

        fresh = await report_service.get_or_generate_report(personal, "2025-01", db, now=T + timedelta(minutes=2))

        assert fresh.id != old.id
        assert await report_service.is_report_stale(old, db)
        assert not await report_service.is_report_stale(fresh, db)

    async def test_invalid_month(self, db, personal):
        with pytest.raises(ValidationError):
            await report_service.get_report_status(personal, "01-2025", db)


class TestGeneration:
    async def test_summary_without_provider(self, db, alice, personal, checking):
        await ledger.post_transaction(grocery(checking.id, amount="80"), personal, alice, db, now=T)
        report = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        assert "Janeiro de 2025" in report.analysis_html
        assert "Alimentação" in report.analysis_html

    async def test_provider_answer_is_stored(self, db, personal, monkeypatch):
        def handler(request):
            return httpx.Response(200, json={"choices": [{"message": {"content": "```html\n<h3>Ótimo mês</h3>\n```"}}]})

        real_client = httpx.AsyncClient
        monkeypatch.setattr(settings, "OPENROUTER_API_KEY", "test-key")
        monkeypatch.setattr(analysis.httpx, "AsyncClient", lambda: real_client(transport=httpx.MockTransport(handler)))

        report = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        assert report.analysis_html == "<h3>Ótimo mês</h3>"

    async def test_provider_error_falls_back_to_summary(self, db, personal, monkeypatch):
        real_client = httpx.AsyncClient
        monkeypatch.setattr(settings, "OPENROUTER_API_KEY", "test-key")
        monkeypatch.setattr(
            analysis.httpx, "AsyncClient",
            lambda: real_client(transport=httpx.MockTransport(lambda request: httpx.Response(500))),
        )

        report = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        assert "Análise Financeira de Janeiro de 2025" in report.analysis_html

    async def test_requester_is_notified(self, db, alice, personal):
        await report_service.get_or_generate_report(personal, "2025-01", db, requested_by=alice.id, now=T)
        notifications = await notification_crud.get_notifications_for_user(db, alice.id)
        assert [n.type for n in notifications] == [NotificationType.report_ready]

    async def test_report_of_other_owner_is_hidden(self, db, bob, personal):
        report = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)
        with pytest.raises(ReportNotFound):
            await report_service.get_report(report.id, PersonalOwner(bob.id), db)


class TestMaintenance:
    async def test_cleanup_removes_old_reports(self, db, personal):
        await report_service.get_or_generate_report(personal, "2024-09", db, now=T - timedelta(days=120))
        kept = await report_service.get_or_generate_report(personal, "2025-01", db, now=T)

        deleted = await report_service.cleanup_old_reports(db, retention_days=90, now=T)

        assert deleted == 1
        assert [r.id for r in await report_service.list_reports(personal, db)] == [kept.id]

    async def test_months_with_transactions(self, db, alice, personal, checking):
        for date in (datetime(2025, 1, 3), datetime(2024, 12, 30), datetime(2025, 1, 20)):
            await ledger.post_transaction(grocery(checking.id, date=date), personal, alice, db)

        months = await report_service.months_with_transactions(personal, db)

        assert months == [
            {"value": "2025-01", "label": "Janeiro de 2025"},
            {"value": "2024-12", "label": "Dezembro de 2024"},
        ]
