"""End-to-end tests through the HTTP API."""
import uuid

import pytest

from app.core.config import settings
from conftest import auth_headers


async def create_account(client, user, balance="1000", workspace_id=None, **extra):
    response = await client.post(
        "/api/v1/accounts",
        json={"name": "Checking", "bank": "Nubank", "type": "checking", "balance": balance, **extra},
        headers=auth_headers(user, workspace_id),
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    async def test_register_login_and_me(self, client):
        response = await client.post(
            "/api/v1/auth/register",
            json={"name": "Eva", "email": "eva@example.com", "password": "password123"},
        )
        assert response.status_code == 201
        assert response.json()["subscription_status"] == "trial"

        login = await client.post("/api/v1/auth/jwt/login", json={"email": "eva@example.com", "password": "password123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == "eva@example.com"

        access = await client.get("/api/v1/users/me/access", headers={"Authorization": f"Bearer {token}"})
        assert access.json()["has_full_access"] is True

    async def test_bad_password(self, client, alice):
        response = await client.post("/api/v1/auth/jwt/login", json={"email": alice.email, "password": "wrong-password"})
        assert response.status_code == 400

    async def test_duplicate_email(self, client, alice):
        response = await client.post(
            "/api/v1/auth/register",
            json={"name": "Other", "email": alice.email, "password": "password123"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    async def test_missing_token(self, client):
        assert (await client.get("/api/v1/users/me")).status_code == 401

    async def test_cookie_token(self, client, alice):
        login = await client.post("/api/v1/auth/jwt/login", json={"email": alice.email, "password": "password123"})
        assert login.status_code == 200
        assert (await client.get("/api/v1/users/me")).status_code == 200


class TestLedgerApi:
    async def test_expense_lifecycle(self, client, alice):
        account = await create_account(client, alice, balance="1000")
        headers = auth_headers(alice)

        posted = await client.post(
            "/api/v1/transactions",
            json={
                "description": "Mercado",
                "amount": "150",
                "type": "expense",
                "category": "Alimentação",
                "date": "2025-01-15T10:00:00",
                "source_account_id": account["id"],
            },
            headers=headers,
        )
        assert posted.status_code == 201, posted.text

        balance = (await client.get(f"/api/v1/accounts/{account['id']}", headers=headers)).json()["balance"]
        assert float(balance) == 850

        deleted = await client.delete(f"/api/v1/transactions/{posted.json()['id']}", headers=headers)
        assert deleted.status_code == 204
        balance = (await client.get(f"/api/v1/accounts/{account['id']}", headers=headers)).json()["balance"]
        assert float(balance) == 1000

    async def test_invalid_amount_error_body(self, client, alice):
        account = await create_account(client, alice)
        response = await client.post(
            "/api/v1/transactions",
            json={
                "description": "Nada",
                "amount": "0",
                "type": "expense",
                "category": "Outros",
                "date": "2025-01-15T10:00:00",
                "source_account_id": account["id"],
            },
            headers=auth_headers(alice),
        )
        assert response.status_code == 422
        assert response.json() == {"detail": "Amount must be greater than zero", "code": "invalid_amount", "field": "amount"}

    async def test_unknown_workspace_is_forbidden(self, client, alice):
        response = await client.get("/api/v1/accounts", headers=auth_headers(alice, uuid.uuid4()))
        assert response.status_code == 403
        assert response.json()["code"] == "not_a_member"

    async def test_vault_workspace(self, client, alice, bob, make_vault):
        vault = await make_vault(alice, members=[bob])
        await create_account(client, alice, balance="300", workspace_id=vault.id)

        listed = await client.get("/api/v1/accounts", headers=auth_headers(bob, vault.id))
        personal = await client.get("/api/v1/accounts", headers=auth_headers(bob))

        assert [a["owner_type"] for a in listed.json()] == ["vault"]
        assert personal.json() == []

    async def test_goal_deposit_and_installments(self, client, alice):
        headers = auth_headers(alice)
        goal = await client.post("/api/v1/goals", json={"name": "Viagem", "target_amount": "5000"}, headers=headers)
        assert goal.status_code == 201
        deposit = await client.post(f"/api/v1/goals/{goal.json()['id']}/deposit", json={"amount": "150"}, headers=headers)
        assert deposit.status_code == 201
        read = await client.get(f"/api/v1/goals/{goal.json()['id']}", headers=headers)
        assert float(read.json()["current_amount"]) == 150

        card = await create_account(client, alice, balance="0", type="credit_card")
        purchase = await client.post(
            "/api/v1/transactions",
            json={
                "description": "Notebook",
                "amount": "100",
                "type": "expense",
                "category": "Eletrônicos",
                "date": "2025-01-15T10:00:00",
                "source_account_id": card["id"],
                "total_installments": 6,
            },
            headers=headers,
        )
        toggled = await client.post(
            f"/api/v1/transactions/{purchase.json()['id']}/installments/2", json={}, headers=headers
        )
        assert toggled.json()["paid_installments"] == [2]

        overview = await client.get("/api/v1/recurring", headers=headers)
        assert overview.json()["installments"][0]["paid_installments"] == [2]

    async def test_report_status_and_generate(self, client, alice):
        headers = auth_headers(alice)
        status = await client.get("/api/v1/reports/status", params={"month_year": "2025-01"}, headers=headers)
        assert status.json()["label"] == "Generate"

        generated = await client.post("/api/v1/reports/generate", params={"month_year": "2025-01"}, headers=headers)
        assert generated.status_code == 200

        status = await client.get("/api/v1/reports/status", params={"month_year": "2025-01"}, headers=headers)
        assert status.json()["label"] == "View"

        notifications = await client.get("/api/v1/notification/unread-count", headers=headers)
        assert notifications.json() == 1


class TestWebhook:
    async def test_rejects_bad_token(self, client, monkeypatch, bob):
        monkeypatch.setattr(settings, "BILLING_WEBHOOK_TOKEN", "hook-token")
        response = await client.post(
            "/api/v1/webhooks/billing",
            params={"token": "nope"},
            json={"webhook_event_type": "order_approved", "Customer": {"email": bob.email}},
        )
        assert response.status_code == 401

    async def test_order_approved_activates(self, client, monkeypatch, bob):
        monkeypatch.setattr(settings, "BILLING_WEBHOOK_TOKEN", "hook-token")
        response = await client.post(
            "/api/v1/webhooks/billing",
            params={"token": "hook-token"},
            json={"webhook_event_type": "order_approved", "Customer": {"email": bob.email}},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "active"


@pytest.mark.parametrize("path", ["/", "/health"])
async def test_service_endpoints(client, path):
    assert (await client.get(path)).status_code == 200


class TestNotificationsApi:
    async def test_mark_read(self, client, alice, bob, make_vault, db):
        from app.models.invitation import InvitationType
        from app.schemas.invitation import InvitationCreate
        from app.services import vaults as vault_service

        vault = await make_vault(alice)
        await vault_service.invite(
            InvitationCreate(type=InvitationType.vault, target_id=vault.id, email=bob.email), alice, db
        )
        headers = auth_headers(bob)

        listed = await client.get("/api/v1/notification/", headers=headers)
        assert [n["type"] for n in listed.json()] == ["vault_invite"]

        marked = await client.post(f"/api/v1/notification/{listed.json()[0]['id']}/read", headers=headers)
        assert marked.json()["is_read"] is True
        assert (await client.get("/api/v1/notification/unread-count", headers=headers)).json() == 0

        received = await client.get("/api/v1/invitations/received", headers=headers)
        accepted = await client.post(f"/api/v1/invitations/{received.json()[0]['id']}/accept", headers=headers)
        assert accepted.json()["status"] == "accepted"
