"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. Settings are read from the
environment at import time, so the variables are set before ``app`` loads.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["SENDGRID_API_KEY"] = ""
os.environ["OPENROUTER_API_KEY"] = ""

from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.auth import SubscriptionStatus, User, UserCreate, register_user
from app.core.database import Base, get_async_session
from app.core.owner import PersonalOwner, VaultOwner
from app.core.security import create_access_token
from app.crud import vault as vault_crud
from app.main import app
from app.models.account import AccountType
from app.schemas.account import AccountCreate
from app.schemas.vault import VaultCreate
from app.services import ledger
from app.services import vaults as vault_service
from app.utils.dates import utcnow


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(name=None, email=None, status=SubscriptionStatus.trial, trial_days=30) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = await register_user(
            UserCreate(
                name=name or f"User {n}",
                email=email or f"user{n}@example.com",
                password="password123",
            ),
            db,
        )
        user.subscription_status = status
        user.trial_expires_at = utcnow() + timedelta(days=trial_days)
        await db.commit()
        return user

    return _make


@pytest.fixture
async def alice(make_user):
    return await make_user(name="Alice", email="alice@example.com", status=SubscriptionStatus.active)


@pytest.fixture
async def bob(make_user):
    return await make_user(name="Bob", email="bob@example.com")


@pytest.fixture
def personal(alice):
    return PersonalOwner(alice.id)


@pytest.fixture
def make_account(db):
    async def _make(owner, actor, name="Conta Corrente", balance="0", type=AccountType.checking, visible_in=()):
        return await ledger.create_account(
            AccountCreate(
                name=name,
                bank="Banco do Brasil",
                type=type,
                balance=Decimal(balance),
                visible_in=list(visible_in),
            ),
            owner,
            actor,
            db,
        )

    return _make


@pytest.fixture
def make_vault(db):
    async def _make(owner_user, members=(), name="Casa"):
        vault = await vault_service.create_vault(VaultCreate(name=name), owner_user, db)
        for member in members:
            vault_crud.add_member(vault.id, member.id, db)
        await db.commit()
        return vault

    return _make


@pytest.fixture
def vault_owner():
    return lambda vault: VaultOwner(vault.id)


def auth_headers(user, workspace_id=None):
    headers = {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
    if workspace_id is not None:
        headers["X-Workspace-Id"] = str(workspace_id)
    return headers
