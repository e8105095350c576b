"""
Shared fixtures for the API test suite.

The environment is configured before the app is imported: a temporary
SQLite database, a known JWT secret, rate limiting off and no e-signature
delay. External services (Supabase admin, BrasilAPI, AI providers) are
replaced with in-memory fakes through dependency overrides.
"""
import os
import tempfile
import uuid
from datetime import datetime, timezone

_TEST_DIR = tempfile.mkdtemp(prefix="nexus-admin-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-nexus-admin-api"
os.environ["SUPABASE_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ESIGN_SIMULATOR_DELAY"] = "0"
os.environ["TV_EMAIL_DOMAIN"] = "nexusrs.com.br"

import pytest
import pytest_asyncio
from fastapi import HTTPException
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.core.ai_chat import get_ai_chat
from app.core.cnpj_lookup import get_cnpj_lookup
from app.core.database import AsyncSessionLocal, Base, engine
from app.core.supabase_admin import get_optional_supabase_admin, get_supabase_admin
from app.tests.helpers import ADMIN_EMAIL, ADMIN_ID, ADMIN_PASSWORD, OTHER_USER_ID, USER_ID, auth_headers

# ------------------------------------------------------------------
# FAKES
# ------------------------------------------------------------------
class FakeSupabaseAdmin:
    """In-memory stand-in for SupabaseAdmin."""

    def __init__(self):
        self.users = {
            ADMIN_ID: self._user(ADMIN_ID, ADMIN_EMAIL, "admin", "Admin"),
            USER_ID: self._user(USER_ID, "vendedor@nexusrs.com.br", "user", "Maria Vendas"),
        }
        self.passwords = {ADMIN_EMAIL: ADMIN_PASSWORD}

    @staticmethod
    def _user(user_id, email, role, name=None):
        return {
            "id": user_id,
            "email": email,
            "role": role,
            "name": name,
            "created_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
            "last_sign_in_at": None,
        }

    async def list_users(self):
        return list(self.users.values())

    async def get_user(self, user_id):
        if user_id not in self.users:
            raise HTTPException(status_code=404, detail="User not found")
        return self.users[user_id]

    async def create_user(self, email, password, role, name=None):
        if any(user["email"] == email for user in self.users.values()):
            raise HTTPException(status_code=409, detail="User already exists")
        user_id = str(uuid.uuid4())
        self.users[user_id] = self._user(user_id, email, role, name)
        self.passwords[email] = password
        return self.users[user_id]

    async def update_user(self, user_id, email=None, password=None, role=None, name=None, name_set=False):
        user = await self.get_user(user_id)
        if email:
            user["email"] = email
        if password:
            self.passwords[user["email"]] = password
        if role:
            user["role"] = role
        if name_set:
            user["name"] = name or None
        return user

    async def delete_user(self, user_id):
        await self.get_user(user_id)
        del self.users[user_id]

    async def verify_password(self, email, password):
        return self.passwords.get(email) == password


class FakeCNPJLookup:
    async def lookup(self, cnpj):
        if cnpj == "11222333000181":
            return {
                "document": cnpj,
                "name": "Nexus Telecom LTDA",
                "company_name": "Nexus Telecom LTDA",
                "trade_name": "Nexus",
                "address": "Rua das Flores, 100 - Centro",
                "city": "Porto Alegre",
                "state": "RS",
            }
        raise HTTPException(status_code=404, detail="CNPJ not found")


class FakeAIChat:
    def __init__(self, answer=None):
        self.answer = answer
        self.calls = []

    async def reply(self, message, history):
        self.calls.append((message, list(history)))
        return self.answer


# ------------------------------------------------------------------
# FIXTURES
# ------------------------------------------------------------------
@pytest_asyncio.fixture(autouse=True)
async def database():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def fake_supabase():
    return FakeSupabaseAdmin()


@pytest.fixture
def fake_ai():
    return FakeAIChat()


@pytest.fixture(autouse=True)
def overrides(fake_supabase, fake_ai):
    app.dependency_overrides[get_supabase_admin] = lambda: fake_supabase
    app.dependency_overrides[get_optional_supabase_admin] = lambda: fake_supabase
    app.dependency_overrides[get_cnpj_lookup] = lambda: FakeCNPJLookup()
    app.dependency_overrides[get_ai_chat] = lambda: fake_ai
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, "admin", ADMIN_EMAIL)


@pytest.fixture
def user_headers():
    return auth_headers(USER_ID, "user", "vendedor@nexusrs.com.br")


@pytest.fixture
def other_user_headers():
    return auth_headers(OTHER_USER_ID, "user", "outro@nexusrs.com.br")


