"""
Shared test fixtures.

Environment is set before anything under app/ is imported: Settings is
built once and refuses to start without a signing secret.
"""
import os

os.environ["SECRET_KEY"] = "test-secret-key-for-pytest-only"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_dummy"
os.environ["OPENAI_API_KEY"] = "sk-test-dummy"
os.environ["FRONTEND_URL"] = "http://localhost:3000"

from decimal import Decimal  # noqa: E402
from typing import List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.core.auth_dependency import get_db  # noqa: E402
from app.core.rate_limit import rate_limit_store  # noqa: E402
from app.core.security import create_user_token, hash_password  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.models.plan import Plan  # noqa: E402
from app.db.models.user import User  # noqa: E402
from app.llm.provider import LLMProvider, LLMResponse  # noqa: E402

TEST_PASSWORD = "testpass123"

# Setup in-memory SQLite database for testing
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Fresh tables, limiter state and dependency overrides for each test."""
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    rate_limit_store.clear()
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session):
    """Factory creating users directly in the database."""
    counter = {"n": 0}

    def _make_user(email: Optional[str] = None, role: str = "user",
                   first_name: str = "Test", last_name: str = "User") -> User:
        counter["n"] += 1
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user(email="alice@example.com", first_name="Alice", last_name="Martin")


@pytest.fixture
def other_user(make_user):
    return make_user(email="bob@example.com", first_name="Bob", last_name="Durand")


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@example.com", role="admin", first_name="Ada", last_name="Admin")


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
def user_headers(test_user):
    return auth_headers(test_user)


@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def make_plan(db_session):
    def _make_plan(name: str = "Basic", price="9.99", duration: int = 30,
                   is_active: bool = True, features: Optional[dict] = None) -> Plan:
        plan = Plan(
            name=name,
            description=f"{name} plan",
            price=Decimal(str(price)),
            duration=duration,
            features=features or {"interviews": 10},
            is_active=is_active,
        )
        db_session.add(plan)
        db_session.commit()
        db_session.refresh(plan)
        return plan

    return _make_plan


class FakeLLMProvider(LLMProvider):
    """Records calls and replays canned answers (or raises a canned error)."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.replies = list(replies or ["Tell me about yourself."])
        self.error = error
        # Raised after the first streamed chunk
        self.stream_error: Optional[Exception] = None
        self.calls = []

    def chat(self, messages, temperature=0.7, max_tokens=None, json_mode=False):
        self.calls.append({"messages": messages, "json_mode": json_mode})
        if self.error:
            raise self.error
        content = self.replies.pop(0) if self.replies else ""
        return LLMResponse(content=content, tokens_in=10, tokens_out=5, model="fake")

    def stream(self, messages, temperature=0.7, max_tokens=None):
        content = self.chat(messages).content
        for i in range(0, len(content), 8):
            yield content[i:i + 8]
            if self.stream_error:
                raise self.stream_error


@pytest.fixture
def fake_llm():
    """Install a fake LLM provider; tests tweak .replies / .error as needed."""
    from app.llm.router import get_llm_provider

    provider = FakeLLMProvider()
    app.dependency_overrides[get_llm_provider] = lambda: provider
    return provider


@pytest.fixture
def headers_for():
    """Build bearer headers for an arbitrary user."""
    return auth_headers
