# tests/conftest.py
"""
Shared pytest fixtures.

API tests run against a fresh in-memory SQLite database per test; service
tests use the in-memory repositories from tests/fakes.py.
"""
from typing import Dict, Tuple

import pytest
from fastapi.testclient import TestClient

from ordertrack.accounts import AccountService
from ordertrack.config import Settings
from ordertrack.directory import UserDirectory
from ordertrack.main import create_app
from ordertrack.ordering.service import OrderService
from ordertrack.records import Role
from ordertrack.repositories import SqlUserRepository

from .fakes import InMemoryOrderRepository, InMemoryUserRepository, RecordingNotifier

STRONG_PASSWORD = "Abcd123!"


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", database_url="sqlite://", jwt_secret="test-secret")


# ============================================================================
# SERVICE FIXTURES (in-memory)
# ============================================================================


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def order_repo(user_repo) -> InMemoryOrderRepository:
    repo = InMemoryOrderRepository()
    repo.users = user_repo
    user_repo.orders = repo
    return repo


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def accounts(user_repo, settings) -> AccountService:
    return AccountService(user_repo, settings)


@pytest.fixture
def order_service(order_repo, user_repo, notifier) -> OrderService:
    return OrderService(order_repo, user_repo, notifier)


@pytest.fixture
def directory(user_repo, order_repo) -> UserDirectory:
    return UserDirectory(user_repo)


# ============================================================================
# API FIXTURES
# ============================================================================


@pytest.fixture
def app(settings, notifier):
    return create_app(settings, notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client, name: str, email: str, password: str = STRONG_PASSWORD) -> Tuple[str, dict]:
    resp = client.post("/auth/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return data["token"], data["user"]


def set_role(app, user_id: int, role: Role) -> None:
    db = app.state.session_factory()
    try:
        SqlUserRepository(db).update(user_id, {"role": role})
    finally:
        db.close()


def login(client, email: str, password: str = STRONG_PASSWORD) -> str:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["token"]


@pytest.fixture
def customer(client) -> Tuple[str, dict]:
    return register(client, "Casey Customer", "casey@shop.io")


@pytest.fixture
def admin(client, app) -> Tuple[str, dict]:
    _, user = register(client, "Ada Admin", "ada@shop.io")
    set_role(app, user["id"], Role.ADMIN)
    # the role travels in the token, so log in again after promotion
    return login(client, "ada@shop.io"), user


@pytest.fixture
def courier(client, app) -> Tuple[str, dict]:
    _, user = register(client, "Dee Driver", "dee@shop.io")
    set_role(app, user["id"], Role.DELIVERY_PARTNER)
    return login(client, "dee@shop.io"), user
