"""
Pytest configuration for the menu API tests.

Runs the application against the in-memory document store with a low
bcrypt cost. Environment is set before the application is imported
because settings are read at import time.
"""

import asyncio
import os

os.environ["MONGODB_URI"] = "mongodb://localhost:27017/menu_ordering_test"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["FRONTEND_URL"] = "http://localhost:5173"
os.environ["ENV_MODE"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "10000"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_RETRY_BASE_DELAY"] = "0.01"

from typing import Dict  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from menu_api.core.config import get_settings  # noqa: E402
from menu_api.core.rate_limit import reset_rate_limiter  # noqa: E402
from menu_api.core.security import get_password_context, get_token_service  # noqa: E402
from menu_api.services.accounts import AccountService  # noqa: E402
from menu_api.services.storage import (  # noqa: E402
    MemoryDocumentStore,
    get_document_store,
    reset_document_store,
)

ADMIN = {
    "name": "Head Chef",
    "email": "admin@example.com",
    "phone_number": "+2348000000001",
    "password": "admin-pass",
}


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh data and rate limiter counters for every test."""
    store = get_document_store()
    assert isinstance(store, MemoryDocumentStore)
    store.clear()
    reset_rate_limiter()
    yield
    store.clear()
    reset_rate_limiter()


@pytest.fixture(scope="session", autouse=True)
def settings_cache():
    yield
    get_settings.cache_clear()
    get_token_service.cache_clear()
    get_password_context.cache_clear()
    reset_document_store()


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return get_document_store()


@pytest.fixture
def test_client():
    """Test client for the FastAPI app (runs startup and shutdown)."""
    from menu_api.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_headers(test_client: TestClient) -> Dict[str, str]:
    """Authorization header for a freshly created admin."""
    accounts = AccountService(get_document_store().users, get_token_service())
    asyncio.run(accounts.create_admin(**ADMIN))

    response = test_client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN["email"], "password": ADMIN["password"]},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def user_headers(test_client: TestClient) -> Dict[str, str]:
    """Authorization header for a freshly registered regular user."""
    response = test_client.post(
        "/api/v1/auth/register",
        json={
            "name": "Ada Obi",
            "email": "ada@example.com",
            "phoneNumber": "+2348012345678",
            "password": "s3cret-pass",
        },
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
