"""
Shared fixtures.

Environment is set before `crm` is imported: the settings singleton is read
at import time and bcrypt runs at its cheapest cost in tests.
"""

import asyncio
import os

os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("SMTP_USER", "")
os.environ.setdefault("SMTP_PASS", "")

from datetime import datetime, timedelta, timezone  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from crm.app import create_app  # noqa: E402
from crm.auth.helpers import create_access_token, hash_password  # noqa: E402
from crm.notifications import DeliveryResult, EmailNotifier  # noqa: E402
from crm.stores import StoreRegistry  # noqa: E402
from crm.utils import new_id  # noqa: E402

DEFAULT_PASSWORD = "secret123"


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


class FakeClock:
    """Controllable clock for the reset-token stores."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ============================================================================
# Store / notifier fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stores(clock) -> StoreRegistry:
    return StoreRegistry.in_memory(clock)


@pytest.fixture
def notifier() -> MagicMock:
    """EmailNotifier double that records every send and always succeeds."""
    mock = MagicMock(spec=EmailNotifier)
    mock.is_configured = True
    ok = DeliveryResult(success=True, message_id="<test@crm>")
    mock.send = AsyncMock(return_value=ok)
    mock.send_password_reset_email = AsyncMock(return_value=ok)
    mock.send_welcome_email = AsyncMock(return_value=ok)
    return mock


# ============================================================================
# App fixtures
# ============================================================================


@pytest.fixture
def app(stores, notifier):
    return create_app(stores=stores, notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


async def seed_account(
    stores: StoreRegistry,
    email: str = "jane@example.com",
    password: str = DEFAULT_PASSWORD,
    role: str = "admin",
    is_active: bool = True,
) -> dict:
    """Insert an organization and a user straight into the stores."""
    org = await stores.organizations.create(
        {
            "_id": new_id(),
            "name": "Acme",
            "slug": f"acme-{new_id()}",
            "plan": "starter",
            "settings": {
                "currency": "USD",
                "timezone": "UTC",
                "date_format": "MM/DD/YYYY",
                "industry": None,
                "features": ["contacts", "deals", "activities"],
            },
        }
    )
    return await stores.users.create(
        {
            "_id": new_id(),
            "email": email,
            "password": hash_password(password),
            "first_name": "Jane",
            "last_name": "Doe",
            "organization_id": org["_id"],
            "role": role,
            "is_active": is_active,
            "preferences": {"theme": "light", "notifications": True, "timezone": "UTC"},
        }
    )


def auth_headers(user: dict) -> dict:
    token = create_access_token(
        {
            "sub": user["_id"],
            "email": user["email"],
            "organization_id": user["organization_id"],
            "role": user["role"],
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_account(stores):
    """Sync factory around `seed_account` for TestClient-based tests."""

    def _make(**kwargs) -> dict:
        return asyncio.run(seed_account(stores, **kwargs))

    return _make
