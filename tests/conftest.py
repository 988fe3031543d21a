"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key-that-is-long-enough-123456")
os.environ.setdefault("API_BASE_URL", "http://login-api.test")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from pullquest.auth.client import close_http_client, get_login_client  # noqa: E402
from pullquest.auth.dependencies import get_current_user, get_optional_user  # noqa: E402
from pullquest.auth.models import AuthenticatedUser, LoginResult, PendingCredentials  # noqa: E402
from pullquest.main import app  # noqa: E402


class FakeLoginClient:
    """Stands in for the backend login API."""

    def __init__(self, result: LoginResult | None = None) -> None:
        self.result = result or LoginResult(success=True)
        self.calls: list[PendingCredentials] = []

    async def login(self, credentials: PendingCredentials) -> LoginResult:
        self.calls.append(credentials)
        return self.result


@pytest.fixture
def fake_login() -> FakeLoginClient:
    return FakeLoginClient()


@pytest.fixture
def session_store() -> dict:
    """Plain dict standing in for request.session."""
    return {}


@pytest_asyncio.fixture
async def client(fake_login: FakeLoginClient) -> AsyncGenerator[AsyncClient, None]:
    """Create an unauthenticated test client."""
    app.dependency_overrides[get_login_client] = lambda: fake_login

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    await close_http_client()


@pytest.fixture
def test_user() -> AuthenticatedUser:
    return AuthenticatedUser.model_validate(
        {"role": "maintainer", "githubUsername": "octocat", "email": "octo@example.com"}
    )


@pytest_asyncio.fixture
async def authenticated_client(
    fake_login: FakeLoginClient, test_user: AuthenticatedUser
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client whose requests resolve to ``test_user``."""

    def override_get_current_user() -> AuthenticatedUser:
        return test_user

    def override_get_optional_user() -> AuthenticatedUser:
        return test_user

    app.dependency_overrides[get_login_client] = lambda: fake_login
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_optional_user] = override_get_optional_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    await close_http_client()
