"""Pytest configuration and shared fixtures."""

from datetime import datetime
from typing import Mapping, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from login_gate.config import settings
from login_gate.core.security import hash_password
from login_gate.core.session import BackendSession, Registry, SessionStore
from login_gate.core.storage import InMemoryKeyValueStore
from login_gate.services.email_service import EmailService
from login_gate.services.login_providers.base import LoginProvider, LoginView
from login_gate.services.login_providers.registry import LoginProviderRegistry
from login_gate.services.login_providers.username_password import UsernamePasswordLoginProvider
from login_gate.services.system_news import InMemorySystemNewsSource, SystemNewsItem
from login_gate.services.user_directory import BackendUser, InMemoryUserDirectory, UserDirectory

TEST_PASSWORD = "correct-horse-battery"


class TokenLoginProvider(LoginProvider):
    """Second provider used to exercise provider selection."""

    def render(self, view: LoginView, controller) -> None:
        view.template = "Login/TokenLoginForm"
        view.assign("tokenHint", "Enter the code from your device")

    async def authenticate(
        self, form: Mapping[str, str], users: UserDirectory
    ) -> Optional[BackendUser]:
        if form.get("token") != "123456":
            return None
        return await users.get_by_username(form.get("username", ""))


PROVIDER_CONFIG = {
    "username_password": {
        "provider": UsernamePasswordLoginProvider,
        "sorting": 50,
        "icon-class": "fa-key",
        "label": "Username / Password",
    },
    "token": {
        "provider": TokenLoginProvider,
        "sorting": 20,
        "icon-class": "fa-mobile",
        "label": "One-time code",
    },
}


@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def backend_user(password_hash) -> BackendUser:
    return BackendUser(
        uid=1,
        username="editor",
        password_hash=password_hash,
        email="editor@example.com",
        realname="Eddie Editor",
    )


@pytest.fixture
def user_directory(backend_user) -> InMemoryUserDirectory:
    return InMemoryUserDirectory([backend_user])


@pytest.fixture
def provider_registry() -> LoginProviderRegistry:
    return LoginProviderRegistry.from_config(PROVIDER_CONFIG)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def session_store(kv_store) -> SessionStore:
    return SessionStore(kv_store)


@pytest.fixture
def token_registry(kv_store) -> Registry:
    return Registry(kv_store)


@pytest.fixture
def logged_in_session() -> BackendSession:
    return BackendSession(session_id="session-1", user_uid=1)


@pytest.fixture
def news_source() -> InMemorySystemNewsSource:
    return InMemorySystemNewsSource(
        [
            SystemNewsItem(1, "Maintenance", "Backend offline on Sunday", datetime(2026, 3, 1, 9, 0)),
            SystemNewsItem(2, "New editor", "The rich text editor was updated", datetime(2026, 5, 12, 14, 30)),
        ]
    )


@pytest.fixture
def mock_email_service():
    service = Mock(spec=EmailService)
    service.send_password_reset_email = AsyncMock(return_value=True)
    return service


@pytest.fixture
def no_reset_delay(monkeypatch):
    monkeypatch.setattr(settings, "PASSWORD_RESET_DELAY_MIN_MS", 0)
    monkeypatch.setattr(settings, "PASSWORD_RESET_DELAY_MAX_MS", 0)


@pytest.fixture
def client(user_directory, provider_registry, news_source, mock_email_service, no_reset_delay):
    """Test client with in-memory collaborators; redirects are not followed."""
    from login_gate.main import app

    with TestClient(app, follow_redirects=False) as test_client:
        app.state.user_directory = user_directory
        app.state.login_providers = provider_registry
        app.state.news_source = news_source
        app.state.email_service = mock_email_service
        yield test_client
