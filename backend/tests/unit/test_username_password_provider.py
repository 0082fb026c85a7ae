"""Unit tests for the username / password login provider."""

from unittest.mock import Mock

import pytest

from login_gate.services.login_providers.base import LoginView
from login_gate.services.login_providers.username_password import UsernamePasswordLoginProvider


@pytest.fixture
def provider():
    return UsernamePasswordLoginProvider()


@pytest.mark.unit
class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_valid_credentials(self, provider, user_directory, test_password):
        user = await provider.authenticate(
            {"username": "editor", "userident": test_password}, user_directory
        )

        assert user is not None
        assert user.uid == 1

    @pytest.mark.asyncio
    async def test_username_is_trimmed(self, provider, user_directory, test_password):
        user = await provider.authenticate(
            {"username": "  editor ", "userident": test_password}, user_directory
        )

        assert user is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, provider, user_directory):
        assert await provider.authenticate(
            {"username": "editor", "userident": "nope"}, user_directory
        ) is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, provider, user_directory, test_password):
        assert await provider.authenticate(
            {"username": "ghost", "userident": test_password}, user_directory
        ) is None

    @pytest.mark.asyncio
    async def test_disabled_user(self, provider, user_directory, backend_user, test_password):
        backend_user.disabled = True

        assert await provider.authenticate(
            {"username": "editor", "userident": test_password}, user_directory
        ) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("form", [{}, {"username": "editor"}, {"userident": "x"}])
    async def test_incomplete_form(self, provider, user_directory, form):
        assert await provider.authenticate(form, user_directory) is None


@pytest.mark.unit
class TestRender:
    def test_sets_template_and_preset_username(self, provider):
        controller = Mock()
        controller.context.username = "editor"
        view = LoginView()

        provider.render(view, controller)

        assert view.template == "Login/UserPassLoginForm"
        assert view.variables["presetUsername"] == "editor"
