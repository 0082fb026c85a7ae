"""Unit tests for login provider selection."""

import pytest

from login_gate.services.provider_selection import select_login_provider


def _select(registry, requested="", remembered="", is_https=False):
    return select_login_provider(
        registry, requested, remembered, is_https=is_https, cookie_path="/backend/"
    )


@pytest.mark.unit
class TestSelectLoginProvider:
    """Request value, then remembered cookie, then the primary provider."""

    def test_defaults_to_primary_without_cookie(self, provider_registry):
        selection = _select(provider_registry)

        assert selection.identifier == "username_password"
        assert selection.remember_cookie is None

    def test_request_value_wins_over_cookie(self, provider_registry):
        selection = _select(provider_registry, requested="token", remembered="username_password")

        assert selection.identifier == "token"

    def test_unregistered_request_falls_back_to_cookie(self, provider_registry):
        selection = _select(provider_registry, requested="my_provider", remembered="token")

        assert selection.identifier == "token"
        assert selection.remember_cookie.value == "token"

    def test_unregistered_request_and_cookie_fall_back_to_primary(self, provider_registry):
        selection = _select(provider_registry, requested="nope", remembered="gone")

        assert selection.identifier == "username_password"
        assert selection.remember_cookie is None

    def test_primary_choice_sets_no_cookie(self, provider_registry):
        selection = _select(provider_registry, requested="username_password", remembered="token")

        assert selection.identifier == "username_password"
        assert selection.remember_cookie is None

    def test_cookie_attributes(self, provider_registry):
        cookie = _select(provider_registry, requested="token").remember_cookie

        assert cookie.name == "last_login_provider"
        assert cookie.value == "token"
        assert cookie.path == "/backend/"
        assert cookie.max_age == 90 * 24 * 60 * 60
        assert cookie.httponly is True
        assert cookie.samesite == "strict"
        assert cookie.secure is False

    def test_cookie_is_secure_over_https(self, provider_registry):
        cookie = _select(provider_registry, requested="token", is_https=True).remember_cookie

        assert cookie.secure is True

    def test_custom_cookie_name(self, provider_registry):
        selection = select_login_provider(
            provider_registry,
            "token",
            "",
            is_https=False,
            cookie_path="/",
            cookie_name="be_provider",
        )

        assert selection.remember_cookie.name == "be_provider"

    @pytest.mark.parametrize("requested", ["", "token", "username_password", "unknown"])
    @pytest.mark.parametrize("remembered", ["", "token", "username_password", "unknown"])
    def test_selection_is_always_registered_and_repeatable(
        self, provider_registry, requested, remembered
    ):
        first = _select(provider_registry, requested, remembered)
        second = _select(provider_registry, requested, remembered)

        assert first.identifier in provider_registry
        assert first == second
        assert (first.remember_cookie is None) == (first.identifier == "username_password")
