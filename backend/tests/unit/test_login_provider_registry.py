"""Unit tests for the login provider registry."""

import pytest
from unittest.mock import patch

from login_gate.core.exceptions import ConfigurationError
from login_gate.services.login_providers.base import LoginProvider, LoginView
from login_gate.services.login_providers.registry import (
    LoginProviderRegistry,
    build_registry,
    get_registry,
    reset_registry,
    resolve_provider_class,
)
from login_gate.services.login_providers.username_password import UsernamePasswordLoginProvider


class _OtherProvider(LoginProvider):
    def render(self, view: LoginView, controller) -> None:
        view.template = "Login/Other"


def _entry(sorting=50, label="Label", icon="fa-key", provider=UsernamePasswordLoginProvider):
    entry = {"provider": provider, "sorting": sorting, "icon-class": icon, "label": label}
    return {key: value for key, value in entry.items() if value is not None}


@pytest.mark.unit
class TestRegistryOrdering:
    """Sorting and primary selection."""

    def test_highest_sorting_is_primary(self):
        registry = LoginProviderRegistry.from_config(
            {
                "low": _entry(sorting=10),
                "high": _entry(sorting=90, provider=_OtherProvider),
                "mid": _entry(sorting=50),
            }
        )

        assert registry.primary.identifier == "high"
        assert [d.identifier for d in registry.ordered()] == ["high", "mid", "low"]

    def test_equal_sorting_keeps_configured_order(self):
        registry = LoginProviderRegistry.from_config(
            {"first": _entry(sorting=10), "second": _entry(sorting=10)}
        )

        assert [d.identifier for d in registry] == ["first", "second"]
        assert registry.primary.identifier == "first"

    def test_sorting_given_as_string_is_converted(self):
        registry = LoginProviderRegistry.from_config({"only": _entry(sorting="30")})

        assert registry.primary.sorting == 30

    def test_lookup_helpers(self):
        registry = LoginProviderRegistry.from_config(
            {"a": _entry(sorting=2), "b": _entry(sorting=1)}
        )

        assert "b" in registry
        assert "missing" not in registry
        assert registry.get("a").identifier == "a"
        assert registry.get("missing") is None
        assert registry.get("") is None
        assert len(registry) == 2

    def test_as_view(self):
        registry = LoginProviderRegistry.from_config({"a": _entry(label="Password", icon="fa-lock")})

        assert registry.as_view() == [
            {"identifier": "a", "label": "Password", "iconClass": "fa-lock", "sorting": 50}
        ]

    def test_create_provider_instantiates_class(self):
        registry = LoginProviderRegistry.from_config({"a": _entry()})

        assert isinstance(registry.primary.create_provider(), UsernamePasswordLoginProvider)


@pytest.mark.unit
class TestRegistryValidation:
    """Every broken entry is a ConfigurationError naming the problem."""

    @pytest.mark.parametrize("providers", [None, {}, [], "username_password"])
    def test_no_providers(self, providers):
        with pytest.raises(ConfigurationError):
            LoginProviderRegistry.from_config(providers)

    def test_empty_entry(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LoginProviderRegistry.from_config({"broken": {}})

        assert exc_info.value.provider_identifier == "broken"

    @pytest.mark.parametrize(
        "entry,missing_field",
        [
            (_entry(label=None), "label"),
            (_entry(label=""), "label"),
            (_entry(icon=None), "icon-class"),
            (_entry(sorting=None), "sorting"),
            (_entry(sorting="high"), "sorting"),
            (_entry(provider=None), "provider"),
        ],
    )
    def test_missing_field(self, entry, missing_field):
        with pytest.raises(ConfigurationError) as exc_info:
            LoginProviderRegistry.from_config({"ok": _entry(), "broken": entry})

        assert exc_info.value.missing_field == missing_field
        assert exc_info.value.provider_identifier == "broken"
        assert "broken" in str(exc_info.value)

    def test_provider_that_is_not_a_login_provider(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LoginProviderRegistry.from_config({"bad": _entry(provider=dict)})

        assert exc_info.value.missing_field == "provider"

    def test_unimportable_provider_reference(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LoginProviderRegistry.from_config(
                {"bad": _entry(provider="login_gate.does_not_exist:Provider")}
            )

        assert exc_info.value.missing_field == "provider"


@pytest.mark.unit
class TestResolveProviderClass:
    def test_colon_reference(self):
        provider_class = resolve_provider_class(
            "login_gate.services.login_providers.username_password:UsernamePasswordLoginProvider",
            "username_password",
        )

        assert provider_class is UsernamePasswordLoginProvider

    def test_dotted_reference(self):
        provider_class = resolve_provider_class(
            "login_gate.services.login_providers.username_password.UsernamePasswordLoginProvider",
            "username_password",
        )

        assert provider_class is UsernamePasswordLoginProvider

    def test_missing_attribute(self):
        with pytest.raises(ConfigurationError):
            resolve_provider_class(
                "login_gate.services.login_providers.username_password:Nope", "x"
            )


@pytest.mark.unit
class TestRegistrySingleton:
    def setup_method(self):
        reset_registry()

    def teardown_method(self):
        reset_registry()

    def test_build_registry_reads_settings(self):
        with patch("login_gate.services.login_providers.registry.settings") as mock_settings:
            mock_settings.LOGIN_PROVIDERS = {"from_settings": _entry()}
            registry = build_registry()

        assert registry.primary.identifier == "from_settings"

    def test_get_registry_is_cached(self):
        assert get_registry() is get_registry()

    def test_default_configuration_is_valid(self):
        registry = get_registry()

        assert registry.primary.identifier == "username_password"
        assert registry.primary.provider is UsernamePasswordLoginProvider
