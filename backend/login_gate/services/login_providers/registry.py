"""LoginProviderRegistry: validated, sorted list of login providers."""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from login_gate.config import settings
from login_gate.core.exceptions import ConfigurationError
from login_gate.services.login_providers.base import LoginProvider

logger = logging.getLogger(__name__)

# Module-level singleton (built lazily on first request)
_registry: Optional["LoginProviderRegistry"] = None


@dataclass(frozen=True)
class LoginProviderDescriptor:
    """One registered login provider."""

    identifier: str
    label: str
    icon_class: str
    sorting: int
    provider: type[LoginProvider]

    def create_provider(self) -> LoginProvider:
        return self.provider()

    def as_view(self) -> dict:
        return {
            "identifier": self.identifier,
            "label": self.label,
            "iconClass": self.icon_class,
            "sorting": self.sorting,
        }


def resolve_provider_class(reference: Any, identifier: str) -> type[LoginProvider]:
    """Turn a ``"module:Class"`` / ``"module.Class"`` reference into the class.

    Raises:
        ConfigurationError: if the reference cannot be imported or does not
            name a LoginProvider subclass.
    """
    provider_class = reference
    if isinstance(reference, str) and reference:
        module_name, sep, class_name = reference.partition(":")
        if not sep:
            module_name, _, class_name = reference.rpartition(".")
        try:
            module = importlib.import_module(module_name)
            provider_class = getattr(module, class_name)
        except (ImportError, AttributeError, ValueError) as exc:
            raise ConfigurationError(
                f'The login provider "{identifier}" defines an invalid provider '
                f'"{reference}": {exc}',
                missing_field="provider",
                provider_identifier=identifier,
            ) from exc

    if not isinstance(provider_class, type) or not issubclass(provider_class, LoginProvider):
        raise ConfigurationError(
            f'The login provider "{identifier}" defines an invalid provider. Ensure the '
            f"class exists and extends {LoginProvider.__qualname__}.",
            missing_field="provider",
            provider_identifier=identifier,
        )
    return provider_class


def _build_descriptor(identifier: str, configuration: Any) -> LoginProviderDescriptor:
    if not configuration or not isinstance(configuration, Mapping):
        raise ConfigurationError(
            f'Missing configuration for login provider "{identifier}".',
            provider_identifier=identifier,
        )

    provider_class = resolve_provider_class(configuration.get("provider"), identifier)

    label = configuration.get("label")
    if not label:
        raise ConfigurationError(
            f'Missing label definition for login provider "{identifier}".',
            missing_field="label",
            provider_identifier=identifier,
        )

    icon_class = configuration.get("icon-class")
    if not icon_class:
        raise ConfigurationError(
            f'Missing icon definition for login provider "{identifier}".',
            missing_field="icon-class",
            provider_identifier=identifier,
        )

    sorting = configuration.get("sorting")
    if sorting is None:
        raise ConfigurationError(
            f'Missing sorting definition for login provider "{identifier}".',
            missing_field="sorting",
            provider_identifier=identifier,
        )
    try:
        sorting = int(sorting)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f'Invalid sorting definition {sorting!r} for login provider "{identifier}".',
            missing_field="sorting",
            provider_identifier=identifier,
        ) from exc

    return LoginProviderDescriptor(
        identifier=str(identifier),
        label=str(label),
        icon_class=str(icon_class),
        sorting=sorting,
        provider=provider_class,
    )


class LoginProviderRegistry:
    """Registered login providers, highest ``sorting`` first.

    The first entry is the primary provider. Construction validates every
    entry and fails with :class:`ConfigurationError` on the first problem, so
    an instance always holds at least one usable provider.
    """

    def __init__(self, descriptors: list[LoginProviderDescriptor]) -> None:
        if not descriptors:
            raise ConfigurationError("No login providers are registered.")
        identifiers = [descriptor.identifier for descriptor in descriptors]
        duplicates = {name for name in identifiers if identifiers.count(name) > 1}
        if duplicates:
            raise ConfigurationError(
                f"Login provider identifiers must be unique, duplicated: {sorted(duplicates)}",
                provider_identifier=sorted(duplicates)[0],
            )
        # sorted() is stable: equal sorting keeps the configured order
        self._descriptors = tuple(sorted(descriptors, key=lambda d: -d.sorting))
        self._by_identifier = {d.identifier: d for d in self._descriptors}

    @classmethod
    def from_config(cls, providers: Any) -> "LoginProviderRegistry":
        """Validate a ``{identifier: configuration}`` mapping."""
        if not providers or not isinstance(providers, Mapping):
            raise ConfigurationError("No login providers are registered.")
        return cls(
            [
                _build_descriptor(identifier, configuration)
                for identifier, configuration in providers.items()
            ]
        )

    @property
    def primary(self) -> LoginProviderDescriptor:
        return self._descriptors[0]

    def ordered(self) -> tuple[LoginProviderDescriptor, ...]:
        return self._descriptors

    def get(self, identifier: Optional[str]) -> Optional[LoginProviderDescriptor]:
        if not identifier:
            return None
        return self._by_identifier.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._by_identifier

    def __iter__(self) -> Iterator[LoginProviderDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def as_view(self) -> list[dict]:
        return [descriptor.as_view() for descriptor in self._descriptors]


def build_registry(providers: Optional[Mapping] = None) -> LoginProviderRegistry:
    """Construct the registry from application settings."""
    registry = LoginProviderRegistry.from_config(
        settings.LOGIN_PROVIDERS if providers is None else providers
    )
    for descriptor in registry:
        logger.info(
            "Login providers: registered %s (sorting=%d)",
            descriptor.identifier,
            descriptor.sorting,
        )
    return registry


def get_registry() -> LoginProviderRegistry:
    """Return the singleton registry, building it on first call."""
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry


def reset_registry() -> None:
    """Reset the singleton registry (used in tests to re-read config)."""
    global _registry
    _registry = None
