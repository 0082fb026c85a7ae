"""Login provider package: pluggable credential entry strategies."""

from login_gate.services.login_providers.base import LoginProvider, LoginView
from login_gate.services.login_providers.registry import (
    LoginProviderDescriptor,
    LoginProviderRegistry,
    build_registry,
    get_registry,
    reset_registry,
)
from login_gate.services.login_providers.username_password import (
    UsernamePasswordLoginProvider,
)

__all__ = [
    "LoginProvider",
    "LoginView",
    "LoginProviderDescriptor",
    "LoginProviderRegistry",
    "UsernamePasswordLoginProvider",
    "build_registry",
    "get_registry",
    "reset_registry",
]
