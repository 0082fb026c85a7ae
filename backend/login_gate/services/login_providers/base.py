"""Base classes for login providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from login_gate.services.user_directory import BackendUser, UserDirectory

if TYPE_CHECKING:
    from login_gate.services.session_entry import SessionEntryController


@dataclass
class LoginView:
    """Template name plus the variables assigned to it."""

    template: str = "Login/Form"
    variables: dict = field(default_factory=dict)

    def assign(self, key: str, value: Any) -> None:
        self.variables[key] = value

    def assign_multiple(self, values: Mapping[str, Any]) -> None:
        self.variables.update(values)


class LoginProvider(ABC):
    """Abstract base for all login providers.

    A provider renders the credential-entry part of the login form and
    verifies what the user submitted through it.
    """

    @abstractmethod
    def render(self, view: LoginView, controller: "SessionEntryController") -> None:
        """Select the template and assign provider specific variables.

        Called after the controller assigned its own variables, so a provider
        may read or override them.
        """

    async def authenticate(
        self, form: Mapping[str, str], users: UserDirectory
    ) -> Optional[BackendUser]:
        """Return the user matching the submitted form, or None.

        Providers that authenticate elsewhere (e.g. a remote IdP) keep the
        default and never accept credentials here.
        """
        return None
