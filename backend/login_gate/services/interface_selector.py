"""Interface chooser shown below the login form."""

from typing import Sequence

from login_gate.utils.url_utils import FRONTEND_JUMP_TARGET

INTERFACE_LABELS = {
    "backend": "Backend",
    "frontend": "Frontend",
}


def build_interface_selector(
    interfaces: Sequence[str],
    *,
    login_in_progress: bool,
    redirect_url: str,
    main_url: str,
) -> dict:
    """
    Return the view variables for the interface chooser.

    With several interfaces configured the chooser is shown, unless a redirect
    hint was given and no login is in progress. A single interface is
    pre-selected when there is no redirect hint. Otherwise nothing is assigned.
    """
    if not interfaces or not (login_in_progress or not redirect_url):
        return {}

    if len(interfaces) > 1:
        jump_targets = {"backend": main_url, "frontend": FRONTEND_JUMP_TARGET}
        return {
            "showInterfaceSelector": True,
            "interfaces": {
                name: {
                    "label": INTERFACE_LABELS[name],
                    "jumpScript": jump_targets[name],
                    "interface": name,
                }
                for name in interfaces
            },
        }

    if not redirect_url:
        return {"showInterfaceSelector": False, "interface": interfaces[0]}

    return {}
