"""Backend login entry point endpoints."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from login_gate.config import settings
from login_gate.dependencies import get_entry_controller, get_form_data
from login_gate.services.backend_auth import SessionAuthenticationState
from login_gate.services.session_entry import (
    CloseWindow,
    EntryResult,
    Redirect,
    RenderForm,
    SessionEntryController,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _set_session_cookie(
    response: Response, auth: SessionAuthenticationState, path: str, secure: bool
) -> None:
    """Issue, renew or drop the session cookie to match the session state."""
    if auth.ended:
        response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path=path)
        return
    if auth.session.is_new:
        response.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=auth.session.session_id,
            httponly=True,
            secure=secure,
            samesite="strict",
            path=path,
        )


def to_response(result: EntryResult, controller: SessionEntryController) -> Response:
    """Translate a controller result into the HTTP response."""
    outcome = result.outcome
    if isinstance(outcome, Redirect):
        response: Response = RedirectResponse(url=outcome.target, status_code=outcome.status_code)
    elif isinstance(outcome, CloseWindow):
        response = JSONResponse(content={"outcome": "closeWindow"})
    elif isinstance(outcome, RenderForm):
        response = JSONResponse(
            content={
                "outcome": "render",
                "formKind": outcome.form_kind.value,
                "template": outcome.template,
                "providerIdentifier": outcome.provider_identifier,
                "redirectTarget": outcome.redirect_target,
                "variables": outcome.variables,
            }
        )
    else:
        raise TypeError(f"Unknown outcome {outcome!r}")

    cookie = result.remember_cookie
    if cookie is not None:
        response.set_cookie(
            key=cookie.name,
            value=cookie.value,
            max_age=cookie.max_age,
            expires=cookie.max_age,
            path=cookie.path,
            secure=cookie.secure,
            httponly=cookie.httponly,
            samesite=cookie.samesite,
        )

    _set_session_cookie(
        response,
        controller.auth,
        path=controller.urls.cookie_path,
        secure=controller.context.is_https,
    )
    return response


@router.api_route("/login", methods=["GET", "POST"])
async def login(controller: SessionEntryController = Depends(get_entry_controller)):
    """
    Login form, or the redirect replacing it once the user is logged in.

    Handles ``L=OUT`` (log off), ``loginRefresh`` and the cookie retry
    (``commandLI=setCookie``).
    """
    return to_response(await controller.form_action(), controller)


@router.api_route("/login/refresh", methods=["GET", "POST"])
async def login_refresh(controller: SessionEntryController = Depends(get_entry_controller)):
    """Login form for the session-expiry popup; closes itself after login."""
    return to_response(await controller.refresh_action(), controller)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(controller: SessionEntryController = Depends(get_entry_controller)):
    return to_response(await controller.logout_action(), controller)


@router.get("/login/password-forget")
async def forget_password_form(
    controller: SessionEntryController = Depends(get_entry_controller),
):
    return to_response(await controller.forget_password_form_action(), controller)


@router.post("/login/password-forget/initiate")
async def initiate_password_reset(
    form: dict[str, str] = Depends(get_form_data),
    controller: SessionEntryController = Depends(get_entry_controller),
):
    """Request a reset link. The response is delayed by a random amount."""
    email = (form.get("email") or "").strip()
    return to_response(await controller.initiate_password_reset_action(email), controller)


@router.get("/login/password-reset")
async def password_reset_form(
    request: Request,
    controller: SessionEntryController = Depends(get_entry_controller),
):
    params = request.query_params
    result = await controller.password_reset_action(
        params.get("t", ""), params.get("i", ""), params.get("e", "")
    )
    return to_response(result, controller)


@router.post("/login/password-reset/finish")
async def password_reset_finish(
    request: Request,
    form: dict[str, str] = Depends(get_form_data),
    controller: SessionEntryController = Depends(get_entry_controller),
):
    params = request.query_params
    result = await controller.password_reset_finish_action(
        params.get("t", ""),
        params.get("i", ""),
        params.get("e", ""),
        form.get("password", ""),
        form.get("passwordrepeat", ""),
    )
    return to_response(result, controller)
