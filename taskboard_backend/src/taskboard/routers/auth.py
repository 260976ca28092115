from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from .. import actions
from ..auth import AuthService, get_app_settings, get_auth_service, get_session_token
from ..schemas import ActionResult, CurrentUserResult
from ..settings import Settings
from ..utils import envelope_response

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=ActionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up",
    description="Register a new account. Does not log the user in.",
    responses={
        400: {"description": "Missing field"},
        409: {"description": "Email already registered"},
    },
)
def signup(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    return envelope_response(actions.signup(auth, payload), success_status=status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=ActionResult,
    summary="Log in",
    description="Check credentials and set the HTTP-only session cookie.",
    responses={401: {"description": "Invalid email or password"}},
)
def login(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    result, token = actions.login(auth, payload)
    response = envelope_response(result)
    if token is not None:
        response.set_cookie(
            key=settings.session_cookie_name,
            value=token,
            httponly=True,
            path="/",
            samesite="lax",
            secure=settings.session_cookie_secure,
        )
    return response


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=ActionResult,
    summary="Log out",
    description="Delete the current session and clear the cookie. Safe to call twice.",
)
def logout(
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    response = envelope_response(actions.logout(auth, token))
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return response


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=CurrentUserResult,
    summary="Current user",
    description="Return the signed-in user, or null when anonymous.",
)
def me(
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    return envelope_response(actions.current_user(auth, token))
