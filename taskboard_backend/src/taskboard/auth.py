from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request

from .errors import AuthError, ConflictError, NotAuthenticatedError, StorageError
from .repositories import Repository
from .schemas import LoginForm, PublicUser, SignupForm, UserOut
from .security import (
    generate_session_token,
    hash_password,
    looks_like_session_token,
    verify_password,
)
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds=rounds)


# PUBLIC_INTERFACE
class AuthService:
    """
    Signup, login, session lookup and logout.

    Per request the caller moves Anonymous -> (signup|login) -> Authenticated
    -> logout -> Anonymous. Signup never authenticates; the caller logs in
    separately.
    """

    def __init__(self, repository: Repository, settings: Optional[Settings] = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()

    def signup(self, form: SignupForm) -> PublicUser:
        """
        Register a new user.

        Raises:
            ConflictError: if the email is already registered.
        """
        if self.repository.get_user_by_email(form.email) is not None:
            raise ConflictError("An account with this email already exists")
        user = self.repository.create_user(
            email=form.email,
            password_hash=hash_password(form.password, rounds=self.settings.bcrypt_rounds),
            name=form.name,
        )
        logger.info("Registered user %s", user["id"])
        return PublicUser(id=user["id"], name=user["name"])

    def login(self, form: LoginForm) -> str:
        """
        Check credentials and open a new session. Returns the session token.

        Raises:
            AuthError: with the same message whether the user is unknown or
            the password is wrong.
        """
        user = self.repository.get_user_by_email(form.email)
        if user is None:
            # Same bcrypt cost as a real check so timing does not reveal the miss
            verify_password(form.password, _dummy_hash(self.settings.bcrypt_rounds))
            logger.info("Login failed")
            raise AuthError(INVALID_CREDENTIALS)
        if not verify_password(form.password, user["password_hash"]):
            logger.info("Login failed")
            raise AuthError(INVALID_CREDENTIALS)

        token = generate_session_token()
        self.repository.create_session(token, user["id"])
        logger.info("User %s logged in", user["id"])
        return token

    def get_current_user(self, token: object) -> Optional[UserOut]:
        """
        Resolve a session token to its user. Never raises: anything that is
        not a live session yields None.
        """
        if not looks_like_session_token(token):
            return None
        try:
            session = self.repository.get_session_by_token(token)  # type: ignore[arg-type]
            if session is None:
                return None
            user = self.repository.get_user(session["user_id"])
        except StorageError:
            logger.exception("Session lookup failed")
            return None
        if user is None:
            return None
        return UserOut(id=user["id"], email=user["email"], name=user["name"])

    def require_user(self, token: object) -> UserOut:
        """Authorization gate for mutating operations."""
        user = self.get_current_user(token)
        if user is None:
            raise NotAuthenticatedError()
        return user

    def logout(self, token: object) -> None:
        """Delete the session. Calling it with an already-invalid token is fine."""
        if not looks_like_session_token(token):
            return
        removed = self.repository.delete_sessions_by_token(token)  # type: ignore[arg-type]
        if removed:
            logger.info("Session closed")


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """FastAPI dependency returning the process-wide storage handle."""
    return request.app.state.repository


# PUBLIC_INTERFACE
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# PUBLIC_INTERFACE
def get_auth_service(
    repo: Repository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(repo, settings)


# PUBLIC_INTERFACE
def get_session_token(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> Optional[str]:
    """Read the session cookie. Absence means anonymous."""
    return request.cookies.get(settings.session_cookie_name)
