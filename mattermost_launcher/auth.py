"""
Session handling: sign-in against Mattermost and token refresh.

The SessionManager is the only writer of the bearer token. Requests that
come back 401 ask it for a fresh token; only one sign-in runs at a time and
everyone who asked while it was running gets that same outcome.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import requests

from .auth_storage import TokenStore
from .config import AUTH_STATIC_TOKEN, TOKEN_KEY, Config
from .errors import ApiError, AuthError, InvalidCredentialsFormat
from .log import get_logger, mask_token
from .transport import LOGIN_PATH, ApiRequest

logger = get_logger("auth")

Send = Callable[[ApiRequest], requests.Response]


@dataclass(frozen=True)
class Session:
    token: str
    auth_mode: str
    # True when the token came from the token store rather than a fresh sign-in
    restored: bool = False


def parse_credentials(value: str) -> Tuple[str, str]:
    """Split ``"username:password"``. Passwords may themselves contain ':'."""
    username, _, password = (value or "").partition(":")
    if not username or not password:
        raise InvalidCredentialsFormat('Invalid credentials format. Expected "username:password"')
    return username, password


class SessionManager:
    """Owns the current Session and serializes sign-ins.

    ``send`` is the raw transport (no auth stages): the login exchange must
    not carry a bearer token and must not loop back into refresh handling.
    """

    def __init__(self, config: Config, store: TokenStore, send: Send):
        self.config = config
        self.store = store
        self._send = send
        self._session: Optional[Session] = None
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def token(self) -> Optional[str]:
        session = self._session
        return session.token if session else None

    def ensure_session(self) -> Session:
        """Restore the stored token, or sign in if there is none."""
        session = self._session
        if session is not None:
            return session

        stored = self.store.get(TOKEN_KEY)
        if stored:
            logger.debug("Restored stored token %s", mask_token(stored))
            with self._lock:
                if self._session is None:
                    self._session = Session(stored, self.config.auth_type, restored=True)
                return self._session

        logger.debug("No stored token, signing in")
        self._single_flight()
        return self._session

    def sign_in(self) -> str:
        """Obtain a new token, store it and make it the live session."""
        if self.config.auth_type == AUTH_STATIC_TOKEN:
            token = self.config.credentials.strip()
            if not token:
                raise AuthError("No access token configured")
        else:
            token = self._login_exchange()

        self.store.set(TOKEN_KEY, token)
        self._session = Session(token, self.config.auth_type)
        logger.debug("Update token: %s", mask_token(token))
        return token

    def refresh_on_unauthorized(self, stale_token: Optional[str] = None) -> str:
        """Return a token to retry with after a 401.

        If ``stale_token`` (the token the failed request carried, None when
        it went out before any session existed) is no longer the live token,
        the current token is returned without signing in again.
        """
        return self._single_flight(stale_token)

    def sign_out(self) -> None:
        with self._lock:
            self._session = None
        self.store.delete(TOKEN_KEY)

    def _single_flight(self, stale_token: Optional[str] = None) -> str:
        with self._lock:
            current = self.token
            # a request that carried no token, or a token that has since been
            # replaced, can use the session that is live now
            if current and current != stale_token:
                return current
            pending = self._pending
            leader = pending is None
            if leader:
                pending = self._pending = Future()

        if not leader:
            logger.debug("Sign-in already running, waiting for it")
            return pending.result()

        try:
            token = self.sign_in()
        except BaseException as exc:
            self._settle(pending, exc=exc)
            raise
        self._settle(pending, token=token)
        return token

    def _settle(self, pending: Future, token: Optional[str] = None, exc: Optional[BaseException] = None) -> None:
        # detach first so a caller arriving after this point starts a new flight
        with self._lock:
            self._pending = None
        if exc is not None:
            pending.set_exception(exc)
        else:
            pending.set_result(token)

    def _login_exchange(self) -> str:
        username, password = parse_credentials(self.config.credentials)
        logger.debug("Signing in as %s", username)
        request = ApiRequest("POST", LOGIN_PATH, {"login_id": username, "password": password})
        try:
            response = self._send(request)
        except ApiError as e:
            raise AuthError(f"Sign-in request failed: {e}", e.status_code, cause=e) from e

        if not response.ok:
            raise AuthError(
                f"Sign-in failed with HTTP {response.status_code}",
                response.status_code,
            )

        token = response.headers.get("token")
        if not token:
            raise AuthError("No token received from server", response.status_code)
        return token
