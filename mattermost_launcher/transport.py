"""
HTTP plumbing for the Mattermost REST API.

A request goes through a small pipeline of stages, each a callable taking an
ApiRequest and returning a requests.Response:

    retry_unauthorized(bearer_auth(HttpTransport(config.api_url)), sessions)

HttpTransport does the actual HTTP call, bearer_auth puts the pinned token
in the Authorization header and retry_unauthorized pins the session token,
refreshes the session on 401 and tries again.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

import requests

from .errors import ApiError, MaxRetriesExceeded
from .log import get_logger

if TYPE_CHECKING:
    from .auth import SessionManager

logger = get_logger("transport")

LOGIN_PATH = "/users/login"
MAX_RETRY_ATTEMPTS = 3
UNAUTHORIZED = 401


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    body: Any = None
    # token pinned by the retry stage; None means the request goes out unauthenticated
    token: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_login(self) -> bool:
        return LOGIN_PATH in self.path


Send = Callable[[ApiRequest], requests.Response]


class HttpTransport:
    """Sends an ApiRequest to ``<api_url><path>``.

    Every status code comes back as a Response; only network failures raise
    (as ApiError with ``status_code=None``).
    """

    def __init__(self, api_url: str, timeout: float = 10.0, http: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.api_url}/{path.lstrip('/')}"

    def __call__(self, request: ApiRequest) -> requests.Response:
        headers: Dict[str, str] = {"Accept": "application/json", **request.headers}

        logger.debug("%s %s", request.method.upper(), request.path)
        try:
            response = self.http.request(
                request.method.upper(),
                self.url(request.path),
                json=request.body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.debug("%s %s failed: %s", request.method.upper(), request.path, e)
            raise ApiError(f"{request.method.upper()} {request.path} failed: {e}", cause=e) from e

        logger.debug("Response %s for %s %s", response.status_code, request.method.upper(), request.path)
        return response


def bearer_auth(send: Send) -> Send:
    """Stage that turns the pinned token into an Authorization header.

    The login call never carries one.
    """

    def stage(request: ApiRequest) -> requests.Response:
        if request.token and not request.is_login:
            request = replace(request, headers={**request.headers, "Authorization": f"Bearer {request.token}"})
        return send(request)

    return stage


def retry_unauthorized(send: Send, sessions: "SessionManager", max_retries: int = MAX_RETRY_ATTEMPTS) -> Send:
    """Stage that refreshes the session on 401 and re-issues the request.

    The retry counter lives in this call, so each logical request gets its
    own budget of ``max_retries``.
    """

    def stage(request: ApiRequest) -> requests.Response:
        retries = 0
        while True:
            if not request.is_login and request.token is None:
                request = replace(request, token=sessions.token)
            response = send(request)
            if response.status_code != UNAUTHORIZED or request.is_login:
                return response

            retries += 1
            if retries > max_retries:
                logger.warning("%s %s still unauthorized after %d retries", request.method.upper(), request.path, max_retries)
                raise MaxRetriesExceeded("Max retry attempts reached", UNAUTHORIZED)

            logger.debug("401 on %s %s, refreshing session (retry %d)", request.method.upper(), request.path, retries)
            token = sessions.refresh_on_unauthorized(stale_token=request.token)
            request = replace(request, token=token)

    return stage
