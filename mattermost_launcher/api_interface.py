"""
API Interface Layer for the Mattermost launcher.

MattermostClient is the one object the UI talks to. Every call is
authenticated with the current session token and transparently retried
after a session refresh when the server answers 401.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import requests

from .auth import SessionManager
from .auth_storage import KeyringTokenStore, TokenStore
from .config import Config
from .data_models import (
    Channel,
    ChannelCategory,
    CustomProfileStatus,
    Team,
    UnreadMessageCount,
    UserProfile,
    UserProfileStatus,
)
from .errors import ApiError
from .log import get_logger
from .presence import duration_to_expire_date
from .transport import ApiRequest, HttpTransport, Send, bearer_auth, retry_unauthorized

logger = get_logger("api")


class MattermostClient:
    """Client for the Mattermost /api/v4 REST API."""

    def __init__(self, transport: Send, sessions: SessionManager):
        self.sessions = sessions
        self._send = retry_unauthorized(bearer_auth(transport), sessions)

    @classmethod
    def from_config(cls, config: Config, store: Optional[TokenStore] = None,
                    http: Optional[requests.Session] = None) -> "MattermostClient":
        transport = HttpTransport(config.api_url, timeout=config.timeout, http=http)
        sessions = SessionManager(config, store or KeyringTokenStore(), transport)
        return cls(transport, sessions)

    # --- helpers ---
    def request(self, method: str, path: str, body: Any = None) -> requests.Response:
        response = self._send(ApiRequest(method, path, body))
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.debug("%s %s -> HTTP %s", method.upper(), path, response.status_code)
            raise ApiError(
                f"{method.upper()} {path} failed with HTTP {response.status_code}",
                response.status_code,
                cause=e,
            ) from e
        return response

    def _get(self, path: str) -> Any:
        return self.request("GET", path).json()

    def _post(self, path: str, body: Any = None) -> Any:
        return self.request("POST", path, body).json()

    def _put(self, path: str, body: Any = None) -> None:
        self.request("PUT", path, body)

    def _delete(self, path: str) -> None:
        self.request("DELETE", path)

    # --- users ---
    def get_me(self) -> UserProfile:
        return UserProfile.from_api(self._get("/users/me"))

    def get_profiles_by_ids(self, ids: List[str]) -> List[UserProfile]:
        data = self._post("/users/ids", list(ids))
        return [UserProfile.from_api(p) for p in data]

    # --- teams & channels ---
    def get_teams(self) -> List[Team]:
        data: Union[List[Dict[str, Any]], Dict[str, Any]] = self._get("/teams")
        # admins may get the paged {"teams": [...], "total_count": n} shape
        if isinstance(data, dict):
            data = data.get("teams") or []
        return [Team.from_api(t) for t in data]

    def get_my_channels(self, team_id: str) -> List[Channel]:
        data = self._get(f"/users/me/teams/{team_id}/channels")
        return [Channel.from_api(c) for c in data]

    def get_channel_categories(self, team_id: str) -> List[ChannelCategory]:
        data = self._get(f"/users/me/teams/{team_id}/channels/categories")
        # categories come wrapped with their order: {"categories": [...], "order": [...]}
        return [ChannelCategory.from_api(c) for c in data.get("categories") or []]

    def get_unread_messages(self, team_id: str) -> List[UnreadMessageCount]:
        data = self._get(f"/users/me/teams/{team_id}/channels/members")
        return [UnreadMessageCount.from_api(m) for m in data]

    # --- statuses ---
    def get_profile_status(self) -> UserProfileStatus:
        return UserProfileStatus.from_api(self._get("/users/me/status"))

    def set_profile_status(self, user_id: str, status: str) -> None:
        self._put("/users/me/status", {"user_id": user_id, "status": status})

    def get_profiles_status(self, ids: List[str]) -> List[UserProfileStatus]:
        data = self._post("/users/status/ids", list(ids))
        return [UserProfileStatus.from_api(s) for s in data]

    def set_custom_status(self, status: CustomProfileStatus, now: Optional[datetime] = None) -> None:
        expires_at = status.expires_at
        if expires_at is None and status.duration:
            expires_at = duration_to_expire_date(status.duration, now)
        body: Dict[str, Any] = {"emoji": status.emoji_code, "text": status.text}
        if status.duration:
            body["duration"] = status.duration
        if expires_at is not None:
            body["expires_at"] = expires_at.isoformat()
        self._put("/users/me/status/custom", body)

    def clear_custom_status(self) -> None:
        self._delete("/users/me/status/custom")
