"""Launcher preferences, read from the environment (and a .env file)."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

AUTH_CREDENTIALS = "credentials"
AUTH_STATIC_TOKEN = "static-token"

# the old preference values are still accepted
_AUTH_ALIASES = {
    "credentials": AUTH_CREDENTIALS,
    "logpass": AUTH_CREDENTIALS,
    "static-token": AUTH_STATIC_TOKEN,
    "token": AUTH_STATIC_TOKEN,
}

API_PREFIX = "/api/v4"
DEFAULT_TIMEOUT = 10.0
DEBUG_ENV = "MATTERMOST_LAUNCHER_DEBUG"

# keyring service / key the session token is stored under
KEYRING_SERVICE = "mattermost-launcher"
TOKEN_KEY = "mattermost-token"


class ConfigError(ValueError):
    """Missing or malformed preference."""


@dataclass(frozen=True)
class Config:
    base_url: str
    auth_type: str = AUTH_CREDENTIALS
    credentials: str = ""
    team_name: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False

    @property
    def api_url(self) -> str:
        return self.base_url + API_PREFIX


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build a Config from ``environ`` (defaults to os.environ after loading .env)."""
    if environ is None:
        load_dotenv(override=True)
        environ = os.environ

    base_url = (environ.get("MATTERMOST_BASE_URL") or "").strip().rstrip("/")
    if not base_url:
        raise ConfigError("MATTERMOST_BASE_URL is not set (e.g. https://chat.example.com)")
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(f"MATTERMOST_BASE_URL must start with http:// or https://, got {base_url!r}")

    raw_auth = (environ.get("MATTERMOST_AUTH_TYPE") or AUTH_CREDENTIALS).strip().lower()
    auth_type = _AUTH_ALIASES.get(raw_auth)
    if auth_type is None:
        raise ConfigError(f"MATTERMOST_AUTH_TYPE must be 'credentials' or 'static-token', got {raw_auth!r}")

    raw_timeout = environ.get("MATTERMOST_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
    except ValueError:
        raise ConfigError(f"MATTERMOST_TIMEOUT must be a number, got {raw_timeout!r}")
    if timeout <= 0:
        raise ConfigError("MATTERMOST_TIMEOUT must be positive")

    team_name = (environ.get("MATTERMOST_TEAM_NAME") or "").strip() or None

    return Config(
        base_url=base_url,
        auth_type=auth_type,
        credentials=environ.get("MATTERMOST_CREDENTIALS") or "",
        team_name=team_name,
        timeout=timeout,
        debug=bool(environ.get(DEBUG_ENV)),
    )
