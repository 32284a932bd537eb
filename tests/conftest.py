"""Shared fakes: a stand-in for requests.Session and client factories."""

import json
import threading
from typing import Callable, NamedTuple, Optional

import pytest
import requests

from mattermost_launcher.api_interface import MattermostClient
from mattermost_launcher.auth_storage import MemoryTokenStore
from mattermost_launcher.config import AUTH_CREDENTIALS, TOKEN_KEY, Config

BASE_URL = "https://chat.example.com"


class Call(NamedTuple):
    method: str
    path: str
    body: object
    headers: dict

    @property
    def token(self) -> Optional[str]:
        auth = self.headers.get("Authorization")
        return auth[len("Bearer "):] if auth else None


def make_response(status: int = 200, body=None, headers: Optional[dict] = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    resp._content = json.dumps(body if body is not None else {}).encode("utf-8")
    resp.headers.update(headers or {})
    return resp


class FakeHttp:
    """Quacks like requests.Session.request; ``handler(call)`` answers."""

    def __init__(self, handler: Callable[[Call], requests.Response]):
        self.handler = handler
        self.calls = []
        self._lock = threading.Lock()

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url.split("/api/v4", 1)[1]
        call = Call(method, path, json, dict(headers or {}))
        with self._lock:
            self.calls.append(call)
        return self.handler(call)

    def calls_to(self, path: str):
        with self._lock:
            return [c for c in self.calls if c.path == path]


def make_config(auth_type: str = AUTH_CREDENTIALS, credentials: str = "alice:secret", **kwargs) -> Config:
    return Config(base_url=BASE_URL, auth_type=auth_type, credentials=credentials, **kwargs)


@pytest.fixture
def make_client():
    """Build a MattermostClient over a FakeHttp; returns (client, http, store)."""

    def factory(handler, stored_token: Optional[str] = None, **config_kwargs):
        store = MemoryTokenStore({TOKEN_KEY: stored_token} if stored_token else None)
        http = FakeHttp(handler)
        client = MattermostClient.from_config(make_config(**config_kwargs), store=store, http=http)
        return client, http, store

    return factory
