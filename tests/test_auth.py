"""Tests for sign-in, session restore and the single-flight refresh."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests

from conftest import make_response
from mattermost_launcher.auth import parse_credentials
from mattermost_launcher.config import AUTH_STATIC_TOKEN, TOKEN_KEY
from mattermost_launcher.errors import AuthError, InvalidCredentialsFormat

ME = {"id": "u1", "username": "alice"}


def login_handler(token="fresh-token"):
    def handler(call):
        if call.path == "/users/login":
            return make_response(200, ME, headers={"token": token})
        return make_response(200, ME)

    return handler


def test_parse_credentials():
    assert parse_credentials("alice:secret") == ("alice", "secret")


def test_parse_credentials_keeps_colons_in_password():
    assert parse_credentials("alice:se:cret") == ("alice", "se:cret")


@pytest.mark.parametrize("value", ["alice", ":secret", "", "alice:"])
def test_parse_credentials_rejects_missing_half(value):
    with pytest.raises(InvalidCredentialsFormat):
        parse_credentials(value)


def test_ensure_session_restores_stored_token(make_client):
    client, http, store = make_client(login_handler(), stored_token="stored")

    session = client.sessions.ensure_session()

    assert session.token == "stored"
    assert session.restored is True
    assert http.calls == []


def test_ensure_session_signs_in_without_stored_token(make_client):
    client, http, store = make_client(login_handler("fresh-token"))

    session = client.sessions.ensure_session()

    assert session.token == "fresh-token"
    assert session.restored is False
    assert store.get(TOKEN_KEY) == "fresh-token"
    [login] = http.calls_to("/users/login")
    assert login.method == "POST"
    assert login.body == {"login_id": "alice", "password": "secret"}
    assert "Authorization" not in login.headers


def test_static_token_mode_uses_configured_token(make_client):
    client, http, store = make_client(login_handler(), auth_type=AUTH_STATIC_TOKEN, credentials="pat-123")

    session = client.sessions.ensure_session()

    assert session.token == "pat-123"
    assert session.auth_mode == AUTH_STATIC_TOKEN
    assert store.get(TOKEN_KEY) == "pat-123"
    assert http.calls == []


def test_sign_in_bad_credentials_format_makes_no_request(make_client):
    client, http, _ = make_client(login_handler(), credentials="alice")

    with pytest.raises(InvalidCredentialsFormat):
        client.sessions.sign_in()
    assert http.calls == []


def test_sign_in_without_token_header_fails(make_client):
    client, _, store = make_client(lambda call: make_response(200, ME))

    with pytest.raises(AuthError, match="No token"):
        client.sessions.sign_in()
    assert store.get(TOKEN_KEY) is None


def test_sign_in_rejected_is_not_retried(make_client):
    client, http, _ = make_client(lambda call: make_response(401, {"message": "bad password"}))

    with pytest.raises(AuthError) as excinfo:
        client.sessions.sign_in()
    assert excinfo.value.status_code == 401
    assert len(http.calls_to("/users/login")) == 1


def test_sign_in_network_failure_is_auth_error(make_client):
    def handler(call):
        raise requests.ConnectionError("connection refused")

    client, _, _ = make_client(handler)

    with pytest.raises(AuthError) as excinfo:
        client.sessions.sign_in()
    assert excinfo.value.status_code is None


def test_sign_out_forgets_token(make_client):
    client, _, store = make_client(login_handler(), stored_token="stored")
    client.sessions.ensure_session()

    client.sessions.sign_out()

    assert client.sessions.session is None
    assert store.get(TOKEN_KEY) is None


def test_concurrent_401s_sign_in_once(make_client):
    """Five requests rejected together share one sign-in and its token."""
    n = 5
    barrier = threading.Barrier(n, timeout=5)
    logins = []

    def handler(call):
        if call.path == "/users/login":
            logins.append(call)
            time.sleep(0.05)
            return make_response(200, ME, headers={"token": "fresh"})
        if call.token == "fresh":
            return make_response(200, ME)
        # hold every stale request until all of them are in flight
        barrier.wait()
        return make_response(401, {"message": "expired"})

    client, http, store = make_client(handler, stored_token="stale")
    client.sessions.ensure_session()

    with ThreadPoolExecutor(max_workers=n) as pool:
        results = list(pool.map(lambda _: client.get_me(), range(n)))

    assert len(logins) == 1
    assert [r.id for r in results] == ["u1"] * n
    retried = [c for c in http.calls_to("/users/me") if c.token == "fresh"]
    assert len(retried) == n
    assert store.get(TOKEN_KEY) == "fresh"


def test_waiters_share_leader_failure(make_client):
    n = 4
    barrier = threading.Barrier(n, timeout=5)
    logins = []

    def handler(call):
        if call.path == "/users/login":
            logins.append(call)
            time.sleep(0.2)
            return make_response(503, {"message": "down"})
        barrier.wait()
        return make_response(401, {})

    client, _, _ = make_client(handler, stored_token="stale")
    client.sessions.ensure_session()

    def call():
        with pytest.raises(AuthError):
            client.get_me()

    with ThreadPoolExecutor(max_workers=n) as pool:
        for future in [pool.submit(call) for _ in range(n)]:
            future.result()

    assert len(logins) == 1


def test_refresh_with_already_replaced_token_skips_sign_in(make_client):
    client, http, _ = make_client(login_handler("fresh"), stored_token="stale")
    client.sessions.ensure_session()
    client.sessions.refresh_on_unauthorized(stale_token="stale")

    token = client.sessions.refresh_on_unauthorized(stale_token="stale")

    assert token == "fresh"
    assert len(http.calls_to("/users/login")) == 1


def test_tokenless_401_after_finished_sign_in_reuses_token(make_client):
    """A request sent before any session existed is rejected after another
    request already signed in; it retries with that token."""
    first_sent = threading.Event()
    first_may_answer = threading.Event()
    logins = []

    def handler(call):
        if call.path == "/users/login":
            logins.append(call)
            return make_response(200, ME, headers={"token": "fresh"})
        if call.token == "fresh":
            return make_response(200, [] if call.path == "/teams" else ME)
        if call.path == "/users/me":
            first_sent.set()
            assert first_may_answer.wait(5)
        return make_response(401, {})

    client, http, _ = make_client(handler)

    with ThreadPoolExecutor(max_workers=1) as pool:
        slow = pool.submit(client.get_me)
        assert first_sent.wait(5)
        assert client.get_teams() == []
        first_may_answer.set()
        assert slow.result(timeout=5).id == "u1"

    assert len(logins) == 1
    assert [c.token for c in http.calls_to("/users/me")] == [None, "fresh"]


def test_refresh_without_stale_token_uses_live_session(make_client):
    client, http, _ = make_client(login_handler("fresh"))
    client.sessions.refresh_on_unauthorized()

    assert client.sessions.refresh_on_unauthorized() == "fresh"
    assert len(http.calls_to("/users/login")) == 1
