"""Tests for token stores."""

from unittest.mock import patch

import pytest
from keyring.errors import KeyringLocked, PasswordDeleteError

from conftest import make_config
from mattermost_launcher.auth import SessionManager
from mattermost_launcher.auth_storage import KeyringTokenStore, MemoryTokenStore
from mattermost_launcher.config import KEYRING_SERVICE, TOKEN_KEY
from mattermost_launcher.errors import ApiError, TokenStoreError


def test_keyring_store_round_trip():
    with patch("mattermost_launcher.auth_storage.keyring") as mock_keyring:
        mock_keyring.get_password.return_value = "tok"
        store = KeyringTokenStore()

        store.set(TOKEN_KEY, "tok")
        assert store.get(TOKEN_KEY) == "tok"

    mock_keyring.set_password.assert_called_once_with(KEYRING_SERVICE, TOKEN_KEY, "tok")
    mock_keyring.get_password.assert_called_once_with(KEYRING_SERVICE, TOKEN_KEY)


def test_keyring_store_delete_missing_is_quiet():
    with patch("mattermost_launcher.auth_storage.keyring") as mock_keyring:
        mock_keyring.delete_password.side_effect = PasswordDeleteError("not found")
        KeyringTokenStore().delete(TOKEN_KEY)

    mock_keyring.delete_password.assert_called_once_with(KEYRING_SERVICE, TOKEN_KEY)


def test_memory_store():
    store = MemoryTokenStore({"k": "v"})
    assert store.get("k") == "v"
    store.set("k", "w")
    assert store.get("k") == "w"
    store.delete("k")
    store.delete("k")
    assert store.get("k") is None


def test_keyring_failure_is_token_store_error():
    """A locked or missing keychain surfaces as an error the UI reports."""
    with patch("mattermost_launcher.auth_storage.keyring") as mock_keyring:
        mock_keyring.get_password.side_effect = KeyringLocked("locked")
        mock_keyring.delete_password.side_effect = KeyringLocked("locked")
        store = KeyringTokenStore()

        with pytest.raises(TokenStoreError) as excinfo:
            store.get(TOKEN_KEY)
        with pytest.raises(TokenStoreError):
            store.delete(TOKEN_KEY)

    assert isinstance(excinfo.value, ApiError)
    assert isinstance(excinfo.value.cause, KeyringLocked)


def test_ensure_session_with_locked_keyring_raises_api_error():
    with patch("mattermost_launcher.auth_storage.keyring") as mock_keyring:
        mock_keyring.get_password.side_effect = KeyringLocked("locked")
        sessions = SessionManager(make_config(), KeyringTokenStore(), send=None)

        with pytest.raises(ApiError):
            sessions.ensure_session()

    assert sessions.session is None
