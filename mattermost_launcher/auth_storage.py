"""Token persistence for mattermost_launcher.

The session token is a single short string, stored in the system keyring
under ``(KEYRING_SERVICE, TOKEN_KEY)`` so it survives restarts. Anything with
``get``/``set``/``delete`` can stand in for the keyring store; the in-memory
one is used when nothing should touch the user's keychain.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .config import KEYRING_SERVICE
from .errors import TokenStoreError
from .log import get_logger

logger = get_logger("auth_storage")


class TokenStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class KeyringTokenStore:
    """Token store backed by the platform keyring (Keychain, Secret Service, ...)."""

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def get(self, key: str) -> Optional[str]:
        try:
            value = keyring.get_password(self.service, key)
        except KeyringError as e:
            logger.exception("auth_storage: failed to read %s from keyring", key)
            raise TokenStoreError(f"Could not read the session token from the keyring: {e}", cause=e) from e
        logger.debug("auth_storage: read %s (%s)", key, "found" if value else "missing")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            keyring.set_password(self.service, key, value)
        except KeyringError as e:
            logger.exception("auth_storage: failed to write %s to keyring", key)
            raise TokenStoreError(f"Could not save the session token to the keyring: {e}", cause=e) from e
        logger.debug("auth_storage: wrote %s", key)

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
        except PasswordDeleteError:
            # nothing stored under that key
            pass
        except KeyringError as e:
            logger.exception("auth_storage: failed to delete %s from keyring", key)
            raise TokenStoreError(f"Could not remove the session token from the keyring: {e}", cause=e) from e


class MemoryTokenStore:
    """Process-local token store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
