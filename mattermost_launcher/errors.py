"""Errors raised while talking to the Mattermost backend."""
from typing import Optional


class ApiError(Exception):
    """A backend call failed.

    ``status_code`` is the HTTP status when the server answered, ``None`` for
    network failures. ``cause`` keeps the underlying exception.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class AuthError(ApiError):
    """Sign-in failed: no token came back, or the exchange itself failed."""


class InvalidCredentialsFormat(AuthError):
    """The credential value is not of the form ``username:password``."""


class MaxRetriesExceeded(ApiError):
    """A request kept getting 401 after refreshing the session."""


class TokenStoreError(AuthError):
    """The token store (usually the system keyring) could not be read or written."""
