"""Credential sources consulted for the bearer token of each request.

A credential source is any object with a ``current_token()`` method
returning the token to send, or ``None`` when there is none. The default
request interceptor (:class:`~fetchpipe.interceptors.DefaultHeadersInterceptor`)
asks its source once per request, so a token that changes between calls
is picked up without rebuilding the client.

Three implementations are provided:

* :class:`StaticCredentialSource` -- a fixed token (tests, scripts).
* :class:`DescriptorCredentialSource` -- an ``env:``, ``file:`` or
  ``store:`` descriptor resolved through
  :func:`~fetchpipe.config.resolve_credential`.
* :class:`StoredCredentialSource` -- the token saved for a profile in the
  :class:`~fetchpipe.auth.credential_store.CredentialStore`.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from fetchpipe.auth.credential_store import CredentialStore
from fetchpipe.config import resolve_credential


@runtime_checkable
class CredentialSource(Protocol):
    """Anything that can supply the current bearer token."""

    def current_token(self) -> Optional[str]:
        """Return the token to send, or ``None`` to send no ``Authorization`` header."""
        ...


class StaticCredentialSource:
    """Always returns the token it was created with."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = token

    def current_token(self) -> Optional[str]:
        return self._token


class DescriptorCredentialSource:
    """Resolve a credential source descriptor on every call.

    An unset environment variable, a missing file, or an empty store
    counts as "no token". A malformed descriptor raises
    :class:`~fetchpipe.exceptions.ConfigError`.

    Args:
        source: Descriptor such as ``"env:API_TOKEN"`` or ``"store:my-api"``.
    """

    def __init__(self, source: str) -> None:
        self._source = source

    @property
    def source(self) -> str:
        return self._source

    def current_token(self) -> Optional[str]:
        return resolve_credential(self._source, required=False)


class StoredCredentialSource:
    """Read the token persisted for *profile_name*, ignoring expired entries."""

    def __init__(self, profile_name: str) -> None:
        self._store = CredentialStore(profile_name)

    def current_token(self) -> Optional[str]:
        return self._store.token()
