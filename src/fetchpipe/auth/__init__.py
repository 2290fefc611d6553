"""Bearer-token credentials for fetchpipe.

The pipeline never reads tokens from global state. Instead the request
interceptor is handed a :class:`CredentialSource` and asks it for the
current token once per request.

- :class:`CredentialSource` -- protocol with ``current_token()``.
- :class:`StaticCredentialSource`, :class:`DescriptorCredentialSource`,
  :class:`StoredCredentialSource` -- built-in sources.
- :class:`CredentialStore` -- persistent, per-profile token storage on disk.

Typical usage::

    from fetchpipe.auth import DescriptorCredentialSource

    source = DescriptorCredentialSource("env:API_TOKEN")
    token = source.current_token()  # None when API_TOKEN is unset
"""

from fetchpipe.auth.credential_store import CredentialEntry, CredentialStore
from fetchpipe.auth.sources import (
    CredentialSource,
    DescriptorCredentialSource,
    StaticCredentialSource,
    StoredCredentialSource,
)

__all__ = [
    "CredentialEntry",
    "CredentialSource",
    "CredentialStore",
    "DescriptorCredentialSource",
    "StaticCredentialSource",
    "StoredCredentialSource",
]
