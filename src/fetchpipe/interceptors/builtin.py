"""Built-in interceptors used by :class:`~fetchpipe.client.ApiClient`.

Request side:

* :class:`BaseUrlInterceptor` -- joins relative URLs onto a base URL.
* :class:`DefaultHeadersInterceptor` -- merges default headers, the bearer
  token and the caller's headers.

Response side:

* :class:`UnauthorizedInterceptor` -- fires a side signal on ``401`` and
  lets the response continue down the chain.
* :class:`ErrorStatusInterceptor` -- raises
  :class:`~fetchpipe.exceptions.HttpError` for any status outside ``2xx``.

A ``401`` therefore triggers both: the signal from the first, the error
from the second.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Callable, Optional
from urllib.parse import urlsplit

from fetchpipe.auth.sources import CredentialSource
from fetchpipe.exceptions import HttpError
from fetchpipe.interceptors.base import RequestInterceptor, ResponseInterceptor
from fetchpipe.models import RequestSpec, ResponseEnvelope, merge_headers
from fetchpipe.output import warning

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {"Content-Type": "application/json"}
"""Lowest-precedence headers attached to every request."""


class BaseUrlInterceptor(RequestInterceptor):
    """Prefix relative request URLs with *base_url*.

    Absolute URLs (anything with a scheme) pass through untouched.
    """

    def __init__(self, base_url: str) -> None:
        self._base_url = base_url.rstrip("/")

    def apply(self, spec: RequestSpec) -> RequestSpec:
        if urlsplit(spec.url).scheme:
            return spec
        return spec.with_url(f"{self._base_url}/{spec.url.lstrip('/')}")


class DefaultHeadersInterceptor(RequestInterceptor):
    """Merge default headers, the bearer token, and the caller's headers.

    Precedence, lowest to highest:

    1. ``Content-Type: application/json`` followed by any *defaults*.
    2. ``Authorization: Bearer <token>``, only when *credentials* returns a
       non-empty token. The source is consulted once per call.
    3. The headers already on the spec. The caller wins on collision,
       compared case-insensitively.

    Args:
        credentials: Source of the bearer token, or ``None`` for no auth.
        defaults: Extra default headers, e.g. from a profile.
    """

    def __init__(
        self,
        credentials: Optional[CredentialSource] = None,
        defaults: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._credentials = credentials
        self._defaults = merge_headers(DEFAULT_HEADERS, defaults)

    def apply(self, spec: RequestSpec) -> RequestSpec:
        auth: dict[str, str] = {}
        if self._credentials is not None:
            token = self._credentials.current_token()
            if token:
                auth["Authorization"] = f"Bearer {token}"
        return spec.with_headers(merge_headers(self._defaults, auth, spec.headers))


def warn_unauthorized(response: ResponseEnvelope) -> None:
    """Default unauthorized signal: print a warning to stderr."""
    warning("Unauthorized (401) -- the bearer token is missing, expired or rejected.")


class UnauthorizedInterceptor(ResponseInterceptor):
    """Invoke *on_unauthorized* once for every ``401`` response.

    Never raises and never stops the chain. If the hook itself fails, the
    failure is logged and the response continues so that the original
    ``401`` is still reported by the status check.

    Args:
        on_unauthorized: Called with the response. Defaults to
            :func:`warn_unauthorized`.
    """

    def __init__(
        self, on_unauthorized: Optional[Callable[[ResponseEnvelope], None]] = None
    ) -> None:
        self._on_unauthorized = on_unauthorized or warn_unauthorized

    def apply(self, response: ResponseEnvelope) -> ResponseEnvelope:
        if response.status_code == 401:
            try:
                self._on_unauthorized(response)
            except Exception:
                logger.warning("Unauthorized hook failed", exc_info=True)
        return response


class ErrorStatusInterceptor(ResponseInterceptor):
    """Raise :class:`~fetchpipe.exceptions.HttpError` for non-``2xx`` responses.

    The error message is the response body text, or ``"Unknown API Error"``
    when the body is empty.
    """

    def apply(self, response: ResponseEnvelope) -> ResponseEnvelope:
        if not response.is_success:
            raise HttpError(response.status_code, response.text())
        return response
