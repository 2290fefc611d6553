"""Abstract transport -- the single network boundary of the pipeline.

A :class:`Transport` performs exactly one request/response exchange for a
:class:`~fetchpipe.models.RequestSpec`. It either returns a
:class:`~fetchpipe.models.ResponseEnvelope` (whatever its status) or
raises :class:`TransportError` when no response could be obtained at all.
:class:`~fetchpipe.client.ApiClient` turns that into a
:class:`~fetchpipe.exceptions.NetworkError`.

Implementations must not retry and must not interpret status codes; both
concerns belong to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fetchpipe.models import RequestSpec, ResponseEnvelope


class TransportError(Exception):
    """No response was obtained (DNS, connect, TLS handshake, read failure)."""


class Transport(ABC):
    """Base class for request/response exchanges."""

    @abstractmethod
    async def exchange(self, spec: RequestSpec) -> ResponseEnvelope:
        """Send *spec* once and return the raw response.

        Raises:
            TransportError: If the exchange failed before a response arrived.
        """
        ...

    async def aclose(self) -> None:
        """Release any pooled connections. The default is a no-op."""
