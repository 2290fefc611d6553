"""Transport backed by :class:`httpx.AsyncClient`.

Connection-level failures reported by httpx (every subclass of
:class:`httpx.TransportError`: connect and DNS errors, TLS failures,
timeouts, protocol errors) become :class:`~fetchpipe.transport.base.TransportError`.
Anything that produced a response, whatever its status, is returned as a
:class:`~fetchpipe.models.ResponseEnvelope`.

A custom :class:`httpx.AsyncBaseTransport` may be supplied, which is how
the test suite drives the pipeline with :class:`httpx.MockTransport`::

    transport = HttpxTransport(transport=httpx.MockTransport(handler))
"""

from __future__ import annotations

from typing import Optional

import httpx

from fetchpipe.models import RequestConfig, RequestSpec, ResponseEnvelope
from fetchpipe.transport.base import Transport, TransportError


class HttpxTransport(Transport):
    """Perform exchanges through a pooled :class:`httpx.AsyncClient`.

    Args:
        config: Timeout and SSL verification settings. Defaults to
            :class:`~fetchpipe.models.RequestConfig` defaults.
        transport: Optional low-level httpx transport (e.g.
            :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        config = config or RequestConfig()
        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    async def exchange(self, spec: RequestSpec) -> ResponseEnvelope:
        try:
            response = await self._client.request(
                spec.method.value,
                spec.url,
                headers=spec.headers,
                content=spec.body,
            )
        except httpx.UnsupportedProtocol:
            # Nothing was sent, so this is not a connectivity failure.
            raise
        except httpx.TransportError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        return ResponseEnvelope(
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
