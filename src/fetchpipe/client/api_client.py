"""Asynchronous API client -- one call through the interceptor pipeline.

:class:`ApiClient` orchestrates a single call:

1. Run the request interceptor chain on the caller's
   :class:`~fetchpipe.models.RequestSpec`.
2. Hand the final spec to the :class:`~fetchpipe.transport.Transport`.
   If no response is obtained the failure becomes a
   :class:`~fetchpipe.exceptions.NetworkError`.
3. Run the response interceptor chain. An
   :class:`~fetchpipe.exceptions.HttpError` raised there propagates
   unchanged.
4. Decode the JSON body into the requested type with
   :class:`pydantic.TypeAdapter`. A body that does not fit becomes an
   :class:`~fetchpipe.exceptions.UnexpectedError`.

Every call performs exactly one exchange; nothing is retried. The only
suspension point is the exchange itself, so several calls can be in flight
at once with ``asyncio.gather`` and each completes on its own schedule.

See Also:
    :class:`~fetchpipe.cache.ResultCache` for the memoization used by
    :meth:`ApiClient.send_cached`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional

from pydantic import TypeAdapter

from fetchpipe.auth.sources import CredentialSource, DescriptorCredentialSource
from fetchpipe.cache import ResultCache, cache_key_for
from fetchpipe.exceptions import ApiError, NetworkError, UnexpectedError
from fetchpipe.interceptors import (
    BaseUrlInterceptor,
    DefaultHeadersInterceptor,
    ErrorStatusInterceptor,
    RequestHook,
    RequestInterceptorChain,
    ResponseHook,
    ResponseInterceptorChain,
    UnauthorizedInterceptor,
)
from fetchpipe.models import HTTPMethod, Profile, RequestSpec, ResponseEnvelope, coerce_method
from fetchpipe.output import get_output
from fetchpipe.transport import HttpxTransport, Transport, TransportError

_SENDABLE_SCHEMES = ("http://", "https://")


class ApiClient:
    """Typed API client built on an ordered interceptor pipeline.

    The request chain is ``[BaseUrlInterceptor?, DefaultHeadersInterceptor,
    *request_interceptors]``. The response chain is
    ``[UnauthorizedInterceptor, *response_interceptors, ErrorStatusInterceptor]``,
    so a ``401`` both fires the unauthorized signal and fails the call.

    Args:
        transport: Performs the network exchange.
        credentials: Source of the bearer token, consulted once per call.
        base_url: Prefix joined to relative request URLs.
        default_headers: Extra default headers, below the caller's.
        request_interceptors: Additional request stages, run after the
            default headers are merged.
        response_interceptors: Additional response stages, run after the
            unauthorized signal and before the status check.
        on_unauthorized: Hook called with the response on ``401``.
            Defaults to a warning on stderr.
        cache: Result cache used by :meth:`send_cached`. A private cache is
            created when omitted.

    Example::

        async with ApiClient(HttpxTransport(), base_url="https://api.example.com") as client:
            users = await client.get("/users", decode_as=list[User])
    """

    def __init__(
        self,
        transport: Transport,
        credentials: Optional[CredentialSource] = None,
        base_url: Optional[str] = None,
        default_headers: Optional[Mapping[str, str]] = None,
        request_interceptors: Iterable[RequestHook] = (),
        response_interceptors: Iterable[ResponseHook] = (),
        on_unauthorized: Optional[Callable[[ResponseEnvelope], None]] = None,
        cache: Optional[ResultCache] = None,
    ) -> None:
        self._transport = transport
        self._cache = cache if cache is not None else ResultCache()

        request_stages: list[RequestHook] = []
        if base_url:
            request_stages.append(BaseUrlInterceptor(base_url))
        request_stages.append(DefaultHeadersInterceptor(credentials, default_headers))
        request_stages.extend(request_interceptors)
        self._request_chain = RequestInterceptorChain(request_stages)

        self._response_chain = ResponseInterceptorChain(
            [
                UnauthorizedInterceptor(on_unauthorized),
                *response_interceptors,
                ErrorStatusInterceptor(),
            ]
        )

    @classmethod
    def from_profile(
        cls,
        profile: Profile,
        transport: Optional[Transport] = None,
        **kwargs: Any,
    ) -> ApiClient:
        """Build a client from a :class:`~fetchpipe.models.Profile`.

        Uses an :class:`~fetchpipe.transport.HttpxTransport` configured with
        the profile's request settings unless *transport* is given, and
        reads the bearer token from the profile's ``token_source``.
        """
        credentials = (
            DescriptorCredentialSource(profile.token_source)
            if profile.token_source
            else None
        )
        return cls(
            transport or HttpxTransport(profile.request),
            credentials=credentials,
            base_url=profile.base_url,
            default_headers=profile.headers,
            **kwargs,
        )

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport and discard cached results."""
        self._cache.clear()
        await self._transport.aclose()

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def request_chain(self) -> RequestInterceptorChain:
        return self._request_chain

    @property
    def response_chain(self) -> ResponseInterceptorChain:
        return self._response_chain

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def send(self, spec: RequestSpec, decode_as: Any = Any) -> Any:
        """Send *spec* through the pipeline and return the decoded body.

        Args:
            spec: The caller's request. It is never modified.
            decode_as: Type the JSON body is validated into, e.g.
                ``list[User]``. Defaults to plain JSON values.

        Returns:
            The decoded body, or ``None`` for ``204`` and ``HEAD`` responses.

        Raises:
            NetworkError: The transport obtained no response.
            HttpError: The response status was outside ``[200, 299]``.
            UnexpectedError: An interceptor failed, the final URL is not
                absolute http(s), or the body did not decode into
                *decode_as*.
        """
        output = get_output()
        final = self._request_chain.apply(spec)
        if not final.url.lower().startswith(_SENDABLE_SCHEMES):
            raise UnexpectedError(
                ValueError(f"Request URL needs an http:// or https:// scheme: {final.url}")
            )
        output.debug(f"{final.method.value} {final.url}")

        try:
            response = await self._transport.exchange(final)
        except TransportError as exc:
            output.debug(f"No response for {final.method.value} {final.url}: {exc}")
            raise NetworkError(exc) from exc
        except ApiError:
            raise
        except Exception as exc:
            raise UnexpectedError(exc) from exc

        output.debug(f"HTTP {response.status_code} from {final.url}")
        response = self._response_chain.apply(response)
        return self._decode(final, response, decode_as)

    async def send_cached(
        self,
        spec: RequestSpec,
        key: Optional[str] = None,
        decode_as: Any = Any,
    ) -> Any:
        """Like :meth:`send`, memoized in this client's :class:`~fetchpipe.cache.ResultCache`.

        Args:
            spec: The caller's request.
            key: Cache key. Defaults to :func:`~fetchpipe.cache.cache_key_for`
                applied to *spec*.
            decode_as: Passed through to :meth:`send`.
        """
        cache_key = key if key is not None else cache_key_for(spec)
        return await self._cache.fetch_or_compute(
            cache_key, lambda: self.send(spec, decode_as=decode_as)
        )

    async def request(
        self,
        method: HTTPMethod | str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[bytes | str] = None,
        decode_as: Any = Any,
    ) -> Any:
        """Build a :class:`~fetchpipe.models.RequestSpec` and :meth:`send` it.

        *json_body* is serialised as JSON and takes precedence over *body*.
        """
        if json_body is not None:
            spec = RequestSpec.for_json(method, url, json_body, headers)
        else:
            spec = RequestSpec(
                method=coerce_method(method),
                url=url,
                headers=dict(headers or {}),
                body=body,
            )
        return await self.send(spec, decode_as=decode_as)

    async def get(self, url: str, **kwargs: Any) -> Any:
        """Send a GET request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request(HTTPMethod.GET, url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        """Send a POST request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request(HTTPMethod.POST, url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> Any:
        """Send a PUT request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request(HTTPMethod.PUT, url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Any:
        """Send a PATCH request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request(HTTPMethod.PATCH, url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        """Send a DELETE request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request(HTTPMethod.DELETE, url, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _decode(self, sent: RequestSpec, response: ResponseEnvelope, decode_as: Any) -> Any:
        """Validate the JSON body into *decode_as*, classifying failures.

        Only ``204 No Content`` and ``HEAD`` responses are read as ``None``;
        any other empty body fails to decode like malformed JSON.
        """
        try:
            adapter: TypeAdapter[Any] = TypeAdapter(decode_as)
            if response.status_code == 204 or sent.method is HTTPMethod.HEAD:
                return adapter.validate_python(None)
            return adapter.validate_json(response.content)
        except Exception as exc:
            raise UnexpectedError(exc) from exc
