"""Abstract base classes for request and response interceptors.

An interceptor is one stage of the pipeline around a transport exchange:

* :class:`RequestInterceptor` -- maps an outgoing
  :class:`~fetchpipe.models.RequestSpec` to a new one. It must not edit
  the spec it was given; :meth:`~fetchpipe.models.RequestSpec.with_headers`
  and :meth:`~fetchpipe.models.RequestSpec.with_url` derive copies.
* :class:`ResponseInterceptor` -- inspects a raw
  :class:`~fetchpipe.models.ResponseEnvelope` and either returns it
  (possibly replaced) or raises an :class:`~fetchpipe.exceptions.ApiError`.

Plain callables with the same signature are accepted wherever an
interceptor is expected.

Example:
    Minimal request interceptor::

        class TraceHeader(RequestInterceptor):
            def apply(self, spec):
                return spec.with_headers({**spec.headers, "X-Trace": "on"})
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Union

from fetchpipe.models import RequestSpec, ResponseEnvelope


class RequestInterceptor(ABC):
    """Transforms a request before it reaches the transport."""

    @property
    def name(self) -> str:
        """Name used in debug output. Defaults to the class name."""
        return type(self).__name__

    @abstractmethod
    def apply(self, spec: RequestSpec) -> RequestSpec:
        """Return the spec to hand to the next interceptor.

        Raises:
            ApiError: To abort the call with a classified error. Any other
                exception is wrapped as
                :class:`~fetchpipe.exceptions.UnexpectedError`.
        """
        ...


class ResponseInterceptor(ABC):
    """Inspects a response before its body is decoded."""

    @property
    def name(self) -> str:
        """Name used in debug output. Defaults to the class name."""
        return type(self).__name__

    @abstractmethod
    def apply(self, response: ResponseEnvelope) -> ResponseEnvelope:
        """Return the response to hand to the next interceptor.

        Raises:
            ApiError: To abort the call, e.g. with an
                :class:`~fetchpipe.exceptions.HttpError`.
        """
        ...


RequestHook = Union[RequestInterceptor, Callable[[RequestSpec], RequestSpec]]
"""A request interceptor or a plain function with the same contract."""

ResponseHook = Union[ResponseInterceptor, Callable[[ResponseEnvelope], ResponseEnvelope]]
"""A response interceptor or a plain function with the same contract."""
