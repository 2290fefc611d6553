"""Request and response interceptors.

Interceptors are the stages around a transport exchange. They run in
ordered chains (:class:`RequestInterceptorChain`,
:class:`ResponseInterceptorChain`) where each stage receives the previous
stage's output.

Example::

    from fetchpipe.interceptors import DefaultHeadersInterceptor, RequestInterceptorChain

    chain = RequestInterceptorChain([DefaultHeadersInterceptor(source)])
    final = chain.apply(spec)
"""

from fetchpipe.interceptors.base import (
    RequestHook,
    RequestInterceptor,
    ResponseHook,
    ResponseInterceptor,
)
from fetchpipe.interceptors.builtin import (
    DEFAULT_HEADERS,
    BaseUrlInterceptor,
    DefaultHeadersInterceptor,
    ErrorStatusInterceptor,
    UnauthorizedInterceptor,
    warn_unauthorized,
)
from fetchpipe.interceptors.chain import RequestInterceptorChain, ResponseInterceptorChain

__all__ = [
    "DEFAULT_HEADERS",
    "BaseUrlInterceptor",
    "DefaultHeadersInterceptor",
    "ErrorStatusInterceptor",
    "RequestHook",
    "RequestInterceptor",
    "RequestInterceptorChain",
    "ResponseHook",
    "ResponseInterceptor",
    "ResponseInterceptorChain",
    "UnauthorizedInterceptor",
    "warn_unauthorized",
]
