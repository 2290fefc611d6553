"""Ordered interceptor chains.

Both chains follow a pipeline pattern: interceptors run strictly in
registration order and each one receives the output of the previous one,
so ``chain.apply(x)`` is the left fold of ``x`` through the interceptors.

Failure handling is the same for both directions. An
:class:`~fetchpipe.exceptions.ApiError` raised by an interceptor stops the
chain and propagates unchanged. Any other exception, including an
interceptor returning the wrong type, stops the chain and is re-raised as
:class:`~fetchpipe.exceptions.UnexpectedError`.

A chain holds an immutable snapshot of the interceptors it was built with.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Callable

from fetchpipe.exceptions import ApiError, UnexpectedError
from fetchpipe.interceptors.base import RequestHook, ResponseHook
from fetchpipe.models import RequestSpec, ResponseEnvelope

logger = logging.getLogger(__name__)


def _hook_name(hook: Any) -> str:
    name = getattr(hook, "name", None)
    if isinstance(name, str):
        return name
    return getattr(hook, "__qualname__", type(hook).__name__)


def _as_callable(hook: Any) -> Callable[[Any], Any]:
    apply = getattr(hook, "apply", None)
    return apply if callable(apply) else hook


def _run(hooks: tuple[Any, ...], value: Any, expected: type) -> Any:
    for hook in hooks:
        try:
            result = _as_callable(hook)(value)
        except ApiError:
            raise
        except Exception as exc:
            logger.debug("Interceptor %s failed: %s", _hook_name(hook), exc)
            raise UnexpectedError(exc) from exc
        if not isinstance(result, expected):
            exc = TypeError(
                f"Interceptor {_hook_name(hook)} returned "
                f"{type(result).__name__}, expected {expected.__name__}"
            )
            raise UnexpectedError(exc) from exc
        value = result
    return value


class RequestInterceptorChain:
    """Applies request interceptors left to right.

    Args:
        interceptors: Ordered interceptors or plain ``spec -> spec`` functions.
    """

    def __init__(self, interceptors: Iterable[RequestHook] = ()) -> None:
        self._interceptors = tuple(interceptors)

    @property
    def interceptors(self) -> tuple[RequestHook, ...]:
        return self._interceptors

    def __len__(self) -> int:
        return len(self._interceptors)

    def apply(self, spec: RequestSpec) -> RequestSpec:
        """Fold *spec* through every interceptor and return the final spec.

        Raises:
            ApiError: Propagated unchanged from an interceptor.
            UnexpectedError: If an interceptor fails in any other way.
        """
        return _run(self._interceptors, spec, RequestSpec)


class ResponseInterceptorChain:
    """Applies response interceptors left to right.

    Args:
        interceptors: Ordered interceptors or plain ``response -> response``
            functions.
    """

    def __init__(self, interceptors: Iterable[ResponseHook] = ()) -> None:
        self._interceptors = tuple(interceptors)

    @property
    def interceptors(self) -> tuple[ResponseHook, ...]:
        return self._interceptors

    def __len__(self) -> int:
        return len(self._interceptors)

    def apply(self, response: ResponseEnvelope) -> ResponseEnvelope:
        """Pass *response* through every interceptor and return the result.

        Raises:
            ApiError: Propagated unchanged, e.g. an
                :class:`~fetchpipe.exceptions.HttpError`.
            UnexpectedError: If an interceptor fails in any other way.
        """
        return _run(self._interceptors, response, ResponseEnvelope)
