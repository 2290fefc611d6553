"""Top-level error boundary for API calls.

:class:`~fetchpipe.client.ApiClient` never swallows an error; it
classifies failures into the closed :class:`~fetchpipe.exceptions.ApiError`
taxonomy and raises. The component that owns the overall operation is
expected to be the one place that catches all three kinds. This module is
that place for the CLI and for scripts:

* :func:`describe_error` -- one kind-specific message per error.
* :func:`guarded` -- await one call, report a failure on stderr, and
  return an :class:`Outcome` instead of raising.
* :func:`gather_guarded` -- run several calls concurrently; a failed call
  does not cancel or hide the others.

Only :class:`~fetchpipe.exceptions.ApiError` is caught. Programming errors
keep propagating.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Optional

from fetchpipe.exceptions import ApiError, HttpError, NetworkError, UnexpectedError
from fetchpipe.output import error


@dataclass
class Outcome:
    """Result of one guarded call: either a value or the error that replaced it."""

    value: Any = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def describe_error(exc: ApiError) -> str:
    """Return a kind-specific, human-readable message for *exc*.

    Raises:
        TypeError: If *exc* is an ``ApiError`` outside the known taxonomy.
    """
    if isinstance(exc, NetworkError):
        return f"Network error: no response from the server ({exc.cause})"
    if isinstance(exc, HttpError):
        return f"API error ({exc.status}): {exc.message}"
    if isinstance(exc, UnexpectedError):
        return f"Unexpected error: {exc.cause}"
    raise TypeError(f"Unhandled ApiError kind: {type(exc).__name__}")


async def guarded(call: Awaitable[Any], label: Optional[str] = None) -> Outcome:
    """Await *call*, reporting any :class:`~fetchpipe.exceptions.ApiError`.

    Args:
        call: The awaitable API call.
        label: Optional prefix for the error line, e.g. the URL.

    Returns:
        An :class:`Outcome` holding the value or the caught error.
    """
    try:
        return Outcome(value=await call)
    except ApiError as exc:
        message = describe_error(exc)
        error(f"{label}: {message}" if label else message)
        return Outcome(error=exc)


async def gather_guarded(
    *calls: Awaitable[Any], labels: Optional[list[str]] = None
) -> list[Outcome]:
    """Run *calls* concurrently and return one :class:`Outcome` per call, in order.

    Raises:
        ValueError: If *labels* is given and its length differs from *calls*.
    """
    if labels is not None and len(labels) != len(calls):
        raise ValueError(f"Got {len(labels)} labels for {len(calls)} calls")
    names = labels if labels is not None else [None] * len(calls)
    return list(
        await asyncio.gather(
            *(guarded(call, name) for call, name in zip(calls, names, strict=True))
        )
    )
