"""Request commands -- send API calls through the pipeline from the shell.

* ``fetchpipe request METHOD URL`` -- one call; the decoded body goes to
  stdout and a failure exits with the error kind's exit code.
* ``fetchpipe fetch URL...`` -- several GETs issued concurrently through
  the client's result cache. Every failure is reported on its own line and
  the remaining results are still printed.

Relative URLs are joined to the active profile's ``base_url``; the bearer
token comes from the profile's ``token_source``.

Example::

    fetchpipe request GET /users -H "Accept-Language: en"
    fetchpipe request POST /users -d '{"name": "Alta"}'
    fetchpipe fetch /users /posts /users
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import typer

from fetchpipe.boundary import Outcome, gather_guarded, guarded
from fetchpipe.commands import cli_state
from fetchpipe.client import ApiClient
from fetchpipe.exceptions import InvalidUsageError
from fetchpipe.models import HTTPMethod, Profile, RequestConfig, RequestSpec
from fetchpipe.output import debug, format_response
from fetchpipe.transport import HttpxTransport, Transport

transport_factory: Callable[[RequestConfig], Transport] = HttpxTransport
"""Builds the transport for CLI calls. Replaced in tests."""


def _parse_headers(raw: Optional[list[str]]) -> dict[str, str]:
    """Parse ``"Name: value"`` strings into a header dict."""
    headers: dict[str, str] = {}
    for item in raw or []:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid header '{item}', expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _parse_method(raw: str) -> HTTPMethod:
    try:
        return HTTPMethod(raw.upper())
    except ValueError:
        allowed = ", ".join(m.value for m in HTTPMethod)
        raise InvalidUsageError(f"Unknown method '{raw}'. Use one of: {allowed}") from None


def _active_profile(ctx: typer.Context) -> Optional[Profile]:
    from fetchpipe.config import resolve_config

    state = cli_state(ctx.obj)
    _, profile = resolve_config(cli_profile=state.profile, cli_base_url=state.base_url)
    if profile is None and state.base_url:
        profile = Profile(name="adhoc", base_url=state.base_url)
    if profile is not None:
        debug(f"Using profile: {profile.name}")
    return profile


def _make_client(profile: Optional[Profile]) -> ApiClient:
    if profile is None:
        return ApiClient(transport_factory(RequestConfig()))
    return ApiClient.from_profile(profile, transport=transport_factory(profile.request))


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method (GET, POST, PUT, PATCH, DELETE, ...)."),
    url: str = typer.Argument(help="Absolute URL, or a path joined to the profile's base URL."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header 'Name: value' (repeatable)."
    ),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body, sent as-is (JSON by default)."
    ),
) -> None:
    """Send one request and print the decoded response body.

    Exit codes: 3 for a non-2xx status, 6 when no response was obtained,
    7 when the body could not be decoded.
    """
    spec = RequestSpec(
        method=_parse_method(method),
        url=url,
        headers=_parse_headers(header),
        body=data,
    )
    profile = _active_profile(ctx)

    async def _run() -> Outcome:
        async with _make_client(profile) as client:
            return await guarded(client.send(spec))

    outcome = asyncio.run(_run())
    if outcome.error is not None:
        raise typer.Exit(code=outcome.error.exit_code)
    if outcome.value is not None:
        format_response(outcome.value)


def fetch_command(
    ctx: typer.Context,
    urls: list[str] = typer.Argument(help="URLs or paths to GET concurrently."),
) -> None:
    """GET several URLs concurrently through the client's result cache.

    Each result is printed in argument order. Duplicate URLs in flight at
    the same time are not merged and may each reach the server. Failed
    calls are reported on stderr without stopping the others; the exit code
    is that of the first failure.
    """
    profile = _active_profile(ctx)

    async def _run() -> list[Outcome]:
        async with _make_client(profile) as client:
            calls = [client.send_cached(RequestSpec(url=url)) for url in urls]
            outcomes = await gather_guarded(*calls, labels=list(urls))
            stats: dict[str, Any] = client.cache.stats()
            debug(f"Cache: {stats['size']} entries, {stats['hits']} hits, {stats['misses']} misses")
            return outcomes

    outcomes = asyncio.run(_run())
    for outcome in outcomes:
        if outcome.ok and outcome.value is not None:
            format_response(outcome.value)

    failures = [o.error for o in outcomes if o.error is not None]
    if failures:
        raise typer.Exit(code=failures[0].exit_code)
