"""Canonical Pydantic models shared across all fetchpipe modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Pipeline models** -- values that flow through one API call:
    :class:`HTTPMethod`, :class:`RequestSpec` and :class:`ResponseEnvelope`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`GlobalConfig`
    and :class:`Profile`.

All models use Pydantic v2. :class:`RequestSpec` is frozen: interceptors
derive new specs with :meth:`RequestSpec.with_headers` instead of editing
the one they were given.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Header helpers ---


def merge_headers(*layers: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Merge header mappings from lowest to highest precedence.

    Header names are compared case-insensitively. When two layers define
    the same header the later layer wins, and its spelling of the name is
    the one kept. ``None`` layers are skipped.

    Example::

        >>> merge_headers({"Content-Type": "application/json"}, {"content-type": "text/plain"})
        {'content-type': 'text/plain'}
    """
    merged: dict[str, str] = {}
    spelling: dict[str, str] = {}
    for layer in layers:
        if not layer:
            continue
        for name, value in layer.items():
            previous = spelling.get(name.lower())
            if previous is not None:
                del merged[previous]
            merged[name] = value
            spelling[name.lower()] = name
    return merged


def _lookup(headers: Mapping[str, str], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


# --- Pipeline models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`RequestSpec` can carry."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


def coerce_method(method: HTTPMethod | str) -> HTTPMethod:
    """Return *method* as an :class:`HTTPMethod`, accepting any letter case."""
    if isinstance(method, HTTPMethod):
        return method
    return HTTPMethod(method.upper())


class RequestSpec(BaseModel):
    """Immutable description of one outgoing request.

    Header names are case-insensitive for lookup (:meth:`header`) and for
    merging (:func:`merge_headers`); their insertion order carries no
    meaning.

    Example::

        spec = RequestSpec(method="GET", url="https://api.example.com/users")
        authed = spec.with_headers({"Authorization": "Bearer tok"})
        assert spec.headers == {}
    """

    model_config = ConfigDict(frozen=True)

    method: HTTPMethod = HTTPMethod.GET
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[Union[bytes, str]] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, HTTPMethod):
            return value.upper()
        return value

    @classmethod
    def for_json(
        cls,
        method: HTTPMethod | str,
        url: str,
        payload: Any,
        headers: Optional[Mapping[str, str]] = None,
    ) -> RequestSpec:
        """Build a spec whose body is *payload* serialised as JSON."""
        return cls(
            method=coerce_method(method),
            url=url,
            headers=dict(headers or {}),
            body=json.dumps(payload),
        )

    def header(self, name: str) -> Optional[str]:
        """Return the value of header *name* (case-insensitive), or ``None``."""
        return _lookup(self.headers, name)

    def has_header(self, name: str) -> bool:
        return self.header(name) is not None

    def with_headers(self, headers: Mapping[str, str]) -> RequestSpec:
        """Return a copy of this spec whose headers are replaced by *headers*."""
        return self.model_copy(update={"headers": dict(headers)})

    def with_url(self, url: str) -> RequestSpec:
        """Return a copy of this spec pointing at *url*."""
        return self.model_copy(update={"url": url, "headers": dict(self.headers)})


class ResponseEnvelope(BaseModel):
    """Raw response of one exchange, before its body is decoded.

    Owned by the call that produced it and never shared across calls.
    """

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    content: bytes = b""

    @property
    def is_success(self) -> bool:
        """``True`` when :attr:`status_code` lies within ``[200, 299]``."""
        return 200 <= self.status_code <= 299

    def header(self, name: str) -> Optional[str]:
        """Return the value of response header *name* (case-insensitive), or ``None``."""
        return _lookup(self.headers, name)

    def text(self) -> str:
        """Decode the body as UTF-8, replacing undecodable bytes."""
        return self.content.decode("utf-8", errors="replace")


# --- Configuration models ---


class RequestConfig(BaseModel):
    """Transport settings applied to every API call in a profile."""

    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/fetchpipe/config.json``.

    Loaded and saved by :func:`~fetchpipe.config.load_global_config` and
    :func:`~fetchpipe.config.save_global_config`. Fields here have the
    lowest precedence; see :func:`~fetchpipe.config.resolve_config`.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)


class Profile(BaseModel):
    """Per-API profile stored as JSON under the ``profiles/`` config directory.

    A profile bundles the base URL, the credential source consulted for the
    bearer token, extra default headers, and transport settings for one API.

    Example::

        Profile(
            name="placeholder",
            base_url="https://jsonplaceholder.typicode.com",
            token_source="env:PLACEHOLDER_TOKEN",
        )
    """

    model_config = ConfigDict(extra="allow")

    name: str
    base_url: Optional[str] = Field(
        default=None, description="Prefix joined to relative request URLs"
    )
    token_source: Optional[str] = Field(
        default=None,
        description="Bearer token source: env:VAR, file:/path, store:PROFILE, prompt",
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra default request headers"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
