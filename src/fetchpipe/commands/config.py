"""``fetchpipe config`` -- inspect and edit the global configuration.

Keys use dot notation into :class:`~fetchpipe.models.GlobalConfig`, for
example ``request.timeout`` or ``output.format``::

    fetchpipe config show
    fetchpipe config set request.timeout 10
    fetchpipe config profiles
    fetchpipe config delete-profile old-api
"""

from __future__ import annotations

from typing import Any

import typer

from fetchpipe.exit_codes import EXIT_INVALID_USAGE
from fetchpipe.output import error, format_response, info, print_table, success


config_app = typer.Typer(no_args_is_help=True)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _fail(message: str) -> typer.Exit:
    error(message)
    return typer.Exit(code=EXIT_INVALID_USAGE)


def _parent_of(data: dict[str, Any], key: str) -> tuple[dict[str, Any], str]:
    """Walk *data* along a dotted *key*; return the containing dict and the leaf name."""
    *path, leaf = key.split(".")
    node = data
    for part in path:
        child = node.get(part)
        if not isinstance(child, dict):
            raise _fail(f"Invalid config key: {key}")
        node = child
    if leaf not in node:
        raise _fail(f"Unknown config key: {key}")
    return node, leaf


def _coerce(current: Any, raw: str, key: str) -> Any:
    """Convert *raw* to the type of the value it replaces."""
    if isinstance(current, bool):
        lowered = raw.lower()
        if lowered not in _TRUE | _FALSE:
            raise _fail(f"Expected true or false for {key}, got: {raw}")
        return lowered in _TRUE
    converter = type(current) if isinstance(current, (int, float)) else None
    if converter is None:
        return raw
    try:
        return converter(raw)
    except ValueError:
        raise _fail(f"Expected {converter.__name__} for {key}, got: {raw}") from None


@config_app.command("show")
def config_show() -> None:
    """Print the effective global configuration."""
    from fetchpipe.config import get_config_dir, load_global_config

    info(f"Config directory: {get_config_dir()}")
    format_response(load_global_config())


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'request.timeout'."),
    value: str = typer.Argument(help="New value, converted to the key's type."),
) -> None:
    """Change one setting. Unknown keys and badly typed values exit with 2."""
    from fetchpipe.config import load_global_config, save_global_config
    from fetchpipe.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")
    node, leaf = _parent_of(data, key)
    node[leaf] = _coerce(node[leaf], value, key)

    try:
        updated = GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise _fail(f"Rejected {key}={value}: {exc}") from None

    save_global_config(updated)
    success(f"Set {key} = {node[leaf]}")


@config_app.command("profiles")
def config_profiles() -> None:
    """Table of stored profiles; the default one is starred."""
    from fetchpipe.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles. Create one with: fetchpipe init NAME --base-url URL")
        return

    default = load_global_config().default_profile
    rows = []
    for name in names:
        profile = load_profile(name)
        label = f"{name} *" if name == default else name
        rows.append([label, profile.base_url or "", profile.token_source or ""])
    print_table(["profile", "base_url", "token_source"], rows, title="Profiles")


@config_app.command("delete-profile")
def config_delete_profile(
    name: str = typer.Argument(help="Profile to remove."),
) -> None:
    """Remove a profile and its stored token. Unsets it as the default."""
    from fetchpipe.auth import CredentialStore
    from fetchpipe.config import (
        delete_profile,
        load_global_config,
        profile_exists,
        save_global_config,
    )

    if not profile_exists(name):
        raise _fail(f"Profile '{name}' not found")

    delete_profile(name)
    CredentialStore(name).clear()
    success(f'Profile "{name}" deleted.')

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
        info("No default profile is set now.")
