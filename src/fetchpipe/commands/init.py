"""Init command -- create a profile for an API.

``fetchpipe init NAME --base-url URL`` writes ``profiles/NAME.json`` and,
when no default profile is configured yet, makes it the default.

Example::

    fetchpipe init placeholder --base-url https://jsonplaceholder.typicode.com \\
        --token-source env:PLACEHOLDER_TOKEN
"""

from __future__ import annotations

from typing import Optional

import typer

from fetchpipe.output import error, info, success, suggest


def init_command(
    name: str = typer.Argument(help="Profile name."),
    base_url: str = typer.Option(..., "--base-url", "-u", help="Base URL of the API."),
    token_source: Optional[str] = typer.Option(
        None,
        "--token-source",
        "-t",
        help="Bearer token source: env:VAR, file:/path, store:PROFILE.",
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Default header 'Name: value' (repeatable)."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Create (or with ``--force`` replace) a profile.

    Raises:
        typer.Exit: With code 2 if the profile exists and ``--force`` was
            not given.
    """
    from fetchpipe.commands.request import _parse_headers
    from fetchpipe.config import (
        load_global_config,
        profile_exists,
        save_global_config,
        save_profile,
    )
    from fetchpipe.models import Profile

    if profile_exists(name) and not force:
        error(f"Profile '{name}' already exists. Use --force to overwrite.")
        raise typer.Exit(code=2)

    profile = Profile(
        name=name,
        base_url=base_url,
        token_source=token_source,
        headers=_parse_headers(header),
    )
    save_profile(profile)
    success(f'Profile "{name}" saved.')

    config = load_global_config()
    if config.default_profile is None:
        config.default_profile = name
        save_global_config(config)
        info(f'"{name}" is now the default profile.')

    if token_source is None:
        suggest(f"Store a token: fetchpipe auth set-token {name}")
