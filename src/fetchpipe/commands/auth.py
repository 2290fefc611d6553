"""Auth commands -- manage the stored bearer token of a profile.

Provides the ``fetchpipe auth`` sub-command group. Tokens are kept in the
per-profile :class:`~fetchpipe.auth.CredentialStore` and read at request
time through a ``store:PROFILE`` token source.

Typical workflow::

    fetchpipe auth set-token myapi      # prompts for the token
    fetchpipe auth status myapi
    fetchpipe auth clear myapi
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import typer

from fetchpipe.output import format_response, info, success, suggest, warning


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("set-token")
def auth_set_token(
    profile_name: str = typer.Argument(help="Profile the token belongs to."),
    token: Optional[str] = typer.Option(
        None, "--token", help="Token value. Prompted for (hidden) when omitted."
    ),
    expires_in: Optional[int] = typer.Option(
        None, "--expires-in", help="Seconds until the token stops being sent."
    ),
) -> None:
    """Store a bearer token for a profile.

    If the profile exists and has no ``token_source`` yet, it is pointed at
    the store so that subsequent requests send the token.

    Example::

        fetchpipe auth set-token myapi --token abc123 --expires-in 3600
    """
    from fetchpipe.auth import CredentialEntry, CredentialStore
    from fetchpipe.config import load_profile, profile_exists, save_profile

    if token is None:
        token = typer.prompt("Bearer token", hide_input=True)

    expires_at = None
    if expires_in is not None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

    CredentialStore(profile_name).save(
        CredentialEntry(token=token, expires_at=expires_at, metadata={"source": "cli"})
    )
    success(f'Token stored for "{profile_name}".')

    if profile_exists(profile_name):
        profile = load_profile(profile_name)
        if profile.token_source is None:
            profile.token_source = f"store:{profile_name}"
            save_profile(profile)
            info(f'Profile "{profile_name}" now reads its token from the store.')
    else:
        suggest(f"Create the profile: fetchpipe init {profile_name} --base-url URL")


@auth_app.command("status")
def auth_status(
    profile_name: str = typer.Argument(help="Profile to inspect."),
) -> None:
    """Show whether a valid token is stored. The token itself is never printed."""
    from fetchpipe.auth import CredentialStore

    status = CredentialStore(profile_name).describe()
    format_response(status)
    if status["stored"] and not status["valid"]:
        warning("The stored token has expired.")


@auth_app.command("clear")
def auth_clear(
    profile_name: str = typer.Argument(help="Profile whose token to remove."),
) -> None:
    """Delete the stored token for a profile."""
    from fetchpipe.auth import CredentialStore

    CredentialStore(profile_name).clear()
    success(f'Token cleared for "{profile_name}".')
