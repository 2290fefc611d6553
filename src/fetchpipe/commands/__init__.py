"""Built-in CLI sub-commands for fetchpipe.

* :mod:`~fetchpipe.commands.request` -- ``request`` and ``fetch``, the
  commands that actually call an API.
* :mod:`~fetchpipe.commands.init` -- create a profile.
* :mod:`~fetchpipe.commands.auth` -- store, inspect and clear bearer tokens.
* :mod:`~fetchpipe.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``auth`` and ``config``) or plain callback
functions registered directly on the root app. The root callback leaves a
:class:`CliState` on ``ctx.obj``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class CliState:
    """Global flags shared with every sub-command through ``ctx.obj``."""

    profile: Optional[str] = None
    base_url: Optional[str] = None


def cli_state(obj: object) -> CliState:
    """The :class:`CliState` of a Typer context, or defaults when none was set."""
    return obj if isinstance(obj, CliState) else CliState()
