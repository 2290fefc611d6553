"""The ``fetchpipe`` command line.

The root callback turns the global flags into an
:class:`~fetchpipe.output.OutputManager` and a :class:`CliState` stored on
the Typer context. The sub-commands live in :mod:`fetchpipe.commands`.

:func:`main` is the console-script entry point. A
:class:`~fetchpipe.exceptions.FetchpipeError` that reaches it becomes an
``Error:`` line and that error's exit code. Anything else is a bug: the
traceback goes to ``<data dir>/logs/crash-<timestamp>.log`` and the
process exits with 1.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from fetchpipe import __version__
from fetchpipe.commands import CliState
from fetchpipe.commands.auth import auth_app
from fetchpipe.commands.config import config_app
from fetchpipe.commands.init import init_command
from fetchpipe.commands.request import fetch_command, request_command
from fetchpipe.exit_codes import EXIT_GENERIC_FAILURE

EXIT_CANCELLED = 130
_LOG_FORMAT = "[debug] %(name)s: %(message)s"

_log_handler: Optional[logging.Handler] = None


app = typer.Typer(
    name="fetchpipe",
    help="Call JSON APIs through a typed interceptor pipeline.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.command("request")(request_command)
app.command("fetch")(fetch_command)
app.command("init")(init_command)
app.add_typer(auth_app, name="auth", help="Store, inspect and clear bearer tokens.")
app.add_typer(config_app, name="config", help="Show and edit the global configuration.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"fetchpipe {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Send library log records (cache hits, chain steps) to stderr under ``--verbose``."""
    global _log_handler
    logger = logging.getLogger("fetchpipe")
    if _log_handler is not None:
        logger.removeHandler(_log_handler)
        _log_handler = None
    if not verbose:
        logger.setLevel(logging.NOTSET)
        return
    _log_handler = logging.StreamHandler(sys.stderr)
    _log_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(_log_handler)
    logger.setLevel(logging.DEBUG)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile to send requests with."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL for relative paths; overrides the profile's."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print bodies as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print data, warnings and errors."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Trace each pipeline step on stderr."
    ),
) -> None:
    from fetchpipe.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)
    ctx.obj = CliState(profile=profile, base_url=base_url)


def _on_sigint(signum: int, frame: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_CANCELLED)


def _setup_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log() -> Path:
    """Save the traceback being handled and return the log file."""
    from fetchpipe.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Console-script entry point. Always ends in :class:`SystemExit`."""
    from fetchpipe.exceptions import FetchpipeError
    from fetchpipe.output import error

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except FetchpipeError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
