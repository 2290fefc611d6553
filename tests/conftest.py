"""Shared test fixtures for fetchpipe.

Provides reusable fixtures for isolating configuration, managing global
output state, building mock transports, and running CLI commands. These
fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from fetchpipe.output import OutputFormat, OutputManager, reset_output, set_output
from fetchpipe.transport import HttpxTransport


Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When CliRunner redirects those streams during a test,
    the cached references become stale once the test finishes.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path, clears all
    FETCHPIPE_* environment variables and changes the working directory
    to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("fetchpipe.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["FETCHPIPE_PROFILE", "FETCHPIPE_BASE_URL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet, colourless OutputManager."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Transport helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_transport() -> Callable[[Handler], HttpxTransport]:
    """Factory building an HttpxTransport around an httpx.MockTransport handler."""

    def _make(handler: Handler) -> HttpxTransport:
        return HttpxTransport(transport=httpx.MockTransport(handler))

    return _make


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
