"""Integration tests for the fetchpipe CLI.

Drives the real Typer app with :class:`typer.testing.CliRunner`. Network
access is replaced by swapping the request commands' transport factory for
one backed by :class:`httpx.MockTransport`; profiles and tokens live in an
isolated config directory.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest
from typer.testing import CliRunner

from fetchpipe import __version__
from fetchpipe.app import _configure_logging, app, main
from fetchpipe.auth import CredentialStore
from fetchpipe.config import load_global_config, load_profile, profile_exists, save_profile
from fetchpipe.exceptions import InvalidUsageError
from fetchpipe.models import Profile, RequestConfig
from fetchpipe.transport import HttpxTransport

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def serve(monkeypatch: pytest.MonkeyPatch) -> Callable[[Handler], list[httpx.Request]]:
    """Route CLI requests to *handler* and return the list of received requests."""

    def _install(handler: Handler) -> list[httpx.Request]:
        received: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return handler(request)

        def factory(config: RequestConfig) -> HttpxTransport:
            return HttpxTransport(config, transport=httpx.MockTransport(recording))

        monkeypatch.setattr("fetchpipe.commands.request.transport_factory", factory)
        return received

    return _install


# ---------------------------------------------------------------------------
# request
# ---------------------------------------------------------------------------


class TestRequestCommand:
    def test_prints_decoded_body(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        serve(lambda request: httpx.Response(200, json=[{"id": 1, "name": "A"}]))

        result = runner.invoke(
            app, ["--json", "--quiet", "request", "GET", "https://api.example.com/users"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [{"id": 1, "name": "A"}]

    def test_profile_base_url_and_token(
        self,
        runner: CliRunner,
        isolated_config: Path,
        serve,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DEMO_TOKEN", "tok-xyz")
        save_profile(
            Profile(
                name="demo",
                base_url="https://api.example.com/v1",
                token_source="env:DEMO_TOKEN",
            )
        )
        received = serve(lambda request: httpx.Response(200, json={"ok": True}))

        result = runner.invoke(
            app,
            ["--json", "--quiet", "request", "post", "/users", "-d", '{"name": "Alta"}',
             "-H", "X-Trace: abc"],
        )

        assert result.exit_code == 0, result.output
        sent = received[0]
        assert sent.method == "POST"
        assert str(sent.url) == "https://api.example.com/v1/users"
        assert sent.headers["authorization"] == "Bearer tok-xyz"
        assert sent.headers["content-type"] == "application/json"
        assert sent.headers["x-trace"] == "abc"
        assert json.loads(sent.content) == {"name": "Alta"}

    def test_base_url_flag_without_profile(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        received = serve(lambda request: httpx.Response(204))

        result = runner.invoke(
            app, ["--base-url", "https://adhoc.example.com", "request", "DELETE", "/items/3"]
        )

        assert result.exit_code == 0, result.output
        assert str(received[0].url) == "https://adhoc.example.com/items/3"

    def test_http_error_exit_code(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        serve(lambda request: httpx.Response(404, text="not found"))

        result = runner.invoke(
            app, ["--no-color", "request", "GET", "https://api.example.com/missing"]
        )

        assert result.exit_code == 3
        assert "API error (404): not found" in result.output

    def test_unauthorized_warns_and_exits_with_http_code(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        serve(lambda request: httpx.Response(401))

        result = runner.invoke(
            app, ["--no-color", "request", "GET", "https://api.example.com/me"]
        )

        assert result.exit_code == 3
        assert "Unauthorized (401)" in result.output
        assert "Unknown API Error" in result.output

    def test_network_error_exit_code(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        serve(refuse)

        result = runner.invoke(
            app, ["--no-color", "request", "GET", "https://api.example.com/"]
        )

        assert result.exit_code == 6
        assert "Network error" in result.output

    def test_decode_failure_exit_code(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        serve(lambda request: httpx.Response(200, text="<html>"))

        result = runner.invoke(
            app, ["--no-color", "request", "GET", "https://api.example.com/"]
        )

        assert result.exit_code == 7
        assert "Unexpected error" in result.output

    def test_bad_header_is_invalid_usage(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        received = serve(lambda request: httpx.Response(200, json={}))

        result = runner.invoke(
            app, ["request", "GET", "https://api.example.com/", "-H", "no-colon"]
        )

        assert isinstance(result.exception, InvalidUsageError)
        assert received == []

    def test_unknown_method_is_invalid_usage(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        serve(lambda request: httpx.Response(200, json={}))

        result = runner.invoke(app, ["request", "BREW", "https://api.example.com/"])

        assert isinstance(result.exception, InvalidUsageError)

    def test_relative_url_without_profile_is_unexpected(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        received = serve(lambda request: httpx.Response(200, json={}))

        result = runner.invoke(app, ["--no-color", "request", "GET", "/users"])

        assert result.exit_code == 7
        assert "http:// or https://" in result.output
        assert received == []


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


class TestFetchCommand:
    def test_results_printed_in_argument_order(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        save_profile(Profile(name="demo", base_url="https://api.example.com"))
        received = serve(
            lambda request: httpx.Response(200, json={"path": request.url.path})
        )

        result = runner.invoke(
            app, ["--plain", "--quiet", "fetch", "/users", "/posts", "/users"]
        )

        assert result.exit_code == 0, result.output
        assert {r.url.path for r in received} == {"/posts", "/users"}
        assert result.stdout.splitlines() == ["path\t/users", "path\t/posts", "path\t/users"]

    def test_failure_reported_others_printed(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/broken":
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json={"path": request.url.path})

        serve(handler)

        result = runner.invoke(
            app,
            ["--plain", "--no-color", "fetch",
             "https://api.example.com/ok", "https://api.example.com/broken"],
        )

        assert result.exit_code == 3
        assert "path\t/ok" in result.output
        assert "https://api.example.com/broken: API error (500): boom" in result.output

    def test_verbose_shows_cache_log(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        serve(lambda request: httpx.Response(200, json={}))
        args = ["--plain", "fetch", "https://api.example.com/ok"]

        try:
            verbose = runner.invoke(app, ["--verbose", *args])
        finally:
            _configure_logging(False)
        quiet = runner.invoke(app, args)

        assert verbose.exit_code == 0, verbose.output
        assert "Cache miss" in verbose.output
        assert "Cache miss" not in quiet.output


# ---------------------------------------------------------------------------
# init / auth / config
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_creates_profile_and_default(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(
            app,
            ["init", "demo", "--base-url", "https://api.example.com",
             "--token-source", "env:DEMO_TOKEN", "-H", "Accept-Language: en"],
        )

        assert result.exit_code == 0, result.output
        profile = load_profile("demo")
        assert profile.base_url == "https://api.example.com"
        assert profile.token_source == "env:DEMO_TOKEN"
        assert profile.headers == {"Accept-Language": "en"}
        assert load_global_config().default_profile == "demo"

    def test_second_profile_keeps_default(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["init", "first", "--base-url", "https://a.example.com"])
        runner.invoke(app, ["init", "second", "--base-url", "https://b.example.com"])

        assert load_global_config().default_profile == "first"

    def test_existing_profile_requires_force(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        runner.invoke(app, ["init", "demo", "--base-url", "https://a.example.com"])

        result = runner.invoke(app, ["init", "demo", "--base-url", "https://b.example.com"])
        assert result.exit_code == 2
        assert load_profile("demo").base_url == "https://a.example.com"

        result = runner.invoke(
            app, ["init", "demo", "--base-url", "https://b.example.com", "--force"]
        )
        assert result.exit_code == 0
        assert load_profile("demo").base_url == "https://b.example.com"


class TestAuthCommands:
    def test_set_token_links_profile(self, runner: CliRunner, isolated_config: Path) -> None:
        save_profile(Profile(name="demo", base_url="https://api.example.com"))

        result = runner.invoke(app, ["auth", "set-token", "demo", "--token", "abc123"])

        assert result.exit_code == 0, result.output
        entry = CredentialStore("demo").load()
        assert entry is not None and entry.token == "abc123"
        assert entry.metadata == {"source": "cli"}
        assert load_profile("demo").token_source == "store:demo"

    def test_set_token_keeps_existing_source(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        save_profile(Profile(name="demo", token_source="env:DEMO_TOKEN"))

        runner.invoke(app, ["auth", "set-token", "demo", "--token", "abc123"])

        assert load_profile("demo").token_source == "env:DEMO_TOKEN"

    def test_set_token_prompts(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["auth", "set-token", "demo"], input="typed-token\n")

        assert result.exit_code == 0, result.output
        assert CredentialStore("demo").load().token == "typed-token"  # type: ignore[union-attr]
        assert not profile_exists("demo")

    def test_status_and_clear(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["auth", "set-token", "demo", "--token", "abc123"])

        result = runner.invoke(app, ["--json", "--quiet", "auth", "status", "demo"])
        assert result.exit_code == 0, result.output
        status = json.loads(result.stdout)
        assert status == {"profile": "demo", "stored": True, "valid": True, "expires_at": None}
        assert "abc123" not in result.output

        runner.invoke(app, ["auth", "clear", "demo"])
        assert CredentialStore("demo").load() is None

    def test_stored_token_is_sent(
        self, runner: CliRunner, isolated_config: Path, serve
    ) -> None:
        save_profile(Profile(name="demo", base_url="https://api.example.com"))
        runner.invoke(app, ["auth", "set-token", "demo", "--token", "from-store"])
        received = serve(lambda request: httpx.Response(200, json={}))

        result = runner.invoke(app, ["--quiet", "request", "GET", "/me"])

        assert result.exit_code == 0, result.output
        assert received[0].headers["authorization"] == "Bearer from-store"


class TestConfigCommands:
    def test_set_coerces_type(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "request.timeout", "10"])

        assert result.exit_code == 0, result.output
        assert load_global_config().request.timeout == 10.0

    def test_set_bool(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "auto_select_single_profile", "false"])
        assert load_global_config().auto_select_single_profile is False

    def test_set_unknown_key(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "request.retries", "3"])
        assert result.exit_code == 2

    def test_set_bad_value(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "request.timeout", "soon"])
        assert result.exit_code == 2

    def test_set_bool_rejects_unknown_word(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "auto_select_single_profile", "maybe"])
        assert result.exit_code == 2
        assert load_global_config().auto_select_single_profile is True

    def test_delete_profile_removes_file_token_and_default(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        runner.invoke(app, ["init", "old", "--base-url", "https://old.example.com"])
        runner.invoke(app, ["auth", "set-token", "old", "--token", "t"])
        assert load_global_config().default_profile == "old"

        result = runner.invoke(app, ["config", "delete-profile", "old"])

        assert result.exit_code == 0, result.output
        assert not profile_exists("old")
        assert CredentialStore("old").load() is None
        assert load_global_config().default_profile is None

    def test_delete_profile_keeps_other_default(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        runner.invoke(app, ["init", "main", "--base-url", "https://a.example.com"])
        runner.invoke(app, ["init", "spare", "--base-url", "https://b.example.com"])

        result = runner.invoke(app, ["config", "delete-profile", "spare"])

        assert result.exit_code == 0, result.output
        assert load_global_config().default_profile == "main"

    def test_delete_missing_profile(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "delete-profile", "ghost"])
        assert result.exit_code == 2

    def test_set_through_non_section_key(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        result = runner.invoke(app, ["config", "set", "default_profile.name", "x"])
        assert result.exit_code == 2

    def test_show(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["request"]["timeout"] == 30.0

    def test_profiles_table(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["init", "alpha", "--base-url", "https://a.example.com"])
        runner.invoke(app, ["init", "beta", "--base-url", "https://b.example.com",
                            "-t", "env:B_TOKEN"])

        result = runner.invoke(app, ["--plain", "config", "profiles"])

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == "profile\tbase_url\ttoken_source"
        assert "alpha *\thttps://a.example.com\t" in lines
        assert "beta\thttps://b.example.com\tenv:B_TOKEN" in lines


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


class TestEntryPoint:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"fetchpipe {__version__}" in result.output

    def test_main_maps_fetchpipe_error_to_exit_code(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def raising() -> None:
            raise InvalidUsageError("bad input")

        monkeypatch.setattr("fetchpipe.app.app", raising)
        monkeypatch.setattr("fetchpipe.app._setup_signal_handlers", lambda: None)

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 2

    def test_main_writes_crash_log(
        self, monkeypatch: pytest.MonkeyPatch, isolated_config: Path
    ) -> None:
        def crashing() -> None:
            raise RuntimeError("kaboom")

        monkeypatch.setattr("fetchpipe.app.app", crashing)
        monkeypatch.setattr("fetchpipe.app._setup_signal_handlers", lambda: None)

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        logs = list((isolated_config / "data" / "fetchpipe" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "kaboom" in logs[0].read_text()
