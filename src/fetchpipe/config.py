"""Persistent configuration: directories, profiles, precedence, credentials.

* **Directories** -- XDG Base Directory layout on Linux/BSD
  (``$XDG_CONFIG_HOME/fetchpipe``, ``$XDG_DATA_HOME/fetchpipe``), a single
  ``~/.fetchpipe/`` tree elsewhere.
* **Global config** -- ``config.json`` holding a
  :class:`~fetchpipe.models.GlobalConfig`.
* **Profiles** -- ``profiles/<name>.json``, one
  :class:`~fetchpipe.models.Profile` per API.
* **Project config** -- ``./fetchpipe.json`` may pin ``default_profile``
  for a working directory.
* **Credentials** -- :func:`resolve_credential` turns a descriptor such as
  ``env:API_TOKEN`` into the bearer token.

Every write goes through :func:`_atomic_write`.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import re
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from fetchpipe.exceptions import ConfigError
from fetchpipe.models import GlobalConfig, Profile

_APP_NAME = "fetchpipe"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "fetchpipe.json"
_PROFILE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

ENV_PROFILE = "FETCHPIPE_PROFILE"
ENV_BASE_URL = "FETCHPIPE_BASE_URL"


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: tuple[str, ...], fallback: tuple[str, ...]) -> Path:
    """Resolve one application directory and make sure it exists."""
    if _is_xdg_platform():
        base = Path(os.environ.get(xdg_var) or Path.home().joinpath(*xdg_default))
        path = base / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/fetchpipe`` (default ``~/.config/fetchpipe``), or ``~/.fetchpipe``."""
    return _app_dir("XDG_CONFIG_HOME", (".config",), ())


def get_data_dir() -> Path:
    """``$XDG_DATA_HOME/fetchpipe`` (default ``~/.local/share/fetchpipe``), or ``~/.fetchpipe/data``.

    Holds stored credentials and crash logs.
    """
    return _app_dir("XDG_DATA_HOME", (".local", "share"), ("data",))


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- File helpers ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* via a temp file in the same directory.

    With *mode*, permissions are set on the temp file before any content is
    written, so a secret is never readable under the default umask.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.chmod(tmp_name, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _write_json(path: Path, data: Any, mode: Optional[int] = None) -> None:
    _atomic_write(path, json.dumps(data, indent=2) + "\n", mode=mode)


def _read_json(path: Path, what: str) -> Any:
    """Parse *path* as JSON, raising :class:`ConfigError` that names *what* on failure."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load ``config.json``, or return defaults when it does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _write_json(_global_config_path(), config.model_dump(mode="json"))


# --- Profiles ---


def validate_profile_name(name: str) -> str:
    """Return *name* if it is usable as a file name, else raise :class:`ConfigError`.

    Names start with a letter or digit and contain only letters, digits,
    ``.``, ``_`` and ``-``.
    """
    if not _PROFILE_NAME.match(name):
        raise ConfigError(
            f"Invalid profile name '{name}': use letters, digits, '.', '_' or '-'"
        )
    return name


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{validate_profile_name(name)}.json"


def list_profiles() -> list[str]:
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Load ``profiles/<name>.json``.

    Raises:
        ConfigError: If the profile is missing, not valid JSON, or fails
            validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    _write_json(_profile_path(profile.name), profile.model_dump(mode="json"))


def delete_profile(name: str) -> None:
    """Remove a profile file. Raises :class:`ConfigError` if there is none."""
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


# --- Project config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Return the contents of ``./fetchpipe.json``, or ``None`` if absent."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


# --- Precedence ---


def _select_profile_name(
    global_cfg: GlobalConfig, cli_profile: Optional[str]
) -> Optional[str]:
    project = load_project_config()
    if not isinstance(project, dict):
        project = {}
    candidates = (
        cli_profile,
        os.environ.get(ENV_PROFILE) or None,
        project.get("default_profile"),
        global_cfg.default_profile,
    )
    for name in candidates:
        if name is not None:
            return name
    if global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            return profiles[0]
    return None


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Work out the effective global config and active profile.

    The active profile is the first of: *cli_profile*,
    ``$FETCHPIPE_PROFILE``, ``default_profile`` in ``./fetchpipe.json``,
    ``default_profile`` in the global config, or the only stored profile
    when ``auto_select_single_profile`` is on. Its ``base_url`` is then
    overridden by *cli_base_url* or ``$FETCHPIPE_BASE_URL``.

    Returns:
        ``(global_config, profile_or_None)``.

    Raises:
        ConfigError: If the selected profile cannot be loaded.
    """
    global_cfg = load_global_config()

    name = _select_profile_name(global_cfg, cli_profile)
    if name is None:
        return global_cfg, None

    profile = load_profile(name)
    base_url = cli_base_url or os.environ.get(ENV_BASE_URL)
    if base_url:
        profile.base_url = base_url
    return global_cfg, profile


# --- Credentials ---


def _token_from_env(var_name: str) -> Optional[str]:
    return os.environ.get(var_name)


def _token_from_file(raw_path: str) -> Optional[str]:
    path = Path(raw_path).expanduser()
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


def _token_from_store(profile_name: str) -> Optional[str]:
    from fetchpipe.auth.credential_store import CredentialStore

    return CredentialStore(profile_name).token()


_RESOLVERS: dict[str, tuple[Callable[[str], Optional[str]], str]] = {
    "env": (_token_from_env, "Environment variable '{arg}' is not set"),
    "file": (_token_from_file, "Credential file not found: {arg}"),
    "store": (_token_from_store, "No valid credential in store for profile '{arg}'"),
}


def resolve_credential(source: str, required: bool = True) -> Optional[str]:
    """Resolve a bearer token from a source descriptor.

    Descriptors:
        - ``env:VAR`` -- the environment variable ``VAR``.
        - ``file:/path`` -- the file content, stripped of whitespace.
        - ``store:PROFILE`` -- the unexpired token in the credential store.
        - ``prompt`` -- ask on the terminal (stdin must be a TTY).

    Args:
        source: The descriptor.
        required: With ``False``, an absent token yields ``None`` rather
            than an error. Malformed descriptors always raise.

    Raises:
        ConfigError: If the descriptor is malformed, or the token is absent
            and *required* is true.
    """
    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter bearer token: ")

    scheme, sep, arg = source.partition(":")
    if not sep or scheme not in _RESOLVERS:
        raise ConfigError(f"Unknown credential source format: {source}")

    resolver, missing = _RESOLVERS[scheme]
    token = resolver(arg)
    if token is None and required:
        raise ConfigError(f"{missing.format(arg=arg)} (source: {source})")
    return token
