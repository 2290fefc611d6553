"""On-disk bearer tokens, one JSON file per profile.

Files live under ``<data dir>/credentials/<profile>.json`` and are always
written with mode ``0o600``. A stored token is only handed out while it is
non-empty and unexpired; see :meth:`CredentialStore.token`.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from fetchpipe.config import _atomic_write, get_data_dir, validate_profile_name


class CredentialEntry(BaseModel):
    """A stored token with optional expiry (naive datetimes are read as UTC)."""

    token: str
    expires_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return (now or datetime.now(timezone.utc)) >= expires

    def is_usable(self) -> bool:
        return bool(self.token) and not self.is_expired()


class CredentialStore:
    """The token file of a single profile.

    Example::

        store = CredentialStore("myapi")
        store.save(CredentialEntry(token="tok123"))
        store.token()  # "tok123"
    """

    def __init__(self, profile_name: str) -> None:
        self._profile_name = validate_profile_name(profile_name)
        directory = get_data_dir() / "credentials"
        directory.mkdir(parents=True, exist_ok=True)
        self._path = directory / f"{profile_name}.json"

    @property
    def path(self) -> Path:
        return self._path

    def save(self, entry: CredentialEntry) -> None:
        _atomic_write(self._path, entry.model_dump_json(indent=2) + "\n", mode=0o600)

    def load(self) -> Optional[CredentialEntry]:
        """Return the stored entry; a missing or corrupt file reads as ``None``."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError:
            return None
        try:
            return CredentialEntry.model_validate(json.loads(raw))
        except ValueError:
            return None

    def token(self) -> Optional[str]:
        """The stored token, or ``None`` when absent, empty or expired."""
        entry = self.load()
        if entry is None or not entry.is_usable():
            return None
        return entry.token

    def describe(self) -> dict[str, Any]:
        """Summary for ``auth status``. Never includes the token itself."""
        entry = self.load()
        return {
            "profile": self._profile_name,
            "stored": entry is not None,
            "valid": entry is not None and entry.is_usable(),
            "expires_at": (
                entry.expires_at.isoformat() if entry is not None and entry.expires_at else None
            ),
        }

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
