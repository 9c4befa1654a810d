"""Durable storage for the session credential."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


class CredentialStorage(Protocol):
    """Key-value storage for the bearer credential."""

    def read(self, key: str) -> str | None:
        """Return the stored value for ``key``, if present."""

    def write(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``."""

    def remove(self, key: str) -> None:
        """Remove ``key`` if present."""


@dataclass
class FileCredentialStorage(CredentialStorage):
    """JSON file holding credentials keyed by namespace."""

    path: Path

    @classmethod
    def create(cls, path: str) -> "FileCredentialStorage":
        """Create a storage rooted at ``path`` (``~`` is expanded)."""
        return cls(path=Path(path).expanduser())

    def read(self, key: str) -> str | None:
        """Return the stored credential, ignoring an unreadable file."""
        value = self._load().get(key)
        return value if isinstance(value, str) and value else None

    def write(self, key: str, value: str) -> None:
        """Store the credential, creating the file with owner-only access."""
        entries = self._load()
        entries[key] = value
        self._dump(entries)

    def remove(self, key: str) -> None:
        """Remove the credential; a missing key is not an error."""
        entries = self._load()
        if entries.pop(key, None) is not None:
            self._dump(entries)

    def _load(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, entries: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(entries), encoding="utf-8")
        tmp_path.chmod(0o600)
        tmp_path.replace(self.path)
