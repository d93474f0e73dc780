"""
Local user registry.

One JSON object on disk maps ``username -> {"password": ..., "preferences": {...}}``.
Passwords are stored and compared in plaintext; this registry only
remembers who is at the keyboard and is not a security boundary.
"""

import json
import logging
from pathlib import Path

from qo.agent.errors import RegistryWriteFailure

logger = logging.getLogger("qo.credentials")


class CredentialStore:
    """Plaintext username registry persisted as a single JSON blob."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._users = self._load()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read user registry %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Invalid user registry format in %s, ignoring file", self.path)
            return {}
        users = {}
        for username, record in data.items():
            if isinstance(record, dict):
                users[username] = record
            else:
                logger.warning("Dropping malformed record for %r in %s", username, self.path)
        return users

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._users, indent=2))

    def __contains__(self, username: str) -> bool:
        return username in self._users

    def __len__(self) -> int:
        return len(self._users)

    def exists(self, username: str) -> bool:
        return username in self._users

    def get(self, username: str) -> dict | None:
        return self._users.get(username)

    def usernames(self) -> list[str]:
        return list(self._users)

    def add(self, username: str, password: str, preferences: dict | None = None):
        """Create a record and persist the whole registry."""
        if username in self._users:
            raise KeyError(username)
        self._users[username] = {"password": password, "preferences": preferences or {}}
        try:
            self._save()
        except OSError as exc:
            del self._users[username]
            logger.warning("Failed to write user registry %s: %s", self.path, exc)
            raise RegistryWriteFailure(f"Could not save account: {exc}") from exc
        logger.info("Registered user %s", username)
