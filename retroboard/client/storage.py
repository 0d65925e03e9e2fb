"""
Local persisted client state.

A small JSON file stands in for browser local storage: the recent-session
history and one voter id per session.
"""

import json
import logging
import uuid
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SESSIONS_KEY = "retro_sessions"
VOTER_KEY_PREFIX = "retro_voter_"


class SessionEntry(BaseModel):
    """A session remembered on this machine."""

    id: str
    name: str
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    admin_token: Optional[str] = None


class LocalStorage:
    """String key/value store backed by a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)

    def voter_id(self, session_id: str) -> str:
        """The voter id for a session, created on first use."""
        key = f"{VOTER_KEY_PREFIX}{session_id}"
        with self._lock:
            data = self._load()
            voter = data.get(key)
            if not voter:
                voter = str(uuid.uuid4())
                data[key] = voter
                self._save(data)
            return voter


class SessionHistory:
    """
    Recently opened sessions, most recent first.

    Entries are unique by id and the list is capped at ``limit``. Re-adding a
    session without an admin token keeps the token stored earlier.
    """

    def __init__(self, storage: LocalStorage, limit: int = 20):
        self.storage = storage
        self.limit = limit

    def entries(self) -> List[SessionEntry]:
        raw = self.storage.get(SESSIONS_KEY, [])
        entries = []
        for item in raw if isinstance(raw, list) else []:
            try:
                entries.append(SessionEntry.model_validate(item))
            except ValueError:
                logger.debug("Dropping malformed session history entry")
        return entries

    def add(self, session: Union[SessionEntry, BaseModel, Dict[str, Any]]) -> SessionEntry:
        if isinstance(session, BaseModel) and not isinstance(session, SessionEntry):
            session = session.model_dump(mode="json")
        entry = SessionEntry.model_validate(session)

        existing = self.entries()
        if entry.admin_token is None:
            previous = next((e for e in existing if e.id == entry.id), None)
            if previous is not None and previous.admin_token:
                entry = entry.model_copy(update={"admin_token": previous.admin_token})

        kept = [e for e in existing if e.id != entry.id]
        updated = [entry] + kept
        self.storage.set(
            SESSIONS_KEY, [e.model_dump(mode="json") for e in updated[: self.limit]]
        )
        return entry

    def remove(self, session_id: str) -> None:
        self.storage.set(
            SESSIONS_KEY,
            [e.model_dump(mode="json") for e in self.entries() if e.id != session_id],
        )

    def admin_token(self, session_id: str) -> Optional[str]:
        return next((e.admin_token for e in self.entries() if e.id == session_id), None)

    def has_admin_token(self, session_id: str) -> bool:
        return bool(self.admin_token(session_id))
