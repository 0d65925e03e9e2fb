"""High-level entry point tying the API client to local state."""

import logging
from typing import List, Optional

import httpx

from retroboard.client.api import RetroApiClient
from retroboard.client.storage import LocalStorage, SessionEntry, SessionHistory
from retroboard.client.store import BoardStore
from retroboard.core.config import ClientSettings
from retroboard.core.schemas.session import SessionCreated, SessionInfo

logger = logging.getLogger(__name__)


class RetroClient:
    """
    Remembers sessions and their admin tokens on this machine and opens
    live board stores.
    """

    def __init__(
        self,
        client_settings: Optional[ClientSettings] = None,
        http_client: Optional[httpx.Client] = None,
        storage: Optional[LocalStorage] = None,
    ):
        self.settings = client_settings or ClientSettings()
        self.api = RetroApiClient(http_client=http_client, client_settings=self.settings)
        self.storage = storage or LocalStorage(self.settings.storage_path)
        self.history = SessionHistory(self.storage, limit=self.settings.history_limit)

    def close(self) -> None:
        self.api.close()

    def create_session(self, name: str) -> SessionCreated:
        session = self.api.create_session(name)
        self.history.add(session)
        logger.info(f"Created session {session.id}")
        return session

    def get_session(self, session_id: str) -> SessionInfo:
        session = self.api.get_session(session_id)
        self.history.add(session)
        return session

    def recent_sessions(self) -> List[SessionEntry]:
        return self.history.entries()

    def delete_session(self, session_id: str) -> None:
        token = self.history.admin_token(session_id)
        if not token:
            raise ValueError(f"No admin token stored for session {session_id}")
        self.api.delete_session(session_id, token)
        self.history.remove(session_id)

    def open_board(self, session_id: str, start_polling: bool = True) -> BoardStore:
        store = BoardStore(
            self.api,
            session_id,
            self.storage.voter_id(session_id),
            autosave_delay=self.settings.autosave_delay,
            animation_duration=self.settings.animation_duration,
        )
        store.load()
        if start_polling:
            store.start_polling(self.settings.poll_interval)
        return store
