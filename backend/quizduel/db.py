from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Session


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    QUESTIONS_PER_SESSION: int = 10
    MATCH_TIMEOUT_SECONDS: float = 120
    SESSION_TIMEOUT_SECONDS: float = 120
    # 0 keeps every session for the process lifetime
    SESSION_RETENTION_SECONDS: float = 3600
    QUESTION_BANK_PATH: Optional[str] = None
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


class SessionTable:
    """In-memory session documents keyed by session id.

    Callers get deep copies back, so a session only changes when it is
    explicitly ``put`` again.
    """

    def __init__(self):
        self._docs: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._docs)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._docs

    async def get(self, session_id: str) -> Optional[Session]:
        async with self._lock:
            doc = self._docs.get(session_id)
            return doc.model_copy(deep=True) if doc else None

    async def put(self, session: Session) -> None:
        async with self._lock:
            self._docs[session.id] = session.model_copy(deep=True)

    async def prune(self, now: float, *, retention: float, timeout: float) -> List[str]:
        """Drop finished sessions older than ``retention`` and abandoned ones.

        A session that never finished is dropped once it is older than
        ``timeout + retention``. Returns the removed ids.
        """

        if retention <= 0:
            return []

        async with self._lock:
            expired = [
                sid
                for sid, doc in self._docs.items()
                if (doc.finished and doc.finished_at is not None and now - doc.finished_at > retention)
                or (not doc.finished and now - doc.created_at > timeout + retention)
            ]
            for sid in expired:
                del self._docs[sid]
        return expired
