from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Literal, Optional

from pydantic import BaseModel

from .db import Settings
from .errors import ValidationError
from .models import WaitingEntry
from .sessions import SessionRegistry
from .utils import now_ts

logger = logging.getLogger(__name__)


class MatchResult(BaseModel):
    status: Literal["queued", "matched"]
    session_id: Optional[str] = None
    opponent_id: Optional[str] = None


class Matchmaker:
    """Per-level FIFO of waiting participants.

    Stale entries are evicted lazily from the head of a queue whenever that
    level is requested; there is no background timer.
    """

    def __init__(self, registry: SessionRegistry, settings: Settings):
        self.registry = registry
        self.settings = settings
        self.queues: Dict[int, Deque[WaitingEntry]] = {}
        self.locks: Dict[int, asyncio.Lock] = {}
        # level -> requests currently holding or waiting on that level's lock
        self._pending: Dict[int, int] = {}
        # participant id -> level it is waiting at
        self._waiting: Dict[str, int] = {}

    def _lock(self, level: int) -> asyncio.Lock:
        self.locks.setdefault(level, asyncio.Lock())
        return self.locks[level]

    def queue_size(self, level: int) -> int:
        return len(self.queues.get(level, ()))

    async def request_match(self, participant_id: str, level: int) -> MatchResult:
        if not participant_id or level is None:
            raise ValidationError("participant_id and level are required")

        self._pending[level] = self._pending.get(level, 0) + 1
        try:
            return await self._request_match(participant_id, level)
        finally:
            self._release(level)

    async def _request_match(self, participant_id: str, level: int) -> MatchResult:
        async with self._lock(level):
            now = now_ts()
            queue = self.queues.setdefault(level, deque())
            self._evict_stale(queue, now)

            waiting_at = self._waiting.get(participant_id)
            if waiting_at is not None and waiting_at != level:
                # entries elsewhere only expire when their own level is requested;
                # nothing awaits between this check and the eviction, so that
                # level's lock is not needed
                self._evict_stale(self.queues[waiting_at], now)
                if not self.queues[waiting_at] and not self._pending.get(waiting_at):
                    self.queues.pop(waiting_at)
                    self.locks.pop(waiting_at, None)
                waiting_at = self._waiting.get(participant_id)
            if waiting_at == level:
                return MatchResult(status="queued")
            if waiting_at is not None:
                raise ValidationError(f"Participant is already waiting at level {waiting_at}")
            if await self.registry.active_session_for(participant_id):
                raise ValidationError("Participant is already in an active session")

            if not queue:
                queue.append(WaitingEntry(participant_id=participant_id, enqueued_at=now))
                self._waiting[participant_id] = level
                logger.debug("Queued %s at level %s", participant_id, level)
                return MatchResult(status="queued")

            opponent = queue.popleft()
            self._waiting.pop(opponent.participant_id, None)
            s = await self.registry.create_session(participant_id, opponent.participant_id, level)
            logger.info("Matched %s with %s at level %s", participant_id, opponent.participant_id, level)
            return MatchResult(status="matched", session_id=s.id, opponent_id=opponent.participant_id)

    def _release(self, level: int):
        self._pending[level] -= 1
        if self._pending[level] == 0 and not self.queues.get(level):
            # drained and idle: no waiter can still hold a reference to the lock
            del self._pending[level]
            self.queues.pop(level, None)
            self.locks.pop(level, None)

    def _evict_stale(self, queue: Deque[WaitingEntry], now: float):
        while queue and now - queue[0].enqueued_at > self.settings.MATCH_TIMEOUT_SECONDS:
            entry = queue.popleft()
            self._waiting.pop(entry.participant_id, None)
            logger.debug("Expired waiting entry for %s", entry.participant_id)
