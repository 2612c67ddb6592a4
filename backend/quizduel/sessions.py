from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Dict, List, Optional

from .db import SessionTable, Settings
from .errors import NotFoundError, ValidationError
from .models import (
    Answer,
    Outcome,
    ParticipantState,
    Progress,
    PublicQuestion,
    Session,
    SessionQuestion,
)
from .questions import QuestionBank
from .scoring import resolve_outcome
from .shuffle import seeded_shuffle
from .utils import now_ts

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns every session: creation, answers, finish and timeout detection."""

    def __init__(self, bank: QuestionBank, settings: Settings, table: SessionTable | None = None):
        self.bank = bank
        self.settings = settings
        self.table = table or SessionTable()
        self.locks: Dict[str, asyncio.Lock] = {}
        # participant id -> most recent session id
        self._latest: Dict[str, str] = {}

    def _lock(self, session_id: str) -> asyncio.Lock:
        # locks exist only for sessions still in the table
        if session_id not in self.table:
            raise NotFoundError("Session not found")
        self.locks.setdefault(session_id, asyncio.Lock())
        return self.locks[session_id]

    def select_questions(self, level: int, seed: str) -> List[SessionQuestion]:
        count = self.settings.QUESTIONS_PER_SESSION
        pool = self.bank.questions_at_level(level)
        if len(pool) < count:
            pool = self.bank.all_questions()
        shuffled = seeded_shuffle(pool, seed)
        return [
            SessionQuestion(id=q.id, text=q.text, choices=list(q.choices), correct_index=q.correct_index)
            for q in shuffled[:count]
        ]

    async def create_session(self, participant_a: str, participant_b: str, level: int) -> Session:
        if not participant_a or not participant_b:
            raise ValidationError("Both participant ids are required")
        if participant_a == participant_b:
            raise ValidationError("A participant cannot be matched with itself")

        await self._prune()

        session_id = str(uuid.uuid4())
        s = Session(
            id=session_id,
            level=level,
            questions=self.select_questions(level, session_id),
            participants={
                participant_a: ParticipantState(participant_id=participant_a),
                participant_b: ParticipantState(participant_id=participant_b),
            },
            created_at=now_ts(),
        )
        await self.table.put(s)
        self._latest[participant_a] = session_id
        self._latest[participant_b] = session_id

        logger.info(
            "Created session %s at level %s for %s vs %s with %d questions",
            session_id, level, participant_a, participant_b, len(s.questions),
        )
        return s

    async def get_session(self, session_id: str) -> Session:
        s = await self.table.get(session_id)
        if not s:
            raise NotFoundError("Session not found")
        return s

    async def active_session_for(self, participant_id: str) -> Optional[str]:
        """Id of the participant's unfinished session that has not timed out yet."""
        session_id = self._latest.get(participant_id)
        if session_id is None:
            return None
        s = await self.table.get(session_id)
        if not s or s.finished or self._timed_out(s, now_ts()):
            return None
        return session_id

    async def get_questions_for_participant(self, session_id: str, participant_id: str) -> List[PublicQuestion]:
        async with self._lock(session_id):
            s = await self.get_session(session_id)
            p = self._participant(s, participant_id)
            if p.started_at is None:
                p.started_at = now_ts()
                await self.table.put(s)

        return [
            PublicQuestion(index=idx, id=q.id, text=q.text, choices=q.choices)
            for idx, q in enumerate(s.questions)
        ]

    async def record_answer(
        self,
        session_id: str,
        participant_id: str,
        question_index: int,
        choice: int,
        answered_at: Optional[float] = None,
    ) -> Progress:
        """Store one answer and finish the session once both participants are done.

        ``answered_at`` comes from the client when present and is used as-is
        for timing; it is not reconciled against the server clock.
        """

        async with self._lock(session_id):
            s = await self.get_session(session_id)
            p = self._participant(s, participant_id)
            if question_index is None or choice is None:
                raise ValidationError("participant_id, question_index and choice are required")

            total = len(s.questions)
            if question_index < 0 or question_index >= total:
                raise ValidationError("Invalid question_index")
            if p.finished_at is not None:
                raise ValidationError("Participant has already answered every question")

            now = now_ts()
            if p.started_at is None:
                p.started_at = now
            p.answers[question_index] = Answer(
                choice_index=choice,
                answered_at=answered_at if answered_at is not None else now,
            )

            if len(p.answers) >= total:
                p.finished_at = max(a.answered_at for a in p.answers.values())
                logger.debug("Participant %s finished session %s", participant_id, session_id)

            if not s.finished and all(x.finished_at is not None for x in s.participants.values()):
                self._finish(s, partial=False)

            await self.table.put(s)
            return Progress(answered=len(p.answers), total=total)

    async def get_result(self, session_id: str) -> Optional[Outcome]:
        """The session outcome, or ``None`` while it is still pending.

        An unfinished session read after the timeout is resolved with
        whatever answers exist.
        """

        async with self._lock(session_id):
            s = await self.get_session(session_id)
            if not s.finished:
                if not self._timed_out(s, now_ts()):
                    return None
                self._finish(s, partial=True)
                await self.table.put(s)
            return s.result

    def _participant(self, s: Session, participant_id: str) -> ParticipantState:
        if not participant_id:
            raise ValidationError("participant_id is required")
        p = s.participants.get(participant_id)
        if p is None:
            raise ValidationError("Participant is not part of this session")
        return p

    def _timed_out(self, s: Session, now: float) -> bool:
        return now - s.created_at > self.settings.SESSION_TIMEOUT_SECONDS

    def _finish(self, s: Session, partial: bool):
        s.result = resolve_outcome(s, partial=partial)
        s.finished = True
        s.finished_at = now_ts()
        logger.info(
            "Session %s finished (%s%s), winner=%s",
            s.id, s.result.outcome, ", partial" if partial else "", s.result.winner,
        )

    async def _prune(self):
        removed = await self.table.prune(
            now_ts(),
            retention=self.settings.SESSION_RETENTION_SECONDS,
            timeout=self.settings.SESSION_TIMEOUT_SECONDS,
        )
        self.locks = {sid: lock for sid, lock in self.locks.items() if sid in self.table}
        if not removed:
            return
        gone = set(removed)
        self._latest = {pid: sid for pid, sid in self._latest.items() if sid not in gone}
        logger.info("Pruned %d expired sessions", len(removed))
