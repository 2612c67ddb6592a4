from datetime import datetime
from pydantic import BaseModel
from typing import List, Literal, Optional
from .models import Outcome, Progress, PublicQuestion


class MatchIn(BaseModel):
    participant_id: str
    level: int


class StartIn(BaseModel):
    participant_id: str


class AnswerIn(BaseModel):
    participant_id: str
    question_index: int
    choice: int
    # ISO-8601 or epoch number, trusted as sent
    answered_at: Optional[datetime] = None


class MatchOut(BaseModel):
    status: Literal["queued", "matched"]
    message: Optional[str] = None
    session_id: Optional[str] = None
    opponent_id: Optional[str] = None


class QuestionsOut(BaseModel):
    session_id: str
    questions: List[PublicQuestion]


class AnswerOut(BaseModel):
    status: Literal["ok"] = "ok"
    progress: Progress


class ResultOut(BaseModel):
    status: Literal["pending", "finished"]
    message: Optional[str] = None
    result: Optional[Outcome] = None
