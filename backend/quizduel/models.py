from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field

from .utils import now_ts

ChoiceIndex = int


class QuestionTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    level: int
    text: str
    choices: List[str]
    correct_index: ChoiceIndex


class WaitingEntry(BaseModel):
    participant_id: str
    enqueued_at: float  # epoch seconds


class Answer(BaseModel):
    model_config = ConfigDict(frozen=True)

    choice_index: ChoiceIndex
    answered_at: float  # epoch seconds, client supplied when given


class SessionQuestion(BaseModel):
    id: str
    text: str
    choices: List[str]
    correct_index: ChoiceIndex


class PublicQuestion(BaseModel):
    index: int
    id: str
    text: str
    choices: List[str]


class Progress(BaseModel):
    answered: int
    total: int


class ParticipantState(BaseModel):
    participant_id: str
    answers: Dict[int, Answer] = Field(default_factory=dict)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None


class ParticipantSummary(BaseModel):
    participant_id: str
    correct: int
    answered_count: int
    total_time: Optional[float] = None
    finished_at: Optional[float] = None


class Outcome(BaseModel):
    participants: List[ParticipantSummary]
    winner: Optional[str] = None
    outcome: Literal["winner", "draw"]
    partial: bool = False


# States: created -> in_progress -> finished
class Session(BaseModel):
    id: str
    level: int
    questions: List[SessionQuestion] = Field(default_factory=list)
    participants: Dict[str, ParticipantState] = Field(default_factory=dict)
    created_at: float = Field(default_factory=now_ts)
    finished: bool = False
    finished_at: Optional[float] = None
    result: Optional[Outcome] = None

    @property
    def state(self) -> str:
        if self.finished:
            return "finished"
        if any(p.started_at is not None for p in self.participants.values()):
            return "in_progress"
        return "created"
