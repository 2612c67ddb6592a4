from __future__ import annotations

from functools import cmp_to_key
from typing import List

from .models import Outcome, ParticipantSummary, Session


def summarize(session: Session) -> List[ParticipantSummary]:
    """Correctness and timing for each participant, in session order."""
    summaries: List[ParticipantSummary] = []
    for p in session.participants.values():
        correct = 0
        for idx, q in enumerate(session.questions):
            given = p.answers.get(idx)
            if given is not None and given.choice_index == q.correct_index:
                correct += 1

        total_time = None
        if p.finished_at is not None and p.started_at is not None:
            total_time = p.finished_at - p.started_at

        summaries.append(
            ParticipantSummary(
                participant_id=p.participant_id,
                correct=correct,
                answered_count=len(p.answers),
                total_time=total_time,
                finished_at=p.finished_at,
            )
        )
    return summaries


def compare_summaries(a: ParticipantSummary, b: ParticipantSummary) -> int:
    """Negative when ``a`` ranks ahead of ``b``, positive when behind, 0 on a tie."""
    if a.correct != b.correct:
        return b.correct - a.correct
    if a.total_time is not None and b.total_time is not None and a.total_time != b.total_time:
        return -1 if a.total_time < b.total_time else 1
    if a.finished_at is not None and b.finished_at is not None and a.finished_at != b.finished_at:
        return -1 if a.finished_at < b.finished_at else 1
    return 0


def resolve_outcome(session: Session, partial: bool = False) -> Outcome:
    ranked = sorted(summarize(session), key=cmp_to_key(compare_summaries))
    top, runner_up = ranked[0], ranked[1]

    # verdict uses the sort comparator
    if compare_summaries(top, runner_up) != 0:
        return Outcome(participants=ranked, winner=top.participant_id, outcome="winner", partial=partial)
    return Outcome(participants=ranked, winner=None, outcome="draw", partial=partial)
