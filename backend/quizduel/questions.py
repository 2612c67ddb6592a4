from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Tuple

from pydantic import TypeAdapter

from .models import QuestionTemplate


def _q(qid: str, level: int, text: str, choices: List[str], correct_index: int) -> QuestionTemplate:
    return QuestionTemplate(id=qid, level=level, text=text, choices=choices, correct_index=correct_index)


DEFAULT_QUESTIONS: Tuple[QuestionTemplate, ...] = (
    _q("q1", 1, "2 + 2 = ?", ["3", "4", "5", "6"], 1),
    _q("q2", 1, "Capital of France?", ["Paris", "Rome", "Berlin", "Madrid"], 0),
    _q("q3", 1, "Color of the sky on clear day?", ["Blue", "Green", "Red", "Yellow"], 0),
    _q("q4", 2, "What is 12 * 12?", ["144", "154", "134", "124"], 0),
    _q("q5", 2, "Which gas is essential for respiration?", ["Nitrogen", "Oxygen", "Hydrogen", "Carbon Dioxide"], 1),
    _q("q6", 2, "Square root of 256?", ["14", "15", "16", "18"], 2),
    _q("q7", 3, "Derivative of x^2?", ["x", "2x", "x^2", "2"], 1),
    _q("q8", 3, "HTTP status code for Not Found?", ["200", "301", "404", "500"], 2),
    _q("q9", 3, "Which algorithm is O(n log n)?", ["Bubble sort", "Merge sort", "Selection sort", "Insertion sort"], 1),
    _q("q10", 1, "Which animal barks?", ["Cat", "Cow", "Dog", "Snake"], 2),
    _q("q11", 2, "What is H2O?", ["Salt", "Water", "Oxygen", "Hydrogen"], 1),
    _q("q12", 3, "Binary of decimal 10?", ["1010", "1001", "1100", "1110"], 0),
)

_templates = TypeAdapter(List[QuestionTemplate])


class QuestionBank:
    """Read-only catalog of quiz questions tagged by difficulty level."""

    def __init__(self, questions: Iterable[QuestionTemplate] = DEFAULT_QUESTIONS):
        self._questions: Tuple[QuestionTemplate, ...] = tuple(questions)

    @classmethod
    def from_file(cls, path: str | Path) -> "QuestionBank":
        """Load a bank from a JSON array of question objects."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(_templates.validate_python(raw))

    def __len__(self) -> int:
        return len(self._questions)

    def all_questions(self) -> List[QuestionTemplate]:
        return list(self._questions)

    def questions_at_level(self, level: int) -> List[QuestionTemplate]:
        return [q for q in self._questions if q.level == level]
