from __future__ import annotations

import json
import os
import tempfile
from unittest import TestCase

from pydantic import ValidationError as SchemaError

from .questions import DEFAULT_QUESTIONS, QuestionBank


class QuestionBankTests(TestCase):
    def test_default_catalog_has_four_per_level(self):
        bank = QuestionBank()

        self.assertEqual(len(bank.all_questions()), 12)
        for level in (1, 2, 3):
            self.assertEqual(len(bank.questions_at_level(level)), 4)

    def test_level_filter_keeps_source_order(self):
        ids = [q.id for q in QuestionBank().questions_at_level(1)]

        self.assertEqual(ids, ["q1", "q2", "q3", "q10"])

    def test_unknown_level_is_empty(self):
        self.assertEqual(QuestionBank().questions_at_level(99), [])

    def test_templates_are_frozen(self):
        with self.assertRaises(SchemaError):
            DEFAULT_QUESTIONS[0].correct_index = 3

    def test_from_file(self):
        payload = [
            {"id": "a", "level": 4, "text": "Pick b", "choices": ["a", "b"], "correct_index": 1},
            {"id": "b", "level": 5, "text": "Pick a", "choices": ["a", "b"], "correct_index": 0},
        ]
        fd, path = tempfile.mkstemp(suffix=".json")
        self.addCleanup(os.remove, path)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh)

        bank = QuestionBank.from_file(path)

        self.assertEqual(len(bank), 2)
        self.assertEqual([q.id for q in bank.questions_at_level(4)], ["a"])

    def test_from_file_rejects_bad_entries(self):
        fd, path = tempfile.mkstemp(suffix=".json")
        self.addCleanup(os.remove, path)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump([{"id": "a", "level": 1}], fh)

        with self.assertRaises(SchemaError):
            QuestionBank.from_file(path)
