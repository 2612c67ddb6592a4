from __future__ import annotations

from unittest import TestCase, mock

from fastapi.testclient import TestClient

from . import sessions
from .db import Settings
from .main import create_app


class _Clock:
    def __init__(self, start: float = 10_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class ApiTests(TestCase):
    def setUp(self) -> None:  # noqa: D401 - standard unittest hook
        self.clock = _Clock()
        patcher = mock.patch.object(sessions, "now_ts", self.clock)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.app = create_app(Settings(SESSION_TIMEOUT_SECONDS=120, LOG_LEVEL="WARNING"))
        self.client = TestClient(self.app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def _match(self):
        first = self.client.post("/api/match", json={"participant_id": "alice", "level": 2})
        second = self.client.post("/api/match", json={"participant_id": "bob", "level": 2})
        return first, second

    def _correct(self, session_id):
        return [q.correct_index for q in self.app.state.registry.table._docs[session_id].questions]

    def test_root(self):
        self.assertEqual(self.client.get("/").status_code, 200)

    def test_match_then_play_to_a_winner(self):
        first, second = self._match()
        self.assertEqual(first.json(), {"status": "queued", "message": "Waiting for another participant at the same level"})
        body = second.json()
        self.assertEqual(body["status"], "matched")
        self.assertEqual(body["opponent_id"], "alice")
        sid = body["session_id"]

        qa = self.client.post(f"/api/session/{sid}/start", json={"participant_id": "alice"}).json()
        qb = self.client.post(f"/api/session/{sid}/start", json={"participant_id": "bob"}).json()
        self.assertEqual(qa["questions"], qb["questions"])
        self.assertEqual(len(qa["questions"]), 10)
        self.assertNotIn("correct_index", qa["questions"][0])

        correct = self._correct(sid)
        for idx, choice in enumerate(correct):
            self.clock.now += 1
            r = self.client.post(
                f"/api/session/{sid}/answer",
                json={"participant_id": "alice", "question_index": idx, "choice": choice},
            )
            self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"status": "ok", "progress": {"answered": 10, "total": 10}})

        pending = self.client.get(f"/api/session/{sid}/result").json()
        self.assertEqual(pending["status"], "pending")

        for idx, choice in enumerate(correct):
            self.clock.now += 2
            self.client.post(
                f"/api/session/{sid}/answer",
                json={"participant_id": "bob", "question_index": idx, "choice": (choice + 1) % 4},
            )

        finished = self.client.get(f"/api/session/{sid}/result").json()
        self.assertEqual(finished["status"], "finished")
        self.assertEqual(finished["result"]["winner"], "alice")
        self.assertEqual(finished["result"]["outcome"], "winner")
        self.assertEqual([p["participant_id"] for p in finished["result"]["participants"]], ["alice", "bob"])

    def test_client_timestamps_are_used_verbatim(self):
        _, second = self._match()
        sid = second.json()["session_id"]

        for idx, choice in enumerate(self._correct(sid)):
            for pid in ("alice", "bob"):
                self.client.post(
                    f"/api/session/{sid}/answer",
                    json={
                        "participant_id": pid,
                        "question_index": idx,
                        "choice": choice,
                        "answered_at": "2024-01-01T00:00:%02dZ" % idx,
                    },
                )

        result = self.client.get(f"/api/session/{sid}/result").json()["result"]
        self.assertEqual(result["outcome"], "draw")
        self.assertIsNone(result["winner"])
        self.assertEqual({p["finished_at"] for p in result["participants"]}, {1704067209.0})

    def test_timeout_yields_partial_result(self):
        _, second = self._match()
        sid = second.json()["session_id"]

        self.clock.now += 121
        body = self.client.get(f"/api/session/{sid}/result").json()

        self.assertEqual(body["status"], "finished")
        self.assertTrue(body["result"]["partial"])
        self.assertEqual(body["result"]["outcome"], "draw")

    def test_errors(self):
        _, second = self._match()
        sid = second.json()["session_id"]

        self.assertEqual(self.client.get("/api/session/nope/result").status_code, 404)
        self.assertEqual(
            self.client.post("/api/session/nope/start", json={"participant_id": "alice"}).status_code, 404
        )
        self.assertEqual(
            self.client.post(f"/api/session/{sid}/start", json={"participant_id": "mallory"}).status_code, 400
        )
        for index in (-1, 10):
            r = self.client.post(
                f"/api/session/{sid}/answer",
                json={"participant_id": "alice", "question_index": index, "choice": 0},
            )
            self.assertEqual(r.status_code, 400)
        self.assertEqual(self.client.post("/api/match", json={"level": 1}).status_code, 400)
        self.assertEqual(
            self.client.post(f"/api/session/{sid}/answer", json={"participant_id": "alice"}).status_code, 400
        )
        self.assertEqual(self.client.post("/api/match", json={"participant_id": "alice", "level": 2}).status_code, 400)
