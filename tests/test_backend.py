import copy

import pytest
from fastapi.testclient import TestClient

from formcoach.backend import llm_agent, main
from formcoach.backend.llm_agent import evaluate_session_with_llm, parse_llm_json
from formcoach.client.exercise_detector import ExerciseType
from formcoach.client.session import ExerciseSession

from helpers import FakeClock, squat_frame

client = TestClient(main.app)


@pytest.fixture(scope="module")
def payload():
    session = ExerciseSession(ExerciseType.SQUAT, clock=FakeClock())
    for i in range(2):
        for j, angle in enumerate((170, 120, 80, 120, 170)):
            session.process_frame(squat_frame(angle), timestamp=i * 2 + j * 0.2)
    result = session.generate_payload()
    assert result["reps"] == 2
    return result


def test_health_check():
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_evaluate_returns_llm_feedback(monkeypatch, payload):
    seen = []

    def fake_eval(data):
        seen.append(data)
        return {"overall_score": 74, "comment": "Sit a little deeper.",
                "main_issue": "shallow_squat", "severity": "low"}

    monkeypatch.setattr(main, "evaluate_session_with_llm", fake_eval)
    resp = client.post("/evaluate", json=payload)

    assert resp.status_code == 200
    assert resp.json() == {"overall_score": 74, "comment": "Sit a little deeper.",
                           "main_issue": "shallow_squat", "severity": "low"}
    assert seen[0]["exercise"] == "squat"
    assert len(seen[0]["rep_summaries"]) == 2


def test_evaluate_llm_failure_is_502(monkeypatch, payload):
    monkeypatch.setattr(main, "evaluate_session_with_llm", lambda data: None)
    resp = client.post("/evaluate", json=payload)
    assert resp.status_code == 502
    assert resp.json()["detail"] == "LLM evaluation failed"


def test_evaluate_malformed_llm_answer_is_502(monkeypatch, payload):
    monkeypatch.setattr(main, "evaluate_session_with_llm",
                        lambda data: {"overall_score": 250, "comment": "?"})
    resp = client.post("/evaluate", json=payload)
    assert resp.status_code == 502
    assert resp.json()["detail"] == "LLM evaluation was malformed"


def test_evaluate_rejects_rep_count_mismatch(monkeypatch, payload):
    monkeypatch.setattr(main, "evaluate_session_with_llm", lambda data: pytest.fail("called"))
    bad = copy.deepcopy(payload)
    bad["reps"] = 3
    assert client.post("/evaluate", json=bad).status_code == 422


def test_evaluate_rejects_unknown_exercise(payload):
    bad = copy.deepcopy(payload)
    bad["exercise"] = "burpee"
    assert client.post("/evaluate", json=bad).status_code == 422


@pytest.mark.parametrize("raw", [
    '{"overall_score": 80, "comment": "ok"}',
    '```json\n{"overall_score": 80, "comment": "ok"}\n```',
    'Here you go: {"overall_score": 80, "comment": "ok"} Keep it up!',
])
def test_parse_llm_json_variants(raw):
    assert parse_llm_json(raw) == {"overall_score": 80, "comment": "ok"}


@pytest.mark.parametrize("raw", ["no json here", "[1, 2]", "{broken"])
def test_parse_llm_json_rejects(raw):
    assert parse_llm_json(raw) is None


class FakeMessage:
    def __init__(self, content):
        self.content = content


class FakeLLM:
    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.messages = None

    def invoke(self, messages):
        self.messages = messages
        if self.error:
            raise self.error
        return FakeMessage(self.answer)


def test_evaluate_session_with_llm(monkeypatch):
    llm = FakeLLM('{"overall_score": 91, "comment": "Clean reps.", "severity": "none"}')
    monkeypatch.setattr(llm_agent, "_get_llm", lambda: llm)

    result = evaluate_session_with_llm({"exercise": "pushup", "reps": 4})

    assert result["overall_score"] == 91
    assert "Exercise: pushup" in llm.messages[1].content
    assert llm.messages[0].content == llm_agent.SYSTEM_PROMPT


def test_evaluate_session_with_llm_failures(monkeypatch):
    monkeypatch.setattr(llm_agent, "_get_llm", lambda: FakeLLM(error=TimeoutError("slow")))
    assert evaluate_session_with_llm({"exercise": "squat", "reps": 1}) is None

    monkeypatch.setattr(llm_agent, "_get_llm", lambda: FakeLLM("I cannot grade this."))
    assert evaluate_session_with_llm({"exercise": "squat", "reps": 1}) is None
