import random

import pytest

from interview.scoring import AnswerScorer, FAIL_FEEDBACK, PASS_FEEDBACK
from models.schemas import Evaluation


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


@pytest.mark.parametrize("seed", range(20))
def test_mock_evaluation_is_consistent(seed):
    rng = random.Random(seed)
    for length in (0, 1, 50, 400, 799, 800, 5000):
        evaluation = AnswerScorer.mock_evaluation("a" * length, rng=rng)
        assert 1 <= evaluation.score <= 5
        assert evaluation.passed == (evaluation.score >= 3)
        assert evaluation.feedback == (PASS_FEEDBACK if evaluation.passed else FAIL_FEEDBACK)
        assert evaluation.mock is True


def test_mock_score_formula():
    assert AnswerScorer.mock_evaluation("", rng=FixedRandom(0.0)).score == 2
    # Halves round up
    assert AnswerScorer.mock_evaluation("", rng=FixedRandom(0.5)).score == 3
    assert AnswerScorer.mock_evaluation("a" * 400, rng=FixedRandom(0.0)).score == 4
    assert AnswerScorer.mock_evaluation("a" * 2000, rng=FixedRandom(0.99)).score == 5


def test_valid_model_grade_is_accepted():
    evaluation = AnswerScorer.validate_evaluation({"score": 4, "pass": True, "feedback": " Clear answer. "})
    assert evaluation == Evaluation(score=4, passed=True, feedback="Clear answer.", mock=False)


def test_model_cannot_claim_mock():
    evaluation = AnswerScorer.validate_evaluation({"score": 2, "pass": False, "feedback": "Thin.", "mock": True})
    assert evaluation.mock is False


@pytest.mark.parametrize("payload", [
    None,
    "not a dict",
    {},
    {"score": "4", "pass": True, "feedback": "ok"},
    {"score": 4.5, "pass": True, "feedback": "ok"},
    {"score": 9, "pass": True, "feedback": "ok"},
    {"score": -1, "pass": False, "feedback": "ok"},
    {"score": 4, "pass": "yes", "feedback": "ok"},
    {"score": 4, "pass": True},
    {"score": 4, "pass": True, "feedback": "   "},
    {"score": 4, "pass": True, "feedback": 7},
])
def test_schema_mismatch_is_rejected(payload):
    assert AnswerScorer.validate_evaluation(payload) is None


def test_payload_uses_pass_key():
    payload = AnswerScorer.mock_evaluation("", rng=FixedRandom(0.0)).to_payload()
    assert payload == {"score": 2, "pass": False, "feedback": FAIL_FEEDBACK, "mock": True}


def test_closing_summary():
    evaluations = [
        Evaluation(score=4, passed=True, feedback="a"),
        Evaluation(score=2, passed=False, feedback="b"),
    ]
    summary = AnswerScorer.closing_summary(2, 3.0, "name: Sam", evaluations)
    assert summary.startswith("Interview complete after 2 answers.")
    assert "Mixed performance (average 3.0/5, 1 of 2 passed)." in summary
    assert summary.endswith("What we learned: name: Sam")


@pytest.mark.parametrize("average,verdict", [
    (None, "No answers were graded"),
    (4.8, "Outstanding performance"),
    (3.5, "Strong performance"),
    (2.5, "Mixed performance"),
    (1.0, "Needs more preparation"),
])
def test_recommendation(average, verdict):
    assert AnswerScorer.get_recommendation(average) == verdict
