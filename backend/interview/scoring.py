"""
Answer scoring and evaluation system.
Validates model grades strictly and provides the deterministic mock
scorer used whenever a model grade is unavailable.
"""
import math
import random
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from models.schemas import Evaluation

logger = logging.getLogger(__name__)


PASS_FEEDBACK = "Solid answer. You clearly explained the situation and your impact."
FAIL_FEEDBACK = "Try adding more detail about your actions and measurable outcomes."

# Transcript length (chars) that earns the full length bonus
FULL_ANSWER_CHARS = 800


class AnswerScorer:
    """
    Scores and evaluates candidate answers on a 0-5 scale.
    """

    PASS_THRESHOLD = 3

    @classmethod
    def mock_evaluation(cls, transcript: str, rng: Optional[random.Random] = None) -> Evaluation:
        """
        Deterministic-shape fallback grade.

        score = clamp(round(2 + 3 * min(1, len/800) + jitter), 1, 5)
        with jitter in [0, 1); pass when score >= 3.
        """
        rng = rng or random
        normalized_length = min(1.0, len(transcript or "") / FULL_ANSWER_CHARS)
        # Round half up
        base_score = math.floor(2 + normalized_length * 3 + rng.random() + 0.5)
        score = max(1, min(5, base_score))
        passed = score >= cls.PASS_THRESHOLD
        return Evaluation(
            score=score,
            passed=passed,
            feedback=PASS_FEEDBACK if passed else FAIL_FEEDBACK,
            mock=True,
        )

    @classmethod
    def validate_evaluation(cls, payload: Optional[Dict[str, Any]]) -> Optional[Evaluation]:
        """
        Validate a parsed model reply against the Evaluation schema.

        Returns None on any mismatch; nothing from a rejected payload is kept.
        """
        if not isinstance(payload, dict):
            return None
        try:
            evaluation = Evaluation.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Rejected model evaluation: {e.error_count()} schema error(s)")
            return None
        feedback = evaluation.feedback.strip()
        if not feedback:
            return None
        return evaluation.model_copy(update={"feedback": feedback, "mock": False})

    @classmethod
    def get_recommendation(cls, average_score: Optional[float]) -> str:
        """
        Get a one-line verdict from the average score (0-5).
        """
        if average_score is None:
            return "No answers were graded"
        if average_score >= 4.5:
            return "Outstanding performance"
        elif average_score >= 3.5:
            return "Strong performance"
        elif average_score >= 2.5:
            return "Mixed performance"
        else:
            return "Needs more preparation"

    @classmethod
    def closing_summary(
        cls,
        answers: int,
        average_score: Optional[float],
        facts_summary: str,
        evaluations: List[Evaluation],
    ) -> str:
        """Closing text sent with the interview-ended event."""
        passed = sum(1 for e in evaluations if e.passed)
        parts = [
            f"Interview complete after {answers} answer{'s' if answers != 1 else ''}.",
            f"{cls.get_recommendation(average_score)}"
            + (f" (average {average_score}/5, {passed} of {len(evaluations)} passed)." if average_score is not None else "."),
        ]
        if facts_summary:
            parts.append(f"What we learned: {facts_summary}")
        return " ".join(parts)
