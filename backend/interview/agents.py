"""
Agents for the interview service.
QuestionGenerator produces the next question; AnswerEvaluator grades an
answer. Both always return a usable result: any model failure takes a
local fallback.
"""
import random
import logging
from typing import Optional

from llm.client import LLMClient, llm_client
from llm.prompts import (
    Prompts,
    QUESTION_SYSTEM,
    GRADER_SYSTEM,
    FALLBACK_QUESTIONS,
    fallback_candidates,
)
from interview.scoring import AnswerScorer
from interview.state import InterviewSession
from models.schemas import Evaluation, InterviewPhase
from utils.cleaning import ResponseCleaner
from utils.config import config

logger = logging.getLogger(__name__)


class QuestionGenerator:
    """
    Generates interview questions from session state.
    """

    def __init__(self, llm: Optional[LLMClient] = None, max_chars: Optional[int] = None):
        self.llm = llm or llm_client
        self.max_chars = max_chars or config.interview.question_max_chars

    def build_prompt(self, session: InterviewSession) -> str:
        context = Prompts.question_context(
            company=session.company,
            role=session.role,
            level=session.level,
            role_description=session.role_description,
            competencies=session.competencies,
            phase=session.phase,
            turn_index=session.turn_index,
            max_turns=session.max_turns,
            summary=session.summary_so_far,
            recent_transcripts=session.recent_transcripts,
            asked_questions=session.asked_questions,
        )
        return Prompts.interviewer_question(context, session.phase)

    def generate_question(self, session: InterviewSession) -> str:
        """
        Generate the next interview question for the session's phase.

        The returned question is not yet recorded; the caller issues it
        on the session.

        Args:
            session: The interview session

        Returns:
            A non-empty question that was never asked in this session
        """
        phase = session.phase
        logger.info(f"Generating question for session {session.session_id} phase={phase.value} turn={session.turn_index}")

        if not self.llm.is_configured:
            return self.fallback_question(session)

        raw, is_valid = self.llm.generate_question(self.build_prompt(session), system=QUESTION_SYSTEM)
        if not is_valid:
            logger.warning(f"LLM failed for {phase.value}, using fallback")
            return self.fallback_question(session)

        question = ResponseCleaner.sanitize_question(
            raw, role=session.role, company=session.company, max_chars=self.max_chars
        )
        if not ResponseCleaner.is_usable_question(question):
            logger.warning(f"Unusable LLM question {question[:60]!r}, using fallback")
            return self.fallback_question(session)
        if ResponseCleaner.is_repeat(question, session.asked_questions):
            logger.warning("LLM repeated an earlier question, using fallback")
            return self.fallback_question(session)

        logger.info(f"LLM generated question: {question[:80]}")
        return question

    def fallback_question(self, session: InterviewSession) -> str:
        """
        Pick a canned question for the phase that has not been asked yet.
        Other phases' banks are the next resort, then a numbered prompt.
        """
        asked = session.asked_questions
        for candidate in fallback_candidates(session.phase, session.level):
            if not ResponseCleaner.is_repeat(candidate, asked):
                return candidate

        for phase in InterviewPhase.get_order():
            if phase in (session.phase, InterviewPhase.INTRO, InterviewPhase.WRAPUP):
                continue
            for candidate in fallback_candidates(phase, session.level):
                if not ResponseCleaner.is_repeat(candidate, asked):
                    return candidate

        base = FALLBACK_QUESTIONS["scenario"][0]
        number = session.turn_index + 1
        question = f"Question {number}: {base}"
        while ResponseCleaner.is_repeat(question, asked):
            number += 1
            question = f"Question {number}: {base}"
        return question


class AnswerEvaluator:
    """
    Grades candidate answers against the question asked.
    """

    def __init__(self, llm: Optional[LLMClient] = None, rng: Optional[random.Random] = None):
        self.llm = llm or llm_client
        self.rng = rng or random.Random()

    def evaluate(self, question: str, transcript: str, role: Optional[str] = None) -> Evaluation:
        """
        Grade an answer.

        Args:
            question: The question that was asked
            transcript: The candidate's transcribed answer
            role: Optional role for the grading prompt

        Returns:
            A validated model grade, or the mock grade on any failure
        """
        if not self.llm.is_configured:
            return self.mock(transcript)

        prompt = Prompts.grade_answer(question=question, transcript=transcript, role=role)
        result, is_valid = self.llm.generate_json(prompt, system=GRADER_SYSTEM)
        evaluation = AnswerScorer.validate_evaluation(result) if is_valid else None
        if evaluation is None:
            logger.warning("Evaluation unavailable, using mock score")
            return self.mock(transcript)
        return evaluation

    def mock(self, transcript: str) -> Evaluation:
        return AnswerScorer.mock_evaluation(transcript, rng=self.rng)
