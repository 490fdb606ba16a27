"""
Prompt templates for the interviewer and the grader.
Each prompt is designed to:
1. Carry the full session context as a labelled block
2. Enforce the interviewer role (one question, no commentary)
3. Produce clean, structured outputs
"""
from typing import Iterable, List, Optional

from models.schemas import CandidateLevel, InterviewPhase
from interview.phases import InterviewPhases


QUESTION_SYSTEM = """You are a professional interviewer running a spoken mock interview.

CRITICAL RULES:
1. Ask EXACTLY ONE question per reply.
2. The question must fit the CURRENT PHASE.
3. Build on what the candidate already said (facts and recent answers).
4. Keep it to 25 words or fewer unless the phase needs depth.
5. No greetings, feedback, labels, notes or any meta-commentary.
6. NEVER repeat or closely paraphrase any question in PREVIOUSLY ASKED.

Respond with ONLY the question text."""


GRADER_SYSTEM = """You are a strict but fair interview evaluator.
Respond with ONLY a JSON object and nothing else."""


class Prompts:
    """Collection of all prompts."""

    # ============================================================
    # INTERVIEWER PROMPTS
    # ============================================================

    @staticmethod
    def question_context(
        company: str,
        role: str,
        level: CandidateLevel,
        role_description: str,
        competencies: str,
        phase: InterviewPhase,
        turn_index: int,
        max_turns: int,
        summary: str,
        recent_transcripts: Iterable[str],
        asked_questions: Iterable[str],
    ) -> str:
        """Labelled context block describing the session so far."""
        recent = [t for t in recent_transcripts if t]
        asked = list(asked_questions)

        recent_str = "\n".join(f"- {t[:400]}" for t in recent) if recent else "- None yet"
        asked_str = "\n".join(f"- {q}" for q in asked) if asked else "- None yet"

        return f"""COMPANY: {company or 'Not specified'}
ROLE: {role or 'Not specified'}
LEVEL: {level.value}
ROLE DESCRIPTION: {role_description or 'Not specified'}
COMPETENCIES: {competencies or 'Not specified'}
CURRENT PHASE: {phase.value}
TURN: {turn_index + 1} of {max_turns}
KNOWN FACTS: {summary or 'None yet'}
RECENT ANSWERS:
{recent_str}
PREVIOUSLY ASKED:
{asked_str}"""

    @staticmethod
    def interviewer_question(context: str, phase: InterviewPhase) -> str:
        """Prompt asking for the next question of the given phase."""
        info = InterviewPhases.get_phase_info(phase)
        focus = ", ".join(info.focus_areas) if info else "general"
        length_rule = (
            "This phase needs depth; up to 40 words is fine."
            if info and info.needs_depth else "Keep it under 25 words."
        )

        return f"""{context}

YOUR TASK: Ask the next {phase.value} question.
PHASE GOAL: {info.description if info else phase.value}
FOCUS ON: {focus}
{length_rule}

Your question:"""

    # ============================================================
    # GRADER PROMPT
    # ============================================================

    @staticmethod
    def grade_answer(question: str, transcript: str, role: Optional[str] = None) -> str:
        """Prompt for grading one answer against the question asked."""
        return f"""Grade this interview answer{f' for a {role} candidate' if role else ''}.

QUESTION: "{question or 'Not recorded'}"
TRANSCRIPT: "{transcript}"

Rubric: score 0-5 (0 = no answer, 5 = excellent), pass when the answer
meets the bar for the question, feedback in one or two short sentences.

Respond with ONLY this JSON (no other text):

{{
    "score": <integer 0-5>,
    "pass": <true/false>,
    "feedback": "<short feedback>"
}}"""


# ============================================================
# FALLBACK QUESTIONS (used when the LLM fails)
# ============================================================

FALLBACK_QUESTIONS = {
    "intro": [
        "Could you introduce yourself and tell me what draws you to this role?",
        "What has your path been so far, and why are you interviewing for this position?",
    ],
    "projects": {
        "junior": [
            "Tell me about a project you built, maybe for a class or on your own. What was your part?",
            "What was the hardest bug you hit in one of your projects, and how did you fix it?",
            "Which project are you most proud of, and what did you learn from building it?",
        ],
        "senior": [
            "Walk me through a project you owned end to end. What were the key design decisions?",
            "Tell me about a project where you had to make a significant trade-off. How did you decide?",
            "Describe a system you built that had real users. How did you measure its impact?",
        ],
    },
    "technical": {
        "junior": [
            "Can you explain a core concept from the language you use most, and when you would use it?",
            "How would you go about finding the cause of a slow page or slow API call?",
            "How do you test your code before you hand it off?",
        ],
        "senior": [
            "How would you design a service to handle ten times its current traffic?",
            "How do you ensure code quality and maintainability in a large codebase?",
            "Describe the most complex production issue you debugged. What was the root cause?",
        ],
    },
    "behavioral": [
        "Tell me about a time you disagreed with a teammate. How did you resolve it?",
        "Describe a time you received critical feedback. What did you do with it?",
        "Tell me about a time you had to deliver under a tight deadline.",
    ],
    "scenario": [
        "If you found a critical bug right before a release, what would you do?",
        "How would you prioritize three urgent requests from different stakeholders?",
        "A teammate is blocked and the deadline is tomorrow. How do you handle it?",
        "Your change caused an outage in production. Walk me through your next hour.",
    ],
    "wrapup": [
        "Is there anything about your experience we haven't covered that you'd like to share?",
        "What questions do you have for us about the role or the team?",
    ],
}


def fallback_candidates(phase: InterviewPhase, level: CandidateLevel) -> List[str]:
    """Canned questions for a phase, with level-specific wording where it exists."""
    entry = FALLBACK_QUESTIONS.get(phase.value, [])
    if isinstance(entry, dict):
        return list(entry["junior" if level.is_junior else "senior"])
    return list(entry)
