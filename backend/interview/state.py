"""
Interview session record.
One mutable InterviewSession per interview; it is the single source of
truth for phase, turn count, transcripts and memory.
"""
import time
import uuid
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from models.schemas import CandidateLevel, Evaluation, InterviewPhase, SessionStatus
from interview.phases import phase_of
from memory.extractors import merge_summary
from utils.config import config


# Statuses in which incoming audio belongs to the turn being answered
CAPTURE_STATUSES = (SessionStatus.QUESTION_ISSUED, SessionStatus.CAPTURING)


class InterviewSession:
    """
    State of one interview.

    ``phase`` is derived from ``turn_index`` and ``max_turns`` on every
    read, so it can never drift from the phase table.
    """

    def __init__(
        self,
        company: str = "",
        role: str = "",
        role_description: str = "",
        competencies: str = "",
        max_turns: Optional[int] = None,
        level: Optional[CandidateLevel] = None,
        session_id: Optional[str] = None,
        summary_char_cap: Optional[int] = None,
        recent_capacity: Optional[int] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())

        # Context supplied at creation; never mutated
        self.company = company or ""
        self.role = role or ""
        self.role_description = role_description or ""
        self.competencies = competencies or ""
        self.level = level or CandidateLevel.from_role(self.role)

        # Turn tracking
        self.max_turns = max(1, int(max_turns or config.interview.default_max_turns))
        self.turn_index = 0
        self.status = SessionStatus.AWAITING_JOIN

        # Questions
        self.current_question: Optional[str] = None
        self.asked_questions: List[str] = []

        # Answers and memory
        self.chunks: List[bytes] = []
        self.transcripts: List[str] = []
        self.recent_transcripts: Deque[str] = deque(
            maxlen=recent_capacity or config.interview.recent_transcripts
        )
        self.summary_so_far = ""
        self.summary_char_cap = summary_char_cap or config.interview.summary_char_cap
        self.evaluations: List[Evaluation] = []

        # Set while an end-of-answer sequence is queued or running
        self.answer_pending = False

        self.created_at = time.time()
        self.updated_at = self.created_at

    # ========================================
    # Derived state
    # ========================================

    @property
    def phase(self) -> InterviewPhase:
        return phase_of(self.turn_index, self.max_turns)

    @property
    def is_complete(self) -> bool:
        return self.turn_index >= self.max_turns

    @property
    def accepts_audio(self) -> bool:
        return self.status in CAPTURE_STATUSES

    # ========================================
    # Questions
    # ========================================

    def issue_question(self, question: str) -> None:
        """Record a question as the current one; every issued question is kept."""
        self.current_question = question
        self.asked_questions.append(question)
        if self.status != SessionStatus.AWAITING_JOIN:
            self.status = SessionStatus.QUESTION_ISSUED
        self.touch()

    def mark_joined(self) -> None:
        if self.status == SessionStatus.AWAITING_JOIN:
            self.status = SessionStatus.QUESTION_ISSUED
        self.touch()

    # ========================================
    # Audio
    # ========================================

    def accept_chunk(self, chunk: bytes) -> bool:
        """
        Buffer an audio fragment for the turn being answered.

        Returns False (fragment dropped) once transcription has started
        or the interview is over.
        """
        if not self.accepts_audio:
            return False
        self.chunks.append(bytes(chunk))
        self.status = SessionStatus.CAPTURING
        self.touch()
        return True

    def reopen_capture(self) -> None:
        """Take answers for the current question again after a failed turn."""
        if self.status != SessionStatus.COMPLETED:
            self.status = SessionStatus.QUESTION_ISSUED
        self.touch()

    def drain_chunks(self) -> bytes:
        """Concatenate and clear the buffered audio; capture ends here."""
        audio = b"".join(self.chunks)
        self.chunks = []
        self.status = SessionStatus.TRANSCRIBING
        self.touch()
        return audio

    # ========================================
    # Answers
    # ========================================

    def record_transcript(self, transcript: str) -> None:
        self.transcripts.append(transcript)
        self.recent_transcripts.append(transcript)
        self.touch()

    def merge_facts(self, facts_line: str) -> None:
        self.summary_so_far = merge_summary(self.summary_so_far, facts_line, self.summary_char_cap)

    def advance_turn(self) -> None:
        self.turn_index = min(self.turn_index + 1, self.max_turns)
        self.touch()

    def record_evaluation(self, evaluation: Evaluation) -> None:
        self.evaluations.append(evaluation)
        self.touch()

    def complete(self) -> None:
        self.status = SessionStatus.COMPLETED
        self.touch()

    def average_score(self) -> Optional[float]:
        if not self.evaluations:
            return None
        return round(sum(e.score for e in self.evaluations) / len(self.evaluations), 1)

    def touch(self) -> None:
        self.updated_at = time.time()

    # ========================================
    # Serialization
    # ========================================

    def get_status(self) -> Dict[str, Any]:
        """Get current interview status."""
        return {
            "id": self.session_id,
            "company": self.company,
            "role": self.role,
            "level": self.level.value,
            "phase": self.phase.value,
            "status": self.status.value,
            "turnIndex": self.turn_index,
            "maxTurns": self.max_turns,
            "currentQuestion": self.current_question,
            "askedQuestions": list(self.asked_questions),
            "recentTranscripts": list(self.recent_transcripts),
            "summary": self.summary_so_far,
            "scores": [e.score for e in self.evaluations],
            "averageScore": self.average_score(),
            "isEnded": self.status == SessionStatus.COMPLETED,
        }
