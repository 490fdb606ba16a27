"""
Session orchestrator: the per-session state machine.

awaiting-join -> question-issued -> capturing-answer -> transcribing
-> evaluating -> (question-issued | completed)

Outbound events are delivered through an injected notifier with an
async ``notify(session_id, event, payload)`` method; the orchestrator
never touches a socket itself.
"""
import os
import time
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from interview.agents import AnswerEvaluator, QuestionGenerator
from interview.scoring import AnswerScorer
from interview.state import InterviewSession
from interview.store import SessionStore
from memory.extractors import FactExtractor, fact_extractor
from models.schemas import (
    Evaluation,
    SessionStatus,
    StartInterviewRequest,
    StartInterviewResponse,
)
from utils.config import config
from utils.errors import TranscriptionError

logger = logging.getLogger(__name__)


TRANSCRIPTION_FAILED = "Transcription failed."


@dataclass
class OutboundEvent:
    event: str
    data: Any = None


class SessionOrchestrator:
    """
    Drives interviews turn by turn.

    Every dependency is injected so the state machine can run against
    fakes; timeouts bound each worker-thread call and a timeout takes
    the same fallback as a failure.
    """

    def __init__(
        self,
        store: SessionStore,
        generator: QuestionGenerator,
        evaluator: AnswerEvaluator,
        transcriber,
        notifier,
        extractor: Optional[FactExtractor] = None,
        grace_seconds: Optional[float] = None,
        llm_timeout: Optional[float] = None,
        transcription_timeout: Optional[float] = None,
        tmp_dir: Optional[str] = None,
    ):
        self.store = store
        self.generator = generator
        self.evaluator = evaluator
        self.transcriber = transcriber
        self.notifier = notifier
        self.extractor = extractor or fact_extractor
        self.grace_seconds = config.interview.end_answer_grace if grace_seconds is None else grace_seconds
        self.llm_timeout = llm_timeout or config.llm.timeout
        self.transcription_timeout = transcription_timeout or config.speech.timeout
        self.tmp_dir = tmp_dir or config.speech.tmp_dir
        self.container = config.speech.input_container

    # ========================================
    # HTTP-driven
    # ========================================

    async def create_interview(self, request: StartInterviewRequest) -> StartInterviewResponse:
        """Create a session and issue its first question."""
        self.store.cleanup_inactive(
            config.interview.completed_session_ttl_sec,
            config.interview.idle_session_ttl_sec,
        )
        session = self.store.create(
            company=request.company,
            role=request.role,
            role_description=request.role_description,
            competencies=request.competencies,
            max_turns=request.max_turns,
            level=request.level,
        )
        question = await self._next_question(session)
        session.issue_question(question)
        return StartInterviewResponse(id=session.session_id, question=question, phase=session.phase)

    # ========================================
    # Channel-driven
    # ========================================

    def join(self, session_id: str) -> List[OutboundEvent]:
        """Events for the joining socket only."""
        session = self.store.get(session_id)
        if session is None:
            logger.warning(f"Join for unknown session {session_id}")
            return [OutboundEvent("session-missing", {"interviewId": session_id})]

        session.mark_joined()
        if session.current_question is None:
            return []
        return [OutboundEvent("question", {"question": session.current_question})]

    def audio_chunk(self, session_id: str, chunk: bytes) -> bool:
        session = self.store.get(session_id)
        if session is None:
            logger.warning(f"Audio chunk for unknown session {session_id}")
            return False
        if not session.accept_chunk(chunk):
            logger.info(f"Dropped {len(chunk)} byte chunk for session {session_id} in status {session.status.value}")
            return False
        return True

    async def proctor_update(self, session_id: str, meta: Any) -> None:
        await self.notifier.notify(session_id, "proctor-status", meta)

    async def end_answer(self, session_id: str) -> bool:
        """
        Run one end-of-answer sequence.

        Returns False when the signal is ignored: unknown session, a
        sequence already pending, or the interview is not taking answers.
        """
        session = self.store.get(session_id)
        if session is None:
            logger.warning(f"end-answer for unknown session {session_id}")
            await self.notifier.notify(session_id, "session-missing", {"interviewId": session_id})
            return False
        if session.answer_pending:
            logger.info(f"Ignoring duplicate end-answer for session {session_id}")
            return False
        if not session.accepts_audio:
            logger.info(f"Ignoring end-answer for session {session_id} in status {session.status.value}")
            return False

        # Set before the first await so a second signal sees it
        session.answer_pending = True
        try:
            async with self.store.lock(session_id):
                await self._run_turn(session)
        except Exception:
            # Leave the session answerable instead of stuck mid-turn
            session.reopen_capture()
            raise
        finally:
            session.answer_pending = False
        return True

    # ========================================
    # Turn pipeline
    # ========================================

    async def _run_turn(self, session: InterviewSession) -> None:
        if self.grace_seconds > 0:
            await asyncio.sleep(self.grace_seconds)

        audio = session.drain_chunks()
        transcript = await self._transcribe(session, audio)
        session.record_transcript(transcript)
        session.merge_facts(self.extractor.summarize(transcript))

        asked = session.current_question or ""
        session.advance_turn()
        session.status = SessionStatus.EVALUATING
        evaluation = await self._evaluate(session, asked, transcript)
        session.record_evaluation(evaluation)

        if session.is_complete:
            session.complete()
            average = session.average_score()
            summary = AnswerScorer.closing_summary(
                answers=len(session.transcripts),
                average_score=average,
                facts_summary=session.summary_so_far,
                evaluations=session.evaluations,
            )
            logger.info(f"Session {session.session_id} completed, average score {average}")
            await self.notifier.notify(session.session_id, "evaluation", {
                "evaluation": evaluation.to_payload(),
                "nextQuestion": None,
                "transcript": transcript,
            })
            await self.notifier.notify(session.session_id, "interview-ended", {
                "summary": summary,
                "averageScore": average,
            })
            return

        question = await self._next_question(session)
        session.issue_question(question)
        await self.notifier.notify(session.session_id, "evaluation", {
            "evaluation": evaluation.to_payload(),
            "nextQuestion": question,
            "transcript": transcript,
        })

    async def _transcribe(self, session: InterviewSession, audio: bytes) -> str:
        path = os.path.join(self.tmp_dir, f"{session.session_id}-{int(time.time() * 1000)}.{self.container}")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._transcribe_file, path, audio),
                timeout=self.transcription_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Transcription timed out for session {session.session_id}")
        except TranscriptionError as e:
            logger.warning(f"Transcription failed for session {session.session_id}: {e}")
        except OSError as e:
            logger.warning(f"Could not stage recording for session {session.session_id}: {e}")
        except Exception:
            logger.exception(f"Unexpected transcription failure for session {session.session_id}")
        return TRANSCRIPTION_FAILED

    def _transcribe_file(self, path: str, audio: bytes) -> str:
        """Worker thread: stage the recording on disk, transcribe it, remove it."""
        os.makedirs(self.tmp_dir, exist_ok=True)
        try:
            with open(path, "wb") as f:
                f.write(audio)
            return self.transcriber.transcribe(path, self.container)
        finally:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.debug(f"Could not remove {path}")

    async def _evaluate(self, session: InterviewSession, question: str, transcript: str) -> Evaluation:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.evaluator.evaluate, question, transcript, session.role),
                timeout=self.llm_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Evaluation timed out for session {session.session_id}, using mock score")
        except Exception:
            logger.exception(f"Evaluation failed for session {session.session_id}, using mock score")
        return self.evaluator.mock(transcript)

    async def _next_question(self, session: InterviewSession) -> str:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.generator.generate_question, session),
                timeout=self.llm_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Question generation timed out for session {session.session_id}, using fallback")
        except Exception:
            logger.exception(f"Question generation failed for session {session.session_id}, using fallback")
        return self.generator.fallback_question(session)
