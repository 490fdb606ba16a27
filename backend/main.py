"""
Spoken Mock Interview - FastAPI Backend

- Phase-driven interview script with LLM questions and canned fallbacks
- Streaming answer capture over the /interview websocket
- Remote or local transcription, fact memory, answer grading
- Speech synthesis and LLM proxy endpoints

Every external service is optional; without credentials the service
degrades to local fallbacks.
"""
import sys
import os
import json
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Set

from fastapi import FastAPI, HTTPException, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from utils.config import config
from utils.errors import ConfigMissing, SessionMissing, UpstreamCallError
from models.schemas import (
    LLMProxyRequest,
    LLMProxyResponse,
    StartInterviewRequest,
    StartInterviewResponse,
    TTSRequest,
)
from interview.agents import AnswerEvaluator, QuestionGenerator
from interview.channel import ChannelHub
from interview.orchestrator import SessionOrchestrator
from interview.phases import InterviewPhases
from interview.scoring import AnswerScorer
from interview.store import SessionStore
from llm.client import llm_client
from speech.transcriber import TranscriptionPipeline
from speech.tts import speech_synthesizer

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    for setting in config.missing_credentials():
        logger.warning(f"{ConfigMissing(setting)}; using local fallback")
    yield


# ================================================================
# FastAPI App Initialization
# ================================================================

app = FastAPI(
    title="Mock Interview API",
    description="Spoken mock interviews with adaptive questions and answer grading",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ================================================================
# Services
# ================================================================

session_store = SessionStore()
channel_hub = ChannelHub()
orchestrator = SessionOrchestrator(
    store=session_store,
    generator=QuestionGenerator(llm_client),
    evaluator=AnswerEvaluator(llm_client),
    transcriber=TranscriptionPipeline(),
    notifier=channel_hub,
)

# End-of-answer sequences run detached from the socket loop
_turn_tasks: Set[asyncio.Task] = set()


def _spawn_turn(session_id: str) -> asyncio.Task:
    task = asyncio.create_task(orchestrator.end_answer(session_id))
    _turn_tasks.add(task)
    task.add_done_callback(_turn_finished)
    return task


def _turn_finished(task: asyncio.Task) -> None:
    _turn_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"End-of-answer sequence failed: {exc}", exc_info=exc)


# ================================================================
# API Endpoints
# ================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "running",
        "version": VERSION,
        "service": "Mock Interview",
        "llm": llm_client.is_configured,
        "remoteTranscription": config.speech.remote_configured,
        "tts": speech_synthesizer.is_configured,
        "sessions": len(session_store),
        "phases": InterviewPhases.get_all_phases_info(),
    }


@app.post("/api/interviews", response_model=StartInterviewResponse)
async def start_interview(request: StartInterviewRequest):
    """
    Create an interview session and its first question.

    Returns:
        {id, question, phase}
    """
    return await orchestrator.create_interview(request)


@app.get("/api/interviews/{interview_id}")
async def interview_status(interview_id: str):
    """Get a snapshot of one interview."""
    try:
        return session_store.require(interview_id).get_status()
    except SessionMissing as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/tts")
async def text_to_speech(request: TTSRequest):
    """Synthesize question audio (MP3)."""
    text = (request.text or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="text is required")
    if not speech_synthesizer.is_configured:
        raise HTTPException(status_code=503, detail="Speech synthesis is not configured")

    try:
        audio = await asyncio.to_thread(speech_synthesizer.synthesize, text)
    except UpstreamCallError as e:
        logger.warning(f"TTS failed: {e}")
        raise HTTPException(status_code=502, detail="Speech synthesis failed")
    return Response(content=audio, media_type=speech_synthesizer.media_type)


@app.post("/api/llm-proxy", response_model=LLMProxyResponse)
async def llm_proxy(request: LLMProxyRequest):
    """
    Forward a prompt to the language model.
    Always answers: without a credential, or on failure, the text is a
    mock evaluation payload and ``mock`` is true.
    """
    text: Optional[str] = None
    if llm_client.is_configured and request.prompt.strip():
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(llm_client.generate, request.prompt),
                timeout=config.llm.timeout,
            )
            if response.is_valid:
                text = response.content
        except asyncio.TimeoutError:
            logger.warning("LLM proxy timed out")

    if text is None:
        fallback = AnswerScorer.mock_evaluation(request.prompt)
        return LLMProxyResponse(text=json.dumps(fallback.to_payload()), mock=True)
    return LLMProxyResponse(text=text, mock=False)


# ================================================================
# Interview channel
# ================================================================

@app.websocket("/interview")
async def interview_channel(websocket: WebSocket):
    """
    JSON text frames: {"event": ..., "data": ...}
    Binary frames: audio-chunk for the joined interview.
    """
    await websocket.accept()
    session_id: Optional[str] = None

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            chunk = message.get("bytes")
            if chunk is not None:
                if session_id is None:
                    logger.info("Audio chunk before join, dropped")
                else:
                    orchestrator.audio_chunk(session_id, chunk)
                continue

            try:
                envelope = json.loads(message.get("text") or "")
            except ValueError:
                logger.warning("Malformed channel frame, ignored")
                continue
            if not isinstance(envelope, dict):
                continue

            event = envelope.get("event")
            data = envelope.get("data")

            if event == "join":
                requested = data.get("interviewId") if isinstance(data, dict) else None
                replies = orchestrator.join(str(requested or ""))
                if requested and requested in session_store:
                    session_id = requested
                    await channel_hub.join(websocket, session_id)
                for reply in replies:
                    await channel_hub.send(websocket, reply.event, reply.data)
            elif session_id is None:
                logger.info(f"{event} before join, ignored")
            elif event == "end-answer":
                _spawn_turn(session_id)
            elif event == "proctor-update":
                await orchestrator.proctor_update(session_id, data)
            else:
                logger.info(f"Unknown channel event {event!r}")
    except WebSocketDisconnect:
        pass
    finally:
        room = await channel_hub.disconnect(websocket)
        if room:
            logger.info(f"Socket left session {room}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.server.host, port=config.server.port)
