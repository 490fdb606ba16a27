"""
Websocket client for the /interview channel.
"""
import json
import asyncio
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import websockets

from capture.audio_capture import AnswerCapture, SilenceDetector

logger = logging.getLogger(__name__)


class InterviewChannel:
    def __init__(self, url: str, interview_id: str):
        self.url = url
        self.interview_id = interview_id
        self.ws = None

    async def connect(self) -> None:
        self.ws = await websockets.connect(self.url, max_size=2**22, open_timeout=20)

    async def close(self) -> None:
        if self.ws is not None:
            await self.ws.close()
            self.ws = None

    async def __aenter__(self) -> "InterviewChannel":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def emit(self, event: str, data: Any = None) -> None:
        await self.ws.send(json.dumps({"event": event, "data": data}))

    async def join(self) -> None:
        await self.emit("join", {"interviewId": self.interview_id})

    async def send_chunk(self, chunk: bytes) -> None:
        await self.ws.send(chunk)

    async def end_answer(self) -> None:
        await self.emit("end-answer")

    async def proctor_update(self, meta: Dict[str, Any]) -> None:
        await self.emit("proctor-update", meta)

    async def recv_event(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        raw = await asyncio.wait_for(self.ws.recv(), timeout=timeout)
        message = json.loads(raw)
        return {"event": message.get("event"), "data": message.get("data")}

    async def wait_for(self, *events: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Receive until one of ``events`` arrives; other events are logged and skipped."""
        while True:
            message = await self.recv_event(timeout=timeout)
            if message["event"] in events:
                return message
            logger.info(f"Skipping {message['event']} while waiting for {', '.join(events)}")


async def stream_recording(
    channel: InterviewChannel,
    audio: bytes,
    slice_bytes: int = 16000,
    slice_ms: int = 800,
    grace_ms: int = 300,
    frames: Sequence[Tuple[float, np.ndarray]] = (),
    duration_ms: float = 0.0,
    detector: Optional[SilenceDetector] = None,
    realtime: bool = True,
) -> AnswerCapture:
    """
    Send a recorded answer in timed slices, then end the answer.

    ``frames`` and ``duration_ms`` come from the decoded recording; with
    them sustained silence ends the answer early.
    """
    capture = AnswerCapture(
        send_chunk=channel.send_chunk,
        send_end=channel.end_answer,
        slice_bytes=slice_bytes,
        grace_ms=grace_ms,
        detector=detector,
    )
    await capture.replay(audio, frames=frames, duration_ms=duration_ms, slice_ms=slice_ms, realtime=realtime and slice_ms > 0)
    return capture
