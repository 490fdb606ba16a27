"""
Client-side answer capture.

SilenceDetector watches per-frame energy and fires once after sustained
silence following speech. AnswerCapture slices recorded bytes, flushes
the final slice and sends end-answer after a grace period so in-flight
chunks reach the server first.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


SILENCE_THRESHOLD = 0.01
SILENCE_WINDOW_MS = 3000
MIN_GRACE_MS = 300
ANALYSER_FRAME_SIZE = 2048


def frame_rms(frame) -> float:
    """
    Energy of one unsigned 8-bit time-domain frame (128 = silence),
    normalized to [0, 1].
    """
    data = np.asarray(frame, dtype=np.float64)
    if data.size == 0:
        return 0.0
    deviation = data - 128.0
    return float(np.sqrt(np.mean(deviation * deviation)) / 128.0)


def waveform_frames(samples, sample_rate: int, frame_size: int = ANALYSER_FRAME_SIZE) -> List[Tuple[float, np.ndarray]]:
    """
    Split mono float samples in [-1, 1] into unsigned 8-bit analyser
    frames (128 = silence), each tagged with the time in ms at which
    the frame ends.
    """
    data = np.asarray(samples, dtype=np.float32)
    if data.size == 0 or sample_rate <= 0:
        return []
    levels = np.clip(np.round(data * 128.0 + 128.0), 0, 255).astype(np.uint8)
    frames = []
    for start in range(0, levels.size, frame_size):
        frame = levels[start:start + frame_size]
        end_ms = (start + frame.size) * 1000.0 / sample_rate
        frames.append((end_ms, frame))
    return frames


class SilenceDetector:
    def __init__(self, threshold: float = SILENCE_THRESHOLD, window_ms: int = SILENCE_WINDOW_MS):
        self.threshold = threshold
        self.window_ms = window_ms
        self.reset()

    def reset(self) -> None:
        """Arm for a new recording."""
        self.has_spoken = False
        self.silence_since: Optional[float] = None
        self.triggered = False

    def update(self, rms: float, now_ms: float, recording: bool = True) -> bool:
        """
        Feed one energy sample.

        Returns True exactly once per recording: on the first sample
        where the candidate has spoken and silence has lasted longer
        than the window.
        """
        if rms >= self.threshold:
            self.has_spoken = True
            self.silence_since = None
            return False

        if self.silence_since is None:
            self.silence_since = now_ms
            return False

        if (
            recording
            and self.has_spoken
            and not self.triggered
            and now_ms - self.silence_since > self.window_ms
        ):
            self.triggered = True
            return True
        return False


class AnswerCapture:
    """
    One answer's worth of recording.

    Args:
        send_chunk: coroutine sending one audio slice
        send_end: coroutine sending the end-of-answer signal
        slice_bytes: bytes buffered before a slice is sent
        grace_ms: wait between the final flush and end-of-answer (>= 300)
    """

    def __init__(
        self,
        send_chunk: Callable[[bytes], Awaitable[None]],
        send_end: Callable[[], Awaitable[None]],
        slice_bytes: int = 16000,
        grace_ms: int = MIN_GRACE_MS,
        detector: Optional[SilenceDetector] = None,
    ):
        self.send_chunk = send_chunk
        self.send_end = send_end
        self.slice_bytes = max(1, slice_bytes)
        self.grace_ms = max(MIN_GRACE_MS, grace_ms)
        self.detector = detector or SilenceDetector()
        self.detector.reset()
        self.pending = bytearray()
        self.recording = True
        self.finished = False
        self.chunks_sent = 0
        self.auto_stopped = False

    async def feed(self, data: bytes) -> None:
        if not self.recording or not data:
            return
        self.pending.extend(data)
        while len(self.pending) >= self.slice_bytes:
            piece = bytes(self.pending[: self.slice_bytes])
            del self.pending[: self.slice_bytes]
            await self._send(piece)

    def on_frame(self, frame, now_ms: float) -> bool:
        """Feed an analyser frame; True when silence should end the answer."""
        return self.detector.update(frame_rms(frame), now_ms, self.recording)

    async def flush(self) -> None:
        """Send whatever is buffered as one slice."""
        if self.pending:
            piece = bytes(self.pending)
            self.pending.clear()
            await self._send(piece)

    async def finish(self) -> bool:
        """Flush the last slice, wait the grace period, then send end-of-answer once."""
        if self.finished:
            return False
        self.finished = True
        self.recording = False

        await self.flush()
        await asyncio.sleep(self.grace_ms / 1000.0)
        await self.send_end()
        logger.info(f"Answer submitted after {self.chunks_sent} chunk(s)")
        return True

    async def replay(
        self,
        audio: bytes,
        frames: Sequence[Tuple[float, np.ndarray]] = (),
        duration_ms: float = 0.0,
        slice_ms: int = 800,
        realtime: bool = True,
    ) -> bool:
        """
        Send a recorded answer as if it were being captured live.

        With a known duration the bytes go out in ``slice_ms`` time
        slices and the analyser frames up to each slice's end are
        checked for sustained silence; without one they go out in
        ``slice_bytes`` pieces. Returns True when silence ended the
        answer before the recording ran out.
        """
        if duration_ms <= 0:
            for start in range(0, len(audio), self.slice_bytes):
                await self.feed(audio[start:start + self.slice_bytes])
                if realtime:
                    await asyncio.sleep(slice_ms / 1000.0)
            await self.finish()
            return False

        frames = list(frames)
        next_frame = 0
        slice_ms = max(1, slice_ms)
        elapsed = 0.0
        sent_bytes = 0
        while elapsed < duration_ms:
            elapsed = min(duration_ms, elapsed + slice_ms)
            end_byte = len(audio) if elapsed >= duration_ms else int(len(audio) * elapsed / duration_ms)
            await self.feed(audio[sent_bytes:end_byte])
            await self.flush()
            sent_bytes = end_byte

            while next_frame < len(frames) and frames[next_frame][0] <= elapsed:
                now_ms, frame = frames[next_frame]
                next_frame += 1
                if self.on_frame(frame, now_ms):
                    logger.info(f"Silence after {now_ms / 1000.0:.1f}s, ending answer")
                    self.auto_stopped = True
                    await self.finish()
                    return True

            if realtime and elapsed < duration_ms:
                await asyncio.sleep(slice_ms / 1000.0)

        await self.finish()
        return False

    async def _send(self, piece: bytes) -> None:
        await self.send_chunk(piece)
        self.chunks_sent += 1
