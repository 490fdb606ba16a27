"""
Command line interview client.

Creates an interview, joins its channel and answers each question with
a recorded audio file (the same file, or one per question in order).
Recordings are decoded locally so sustained silence ends an answer
early, as it would in the browser.

    python -m capture --company Acme --role "Backend Engineer" answer1.webm answer2.webm
"""
import os
import sys
import json
import time
import asyncio
import logging
import argparse
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import requests

from capture.audio_capture import waveform_frames
from capture.channel import InterviewChannel, stream_recording
from speech.transcriber import LocalRecognizer
from utils.config import config
from utils.errors import TranscriptionError

logger = logging.getLogger(__name__)


@dataclass
class Recording:
    path: str
    audio: bytes
    frames: List[Tuple[float, np.ndarray]] = field(default_factory=list)
    duration_ms: float = 0.0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="capture", description="Answer a mock interview with recorded audio files")
    parser.add_argument("recordings", nargs="+", help="Recorded answers (webm or wav), used in order; the last one repeats")
    parser.add_argument("--server", default=f"http://127.0.0.1:{config.server.port}")
    parser.add_argument("--company", default="")
    parser.add_argument("--role", default="")
    parser.add_argument("--role-description", default="")
    parser.add_argument("--competencies", default="")
    parser.add_argument("--max-turns", type=int, default=None)
    parser.add_argument("--slice-ms", type=int, default=800)
    parser.add_argument("--grace-ms", type=int, default=config.interview.end_answer_grace_ms)
    parser.add_argument("--no-silence-stop", action="store_true", help="Always send the whole recording")
    parser.add_argument("--proctor-interval", type=float, default=2.5, help="Seconds between proctor updates, 0 to disable")
    parser.add_argument("--timeout", type=float, default=180.0, help="Seconds to wait for each server reply")
    return parser.parse_args(argv)


def create_interview(args: argparse.Namespace) -> dict:
    body = {
        "company": args.company,
        "role": args.role,
        "roleDescription": args.role_description,
        "competencies": args.competencies,
    }
    if args.max_turns:
        body["maxTurns"] = args.max_turns
    response = requests.post(f"{args.server}/api/interviews", json=body, timeout=60)
    response.raise_for_status()
    return response.json()


def ws_url(server: str) -> str:
    if server.startswith("https://"):
        return "wss://" + server[len("https://"):] + "/interview"
    return "ws://" + server.split("://", 1)[-1] + "/interview"


def load_recording(path: str, analyse: bool = True, recognizer: Optional[LocalRecognizer] = None) -> Recording:
    """
    Read a recording and, when it can be decoded, its analyser frames.

    WAV files are read directly; anything else goes through ffmpeg. A
    recording that cannot be decoded is still sent, just without
    silence detection.
    """
    with open(path, "rb") as f:
        recording = Recording(path=path, audio=f.read())
    if not analyse or not recording.audio:
        return recording

    recognizer = recognizer or LocalRecognizer()
    container = os.path.splitext(path)[1].lstrip(".").lower() or config.speech.input_container
    try:
        if container == "wav":
            decoded = recognizer.decode_wav(path)
        else:
            with tempfile.TemporaryDirectory() as tmp:
                wav_path = recognizer.convert_to_wav(path, container, wav_path=os.path.join(tmp, "answer.wav"))
                decoded = recognizer.decode_wav(wav_path)
    except TranscriptionError as e:
        logger.warning(f"No silence detection for {path}: {e}")
        return recording

    recording.frames = waveform_frames(decoded.samples, decoded.sample_rate)
    recording.duration_ms = decoded.samples.size * 1000.0 / decoded.sample_rate
    return recording


async def proctor_heartbeat(channel: InterviewChannel, turn: int, interval: float) -> None:
    """Report presence on an interval until cancelled."""
    while True:
        await channel.proctor_update({
            "facePresent": None,
            "source": "capture-cli",
            "turn": turn,
            "timestamp": int(time.time() * 1000),
        })
        await asyncio.sleep(interval)


async def answer(channel: InterviewChannel, recording: Recording, turn: int, args: argparse.Namespace):
    heartbeat = None
    if args.proctor_interval > 0:
        heartbeat = asyncio.create_task(proctor_heartbeat(channel, turn, args.proctor_interval))
    try:
        return await stream_recording(
            channel,
            recording.audio,
            slice_ms=args.slice_ms,
            grace_ms=args.grace_ms,
            frames=recording.frames,
            duration_ms=recording.duration_ms,
        )
    finally:
        if heartbeat is not None:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass


async def run(args: argparse.Namespace) -> int:
    created = create_interview(args)
    print(f"Interview {created['id']} ({created['phase']})")

    recordings = [load_recording(path, analyse=not args.no_silence_stop) for path in args.recordings]

    async with InterviewChannel(ws_url(args.server), created["id"]) as channel:
        await channel.join()
        first = await channel.wait_for("question", "session-missing", timeout=args.timeout)
        if first["event"] == "session-missing":
            print("Server does not know this interview")
            return 1
        print(f"Q: {first['data']['question']}")

        turn = 0
        while True:
            recording = recordings[min(turn, len(recordings) - 1)]
            capture = await answer(channel, recording, turn, args)
            stopped = " (stopped on silence)" if capture.auto_stopped else ""
            logger.info(f"Sent {capture.chunks_sent} chunk(s) for turn {turn}{stopped}")

            result = await channel.wait_for("evaluation", timeout=args.timeout)
            data = result["data"]
            print(f"A: {data['transcript']}")
            print(f"   {json.dumps(data['evaluation'])}")
            turn += 1

            if data["nextQuestion"] is None:
                ended = await channel.wait_for("interview-ended", timeout=args.timeout)
                print(f"\n{ended['data']['summary']}")
                print(f"Average score: {ended['data']['averageScore']}")
                return 0
            print(f"Q: {data['nextQuestion']}")


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
