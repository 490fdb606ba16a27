"""
Transcription pipeline: recorded answer -> text.

The recognizer is chosen once per deployment: the remote recognizer
(Deepgram) when its key is configured, otherwise local faster-whisper
after converting the recording to 16 kHz mono PCM with ffmpeg.
Nothing here retries; failures surface as TranscriptionError.
"""
import os
import wave
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

import numpy as np
import requests

from utils.config import config, SpeechConfig, WhisperConfig
from utils.errors import (
    DecodeError,
    EmptyRecordingError,
    RemoteRecognizerError,
    TranscriptionError,
)

logger = logging.getLogger(__name__)


CONTENT_TYPES = {
    "webm": "audio/webm",
    "ogg": "audio/ogg",
    "wav": "audio/wav",
    "mp4": "audio/mp4",
    "mp3": "audio/mpeg",
}


@dataclass
class DecodedAudio:
    """Mono float32 samples in [-1, 1] tagged with their sample rate."""
    samples: np.ndarray
    sample_rate: int


def ensure_not_empty(audio_path: str) -> None:
    if not os.path.exists(audio_path):
        raise TranscriptionError(f"Audio file not found: {audio_path}")
    if os.path.getsize(audio_path) == 0:
        raise EmptyRecordingError("Recording was empty")


class RemoteRecognizer:
    """
    Deepgram pre-recorded transcription over HTTP.
    """

    def __init__(self, settings: Optional[SpeechConfig] = None):
        self.settings = settings or config.speech

    def transcribe(self, audio_path: str, container: str = "webm") -> str:
        ensure_not_empty(audio_path)
        with open(audio_path, "rb") as f:
            audio = f.read()

        headers = {
            "Authorization": f"Token {self.settings.deepgram_api_key}",
            "Content-Type": CONTENT_TYPES.get(container, f"audio/{container}"),
        }
        params = {"model": self.settings.deepgram_model, "punctuate": "true", "smart_format": "true"}

        try:
            response = requests.post(
                self.settings.deepgram_url,
                params=params,
                headers=headers,
                data=audio,
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise RemoteRecognizerError(f"Remote recognizer call failed: {e}") from e

        try:
            transcript = payload["results"]["channels"][0]["alternatives"][0]["transcript"]
        except (KeyError, IndexError, TypeError) as e:
            raise RemoteRecognizerError("Remote recognizer response has no transcript") from e

        transcript = (transcript or "").strip()
        if not transcript:
            raise TranscriptionError("Remote recognizer heard no speech")
        return transcript


class LocalRecognizer:
    """
    ffmpeg conversion + local faster-whisper model.
    """

    def __init__(
        self,
        settings: Optional[SpeechConfig] = None,
        whisper_settings: Optional[WhisperConfig] = None,
    ):
        self.settings = settings or config.speech
        self.whisper_settings = whisper_settings or config.whisper
        self._model = None

    def get_model(self):
        """Lazy load the Whisper model."""
        if self._model is None:
            from faster_whisper import WhisperModel
            logger.info(f"Loading Whisper model ({self.whisper_settings.model_path})...")
            self._model = WhisperModel(
                self.whisper_settings.model_path,
                device=self.whisper_settings.device,
                compute_type=self.whisper_settings.compute_type
            )
            logger.info("Whisper loaded.")
        return self._model

    def convert_to_wav(self, audio_path: str, container: str = "webm", wav_path: Optional[str] = None) -> str:
        """Transcode a recording to single-channel 16 kHz PCM WAV."""
        ensure_not_empty(audio_path)
        wav_path = wav_path or os.path.splitext(audio_path)[0] + ".16k.wav"
        command = [
            self.settings.ffmpeg_binary, "-y", "-loglevel", "error",
            "-f", container, "-i", audio_path,
            "-ac", "1", "-ar", str(self.settings.target_sample_rate),
            "-acodec", "pcm_s16le", "-f", "wav", wav_path,
        ]
        try:
            subprocess.run(command, check=True, capture_output=True, timeout=self.settings.timeout)
        except FileNotFoundError as e:
            raise TranscriptionError(f"ffmpeg not found: {self.settings.ffmpeg_binary}") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", "replace").strip()
            raise TranscriptionError(f"ffmpeg conversion failed: {stderr[:200]}") from e
        except subprocess.TimeoutExpired as e:
            raise TranscriptionError("ffmpeg conversion timed out") from e
        return wav_path

    @staticmethod
    def decode_wav(wav_path: str) -> DecodedAudio:
        """Read 16-bit PCM WAV into mono float32 samples."""
        try:
            with wave.open(wav_path, "rb") as wav:
                sample_rate = wav.getframerate()
                channels = wav.getnchannels()
                sample_width = wav.getsampwidth()
                frames = wav.readframes(wav.getnframes())
        except (wave.Error, EOFError, OSError) as e:
            raise DecodeError(f"Could not decode {wav_path}: {e}") from e

        if sample_width != 2:
            raise DecodeError(f"Unsupported sample width: {sample_width * 8} bits")

        samples = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
        if channels > 1:
            samples = samples[: len(samples) - len(samples) % channels].reshape(-1, channels)[:, 0]
        if samples.size == 0:
            raise DecodeError("Decoded audio produced no samples")
        return DecodedAudio(samples=samples, sample_rate=sample_rate)

    def run_model(self, audio: DecodedAudio) -> str:
        if audio.sample_rate != self.settings.target_sample_rate:
            raise DecodeError(
                f"Expected {self.settings.target_sample_rate} Hz audio, got {audio.sample_rate} Hz"
            )
        segments, _ = self.get_model().transcribe(audio.samples)
        return " ".join(s.text.strip() for s in segments).strip()

    def transcribe(self, audio_path: str, container: str = "webm") -> str:
        wav_path = self.convert_to_wav(audio_path, container)
        try:
            audio = self.decode_wav(wav_path)
            text = self.run_model(audio)
        finally:
            try:
                os.unlink(wav_path)
            except OSError:
                logger.debug(f"Could not remove {wav_path}")

        if not text:
            raise TranscriptionError("Local model heard no speech")
        return text


class TranscriptionPipeline:
    """
    Converts a recorded answer into text with the recognizer selected
    for this deployment.
    """

    def __init__(
        self,
        settings: Optional[SpeechConfig] = None,
        whisper_settings: Optional[WhisperConfig] = None,
    ):
        self.settings = settings or config.speech
        if self.settings.remote_configured:
            self.recognizer = RemoteRecognizer(self.settings)
            self.mode = "remote"
        else:
            self.recognizer = LocalRecognizer(self.settings, whisper_settings)
            self.mode = "local"
        logger.info(f"Transcription pipeline using {self.mode} recognizer")

    def transcribe(self, audio_path: str, container: Optional[str] = None) -> str:
        """
        Transcribe a recording.

        Args:
            audio_path: Path to the recorded answer
            container: Container format (defaults to the configured one)

        Returns:
            Transcript text

        Raises:
            TranscriptionError: no decodable speech (or a subclass)
        """
        transcript = self.recognizer.transcribe(audio_path, container or self.settings.input_container)
        logger.info(f"Transcript ({self.mode}): {transcript[:120]}")
        return transcript
