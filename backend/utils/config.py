"""
Configuration settings for the AI interview service.
All settings can be overridden via environment variables.
Every credential is optional: a missing one selects a fallback path.
"""
import os
import logging
from typing import List
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {raw!r}")
        return default


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


@dataclass
class LLMConfig:
    """Remote LLM (OpenRouter chat completions) configuration."""
    api_key: str = field(default_factory=lambda: _env_str("OPENROUTER_API_KEY"))
    base_url: str = field(default_factory=lambda: _env_str("LLM_BASE_URL", "https://openrouter.ai/api/v1"))
    model: str = field(default_factory=lambda: _env_str("LLM_MODEL", "openai/gpt-4o-mini"))
    timeout: int = field(default_factory=lambda: _env_int("LLM_TIMEOUT", 30))
    max_retries: int = field(default_factory=lambda: _env_int("LLM_MAX_RETRIES", 0))

    # Default generation parameters
    default_temperature: float = 0.7
    default_max_tokens: int = 600

    @property
    def completion_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class SpeechConfig:
    """Remote speech recognizer and audio conversion configuration."""
    deepgram_api_key: str = field(default_factory=lambda: _env_str("DEEPGRAM_API_KEY"))
    deepgram_url: str = field(default_factory=lambda: _env_str("DEEPGRAM_URL", "https://api.deepgram.com/v1/listen"))
    deepgram_model: str = field(default_factory=lambda: _env_str("DEEPGRAM_MODEL", "nova-2"))
    timeout: int = field(default_factory=lambda: _env_int("TRANSCRIPTION_TIMEOUT", 120))
    ffmpeg_binary: str = field(default_factory=lambda: _env_str("FFMPEG_BINARY", "ffmpeg"))
    tmp_dir: str = field(default_factory=lambda: _env_str("AUDIO_TMP_DIR", "./tmp"))
    input_container: str = "webm"
    target_sample_rate: int = 16000

    @property
    def remote_configured(self) -> bool:
        return bool(self.deepgram_api_key)


@dataclass
class WhisperConfig:
    """Local Whisper STT configuration."""
    model_path: str = field(default_factory=lambda: _env_str("WHISPER_MODEL", "tiny.en"))
    device: str = field(default_factory=lambda: _env_str("WHISPER_DEVICE", "cpu"))
    compute_type: str = field(default_factory=lambda: _env_str("WHISPER_COMPUTE_TYPE", "int8"))


@dataclass
class TTSConfig:
    """Speech synthesis (ElevenLabs) configuration."""
    api_key: str = field(default_factory=lambda: _env_str("ELEVENLABS_API_KEY"))
    voice_id: str = field(default_factory=lambda: _env_str("ELEVENLABS_VOICE_ID", "pNInz6obpgDQGcFmaJgB"))
    model_id: str = field(default_factory=lambda: _env_str("ELEVENLABS_MODEL", "eleven_turbo_v2_5"))
    base_url: str = "https://api.elevenlabs.io/v1/text-to-speech"
    timeout: int = 60

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class InterviewConfig:
    """Interview flow configuration."""
    default_max_turns: int = field(default_factory=lambda: max(1, _env_int("INTERVIEW_MAX_TURNS", 8)))
    summary_char_cap: int = 1200
    recent_transcripts: int = 3
    question_max_chars: int = 240
    # Grace period after end-of-answer so straggling chunks can land
    end_answer_grace_ms: int = field(default_factory=lambda: max(300, _env_int("END_ANSWER_GRACE_MS", 300)))
    completed_session_ttl_sec: int = 3600
    # Sessions abandoned mid-interview
    idle_session_ttl_sec: int = field(default_factory=lambda: max(60, _env_int("IDLE_SESSION_TTL_SEC", 6 * 3600)))

    @property
    def end_answer_grace(self) -> float:
        return self.end_answer_grace_ms / 1000.0


@dataclass
class ServerConfig:
    host: str = field(default_factory=lambda: _env_str("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 4000))


class Config:
    """Main configuration class combining all config sections."""

    def __init__(self):
        self.llm = LLMConfig()
        self.speech = SpeechConfig()
        self.whisper = WhisperConfig()
        self.tts = TTSConfig()
        self.interview = InterviewConfig()
        self.server = ServerConfig()

    def missing_credentials(self) -> List[str]:
        """Names of credentials that are absent and will degrade to a fallback."""
        missing = []
        if not self.llm.is_configured:
            missing.append("OPENROUTER_API_KEY")
        if not self.speech.remote_configured:
            missing.append("DEEPGRAM_API_KEY")
        if not self.tts.is_configured:
            missing.append("ELEVENLABS_API_KEY")
        return missing


# Global config instance
config = Config()
