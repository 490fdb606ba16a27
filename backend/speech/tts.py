"""
Speech synthesis client (ElevenLabs text-to-speech).
"""
import logging
from typing import Optional

import requests

from utils.config import config, TTSConfig
from utils.errors import ConfigMissing, UpstreamCallError

logger = logging.getLogger(__name__)


class SpeechSynthesizer:
    """Turns question text into spoken audio bytes (MP3)."""

    media_type = "audio/mpeg"

    def __init__(self, settings: Optional[TTSConfig] = None):
        self.settings = settings or config.tts

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    def synthesize(self, text: str) -> bytes:
        if not self.is_configured:
            raise ConfigMissing("ELEVENLABS_API_KEY")

        spoken = " ".join((text or "").split())
        url = f"{self.settings.base_url}/{self.settings.voice_id}"
        headers = {
            "xi-api-key": self.settings.api_key,
            "Content-Type": "application/json",
            "Accept": self.media_type,
        }
        payload = {
            "text": spoken,
            "model_id": self.settings.model_id,
        }

        try:
            response = requests.post(url, headers=headers, json=payload, timeout=self.settings.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamCallError(f"Speech synthesis request failed: {e}") from e

        if response.status_code >= 300:
            raise UpstreamCallError(f"Speech synthesis error: {response.status_code} {response.text[:200]}")
        if not response.content:
            raise UpstreamCallError("Speech synthesis returned no audio")
        return response.content


# Global synthesizer instance
speech_synthesizer = SpeechSynthesizer()
