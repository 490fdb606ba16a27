"""
LLM Client wrapper for an OpenAI-compatible chat completions API (OpenRouter).
Handles communication with the remote model, timeouts and retries.
Never raises: failures come back as an invalid LLMResponse so callers
can take their fallback path.
"""
import time
import requests
import logging
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

from utils.config import config, LLMConfig
from utils.cleaning import ResponseCleaner

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Structured response from LLM."""
    content: str
    is_valid: bool
    raw_response: Dict[str, Any] = field(default_factory=dict)
    tokens_used: int = 0


class LLMClient:
    """
    Client for the remote chat completions endpoint.
    """

    def __init__(self, settings: Optional[LLMConfig] = None):
        self.settings = settings or config.llm
        self.completion_url = self.settings.completion_url
        self.timeout = self.settings.timeout
        self.max_retries = max(0, self.settings.max_retries)
        if self.is_configured:
            logger.info(f"LLM Client initialized: {self.completion_url} model={self.settings.model} (timeout={self.timeout}s)")
        else:
            logger.warning("OPENROUTER_API_KEY missing; LLM calls will use local fallbacks")

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _make_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Make HTTP request to the LLM server with retries."""
        last_error = None
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(self.max_retries + 1):
            try:
                response = requests.post(
                    self.completion_url,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()
            except requests.exceptions.Timeout as e:
                last_error = e
                if attempt < self.max_retries:
                    time.sleep(1 * (attempt + 1))
            except (requests.exceptions.RequestException, ValueError) as e:
                last_error = e
                if attempt < self.max_retries:
                    time.sleep(0.5 * (attempt + 1))

        raise ConnectionError(f"LLM request failed after {self.max_retries + 1} attempts: {last_error}")

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            prompt: The user message
            system: Optional system message
            max_tokens: Maximum tokens to generate (None uses default)
            temperature: Sampling temperature (None uses default)

        Returns:
            LLMResponse; is_valid is False on any failure or empty reply
        """
        if not self.is_configured:
            return LLMResponse(content="", is_valid=False, raw_response={"error": "OPENROUTER_API_KEY missing"})
        if not prompt or not prompt.strip():
            return LLMResponse(content="", is_valid=False, raw_response={"error": "empty prompt"})

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.settings.model,
            "messages": messages,
            "max_tokens": max_tokens or self.settings.default_max_tokens,
            "temperature": self.settings.default_temperature if temperature is None else temperature,
        }

        try:
            response = self._make_request(payload)
        except ConnectionError as e:
            logger.warning(f"LLM call failed: {e}")
            return LLMResponse(content="", is_valid=False, raw_response={"error": str(e)})

        try:
            content = response["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            logger.warning(f"LLM reply missing choices: {str(response)[:200]}")
            return LLMResponse(content="", is_valid=False, raw_response=response)

        tokens = (response.get("usage") or {}).get("completion_tokens", 0)
        return LLMResponse(
            content=content,
            is_valid=bool(content.strip()),
            raw_response=response,
            tokens_used=tokens
        )

    def generate_question(self, prompt: str, system: Optional[str] = None) -> Tuple[str, bool]:
        """
        Generate raw interviewer text; cleaning is the caller's job since
        it needs the session's role and company.

        Returns:
            Tuple of (raw_text, is_valid)
        """
        logger.info("Generating question via LLM...")
        response = self.generate(prompt=prompt, system=system, max_tokens=120, temperature=0.7)
        if not response.is_valid:
            logger.warning(f"LLM response invalid: {response.raw_response.get('error', 'empty content')}")
            return "", False
        logger.info(f"Raw LLM response: {response.content[:200]}")
        return response.content, True

    def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 300,
        temperature: float = 0.2,
    ) -> Tuple[Optional[Dict], bool]:
        """
        Generate a JSON object reply.

        Returns:
            Tuple of (parsed_json, is_valid)
        """
        response = self.generate(prompt=prompt, system=system, max_tokens=max_tokens, temperature=temperature)
        if not response.is_valid:
            return None, False

        parsed = ResponseCleaner.extract_json_object(response.content)
        if parsed is None:
            logger.warning(f"LLM reply had no JSON object: {response.content[:200]}")
            return None, False
        return parsed, True


# Global client instance
llm_client = LLMClient()
