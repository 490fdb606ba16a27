import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


CREDENTIAL_VARS = ("OPENROUTER_API_KEY", "DEEPGRAM_API_KEY", "ELEVENLABS_API_KEY")


@pytest.fixture(autouse=True)
def _no_credentials(monkeypatch: pytest.MonkeyPatch):
    from utils.config import config

    for name in CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config.llm, "api_key", "")
    monkeypatch.setattr(config.speech, "deepgram_api_key", "")
    monkeypatch.setattr(config.tts, "api_key", "")


class FakeLLM:
    """Stands in for LLMClient; replies are queued per call type."""

    def __init__(self, configured: bool = True, questions=None, grades=None):
        self.configured = configured
        self.questions = list(questions or [])
        self.grades = list(grades or [])
        self.prompts = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def generate_question(self, prompt, system=None):
        self.prompts.append(prompt)
        if not self.questions:
            return "", False
        return self.questions.pop(0), True

    def generate_json(self, prompt, system=None, max_tokens=300, temperature=0.2):
        self.prompts.append(prompt)
        if not self.grades:
            return None, False
        return self.grades.pop(0), True


class FakeNotifier:
    def __init__(self):
        self.sent = []

    async def notify(self, session_id, event, payload=None):
        self.sent.append((session_id, event, payload))

    def events(self, name=None):
        return [e for e in self.sent if name is None or e[1] == name]


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def notifier():
    return FakeNotifier()
