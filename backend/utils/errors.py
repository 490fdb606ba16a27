"""
Error taxonomy for the interview service.

None of these is allowed to halt an in-progress interview: each one is
caught at the orchestrator or HTTP boundary and mapped to a fallback.
"""


class InterviewError(Exception):
    """Base class for all interview service errors."""


class ConfigMissing(InterviewError):
    """A credential or setting is absent; the caller should degrade."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"{setting} is not configured")


class UpstreamCallError(InterviewError):
    """Network/HTTP failure or malformed reply from an external service."""


class TranscriptionError(InterviewError):
    """No decodable speech could be produced from a recording."""


class RemoteRecognizerError(TranscriptionError, UpstreamCallError):
    """The remote recognizer failed or returned no transcript."""


class EmptyRecordingError(TranscriptionError):
    """The recorded answer is zero bytes."""


class DecodeError(TranscriptionError):
    """The converted recording decoded to no samples."""


class SessionMissing(InterviewError):
    """No session exists for the requested interview id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No interview session for id {session_id!r}")
