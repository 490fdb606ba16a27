"""
Pydantic models and enums for the interview service.
"""
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InterviewPhase(str, Enum):
    INTRO = "intro"
    PROJECTS = "projects"
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    SCENARIO = "scenario"
    WRAPUP = "wrapup"

    @classmethod
    def get_order(cls) -> List["InterviewPhase"]:
        return [cls.INTRO, cls.PROJECTS, cls.TECHNICAL, cls.BEHAVIORAL, cls.SCENARIO, cls.WRAPUP]


class CandidateLevel(str, Enum):
    INTERN = "intern"
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"

    @classmethod
    def from_role(cls, role: Optional[str]) -> "CandidateLevel":
        """Infer the seniority level from free-text role, defaulting to mid."""
        text = (role or "").lower()
        for level, words in _LEVEL_KEYWORDS:
            for word in words:
                if re.search(rf"\b{re.escape(word)}\b", text):
                    return level
        return cls.MID

    @property
    def is_junior(self) -> bool:
        return self in (CandidateLevel.INTERN, CandidateLevel.JUNIOR)


# Checked in order; first keyword hit wins
_LEVEL_KEYWORDS = [
    (CandidateLevel.INTERN, ["intern", "internship", "trainee", "apprentice"]),
    (CandidateLevel.LEAD, ["lead", "principal", "staff", "head", "manager", "director", "architect"]),
    (CandidateLevel.SENIOR, ["senior", "sr"]),
    (CandidateLevel.JUNIOR, ["junior", "jr", "entry", "graduate", "associate"]),
]


class SessionStatus(str, Enum):
    AWAITING_JOIN = "awaiting-join"
    QUESTION_ISSUED = "question-issued"
    CAPTURING = "capturing-answer"
    TRANSCRIBING = "transcribing"
    EVALUATING = "evaluating"
    COMPLETED = "completed"


# ================================================================
# HTTP bodies
# ================================================================

class StartInterviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    company: Optional[str] = None
    role: Optional[str] = None
    role_description: Optional[str] = Field(default=None, alias="roleDescription")
    competencies: Optional[str] = None
    max_turns: Optional[int] = Field(default=None, ge=1, alias="maxTurns")
    level: Optional[CandidateLevel] = None


class StartInterviewResponse(BaseModel):
    id: str
    question: str
    phase: InterviewPhase


class TTSRequest(BaseModel):
    text: Optional[str] = None


class LLMProxyRequest(BaseModel):
    prompt: str = ""


class LLMProxyResponse(BaseModel):
    text: str
    mock: bool


# ================================================================
# Evaluation
# ================================================================

class Evaluation(BaseModel):
    """
    Grade for one answer.

    Strict: a model reply must carry an integer score, a real boolean
    and a string feedback or it is rejected as a whole.
    """
    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    score: int = Field(ge=0, le=5)
    passed: bool = Field(alias="pass")
    feedback: str
    mock: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
