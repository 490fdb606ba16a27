"""
Interview phase definitions and the turn -> phase mapping.
"""
from typing import Dict, List, Any, Optional
from dataclasses import dataclass

from models.schemas import InterviewPhase


@dataclass
class PhaseInfo:
    """Information about a single interview phase."""
    phase: InterviewPhase
    description: str
    focus_areas: List[str]
    needs_depth: bool = False

    def get_config(self) -> Dict[str, Any]:
        """Get phase configuration as dictionary."""
        return {
            "description": self.description,
            "focus_areas": self.focus_areas,
            "needs_depth": self.needs_depth,
        }


# Phase order for progression
PHASE_ORDER = InterviewPhase.get_order()

# Highest turn index (inclusive) for each middle phase
PHASE_BOUNDARIES = [
    (2, InterviewPhase.PROJECTS),
    (4, InterviewPhase.TECHNICAL),
    (6, InterviewPhase.BEHAVIORAL),
]


def phase_of(turn_index: int, max_turns: int) -> InterviewPhase:
    """
    Map a turn index to its interview phase.

    The first turn is always the intro and the last turn is always the
    wrap-up; intro wins when both apply (a single-turn interview).
    """
    if turn_index <= 0:
        return InterviewPhase.INTRO
    if turn_index >= max(0, max_turns - 1):
        return InterviewPhase.WRAPUP
    for upper, phase in PHASE_BOUNDARIES:
        if turn_index <= upper:
            return phase
    return InterviewPhase.SCENARIO


class InterviewPhases:
    """
    Phase definitions used to steer question generation.
    """

    PHASES: Dict[InterviewPhase, PhaseInfo] = {
        InterviewPhase.INTRO: PhaseInfo(
            phase=InterviewPhase.INTRO,
            description="Warm opening: who the candidate is and why this role",
            focus_areas=["background", "motivation", "education"],
        ),
        InterviewPhase.PROJECTS: PhaseInfo(
            phase=InterviewPhase.PROJECTS,
            description="Projects the candidate has built or contributed to",
            focus_areas=["ownership", "design decisions", "impact", "tools used"],
            needs_depth=True,
        ),
        InterviewPhase.TECHNICAL: PhaseInfo(
            phase=InterviewPhase.TECHNICAL,
            description="Technical knowledge tied to the role and the candidate's stack",
            focus_areas=["fundamentals", "architecture", "debugging", "trade-offs"],
            needs_depth=True,
        ),
        InterviewPhase.BEHAVIORAL: PhaseInfo(
            phase=InterviewPhase.BEHAVIORAL,
            description="Past behavior in teams, answered with concrete situations",
            focus_areas=["teamwork", "conflict", "feedback", "ownership"],
        ),
        InterviewPhase.SCENARIO: PhaseInfo(
            phase=InterviewPhase.SCENARIO,
            description="Hypothetical situations testing judgment",
            focus_areas=["prioritization", "incidents", "stakeholders", "ambiguity"],
            needs_depth=True,
        ),
        InterviewPhase.WRAPUP: PhaseInfo(
            phase=InterviewPhase.WRAPUP,
            description="Closing the interview",
            focus_areas=["motivation", "candidate questions", "closing remarks"],
        ),
    }

    @classmethod
    def get_phase_info(cls, phase: InterviewPhase) -> Optional[PhaseInfo]:
        """Get information about a specific phase."""
        return cls.PHASES.get(phase)

    @classmethod
    def get_all_phases_info(cls) -> List[Dict[str, Any]]:
        """Get information about all phases."""
        return [
            {
                "phase": phase.value,
                **cls.PHASES[phase].get_config()
            }
            for phase in PHASE_ORDER
        ]
