import pytest

from interview.phases import PHASE_ORDER, InterviewPhases, phase_of
from models.schemas import InterviewPhase


@pytest.mark.parametrize("max_turns", range(2, 15))
def test_first_turn_is_intro_and_last_is_wrapup(max_turns):
    assert phase_of(0, max_turns) == InterviewPhase.INTRO
    assert phase_of(max_turns - 1, max_turns) == InterviewPhase.WRAPUP


@pytest.mark.parametrize("max_turns", range(2, 15))
def test_phase_never_regresses(max_turns):
    positions = [PHASE_ORDER.index(phase_of(t, max_turns)) for t in range(max_turns)]
    assert positions == sorted(positions)


def test_default_interview_table():
    phases = [phase_of(t, 8).value for t in range(8)]
    assert phases == [
        "intro", "projects", "projects", "technical",
        "technical", "behavioral", "behavioral", "wrapup",
    ]


def test_long_interview_reaches_scenario():
    assert phase_of(7, 10) == InterviewPhase.SCENARIO
    assert phase_of(8, 10) == InterviewPhase.SCENARIO
    assert phase_of(9, 10) == InterviewPhase.WRAPUP


def test_single_turn_interview_starts_with_intro():
    assert phase_of(0, 1) == InterviewPhase.INTRO
    assert phase_of(1, 1) == InterviewPhase.WRAPUP


def test_negative_turn_is_intro():
    assert phase_of(-3, 8) == InterviewPhase.INTRO


def test_every_phase_has_info():
    for phase in PHASE_ORDER:
        info = InterviewPhases.get_phase_info(phase)
        assert info.description
        assert info.focus_areas
