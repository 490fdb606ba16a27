# Interview module
from .phases import InterviewPhases, PHASE_ORDER, phase_of
