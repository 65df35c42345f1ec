"""
Learner Module - per-learner state and the response feedback loop.
"""

from cadence.learner.loop import LearnerLoop, ResponseOutcome
from cadence.learner.state import LearnerState

__all__ = ["LearnerLoop", "LearnerState", "ResponseOutcome"]
