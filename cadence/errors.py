"""
Exceptions raised by the scheduling core.

Only contract violations raise. Expected edge cases (no due date, all-correct
histories, out-of-range persisted values) are handled inside the components.
"""


class CadenceError(Exception):
    """Base class for scheduling core errors."""


class InvalidItemParameterError(CadenceError, ValueError):
    """Raised when an item calibration triple is outside its valid domain."""


class InvalidRatingError(CadenceError, ValueError):
    """Raised when a memory rating is not one of Again/Hard/Good/Easy."""


class OutOfOrderResponseError(CadenceError):
    """Raised when a learner's responses are applied out of chronological order."""

    def __init__(self, learner_id: str, last_applied, received):
        self.learner_id = learner_id
        self.last_applied = last_applied
        self.received = received
        super().__init__(
            f"Response for learner {learner_id} at {received} predates "
            f"the last applied response at {last_applied}"
        )
