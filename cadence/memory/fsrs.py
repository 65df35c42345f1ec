"""
FSRS-4 memory scheduler.

Each (learner, item) pair carries a MemoryRecord with a stability (days until
recall probability decays to ~90%) and a difficulty (1-10). A review rated
Again/Hard/Good/Easy updates both and yields the next interval:

    interval = round(S * ln(target_retention) / ln(0.9))

Retrievability at any time is exp(-elapsed_days / S).

Records read back from storage are sanitised before use: out-of-range values
are clamped to the nearest valid one and reported as warnings, never raised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum, IntEnum

from loguru import logger

from cadence.core.timeutils import clamp, days_between
from cadence.errors import InvalidRatingError

DIFFICULTY_MIN, DIFFICULTY_MAX = 1.0, 10.0


# =============================================================================
# TYPES
# =============================================================================


class Rating(IntEnum):
    """Four-point review grade."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: int | Rating) -> Rating:
        """Coerce an int to a Rating, raising InvalidRatingError outside 1-4."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise InvalidRatingError(f"Rating must be 1-4, got {value!r}") from None

    @property
    def is_success(self) -> bool:
        return self is not Rating.AGAIN


class MemoryState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass(frozen=True)
class FSRSParameters:
    """Scheduler weights and bounds."""

    w: tuple[float, ...] = (
        0.4, 0.6, 2.4, 5.8,
        4.93, 0.94, 0.86, 0.01,
        1.49, 0.14, 0.94,
        2.18, 0.05, 0.34, 1.26,
        0.29, 2.61,
    )
    request_retention: float = 0.9
    maximum_interval: int = 36500
    easy_latency_threshold_ms: int = 5000
    stability_floor: float = 0.1

    def __post_init__(self):
        if len(self.w) != 17:
            raise ValueError(f"FSRS needs 17 weights, got {len(self.w)}")
        if not 0.0 < self.request_retention < 1.0:
            raise ValueError(f"request_retention must be in (0, 1), got {self.request_retention}")


@dataclass
class MemoryRecord:
    """
    Memory state for one item.

    Invariant: state is NEW exactly when last_review is None.
    """

    stability: float = 0.0
    difficulty: float = 5.0
    last_review: datetime | None = None
    reps: int = 0
    lapses: int = 0
    state: MemoryState = MemoryState.NEW

    @property
    def is_new(self) -> bool:
        return self.state is MemoryState.NEW

    def to_dict(self) -> dict:
        return {
            "stability": round(self.stability, 4),
            "difficulty": round(self.difficulty, 4),
            "last_review": self.last_review.isoformat() if self.last_review else None,
            "reps": self.reps,
            "lapses": self.lapses,
            "state": self.state.value,
        }


def default_fsrs_parameters() -> FSRSParameters:
    from config import get_settings

    return get_settings().get_fsrs_parameters()


# =============================================================================
# SCHEDULER
# =============================================================================


class FSRSScheduler:
    """
    FSRS-4 Spaced Repetition Scheduler.

    Stateless apart from its parameters: every method takes the record and
    the evaluation time explicitly.
    """

    def __init__(self, params: FSRSParameters | None = None):
        self.params = params or default_fsrs_parameters()
        self.w = self.params.w

    # -------------------------------------------------------------------------
    # Formula pieces
    # -------------------------------------------------------------------------

    def initial_stability(self, rating: Rating) -> float:
        return max(self.w[rating - 1], self.params.stability_floor)

    def initial_difficulty(self, rating: Rating) -> float:
        return clamp(self.w[4] - (rating - 3) * self.w[5], DIFFICULTY_MIN, DIFFICULTY_MAX)

    def next_difficulty(self, difficulty: float, rating: Rating) -> float:
        return clamp(difficulty - self.w[6] * (rating - 3), DIFFICULTY_MIN, DIFFICULTY_MAX)

    def next_recall_stability(
        self, difficulty: float, stability: float, retrievability: float, rating: Rating
    ) -> float:
        """Stability after a successful recall (Hard, Good or Easy)."""
        hard_penalty = self.w[15] if rating is Rating.HARD else 1.0
        easy_bonus = self.w[16] if rating is Rating.EASY else 1.0
        growth = (
            math.exp(self.w[8])
            * (11.0 - difficulty)
            * math.pow(stability, -self.w[9])
            * (math.exp((1.0 - retrievability) * self.w[10]) - 1.0)
            * hard_penalty
            * easy_bonus
        )
        return max(stability * (1.0 + growth), self.params.stability_floor)

    def next_forget_stability(self, difficulty: float, stability: float) -> float:
        """Stability after a lapse, floored."""
        value = (
            self.w[11]
            * math.pow(difficulty, -self.w[12])
            * (math.pow(stability + 1.0, self.w[13]) - 1.0)
        )
        return max(self.params.stability_floor, value)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def retrievability(self, record: MemoryRecord, now: datetime) -> float:
        """Recall probability at `now`; 0 for a record that was never reviewed."""
        if record.last_review is None or record.stability <= 0:
            return 0.0
        elapsed = max(0.0, days_between(record.last_review, now))
        return math.exp(-elapsed / record.stability)

    def next_interval(self, stability: float) -> int:
        """Days until recall probability reaches the target retention."""
        raw = stability * math.log(self.params.request_retention) / math.log(0.9)
        # Half-up rounding; raw is never negative here
        interval = int(math.floor(raw + 0.5))
        return int(clamp(interval, 1, self.params.maximum_interval))

    def next_review_date(self, record: MemoryRecord) -> datetime | None:
        """Due date of a reviewed record, or None while it is new."""
        if record.last_review is None:
            return None
        return record.last_review + timedelta(days=self.next_interval(record.stability))

    def sanitize(self, record: MemoryRecord) -> MemoryRecord:
        """Clamp a persisted record into its valid domain, warning on every fix."""
        fixed = replace(record)

        if fixed.state is MemoryState.NEW and fixed.last_review is not None:
            logger.warning("Memory record is NEW but has a last review; treating as REVIEW")
            fixed.state = MemoryState.REVIEW
        elif fixed.state is not MemoryState.NEW and fixed.last_review is None:
            logger.warning(f"Memory record is {fixed.state.value} without a last review; resetting to NEW")
            fixed.state = MemoryState.NEW

        if fixed.last_review is not None and (
            not math.isfinite(fixed.stability) or fixed.stability <= 0
        ):
            if fixed.stability == math.inf:
                target = float(self.params.maximum_interval)
            else:
                target = self.params.stability_floor
            logger.warning(
                f"Stability {fixed.stability} on a reviewed record; clamping to {target}"
            )
            fixed.stability = target

        if not DIFFICULTY_MIN <= fixed.difficulty <= DIFFICULTY_MAX:
            logger.warning(f"Difficulty {fixed.difficulty} out of range; clamping to [1, 10]")
            fixed.difficulty = clamp(fixed.difficulty, DIFFICULTY_MIN, DIFFICULTY_MAX)

        if fixed.reps < 0 or fixed.lapses < 0:
            logger.warning(f"Negative counters (reps={fixed.reps}, lapses={fixed.lapses}); clamping to 0")
            fixed.reps = max(0, fixed.reps)
            fixed.lapses = max(0, fixed.lapses)

        return fixed

    def schedule(
        self, record: MemoryRecord, rating: Rating | int, now: datetime
    ) -> tuple[MemoryRecord, int]:
        """
        Apply one review.

        Args:
            record: Current memory record (never mutated)
            rating: Review grade, 1-4
            now: Review time

        Returns:
            (updated record, next interval in days)
        """
        rating = Rating.parse(rating)
        record = self.sanitize(record)

        if record.is_new:
            stability = self.initial_stability(rating)
            difficulty = self.initial_difficulty(rating)
            state = MemoryState.LEARNING if rating is Rating.AGAIN else MemoryState.REVIEW
        else:
            retrievability = self.retrievability(record, now)
            difficulty = self.next_difficulty(record.difficulty, rating)
            if rating.is_success:
                stability = self.next_recall_stability(
                    record.difficulty, record.stability, retrievability, rating
                )
                state = MemoryState.REVIEW
            else:
                stability = self.next_forget_stability(record.difficulty, record.stability)
                state = MemoryState.RELEARNING

        updated = MemoryRecord(
            stability=stability,
            difficulty=difficulty,
            last_review=now,
            reps=record.reps + 1,
            lapses=record.lapses + (0 if rating.is_success else 1),
            state=state,
        )
        interval = self.next_interval(stability)
        logger.debug(
            f"Rated {rating.name}: S={stability:.2f}d D={difficulty:.2f} "
            f"{state.value}, next in {interval}d"
        )
        return updated, interval
