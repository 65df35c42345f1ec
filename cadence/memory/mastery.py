"""
Mastery tracking on top of the memory scheduler.

Design:
- ResponseData: the raw outcome of one presentation
- MasteryStage: ordinal 0 (unknown) to 4 (automatic)
- MasteryState: stage, memory record, two accuracy EWMAs, exposure count
- update_mastery: rate the response, reschedule, update accuracies, restage

The stage is recomputed from scratch after every response, never mutated
incrementally, so regressions fall out naturally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum

from loguru import logger

from cadence.core.timeutils import clamp
from cadence.memory.fsrs import FSRSScheduler, MemoryRecord, Rating

# Stage thresholds
STAGE4_FREE, STAGE4_STABILITY, STAGE4_GAP = 0.9, 30.0, 0.1
STAGE3_FREE, STAGE3_STABILITY = 0.75, 7.0
STAGE2_FREE, STAGE2_ASSISTED = 0.6, 0.8
STAGE1_ASSISTED = 0.5

RECENCY_FACTOR = 0.3


class MasteryStage(IntEnum):
    """
    Ordinal mastery category.

    0 - Unknown: never seen or nothing retained
    1 - Recognition: recognised with cues
    2 - Recall: recalled more often than not
    3 - Controlled: reliable under effort, week-long stability
    4 - Automatic: near-perfect, month-long stability, no cue dependence
    """

    UNKNOWN = 0
    RECOGNITION = 1
    RECALL = 2
    CONTROLLED = 3
    AUTOMATIC = 4

    @property
    def display_name(self) -> str:
        return self.name.title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryStage.UNKNOWN: "dim",
            MasteryStage.RECOGNITION: "red",
            MasteryStage.RECALL: "yellow",
            MasteryStage.CONTROLLED: "cyan",
            MasteryStage.AUTOMATIC: "green",
        }[self]


@dataclass(frozen=True)
class ResponseData:
    """One scored presentation: correctness, hint level shown (0-3) and latency."""

    correct: bool
    cue_level: int = 0
    response_time_ms: int = 0

    @property
    def cue_used(self) -> bool:
        return self.cue_level > 0


@dataclass
class MasteryState:
    stage: MasteryStage = MasteryStage.UNKNOWN
    memory: MemoryRecord = field(default_factory=MemoryRecord)
    cue_free_accuracy: float = 0.0
    cue_assisted_accuracy: float = 0.0
    exposure_count: int = 0

    def to_dict(self) -> dict:
        return {
            "stage": int(self.stage),
            "memory": self.memory.to_dict(),
            "cue_free_accuracy": round(self.cue_free_accuracy, 4),
            "cue_assisted_accuracy": round(self.cue_assisted_accuracy, 4),
            "exposure_count": self.exposure_count,
        }


@dataclass(frozen=True)
class StageTransition:
    previous: MasteryStage
    current: MasteryStage

    @property
    def direction(self) -> str:
        if self.current > self.previous:
            return "promoted"
        if self.current < self.previous:
            return "demoted"
        return "unchanged"

    @property
    def changed(self) -> bool:
        return self.current != self.previous


@dataclass(frozen=True)
class MasteryUpdate:
    """Outcome of applying one response to a MasteryState."""

    state: MasteryState
    rating: Rating
    interval_days: int
    next_review: datetime | None
    transition: StageTransition


# =============================================================================
# PURE RULES
# =============================================================================


def response_to_rating(response: ResponseData, easy_latency_threshold_ms: int = 5000) -> Rating:
    """
    Convert a response to a review grade.

    - Incorrect -> Again
    - Correct with cues -> Hard
    - Correct, slow -> Good
    - Correct, fast -> Easy
    """
    if not response.correct:
        return Rating.AGAIN
    if response.cue_used:
        return Rating.HARD
    if response.response_time_ms > easy_latency_threshold_ms:
        return Rating.GOOD
    return Rating.EASY


def determine_stage(
    exposure_count: int,
    cue_free_accuracy: float,
    cue_assisted_accuracy: float,
    stability: float,
) -> MasteryStage:
    """Highest stage whose criteria hold, checked from 4 down."""
    if exposure_count == 0:
        return MasteryStage.UNKNOWN

    gap = cue_assisted_accuracy - cue_free_accuracy
    if (
        cue_free_accuracy >= STAGE4_FREE
        and stability > STAGE4_STABILITY
        and gap < STAGE4_GAP
    ):
        return MasteryStage.AUTOMATIC
    if cue_free_accuracy >= STAGE3_FREE and stability > STAGE3_STABILITY:
        return MasteryStage.CONTROLLED
    if cue_free_accuracy >= STAGE2_FREE or cue_assisted_accuracy >= STAGE2_ASSISTED:
        return MasteryStage.RECALL
    if cue_assisted_accuracy >= STAGE1_ASSISTED:
        return MasteryStage.RECOGNITION
    return MasteryStage.UNKNOWN


def stage_of(state: MasteryState) -> MasteryStage:
    return determine_stage(
        state.exposure_count,
        state.cue_free_accuracy,
        state.cue_assisted_accuracy,
        state.memory.stability,
    )


def scaffolding_gap(state: MasteryState) -> float:
    """How much better the learner does with cues than without (never negative)."""
    return max(0.0, state.cue_assisted_accuracy - state.cue_free_accuracy)


def determine_cue_level(state: MasteryState) -> int:
    """Hint level (0 none to 3 full) the next presentation should carry."""
    if state.exposure_count == 0:
        return 3
    gap = scaffolding_gap(state)
    attempts = state.exposure_count
    if gap < 0.1 and attempts > 3:
        return 0
    if gap < 0.2 and attempts > 2:
        return 1
    if gap < 0.3:
        return 2
    return 3


def stage_progress(state: MasteryState) -> float:
    """
    Fraction (0-1) of the way toward the next stage's criteria.

    Each criterion contributes its own satisfied fraction; conjunctive
    criteria are averaged and disjunctive ones take the best. Stage 4 is 1.0.
    """
    stage = state.stage
    free = state.cue_free_accuracy
    assisted = state.cue_assisted_accuracy
    stability = state.memory.stability

    def part(value: float, target: float) -> float:
        return clamp(value / target, 0.0, 1.0)

    if stage >= MasteryStage.AUTOMATIC:
        return 1.0
    if state.exposure_count == 0:
        return 0.0
    if stage == MasteryStage.CONTROLLED:
        gap_part = 1.0 if scaffolding_gap(state) < STAGE4_GAP else clamp(
            1.0 - (scaffolding_gap(state) - STAGE4_GAP) / (1.0 - STAGE4_GAP), 0.0, 1.0
        )
        return (part(free, STAGE4_FREE) + part(stability, STAGE4_STABILITY) + gap_part) / 3.0
    if stage == MasteryStage.RECALL:
        return (part(free, STAGE3_FREE) + part(stability, STAGE3_STABILITY)) / 2.0
    if stage == MasteryStage.RECOGNITION:
        return max(part(free, STAGE2_FREE), part(assisted, STAGE2_ASSISTED))
    return part(assisted, STAGE1_ASSISTED)


# =============================================================================
# UPDATE
# =============================================================================


def update_mastery(
    state: MasteryState,
    response: ResponseData,
    now: datetime,
    scheduler: FSRSScheduler | None = None,
) -> MasteryUpdate:
    """
    Apply one response to an item's mastery state.

    Args:
        state: Current state (never mutated)
        response: The scored presentation
        now: Response time
        scheduler: Memory scheduler; built from settings when omitted

    Returns:
        MasteryUpdate with the new state, the rating used, the next interval
        and the stage transition
    """
    scheduler = scheduler or FSRSScheduler()
    rating = response_to_rating(response, scheduler.params.easy_latency_threshold_ms)
    memory, interval = scheduler.schedule(state.memory, rating, now)

    exposure_count = max(0, state.exposure_count) + 1
    weight = 1.0 / (exposure_count * RECENCY_FACTOR + 1.0)
    outcome = 1.0 if response.correct else 0.0

    cue_free = clamp(state.cue_free_accuracy, 0.0, 1.0)
    cue_assisted = clamp(state.cue_assisted_accuracy, 0.0, 1.0)
    if response.cue_used:
        cue_assisted = (1.0 - weight) * cue_assisted + weight * outcome
    else:
        cue_free = (1.0 - weight) * cue_free + weight * outcome

    new_state = MasteryState(
        memory=memory,
        cue_free_accuracy=cue_free,
        cue_assisted_accuracy=cue_assisted,
        exposure_count=exposure_count,
    )
    new_state.stage = stage_of(new_state)
    transition = StageTransition(previous=MasteryStage(state.stage), current=new_state.stage)
    if transition.changed:
        logger.info(
            f"Stage {transition.direction}: {transition.previous.display_name} -> "
            f"{transition.current.display_name}"
        )

    return MasteryUpdate(
        state=new_state,
        rating=rating,
        interval_days=interval,
        next_review=scheduler.next_review_date(memory),
        transition=transition,
    )
