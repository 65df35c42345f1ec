"""
Memory Module - FSRS-4 scheduling and mastery staging.

Components:
- fsrs: memory records, ratings and the FSRS-4 scheduler
- mastery: response rating, accuracy EWMAs, stage and cue level
"""

from cadence.memory.fsrs import (
    FSRSParameters,
    FSRSScheduler,
    MemoryRecord,
    MemoryState,
    Rating,
)
from cadence.memory.mastery import (
    MasteryStage,
    MasteryState,
    MasteryUpdate,
    ResponseData,
    StageTransition,
    determine_cue_level,
    determine_stage,
    response_to_rating,
    scaffolding_gap,
    stage_progress,
    update_mastery,
)

__all__ = [
    "FSRSParameters",
    "FSRSScheduler",
    "MasteryStage",
    "MasteryState",
    "MasteryUpdate",
    "MemoryRecord",
    "MemoryState",
    "Rating",
    "ResponseData",
    "StageTransition",
    "determine_cue_level",
    "determine_stage",
    "response_to_rating",
    "scaffolding_gap",
    "stage_progress",
    "update_mastery",
]
