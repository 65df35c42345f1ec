"""
Priority Module - value/cost ranking with scheduling urgency.

Components:
- weights: ProficiencyBand and the validated band weight table
- engine: value, cost, urgency and final-score computation
- cache: EngineCache, an explicit TTL cache of configured engines
"""

from cadence.priority.cache import EngineCache
from cadence.priority.engine import (
    CandidateItem,
    PriorityConfig,
    PriorityEngine,
    PriorityRecord,
    UrgencyConfig,
    compute_cost,
    compute_final_score,
    compute_urgency,
    compute_value,
)
from cadence.priority.weights import PriorityWeights, ProficiencyBand, WeightTable, infer_band

__all__ = [
    "CandidateItem",
    "EngineCache",
    "PriorityConfig",
    "PriorityEngine",
    "PriorityRecord",
    "PriorityWeights",
    "ProficiencyBand",
    "UrgencyConfig",
    "WeightTable",
    "compute_cost",
    "compute_final_score",
    "compute_urgency",
    "compute_value",
    "infer_band",
]
