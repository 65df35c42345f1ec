"""
Priority Engine.

Ranks a candidate item for one learner by combining its intrinsic value with
the cost of learning it, then boosting by scheduling urgency.

Formula:
    value    = w_F·F + w_R·R + w_E·E
    cost     = max(floor, (difficulty + 3)/6 - transfer + clamp((difficulty - θ)/3, 0, 1))
    priority = value / cost
    final    = priority · (1 + urgency)

Where:
    F = frequency, R = relational density, E = contextual contribution
    θ = learner ability on the item's skill dimension
    (w_F, w_R, w_E) depend on the learner's proficiency band

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from cadence.core.dimensions import SkillDimension
from cadence.core.timeutils import clamp, days_between, hours_between
from cadence.priority.weights import PriorityWeights, ProficiencyBand, WeightTable

# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass(frozen=True)
class CandidateItem:
    """
    A schedulable item with its externally supplied metrics.

    Value metrics and transfer gain may be missing (None); the engine
    substitutes neutral defaults instead of dropping the item.
    """

    item_id: str
    difficulty: float = 0.0
    dimension: SkillDimension = SkillDimension.LEXICAL
    frequency: float | None = None
    relational_density: float | None = None
    contextual_contribution: float | None = None
    transfer_gain: float | None = None


@dataclass(frozen=True)
class UrgencyConfig:
    new_item: float = 1.5
    overdue_rate: float = 0.5
    cap: float = 3.0
    due_base: float = 0.5
    decay_hours: float = 168.0
    floor: float = 0.1


@dataclass(frozen=True)
class PriorityConfig:
    weights: WeightTable = field(default_factory=WeightTable)
    urgency: UrgencyConfig = field(default_factory=UrgencyConfig)
    cost_floor: float = 0.1
    missing_metric_default: float = 0.5
    missing_transfer_default: float = 0.0

    def cache_key(self) -> tuple:
        u = self.urgency
        return (
            self.weights.cache_key(),
            (u.new_item, u.overdue_rate, u.cap, u.due_base, u.decay_hours, u.floor),
            self.cost_floor,
            self.missing_metric_default,
            self.missing_transfer_default,
        )


@dataclass(frozen=True)
class PriorityRecord:
    """Scores for one candidate in one queue build (never persisted)."""

    item_id: str
    value_score: float
    cost_score: float
    priority: float
    urgency: float
    final_score: float
    band: ProficiencyBand

    def to_dict(self) -> dict[str, float | str]:
        return {
            "item_id": self.item_id,
            "value": round(self.value_score, 4),
            "cost": round(self.cost_score, 4),
            "priority": round(self.priority, 4),
            "urgency": round(self.urgency, 4),
            "final": round(self.final_score, 4),
            "band": self.band.value,
        }


# =============================================================================
# PURE SCORING FUNCTIONS
# =============================================================================


def compute_value(
    frequency: float,
    relational: float,
    contextual: float,
    weights: PriorityWeights,
) -> float:
    return (
        weights.frequency * frequency
        + weights.relational * relational
        + weights.contextual * contextual
    )


def compute_cost(
    item_difficulty: float,
    ability: float,
    transfer_gain: float = 0.0,
    floor: float = 0.1,
) -> float:
    """
    Learning cost; lower cost means higher effective priority.

    The +3/6 maps the ±3 logit scale onto [0, 1].
    """
    base = (item_difficulty + 3.0) / 6.0
    exposure_need = clamp((item_difficulty - ability) / 3.0, 0.0, 1.0)
    return max(floor, base - transfer_gain + exposure_need)


def compute_urgency(
    due: datetime | None,
    now: datetime,
    config: UrgencyConfig | None = None,
) -> float:
    """
    Scheduling urgency in [0, cap].

    - no due date: new-item default (1.5)
    - overdue by d days: min(cap, 1 + 0.5·d)
    - not yet due: max(floor, 0.5 - hours_until_due / 168)
    """
    config = config or UrgencyConfig()
    if due is None:
        return config.new_item

    days_overdue = days_between(due, now)
    if days_overdue >= 0:
        return min(config.cap, 1.0 + days_overdue * config.overdue_rate)

    hours_until_due = hours_between(now, due)
    return max(config.floor, config.due_base - hours_until_due / config.decay_hours)


def compute_final_score(priority: float, urgency: float) -> float:
    return priority * (1.0 + urgency)


# =============================================================================
# PRIORITY ENGINE
# =============================================================================


class PriorityEngine:
    """
    Scores candidates for a learner.

    Usage:
        engine = PriorityEngine(settings.get_priority_config())
        record = engine.score(item, ability=0.3, global_theta=0.1, due=None, now=now)
    """

    def __init__(self, config: PriorityConfig | None = None):
        if config is None:
            from config import get_settings

            config = get_settings().get_priority_config()
        self.config = config

    def _metric(self, value: float | None, name: str, item_id: str) -> float:
        if value is None:
            logger.debug(f"Item {item_id} has no {name}; using {self.config.missing_metric_default}")
            return self.config.missing_metric_default
        return clamp(value, 0.0, 1.0)

    def band(self, global_theta: float) -> ProficiencyBand:
        return self.config.weights.band_for(global_theta)

    def value_score(self, item: CandidateItem, band: ProficiencyBand) -> float:
        return compute_value(
            self._metric(item.frequency, "frequency", item.item_id),
            self._metric(item.relational_density, "relational density", item.item_id),
            self._metric(item.contextual_contribution, "contextual contribution", item.item_id),
            self.config.weights[band],
        )

    def cost_score(self, item: CandidateItem, ability: float) -> float:
        transfer = (
            self.config.missing_transfer_default
            if item.transfer_gain is None
            else clamp(item.transfer_gain, 0.0, 1.0)
        )
        return compute_cost(item.difficulty, ability, transfer, self.config.cost_floor)

    def urgency(self, due: datetime | None, now: datetime) -> float:
        return compute_urgency(due, now, self.config.urgency)

    def score(
        self,
        item: CandidateItem,
        ability: float,
        global_theta: float,
        due: datetime | None,
        now: datetime,
        band: ProficiencyBand | None = None,
    ) -> PriorityRecord:
        """
        Score one candidate.

        Args:
            item: Candidate with its metrics
            ability: Learner theta on the item's dimension
            global_theta: Learner global theta (selects the band when not given)
            due: Next review date, None for items never reviewed
            now: Evaluation time
            band: Explicit proficiency band override

        Returns:
            PriorityRecord
        """
        band = band or self.band(global_theta)
        value = self.value_score(item, band)
        cost = self.cost_score(item, ability)
        priority = value / cost
        urgency = self.urgency(due, now)
        return PriorityRecord(
            item_id=item.item_id,
            value_score=value,
            cost_score=cost,
            priority=priority,
            urgency=urgency,
            final_score=compute_final_score(priority, urgency),
            band=band,
        )
