"""
Proficiency bands and their value-score weights.

The weight table is a total mapping ProficiencyBand -> PriorityWeights,
validated when it is built: a table missing a band, or with a non-positive
weight sum, is rejected up front instead of failing at lookup time.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum


class ProficiencyBand(str, Enum):
    """
    Learner proficiency band.

    Beginners favour frequency (learn what is common first); advanced
    learners favour contextual contribution.
    """

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @classmethod
    def from_theta(
        cls,
        theta: float,
        beginner_below: float = -1.0,
        advanced_from: float = 1.0,
    ) -> ProficiencyBand:
        """Band for a global ability estimate."""
        if theta < beginner_below:
            return cls.BEGINNER
        elif theta < advanced_from:
            return cls.INTERMEDIATE
        else:
            return cls.ADVANCED


@dataclass(frozen=True)
class PriorityWeights:
    """(frequency, relational density, contextual contribution) weights."""

    frequency: float
    relational: float
    contextual: float

    def __post_init__(self):
        parts = (self.frequency, self.relational, self.contextual)
        if any(w < 0 for w in parts) or sum(parts) <= 0:
            raise ValueError(f"Invalid priority weights {parts}")


DEFAULT_WEIGHTS: dict[ProficiencyBand, PriorityWeights] = {
    ProficiencyBand.BEGINNER: PriorityWeights(0.5, 0.25, 0.25),
    ProficiencyBand.INTERMEDIATE: PriorityWeights(0.4, 0.3, 0.3),
    ProficiencyBand.ADVANCED: PriorityWeights(0.3, 0.3, 0.4),
}


class WeightTable:
    """Validated band -> weights mapping plus the theta cut points."""

    def __init__(
        self,
        weights: Mapping[ProficiencyBand, PriorityWeights] | None = None,
        beginner_below: float = -1.0,
        advanced_from: float = 1.0,
    ):
        table = dict(DEFAULT_WEIGHTS if weights is None else weights)
        missing = [band.value for band in ProficiencyBand if band not in table]
        if missing:
            raise ValueError(f"Weight table is missing bands: {', '.join(missing)}")
        if beginner_below > advanced_from:
            raise ValueError(
                f"beginner_below ({beginner_below}) must not exceed advanced_from ({advanced_from})"
            )
        self._weights = table
        self.beginner_below = beginner_below
        self.advanced_from = advanced_from

    def __getitem__(self, band: ProficiencyBand) -> PriorityWeights:
        return self._weights[band]

    def band_for(self, theta: float) -> ProficiencyBand:
        return ProficiencyBand.from_theta(theta, self.beginner_below, self.advanced_from)

    def cache_key(self) -> tuple:
        return (
            tuple(
                (band.value, w.frequency, w.relational, w.contextual)
                for band, w in sorted(self._weights.items(), key=lambda kv: kv[0].value)
            ),
            self.beginner_below,
            self.advanced_from,
        )


def infer_band(theta: float, table: WeightTable | None = None) -> ProficiencyBand:
    """Proficiency band from global theta (-1 and 1 cut points by default)."""
    if table is None:
        return ProficiencyBand.from_theta(theta)
    return table.band_for(theta)
