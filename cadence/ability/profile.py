"""
Per-learner ability profile.

One AbilityEstimate slot per SkillDimension (GLOBAL included). Every response
re-estimates the item's dimension and GLOBAL from their full histories, and
the stored estimate moves toward the fresh one by the session mode's weight:

    theta' = theta + weight * (estimate - theta)

LEARNING responses carry weight 0 and leave the profile untouched.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from loguru import logger

from cadence.ability.estimation import (
    AbilityEstimate,
    EstimationConfig,
    default_estimation_config,
    estimate_theta,
)
from cadence.ability.irt_model import ItemParameter, clamp_theta
from cadence.core.dimensions import SessionMode, SkillDimension


def mode_weight(mode: SessionMode, config: EstimationConfig) -> float:
    """Blend weight a session mode applies to an ability update."""
    if mode is SessionMode.EVALUATION:
        return config.evaluation_weight
    if mode is SessionMode.TRAINING:
        return config.training_weight
    return 0.0


def blend_estimate(
    current: AbilityEstimate, fresh: AbilityEstimate, weight: float
) -> AbilityEstimate:
    """Move `current` toward `fresh` by `weight` (0 keeps current, 1 takes fresh)."""
    if weight <= 0.0:
        return current
    if weight >= 1.0:
        return fresh
    return replace(
        fresh,
        theta=clamp_theta(current.theta + weight * (fresh.theta - current.theta)),
        se=current.se + weight * (fresh.se - current.se),
    )


@dataclass
class AbilityProfile:
    """Total mapping from SkillDimension to the learner's current estimate."""

    estimates: dict[SkillDimension, AbilityEstimate] = field(default_factory=dict)

    def __post_init__(self):
        missing = [d for d in SkillDimension if d not in self.estimates]
        if missing:
            prior = AbilityEstimate.from_prior(default_estimation_config())
            for dimension in missing:
                self.estimates[dimension] = prior

    @classmethod
    def from_prior(cls, config: EstimationConfig | None = None) -> AbilityProfile:
        """Onboarding profile: every dimension at the prior."""
        config = config or default_estimation_config()
        prior = AbilityEstimate.from_prior(config)
        return cls({dimension: prior for dimension in SkillDimension})

    def __getitem__(self, dimension: SkillDimension) -> AbilityEstimate:
        return self.estimates[dimension]

    def theta(self, dimension: SkillDimension) -> float:
        return self.estimates[dimension].theta

    @property
    def global_theta(self) -> float:
        return self.estimates[SkillDimension.GLOBAL].theta

    def update(
        self,
        dimension: SkillDimension,
        histories: Mapping[SkillDimension, Sequence[tuple[ItemParameter, bool]]],
        mode: SessionMode,
        config: EstimationConfig | None = None,
    ) -> dict[SkillDimension, AbilityEstimate]:
        """
        Re-estimate `dimension` and GLOBAL after a response.

        Args:
            dimension: Dimension of the item just answered
            histories: Full response history per dimension (new response included)
            mode: Session mode the response was given in
            config: Estimation settings, including the mode weights

        Returns:
            The dimensions that changed, mapped to their new estimates
        """
        config = config or default_estimation_config()
        weight = mode_weight(mode, config)
        if weight <= 0.0:
            logger.debug(f"{mode.value} response: ability unchanged")
            return {}

        changed: dict[SkillDimension, AbilityEstimate] = {}
        for target in dict.fromkeys((dimension, SkillDimension.GLOBAL)):
            fresh = estimate_theta(list(histories.get(target, ())), config)
            blended = blend_estimate(self.estimates[target], fresh, weight)
            self.estimates[target] = blended
            changed[target] = blended
            logger.debug(
                f"{target.short_code} theta -> {blended.theta:.3f} "
                f"(se {blended.se:.3f}, {fresh.method.value}, weight {weight})"
            )
        return changed

    def to_dict(self) -> dict[str, dict]:
        return {d.value: est.to_dict() for d, est in self.estimates.items()}
