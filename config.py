"""
Configuration settings for the cadence adaptive scheduling core.

Uses Pydantic Settings for environment variable management with .env file support.
Components never read these values at call sites: the helper methods at the
bottom turn them into the typed config objects each engine accepts.
"""
from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from cadence.ability.estimation import EstimationConfig
    from cadence.ability.calibration import CalibrationConfig
    from cadence.memory.fsrs import FSRSParameters
    from cadence.priority.engine import PriorityConfig


DEFAULT_FSRS_WEIGHTS = [
    0.4, 0.6, 2.4, 5.8,       # w0-w3: initial stability by rating
    4.93, 0.94, 0.86, 0.01,   # w4-w7: difficulty modifiers
    1.49, 0.14, 0.94,         # w8-w10: recall stability modifiers
    2.18, 0.05, 0.34, 1.26,   # w11-w14: forget stability modifiers
    0.29, 2.61,               # w15-w16: hard penalty, easy bonus
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Memory Scheduling (FSRS)
    # ========================================
    target_retention: float = Field(
        default=0.9,
        gt=0.0,
        lt=1.0,
        description="Recall probability the next review is scheduled at",
    )
    maximum_interval: int = Field(
        default=36500,
        ge=1,
        description="Upper bound on a review interval (days)",
    )
    fsrs_weights: list[float] = Field(
        default_factory=lambda: list(DEFAULT_FSRS_WEIGHTS),
        description="17 FSRS-4 weight parameters",
    )
    easy_latency_threshold_ms: int = Field(
        default=5000,
        ge=0,
        description="Cue-free correct answers at or under this latency rate Easy",
    )
    stability_floor: float = Field(
        default=0.1,
        gt=0.0,
        description="Minimum stability after a lapse (days)",
    )

    # ========================================
    # Priority & Urgency
    # ========================================
    priority_weights_beginner: list[float] = Field(
        default_factory=lambda: [0.5, 0.25, 0.25],
        description="F/R/E weights for the beginner band",
    )
    priority_weights_intermediate: list[float] = Field(
        default_factory=lambda: [0.4, 0.3, 0.3],
        description="F/R/E weights for the intermediate band",
    )
    priority_weights_advanced: list[float] = Field(
        default_factory=lambda: [0.3, 0.3, 0.4],
        description="F/R/E weights for the advanced band",
    )
    band_beginner_below: float = Field(
        default=-1.0,
        description="Global theta under which a learner is a beginner",
    )
    band_advanced_from: float = Field(
        default=1.0,
        description="Global theta from which a learner is advanced",
    )
    cost_floor: float = Field(
        default=0.1,
        gt=0.0,
        description="Lower bound on the cost score",
    )
    missing_metric_default: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Neutral value substituted for an absent value metric",
    )
    urgency_new_item: float = Field(
        default=1.5,
        description="Urgency for items that have no due date yet",
    )
    urgency_overdue_rate: float = Field(
        default=0.5,
        description="Urgency added per overdue day",
    )
    urgency_cap: float = Field(
        default=3.0,
        description="Maximum urgency",
    )
    urgency_due_base: float = Field(
        default=0.5,
        description="Urgency of a not-yet-due item at its due instant",
    )
    urgency_decay_hours: float = Field(
        default=168.0,
        gt=0.0,
        description="Hours over which not-yet-due urgency decays by one unit",
    )
    urgency_floor: float = Field(
        default=0.1,
        description="Minimum urgency of a not-yet-due item",
    )

    # ========================================
    # Queue
    # ========================================
    session_size: int = Field(
        default=20,
        ge=1,
        description="Default number of items in a session slice",
    )
    new_item_ratio: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Fraction of a session slice reserved for new items",
    )

    # ========================================
    # Ability Estimation (IRT)
    # ========================================
    item_selection_strategy: Literal["fisher", "kl", "auto"] = Field(
        default="fisher",
        description="Adaptive item selection strategy",
    )
    kl_se_threshold: float = Field(
        default=0.5,
        description="In auto mode, use KL selection while SE is above this",
    )
    mle_max_iterations: int = Field(default=50, ge=1)
    mle_tolerance: float = Field(default=1e-4, gt=0.0)
    mle_min_responses: int = Field(
        default=5,
        ge=1,
        description="Shortest history MLE is attempted on",
    )
    nonconvergence_se_inflation: float = Field(default=2.0, ge=1.0)
    prior_mean: float = Field(default=0.0)
    prior_sd: float = Field(default=1.0, gt=0.0)
    eap_quadrature_points: int = Field(default=40, ge=2)
    eap_span_sd: float = Field(
        default=2.0,
        gt=0.0,
        description="Quadrature grid half-width in prior standard deviations",
    )
    quadrature_rule: Literal["uniform", "gauss_hermite"] = Field(default="uniform")

    # Session mode weights (learning mode never updates ability)
    training_update_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    evaluation_update_weight: float = Field(default=1.0, ge=0.0, le=1.0)

    # ========================================
    # Batch Calibration (EM)
    # ========================================
    calibration_max_iterations: int = Field(default=100, ge=1)
    calibration_tolerance: float = Field(default=1e-3, gt=0.0)
    calibration_learning_rate: float = Field(default=0.05, gt=0.0)
    calibration_gradient_steps: int = Field(default=25, ge=1)
    calibration_three_pl: bool = Field(default=False)

    # ========================================
    # Engine Cache
    # ========================================
    engine_cache_size: int = Field(default=32, ge=1)
    engine_cache_ttl_seconds: float = Field(default=3600.0, gt=0.0)

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("fsrs_weights")
    @classmethod
    def _check_fsrs_weights(cls, value: list[float]) -> list[float]:
        if len(value) != 17:
            raise ValueError(f"fsrs_weights needs 17 values, got {len(value)}")
        return value

    @field_validator(
        "priority_weights_beginner",
        "priority_weights_intermediate",
        "priority_weights_advanced",
    )
    @classmethod
    def _check_band_weights(cls, value: list[float]) -> list[float]:
        if len(value) != 3:
            raise ValueError("priority weights are an (F, R, E) triple")
        if any(w < 0 for w in value) or sum(value) <= 0:
            raise ValueError("priority weights must be non-negative with a positive sum")
        return value

    # ========================================
    # Helper Methods
    # ========================================
    def get_fsrs_parameters(self) -> FSRSParameters:
        """Build the memory scheduler parameters."""
        from cadence.memory.fsrs import FSRSParameters

        return FSRSParameters(
            w=tuple(self.fsrs_weights),
            request_retention=self.target_retention,
            maximum_interval=self.maximum_interval,
            easy_latency_threshold_ms=self.easy_latency_threshold_ms,
            stability_floor=self.stability_floor,
        )

    def get_priority_config(self) -> PriorityConfig:
        """Build the priority engine configuration, including the band weight table."""
        from cadence.priority.engine import PriorityConfig, UrgencyConfig
        from cadence.priority.weights import (
            PriorityWeights,
            ProficiencyBand,
            WeightTable,
        )

        table = WeightTable(
            {
                ProficiencyBand.BEGINNER: PriorityWeights(*self.priority_weights_beginner),
                ProficiencyBand.INTERMEDIATE: PriorityWeights(*self.priority_weights_intermediate),
                ProficiencyBand.ADVANCED: PriorityWeights(*self.priority_weights_advanced),
            },
            beginner_below=self.band_beginner_below,
            advanced_from=self.band_advanced_from,
        )
        urgency = UrgencyConfig(
            new_item=self.urgency_new_item,
            overdue_rate=self.urgency_overdue_rate,
            cap=self.urgency_cap,
            due_base=self.urgency_due_base,
            decay_hours=self.urgency_decay_hours,
            floor=self.urgency_floor,
        )
        return PriorityConfig(
            weights=table,
            urgency=urgency,
            cost_floor=self.cost_floor,
            missing_metric_default=self.missing_metric_default,
        )

    def get_estimation_config(self) -> EstimationConfig:
        """Build the ability estimation configuration."""
        from cadence.ability.estimation import EstimationConfig

        return EstimationConfig(
            max_iterations=self.mle_max_iterations,
            tolerance=self.mle_tolerance,
            min_mle_responses=self.mle_min_responses,
            nonconvergence_se_inflation=self.nonconvergence_se_inflation,
            prior_mean=self.prior_mean,
            prior_sd=self.prior_sd,
            quadrature_points=self.eap_quadrature_points,
            span_sd=self.eap_span_sd,
            quadrature_rule=self.quadrature_rule,
            selection_strategy=self.item_selection_strategy,
            kl_se_threshold=self.kl_se_threshold,
            training_weight=self.training_update_weight,
            evaluation_weight=self.evaluation_update_weight,
        )

    def get_calibration_config(self) -> CalibrationConfig:
        """Build the EM calibration configuration."""
        from cadence.ability.calibration import CalibrationConfig

        return CalibrationConfig(
            max_iterations=self.calibration_max_iterations,
            tolerance=self.calibration_tolerance,
            learning_rate=self.calibration_learning_rate,
            gradient_steps=self.calibration_gradient_steps,
            three_pl=self.calibration_three_pl,
        )

    def get_queue_config(self) -> dict[str, float | int]:
        """Get session slicing defaults as a dictionary."""
        return {
            "session_size": self.session_size,
            "new_item_ratio": self.new_item_ratio,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
