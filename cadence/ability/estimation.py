"""
Ability (theta) point estimation.

Two estimators share the IRT primitives:

1. Maximum likelihood via Newton-Raphson (Fisher scoring form for the 3PL).
   Undefined for degenerate histories (empty, all-correct, all-incorrect),
   where the likelihood keeps rising toward +/- infinity.
2. Expected a posteriori (EAP) via quadrature over a Gaussian prior.
   Always defined; used for short or degenerate histories.

`estimate_theta` picks between them. Every function here is pure: the same
response list always yields the same estimate.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import numpy as np
from loguru import logger

from cadence.ability.irt_model import (
    EPS,
    ItemParameter,
    clamp_theta,
    prob_correct,
)
from cadence.ability.quadrature import QuadratureRule, build_rule

DERIVATIVE_EPS = 1e-10


class EstimationMethod(str, Enum):
    MLE = "mle"
    EAP = "eap"
    PRIOR = "prior"


class ItemResponse(NamedTuple):
    """One scored response: the item's calibration and whether it was correct."""

    item: ItemParameter
    correct: bool


@dataclass(frozen=True)
class EstimationConfig:
    """Numerical settings for theta estimation and item selection."""

    max_iterations: int = 50
    tolerance: float = 1e-4
    min_mle_responses: int = 5
    nonconvergence_se_inflation: float = 2.0
    prior_mean: float = 0.0
    prior_sd: float = 1.0
    quadrature_points: int = 40
    span_sd: float = 2.0
    quadrature_rule: str = "uniform"
    selection_strategy: str = "fisher"
    kl_se_threshold: float = 0.5
    training_weight: float = 0.5
    evaluation_weight: float = 1.0

    def quadrature(self) -> QuadratureRule:
        return build_rule(
            self.quadrature_rule,
            self.prior_mean,
            self.prior_sd,
            self.quadrature_points,
            self.span_sd,
        )


@dataclass(frozen=True)
class AbilityEstimate:
    """
    Theta estimate with its standard error.

    `flagged` marks a lower-confidence estimate (non-converged MLE). Callers
    should weigh it less, not discard it.
    """

    theta: float = 0.0
    se: float = 1.0
    method: EstimationMethod = EstimationMethod.PRIOR
    flagged: bool = False
    iterations: int = 0
    response_count: int = 0

    @classmethod
    def from_prior(cls, config: EstimationConfig) -> AbilityEstimate:
        """Onboarding default: the prior mean with the prior SD as error."""
        return cls(theta=clamp_theta(config.prior_mean), se=config.prior_sd)

    def to_dict(self) -> dict[str, float | str | bool | int]:
        return {
            "theta": round(self.theta, 4),
            "se": round(self.se, 4),
            "method": self.method.value,
            "flagged": self.flagged,
            "iterations": self.iterations,
            "response_count": self.response_count,
        }


def default_estimation_config() -> EstimationConfig:
    from config import get_settings

    return get_settings().get_estimation_config()


def is_degenerate(responses: Sequence[tuple[ItemParameter, bool]]) -> bool:
    """True for histories with no variance in correctness (MLE diverges)."""
    if not responses:
        return True
    outcomes = {bool(correct) for _, correct in responses}
    return len(outcomes) == 1


# =============================================================================
# MAXIMUM LIKELIHOOD
# =============================================================================


def _score_and_derivative(
    theta: float, responses: Sequence[tuple[ItemParameter, bool]]
) -> tuple[float, float]:
    """
    Log-likelihood score and its (expected) derivative at theta.

    For the 2PL these are sum a(u - P) and -sum a^2 P(1 - P).
    """
    score = 0.0
    derivative = 0.0
    for item, correct in responses:
        p = min(max(prob_correct(theta, item), EPS), 1.0 - EPS)
        a, c = item.a, item.c
        u = 1.0 if correct else 0.0
        score += a * (p - c) / (p * (1.0 - c)) * (u - p)
        derivative -= (a ** 2) * ((p - c) ** 2) * (1.0 - p) / (((1.0 - c) ** 2) * p)
    return score, derivative


def estimate_theta_mle(
    responses: Sequence[tuple[ItemParameter, bool]],
    config: EstimationConfig | None = None,
) -> AbilityEstimate | None:
    """
    Newton-Raphson maximum likelihood estimate.

    Args:
        responses: Ordered (ItemParameter, correct) pairs for one dimension
        config: Iteration cap, tolerance and SE inflation settings

    Returns:
        AbilityEstimate, or None when the history is degenerate
    """
    config = config or default_estimation_config()
    if is_degenerate(responses):
        return None

    theta = 0.0
    iterations = 0
    converged = False

    for iteration in range(1, config.max_iterations + 1):
        score, derivative = _score_and_derivative(theta, responses)
        if abs(derivative) < DERIVATIVE_EPS or not math.isfinite(derivative):
            logger.debug(f"MLE derivative vanished at theta={theta:.4f}, stopping")
            break

        candidate = theta - score / derivative
        if not math.isfinite(candidate):
            break
        candidate = clamp_theta(candidate)
        step = abs(candidate - theta)
        theta = candidate
        iterations = iteration

        if step < config.tolerance:
            converged = True
            break

    _, derivative = _score_and_derivative(theta, responses)
    information = -derivative
    if information > 0 and math.isfinite(information):
        se = 1.0 / math.sqrt(information)
    else:
        se = config.prior_sd
        converged = False

    if not converged:
        logger.debug(
            f"MLE did not converge in {iterations} iterations; "
            f"returning theta={theta:.4f} flagged"
        )
        se *= config.nonconvergence_se_inflation

    return AbilityEstimate(
        theta=theta,
        se=se,
        method=EstimationMethod.MLE,
        flagged=not converged,
        iterations=iterations,
        response_count=len(responses),
    )


# =============================================================================
# EXPECTED A POSTERIORI
# =============================================================================


def probability_grid(nodes: np.ndarray, item: ItemParameter) -> np.ndarray:
    """P(correct) for `item` at every quadrature node."""
    z = np.clip(item.a * (nodes - item.b), -500.0, 500.0)
    return item.c + (1.0 - item.c) / (1.0 + np.exp(-z))


def posterior_weights(
    responses: Sequence[tuple[ItemParameter, bool]],
    rule: QuadratureRule,
) -> np.ndarray | None:
    """
    Normalised posterior over the rule's nodes.

    Returns None if the weighted likelihood vanishes or is not finite.
    """
    log_likelihood = np.zeros(len(rule.nodes))
    for item, correct in responses:
        p = np.clip(probability_grid(rule.nodes, item), EPS, 1.0 - EPS)
        log_likelihood += np.log(p) if correct else np.log1p(-p)

    # Rescaling by the maximum keeps the product representable
    log_likelihood -= log_likelihood.max()
    weighted = np.exp(log_likelihood) * rule.weights
    total = float(weighted.sum())
    if not math.isfinite(total) or total <= 0.0:
        return None
    return weighted / total


def estimate_theta_eap(
    responses: Sequence[tuple[ItemParameter, bool]],
    config: EstimationConfig | None = None,
    rule: QuadratureRule | None = None,
) -> AbilityEstimate:
    """
    Bayesian expected a posteriori estimate.

    The estimate is the posterior mean over the quadrature nodes and the
    standard error is the posterior standard deviation. Empty histories and
    numerically empty posteriors return the prior unchanged.
    """
    config = config or default_estimation_config()
    if not responses:
        return AbilityEstimate.from_prior(config)

    rule = rule or config.quadrature()
    posterior = posterior_weights(responses, rule)
    if posterior is None:
        logger.debug("EAP posterior underflowed; returning prior mean")
        return AbilityEstimate(
            theta=clamp_theta(config.prior_mean),
            se=config.prior_sd,
            method=EstimationMethod.PRIOR,
            response_count=len(responses),
        )

    theta = float(np.dot(rule.nodes, posterior))
    variance = float(np.dot((rule.nodes - theta) ** 2, posterior))
    return AbilityEstimate(
        theta=clamp_theta(theta),
        se=math.sqrt(max(variance, 0.0)),
        method=EstimationMethod.EAP,
        response_count=len(responses),
    )


def estimate_theta(
    responses: Sequence[tuple[ItemParameter, bool]],
    config: EstimationConfig | None = None,
    prefer: EstimationMethod = EstimationMethod.MLE,
) -> AbilityEstimate:
    """
    Estimate theta with the most appropriate method.

    MLE is used only when preferred, the history is at least
    `min_mle_responses` long and has variance in correctness. Otherwise,
    or when MLE fails, EAP is used.
    """
    config = config or default_estimation_config()
    if (
        prefer is EstimationMethod.MLE
        and len(responses) >= config.min_mle_responses
        and not is_degenerate(responses)
    ):
        estimate = estimate_theta_mle(responses, config)
        if estimate is not None:
            return estimate
    return estimate_theta_eap(responses, config)
