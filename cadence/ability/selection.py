"""
Adaptive item selection.

Picks the not-yet-administered item that is most informative about the
learner's ability:

- FISHER: maximise a^2 P (1 - P) (3PL-generalised) at the point estimate.
  Fast, but ignores how uncertain the point estimate is.
- KL: maximise the posterior-weighted Kullback-Leibler divergence between the
  item's response distribution at the point estimate and at each quadrature
  node. Preferred while the standard error is large.
- AUTO: KL while se > kl_se_threshold, Fisher afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum

import numpy as np
from loguru import logger

from cadence.ability.estimation import (
    AbilityEstimate,
    EstimationConfig,
    default_estimation_config,
    estimate_theta,
    posterior_weights,
    probability_grid,
)
from cadence.ability.irt_model import (
    ItemParameter,
    bernoulli_kl,
    fisher_information,
    prob_correct,
)


class ItemSelectionStrategy(str, Enum):
    FISHER = "fisher"
    KL = "kl"
    AUTO = "auto"


def kl_information(
    item: ItemParameter,
    theta_hat: float,
    nodes: np.ndarray,
    posterior: np.ndarray,
) -> float:
    """Posterior-weighted KL divergence of `item` around `theta_hat`."""
    divergence = bernoulli_kl(prob_correct(theta_hat, item), probability_grid(nodes, item))
    return float(np.dot(divergence, posterior))


def _candidates(
    pool: Iterable[ItemParameter], administered: set[str]
) -> list[ItemParameter]:
    return [item for item in pool if item.item_id not in administered]


def select_by_fisher(
    theta: float,
    pool: Iterable[ItemParameter],
    administered: Iterable[str] = (),
) -> ItemParameter | None:
    """Item with maximum Fisher information at theta (first wins on ties)."""
    best_item: ItemParameter | None = None
    best_info = -1.0
    for item in _candidates(pool, set(administered)):
        info = fisher_information(theta, item)
        if info > best_info:
            best_info = info
            best_item = item
    return best_item


def select_by_kl(
    responses: Sequence[tuple[ItemParameter, bool]],
    pool: Iterable[ItemParameter],
    administered: Iterable[str] = (),
    config: EstimationConfig | None = None,
    theta_hat: float | None = None,
) -> ItemParameter | None:
    """Item with maximum posterior-weighted KL information."""
    config = config or default_estimation_config()
    rule = config.quadrature()
    posterior = posterior_weights(responses, rule)
    if posterior is None:
        posterior = rule.weights
    if theta_hat is None:
        theta_hat = estimate_theta(responses, config).theta

    best_item: ItemParameter | None = None
    best_info = -1.0
    for item in _candidates(pool, set(administered)):
        info = kl_information(item, theta_hat, rule.nodes, posterior)
        if info > best_info:
            best_info = info
            best_item = item
    return best_item


def select_next_item(
    estimate: AbilityEstimate,
    responses: Sequence[tuple[ItemParameter, bool]],
    pool: Iterable[ItemParameter],
    administered: Iterable[str] = (),
    config: EstimationConfig | None = None,
) -> ItemParameter | None:
    """
    Choose the next item to administer with the configured strategy.

    Args:
        estimate: Current ability estimate for the dimension being tested
        responses: Responses so far (used to form the KL posterior)
        pool: Calibrated candidate items
        administered: IDs of items already given
        config: Estimation config carrying the strategy choice

    Returns:
        The selected item, or None when every item has been administered
    """
    config = config or default_estimation_config()
    strategy = ItemSelectionStrategy(config.selection_strategy)
    if strategy is ItemSelectionStrategy.AUTO:
        strategy = (
            ItemSelectionStrategy.KL
            if estimate.se > config.kl_se_threshold
            else ItemSelectionStrategy.FISHER
        )

    pool = list(pool)
    if strategy is ItemSelectionStrategy.KL:
        chosen = select_by_kl(responses, pool, administered, config, theta_hat=estimate.theta)
    else:
        chosen = select_by_fisher(estimate.theta, pool, administered)

    if chosen is None:
        logger.debug("Item pool exhausted; nothing left to administer")
    else:
        logger.debug(f"Selected item {chosen.item_id} via {strategy.value}")
    return chosen
