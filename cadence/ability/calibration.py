"""
Batch item calibration by alternating estimation (EM-style).

Given a learners x items response matrix (1 = correct, 0 = incorrect,
NaN = not administered), alternate:

    E-step: EAP ability per learner with item parameters held fixed
    M-step: gradient ascent on each item's log-likelihood over (a, b[, c])
            with learner abilities held fixed, projected back into range

until the largest parameter change drops below tolerance or the iteration
cap is hit. This runs offline; the per-turn loop only reads its output.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
from loguru import logger

from cadence.ability.estimation import EstimationConfig, default_estimation_config
from cadence.ability.irt_model import EPS, GUESSING_MAX, THETA_MAX, THETA_MIN, ItemParameter

A_MIN, A_MAX = 0.2, 4.0
C_MAX = GUESSING_MAX - 0.01


@dataclass(frozen=True)
class CalibrationConfig:
    """Iteration and step settings for EM calibration."""

    max_iterations: int = 100
    tolerance: float = 1e-3
    learning_rate: float = 0.05
    gradient_steps: int = 25
    three_pl: bool = False


@dataclass
class CalibrationResult:
    """Recalibrated items plus the learner abilities they were fitted against."""

    items: list[ItemParameter]
    abilities: np.ndarray
    iterations: int
    converged: bool
    log_likelihood: float
    history: list[float] = field(default_factory=list)


def _probabilities(theta: np.ndarray, a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """P[l, j] for abilities theta[l] and item parameters (a[j], b[j], c[j])."""
    z = np.clip(a[None, :] * (theta[:, None] - b[None, :]), -500.0, 500.0)
    sig = 1.0 / (1.0 + np.exp(-z))
    return c[None, :] + (1.0 - c[None, :]) * sig


def _e_step(
    observed: np.ndarray,
    mask: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
    config: EstimationConfig,
) -> np.ndarray:
    """EAP theta for every learner (vectorised over the quadrature grid)."""
    rule = config.quadrature()
    p = np.clip(_probabilities(rule.nodes, a, b, c), EPS, 1.0 - EPS)  # nodes x items
    log_lik = observed @ np.log(p).T + (mask - observed) @ np.log1p(-p).T  # learners x nodes
    log_post = log_lik + np.log(rule.weights)[None, :]
    log_post -= log_post.max(axis=1, keepdims=True)
    post = np.exp(log_post)
    post /= post.sum(axis=1, keepdims=True)
    return np.clip(post @ rule.nodes, THETA_MIN, THETA_MAX)


def _log_likelihood(
    observed: np.ndarray,
    mask: np.ndarray,
    theta: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
) -> float:
    p = np.clip(_probabilities(theta, a, b, c), EPS, 1.0 - EPS)
    ll = observed * np.log(p) + (mask - observed) * np.log1p(-p)
    return float(ll.sum())


def _m_step(
    observed: np.ndarray,
    mask: np.ndarray,
    theta: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
    config: CalibrationConfig,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Projected gradient ascent on every item's likelihood."""
    a, b, c = a.copy(), b.copy(), c.copy()
    counts = np.maximum(mask.sum(axis=0), 1.0)
    diff = theta[:, None] - b[None, :]

    for _ in range(config.gradient_steps):
        diff = theta[:, None] - b[None, :]
        z = np.clip(a[None, :] * diff, -500.0, 500.0)
        sig = 1.0 / (1.0 + np.exp(-z))
        p = np.clip(c[None, :] + (1.0 - c[None, :]) * sig, EPS, 1.0 - EPS)
        # d loglik / dP, zeroed where nothing was observed
        residual = mask * (observed - p) / (p * (1.0 - p))
        dsig = sig * (1.0 - sig)

        grad_a = (residual * (1.0 - c[None, :]) * dsig * diff).sum(axis=0) / counts
        grad_b = (residual * (1.0 - c[None, :]) * dsig * -a[None, :]).sum(axis=0) / counts
        a = np.clip(a + config.learning_rate * grad_a, A_MIN, A_MAX)
        b = np.clip(b + config.learning_rate * grad_b, THETA_MIN, THETA_MAX)

        if config.three_pl:
            grad_c = (residual * (1.0 - sig)).sum(axis=0) / counts
            c = np.clip(c + config.learning_rate * grad_c, 0.0, C_MAX)

    return a, b, c


def calibrate_items(
    responses: np.ndarray | Sequence[Sequence[float | None]],
    items: Sequence[ItemParameter],
    config: CalibrationConfig | None = None,
    estimation: EstimationConfig | None = None,
) -> CalibrationResult:
    """
    Recalibrate item parameters from a response matrix.

    Args:
        responses: learners x items matrix of 1/0, with None/NaN for gaps
        items: Starting parameters, one per matrix column (column order)
        config: EM settings
        estimation: Prior and quadrature settings used in the E-step

    Returns:
        CalibrationResult with new ItemParameters in the same order
    """
    if config is None:
        from config import get_settings

        config = get_settings().get_calibration_config()
    estimation = estimation or default_estimation_config()

    matrix = np.array(
        [[np.nan if v is None else float(v) for v in row] for row in responses], dtype=float
    ) if not isinstance(responses, np.ndarray) else responses.astype(float)

    if matrix.ndim != 2 or matrix.shape[1] != len(items):
        raise ValueError(
            f"Response matrix has shape {matrix.shape}, expected (learners, {len(items)})"
        )

    mask = (~np.isnan(matrix)).astype(float)
    observed = np.nan_to_num(matrix, nan=0.0)

    a = np.array([item.a for item in items], dtype=float)
    b = np.array([item.b for item in items], dtype=float)
    c = np.array([item.c for item in items], dtype=float)
    if not config.three_pl:
        c = np.zeros_like(c)

    unseen = [item.item_id for item, n in zip(items, mask.sum(axis=0)) if n == 0]
    if unseen:
        logger.warning(f"{len(unseen)} items have no responses and keep their parameters")

    theta = np.zeros(matrix.shape[0])
    history: list[float] = []
    converged = False
    iteration = 0

    for iteration in range(1, config.max_iterations + 1):
        theta = _e_step(observed, mask, a, b, c, estimation)
        new_a, new_b, new_c = _m_step(observed, mask, theta, a, b, c, config)

        change = float(
            max(np.abs(new_a - a).max(), np.abs(new_b - b).max(), np.abs(new_c - c).max())
        ) if len(items) else 0.0
        a, b, c = new_a, new_b, new_c
        history.append(_log_likelihood(observed, mask, theta, a, b, c))

        if change < config.tolerance:
            converged = True
            break

    if not converged:
        logger.warning(f"Calibration stopped at the iteration cap ({config.max_iterations})")
    logger.info(f"Calibrated {len(items)} items over {matrix.shape[0]} learners in {iteration} iterations")

    calibrated = [
        ItemParameter(
            item_id=item.item_id,
            a=float(a[j]),
            b=float(b[j]),
            c=float(c[j]),
            dimension=item.dimension,
        )
        for j, item in enumerate(items)
    ]
    return CalibrationResult(
        items=calibrated,
        abilities=theta,
        iterations=iteration,
        converged=converged,
        log_likelihood=history[-1] if history else 0.0,
        history=history,
    )
