"""
Quadrature rules for integrating over the ability prior.

Two rules are available:
- uniform: evenly spaced nodes across prior_mean +/- span_sd * prior_sd,
  weighted by the Gaussian prior density
- gauss_hermite: probabilists' Gauss-Hermite nodes scaled to the prior, which
  integrates polynomial-times-normal integrands exactly with fewer points

Both return prior weights normalised to sum to 1, so a posterior is just
`weights * likelihood` renormalised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.polynomial.hermite_e import hermegauss

from cadence.ability.irt_model import THETA_MAX, THETA_MIN

QuadratureKind = Literal["uniform", "gauss_hermite"]


@dataclass(frozen=True)
class QuadratureRule:
    """Nodes on the theta scale and their normalised prior weights."""

    nodes: np.ndarray
    weights: np.ndarray
    kind: str

    def __len__(self) -> int:
        return len(self.nodes)


def normal_pdf(x: np.ndarray, mean: float, sd: float) -> np.ndarray:
    return np.exp(-0.5 * ((x - mean) / sd) ** 2) / (sd * np.sqrt(2.0 * np.pi))


def uniform_rule(
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
    points: int = 40,
    span_sd: float = 2.0,
) -> QuadratureRule:
    """Evenly spaced grid across the prior, clipped to the theta range."""
    low = max(THETA_MIN, prior_mean - span_sd * prior_sd)
    high = min(THETA_MAX, prior_mean + span_sd * prior_sd)
    nodes = np.linspace(low, high, points)
    density = normal_pdf(nodes, prior_mean, prior_sd)
    return QuadratureRule(nodes=nodes, weights=density / density.sum(), kind="uniform")


def gauss_hermite_rule(
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
    points: int = 40,
) -> QuadratureRule:
    """Gauss-Hermite nodes for a N(prior_mean, prior_sd^2) prior."""
    x, w = hermegauss(points)
    nodes = np.clip(prior_mean + prior_sd * x, THETA_MIN, THETA_MAX)
    return QuadratureRule(nodes=nodes, weights=w / w.sum(), kind="gauss_hermite")


def build_rule(
    kind: QuadratureKind,
    prior_mean: float,
    prior_sd: float,
    points: int,
    span_sd: float,
) -> QuadratureRule:
    if kind == "gauss_hermite":
        return gauss_hermite_rule(prior_mean, prior_sd, points)
    return uniform_rule(prior_mean, prior_sd, points, span_sd)
