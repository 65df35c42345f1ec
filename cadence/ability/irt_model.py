"""
Item Response Theory probability model.

Logistic IRT with scaling constant 1:

    P(theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))

Where:
    a = discrimination (> 0)
    b = difficulty, on the same logit scale as theta ([-4, 4])
    c = guessing floor ([0, 0.35)); 0 gives the 2PL, a = 1 and c = 0 the 1PL

These primitives are shared by point estimation, item selection and batch
calibration.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from cadence.core.dimensions import SkillDimension
from cadence.errors import InvalidItemParameterError

THETA_MIN, THETA_MAX = -4.0, 4.0
GUESSING_MAX = 0.35
EPS = 1e-9


@dataclass(frozen=True)
class ItemParameter:
    """Calibrated (a, b, c) triple for one learning item."""

    item_id: str
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    dimension: SkillDimension = SkillDimension.LEXICAL

    def __post_init__(self):
        if not math.isfinite(self.a) or self.a <= 0:
            raise InvalidItemParameterError(
                f"Item {self.item_id}: discrimination must be > 0, got {self.a}"
            )
        if not math.isfinite(self.b) or not THETA_MIN <= self.b <= THETA_MAX:
            raise InvalidItemParameterError(
                f"Item {self.item_id}: difficulty must be in [-4, 4], got {self.b}"
            )
        if not math.isfinite(self.c) or not 0.0 <= self.c < GUESSING_MAX:
            raise InvalidItemParameterError(
                f"Item {self.item_id}: guessing must be in [0, 0.35), got {self.c}"
            )


def clamp_theta(theta: float) -> float:
    return max(THETA_MIN, min(THETA_MAX, theta))


def sigmoid_stable(x: float) -> float:
    """Sigmoid that never overflows exp()."""
    if x >= 0:
        z = math.exp(-x)
        return 1.0 / (1.0 + z)
    z = math.exp(x)
    return z / (1.0 + z)


def probability_3pl(theta: float, a: float, b: float, c: float) -> float:
    return c + (1.0 - c) * sigmoid_stable(a * (theta - b))


def prob_correct(theta: float, item: ItemParameter) -> float:
    """Probability of a correct response to `item` at ability `theta`."""
    return probability_3pl(theta, item.a, item.b, item.c)


def fisher_information(theta: float, item: ItemParameter) -> float:
    """
    Fisher information of an item at theta.

    I(theta) = a^2 * (P - c)^2 * (1 - P) / ((1 - c)^2 * P)

    which is a^2 * P * (1 - P) for the 2PL.
    """
    p = prob_correct(theta, item)
    if p <= EPS or p >= 1.0 - EPS:
        return 0.0
    c = item.c
    return (item.a ** 2) * ((p - c) ** 2) * (1.0 - p) / (((1.0 - c) ** 2) * p)


def bernoulli_kl(p, q):
    """KL divergence between Bernoulli(p) and Bernoulli(q), elementwise over arrays."""
    p = np.clip(p, EPS, 1.0 - EPS)
    q = np.clip(q, EPS, 1.0 - EPS)
    return p * np.log(p / q) + (1.0 - p) * np.log((1.0 - p) / (1.0 - q))
