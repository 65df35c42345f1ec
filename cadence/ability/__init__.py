"""
Ability Module - IRT ability estimation, item selection and calibration.

Components:
- irt_model: logistic 1PL/2PL/3PL probabilities and Fisher information
- quadrature: uniform and Gauss-Hermite grids over the ability prior
- estimation: Newton-Raphson MLE and quadrature EAP point estimates
- selection: Fisher / KL adaptive item selection
- calibration: offline EM recalibration of item parameters
- profile: per-dimension ability profile with session-mode weighted updates
"""

from cadence.ability.calibration import CalibrationConfig, CalibrationResult, calibrate_items
from cadence.ability.estimation import (
    AbilityEstimate,
    EstimationConfig,
    EstimationMethod,
    ItemResponse,
    estimate_theta,
    estimate_theta_eap,
    estimate_theta_mle,
)
from cadence.ability.irt_model import ItemParameter, fisher_information, prob_correct
from cadence.ability.profile import AbilityProfile
from cadence.ability.selection import ItemSelectionStrategy, select_next_item

__all__ = [
    "AbilityEstimate",
    "AbilityProfile",
    "CalibrationConfig",
    "CalibrationResult",
    "EstimationConfig",
    "EstimationMethod",
    "ItemParameter",
    "ItemResponse",
    "ItemSelectionStrategy",
    "calibrate_items",
    "estimate_theta",
    "estimate_theta_eap",
    "estimate_theta_mle",
    "fisher_information",
    "prob_correct",
    "select_next_item",
]
