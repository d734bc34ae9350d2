"""
quasi_newton.py

Quasi-Newton minimization with an explicit inverse-Hessian estimate.

Each outer iteration:
    1) direction p_k = -H_k g_k;
    2) line search along p_k -> x_{k+1};
    3) delta = x_{k+1} - x_k, gamma = g_{k+1} - g_k;
    4) H_{k+1} = update(H_k, delta, gamma) (BFGS or DFP);
    5) stop when f no longer changes (relative), the point no longer
       moves, or the scaled gradient vanishes.

The update formula is a strategy: any callable
    update(H, delta, gamma, tolerance) -> new H, or None to skip
can be passed in place of the built-in "bfgs" / "dfp".

H starts at 0.5 * I and is never reset automatically. An update whose
denominators are near zero (relative to sqrt(tolerance |delta|^2 |gamma|^2))
is skipped so H stays positive definite.
"""

from __future__ import annotations

import logging
import math
from functools import partial
from typing import Callable, Optional

import numpy as np

from ..core.functions import DirectionalFunction
from .line_search import LineMinimizerDerivativeBased
from .minimizer_base import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    FunctionMinimizer,
    MinimizationResult,
    minimization_converged,
)

logger = logging.getLogger(__name__)

HESSIAN_UPDATE_BFGS = "bfgs"
HESSIAN_UPDATE_DFP = "dfp"

INITIAL_HESSIAN_SCALE = 0.5

HessianUpdate = Callable[[np.ndarray, np.ndarray, np.ndarray, float], Optional[np.ndarray]]


# ---------------------------------------------------------------------------
# Update formulas
# ---------------------------------------------------------------------------

def _update_terms(hessian_inverse, delta, gamma, tolerance):
    """Shared quantities; None when the update must be skipped."""
    h_gamma = hessian_inverse @ gamma
    delta_gamma = float(delta @ gamma)
    gamma_h_gamma = float(gamma @ h_gamma)

    threshold = math.sqrt(tolerance * float(delta @ delta) * float(gamma @ gamma))
    if abs(delta_gamma) <= threshold or abs(gamma_h_gamma) <= threshold:
        return None
    return h_gamma, delta_gamma, gamma_h_gamma


def bfgs_update(
    hessian_inverse: np.ndarray,
    delta: np.ndarray,
    gamma: np.ndarray,
    tolerance: float,
) -> Optional[np.ndarray]:
    """
    BFGS inverse-Hessian update:

        H + (1 + g'Hg / d'g) dd' / d'g - (Hg d' + d g'H) / d'g

    Returns the new matrix, or None when the update is skipped.
    """
    terms = _update_terms(hessian_inverse, delta, gamma, tolerance)
    if terms is None:
        return None
    h_gamma, delta_gamma, gamma_h_gamma = terms

    updated = hessian_inverse + (1.0 + gamma_h_gamma / delta_gamma) * np.outer(delta, delta) / delta_gamma
    updated -= (np.outer(h_gamma, delta) + np.outer(delta, h_gamma)) / delta_gamma
    return updated


def dfp_update(
    hessian_inverse: np.ndarray,
    delta: np.ndarray,
    gamma: np.ndarray,
    tolerance: float,
) -> Optional[np.ndarray]:
    """
    DFP inverse-Hessian update:

        H + dd' / d'g - Hg g'H / g'Hg

    Returns the new matrix, or None when the update is skipped.
    """
    terms = _update_terms(hessian_inverse, delta, gamma, tolerance)
    if terms is None:
        return None
    h_gamma, delta_gamma, gamma_h_gamma = terms

    return (
        hessian_inverse
        + np.outer(delta, delta) / delta_gamma
        - np.outer(h_gamma, h_gamma) / gamma_h_gamma
    )


HESSIAN_UPDATES = {
    HESSIAN_UPDATE_BFGS: bfgs_update,
    HESSIAN_UPDATE_DFP: dfp_update,
}


def resolve_hessian_update(update) -> HessianUpdate:
    if callable(update):
        return update
    try:
        return HESSIAN_UPDATES[update]
    except KeyError as exc:
        raise ValueError(
            f"Unknown Hessian update {update!r}. Available: {', '.join(HESSIAN_UPDATES)}"
        ) from exc


# ---------------------------------------------------------------------------
# Minimizer
# ---------------------------------------------------------------------------

class FunctionMinimizerQuasiNewton(FunctionMinimizer):
    """
    Quasi-Newton minimizer (BFGS by default).

    Parameters
    ----------
    update : str or callable
        HESSIAN_UPDATE_BFGS, HESSIAN_UPDATE_DFP, or a custom update function.
    line_minimizer : LineMinimizer, optional
        Defaults to LineMinimizerDerivativeBased().
    """

    requires_gradient = True

    def __init__(
        self,
        update=HESSIAN_UPDATE_BFGS,
        initial_guess=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        line_minimizer=None,
        name: Optional[str] = None,
    ) -> None:
        self.update = resolve_hessian_update(update)
        if name is None and isinstance(update, str):
            name = f"QuasiNewton[{update}]"
        super().__init__(
            initial_guess=initial_guess,
            tolerance=tolerance,
            max_iterations=max_iterations,
            line_minimizer=line_minimizer if line_minimizer is not None else LineMinimizerDerivativeBased(),
            name=name,
        )
        self.hessian_inverse: Optional[np.ndarray] = None
        self.gradient: Optional[np.ndarray] = None
        self.line_function: Optional[DirectionalFunction] = None
        self.skipped_updates: int = 0

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False

        x0 = self.initial_guess.copy()
        f0 = self.objective.evaluate(x0)
        self.gradient = self.objective.differentiate(x0)
        self.result = MinimizationResult(x=x0, f=f0)
        self.line_function = DirectionalFunction(self.objective, x0, -self.gradient)

        n = x0.size
        self.hessian_inverse = INITIAL_HESSIAN_SCALE * np.eye(n)
        self.skipped_updates = 0
        return True

    def step(self) -> bool:
        x_old = self.result.x
        f_old = self.result.f

        self.result = self.line_minimizer.minimize_along_direction(
            self.line_function, f_old, self.gradient
        )
        x_new = self.result.x
        f_new = self.result.f

        gradient_old = self.gradient
        self.gradient = self.line_function.gradient_at(x_new)

        gamma = self.gradient - gradient_old
        delta = x_new - x_old

        if minimization_converged(x_new, f_old, f_new, delta, self.tolerance, self.gradient):
            return False

        updated = self.update(self.hessian_inverse, delta, gamma, self.tolerance)
        if updated is None:
            self.skipped_updates += 1
            logger.debug("iteration %d: near-singular curvature, Hessian update skipped", self.iteration)
        else:
            self.hessian_inverse = updated

        self.line_function.set_line(x_new, -(self.hessian_inverse @ self.gradient))
        return True

    def cleanup_algorithm(self) -> None:
        self.line_function = None


FunctionMinimizerBFGS = partial(FunctionMinimizerQuasiNewton, update=HESSIAN_UPDATE_BFGS)
FunctionMinimizerDFP = partial(FunctionMinimizerQuasiNewton, update=HESSIAN_UPDATE_DFP)


__all__ = [
    "HESSIAN_UPDATE_BFGS",
    "HESSIAN_UPDATE_DFP",
    "INITIAL_HESSIAN_SCALE",
    "bfgs_update",
    "dfp_update",
    "resolve_hessian_update",
    "FunctionMinimizerQuasiNewton",
    "FunctionMinimizerBFGS",
    "FunctionMinimizerDFP",
]
