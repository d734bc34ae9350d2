"""
conjugate_gradient.py

Nonlinear conjugate-gradient minimizer.

Idea:
    p_0 = -g_0
    p_k = -g_k + beta_k * p_{k-1}

    Fletcher-Reeves:  beta_k = (g_k' g_k) / (g_{k-1}' g_{k-1})
    Polak-Ribiere:    beta_k = max(0, g_k' (g_k - g_{k-1}) / (g_{k-1}' g_{k-1}))

    x_{k+1} = x_k + alpha_k p_k, alpha_k from a line search.

The direction is reset to steepest descent every N iterations (N = number
of variables) and whenever p_k is not a descent direction.
"""

from __future__ import annotations

import logging
from typing import Optional

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

BETA_RULE_FLETCHER_REEVES = "fletcher_reeves"
BETA_RULE_POLAK_RIBIERE = "polak_ribiere"


def fletcher_reeves_beta(gradient: np.ndarray, gradient_prev: np.ndarray) -> float:
    den = float(np.dot(gradient_prev, gradient_prev))
    if den <= 1e-20:
        return 0.0
    return float(np.dot(gradient, gradient)) / den


def polak_ribiere_beta(gradient: np.ndarray, gradient_prev: np.ndarray) -> float:
    den = float(np.dot(gradient_prev, gradient_prev))
    if den <= 1e-20:
        return 0.0
    beta = float(np.dot(gradient, gradient - gradient_prev)) / den
    return max(0.0, beta)


BETA_RULES = {
    BETA_RULE_FLETCHER_REEVES: fletcher_reeves_beta,
    BETA_RULE_POLAK_RIBIERE: polak_ribiere_beta,
}


class FunctionMinimizerConjugateGradient(FunctionMinimizer):
    """
    Conjugate gradients for smooth nonlinear functions.

    Parameters
    ----------
    beta_rule : str
        BETA_RULE_POLAK_RIBIERE (default) or BETA_RULE_FLETCHER_REEVES.
    line_minimizer : LineMinimizer, optional
        Defaults to LineMinimizerDerivativeBased().
    """

    requires_gradient = True

    def __init__(
        self,
        beta_rule: str = BETA_RULE_POLAK_RIBIERE,
        initial_guess=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        line_minimizer=None,
        name: Optional[str] = None,
    ) -> None:
        if beta_rule not in BETA_RULES:
            raise ValueError(
                f"Unknown beta rule {beta_rule!r}. Available: {', '.join(BETA_RULES)}"
            )
        self.beta_rule = beta_rule
        super().__init__(
            initial_guess=initial_guess,
            tolerance=tolerance,
            max_iterations=max_iterations,
            line_minimizer=line_minimizer if line_minimizer is not None else LineMinimizerDerivativeBased(),
            name=name or f"ConjugateGradient[{beta_rule}]",
        )
        self.gradient: Optional[np.ndarray] = None
        self.line_function: Optional[DirectionalFunction] = None
        self.restarts: int = 0

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False

        x0 = self.initial_guess.copy()
        self.result = MinimizationResult(x=x0, f=self.objective.evaluate(x0))
        self.gradient = self.objective.differentiate(x0)
        self.line_function = DirectionalFunction(self.objective, x0, -self.gradient)
        self.restarts = 0
        return True

    def step(self) -> bool:
        x_old = self.result.x
        f_old = self.result.f
        direction = self.line_function.direction

        self.result = self.line_minimizer.minimize_along_direction(
            self.line_function, f_old, self.gradient
        )
        x_new = self.result.x
        f_new = self.result.f

        gradient_prev = self.gradient
        self.gradient = self.line_function.gradient_at(x_new)

        if minimization_converged(x_new, f_old, f_new, x_new - x_old, self.tolerance, self.gradient):
            return False

        if self.iteration % x_new.size == 0:
            beta = 0.0
        else:
            beta = BETA_RULES[self.beta_rule](self.gradient, gradient_prev)

        new_direction = -self.gradient + beta * direction
        if beta != 0.0 and float(np.dot(new_direction, self.gradient)) >= 0.0:
            new_direction = -self.gradient
            beta = 0.0
        if beta == 0.0:
            self.restarts += 1
            logger.debug("iteration %d: restart with steepest descent", self.iteration)

        self.line_function.set_line(x_new, new_direction)
        return True

    def cleanup_algorithm(self) -> None:
        self.line_function = None


__all__ = [
    "BETA_RULE_FLETCHER_REEVES",
    "BETA_RULE_POLAK_RIBIERE",
    "fletcher_reeves_beta",
    "polak_ribiere_beta",
    "FunctionMinimizerConjugateGradient",
]
