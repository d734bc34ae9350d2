"""
nelder_mead.py

Nelder-Mead downhill simplex method (no gradients, no line searches).

The method keeps a simplex of N + 1 vertices in N-dimensional space,
always sorted by f. One step():
    1. Reflect the worst vertex through the centroid of the others.
    2. If the reflection beats the best vertex, try an expansion.
    3. If it is no better than the second-worst, contract (outside when
       it beats the worst vertex, inside otherwise).
    4. If the contraction fails too, shrink every vertex towards the best.

Convergence (checked at the start of a step):
    2 |f_worst - f_best| <= tolerance (|f_worst| + |f_best| + TINY)
or the simplex has collapsed (relative vertex spread below
TOLERANCE_DELTA_X).
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..core.functions import ArrayLike
from .minimizer_base import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    TOLERANCE_DELTA_X,
    FunctionMinimizer,
    MinimizationResult,
    max_relative_change,
)

logger = logging.getLogger(__name__)

# Reflection, expansion, contraction and shrink coefficients
ALPHA = 1.0
GAMMA = 2.0
RHO = 0.5
SIGMA = 0.5

DEFAULT_INITIAL_SIMPLEX_SCALE = 0.05

TINY = 1e-10


def initial_simplex(x0: ArrayLike, scale: float = DEFAULT_INITIAL_SIMPLEX_SCALE) -> np.ndarray:
    """
    (N + 1, N) simplex around x0: vertex i + 1 scales x0[i] by (1 + scale),
    or sets it to scale when x0[i] is zero.
    """
    x0 = np.asarray(x0, dtype=float)
    n = x0.size
    simplex = np.tile(x0, (n + 1, 1))
    for i in range(n):
        if x0[i] != 0.0:
            simplex[i + 1, i] = (1.0 + scale) * x0[i]
        else:
            simplex[i + 1, i] = scale
    return simplex


def simplex_diameter(simplex: np.ndarray) -> float:
    """Largest distance from the first (best) vertex."""
    return float(np.max(np.linalg.norm(simplex - simplex[0], axis=1)))


class FunctionMinimizerNelderMead(FunctionMinimizer):
    """
    Downhill simplex minimizer.

    Parameters
    ----------
    alpha, gamma, rho, sigma : float
        Reflection, expansion, contraction and shrink coefficients.
    initial_simplex_scale : float
        Relative size of the starting simplex (see initial_simplex).
    """

    requires_gradient = False

    def __init__(
        self,
        initial_guess=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        alpha: float = ALPHA,
        gamma: float = GAMMA,
        rho: float = RHO,
        sigma: float = SIGMA,
        initial_simplex_scale: float = DEFAULT_INITIAL_SIMPLEX_SCALE,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(
            initial_guess=initial_guess,
            tolerance=tolerance,
            max_iterations=max_iterations,
            name=name or "Nelder-Mead",
        )
        if initial_simplex_scale == 0.0:
            raise ValueError("initial_simplex_scale must be non-zero")
        self.alpha = alpha
        self.gamma = gamma
        self.rho = rho
        self.sigma = sigma
        self.initial_simplex_scale = initial_simplex_scale

        self.simplex: Optional[np.ndarray] = None
        self.f_values: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sort(self) -> None:
        order = np.argsort(self.f_values, kind="stable")
        self.simplex = self.simplex[order]
        self.f_values = self.f_values[order]

    def _best(self, step_type: Optional[str] = None) -> MinimizationResult:
        meta = {"simplex_diameter": simplex_diameter(self.simplex)}
        if step_type is not None:
            meta["step_type"] = step_type
        return MinimizationResult(x=self.simplex[0].copy(), f=float(self.f_values[0]), meta=meta)

    def converged(self) -> bool:
        f_best = float(self.f_values[0])
        f_worst = float(self.f_values[-1])
        spread = 2.0 * abs(f_worst - f_best)
        if spread <= self.tolerance * (abs(f_worst) + abs(f_best) + TINY):
            return True
        return max_relative_change(self.simplex - self.simplex[0], self.simplex[0]) < TOLERANCE_DELTA_X

    # ------------------------------------------------------------------
    # AnytimeIterativeAlgorithm
    # ------------------------------------------------------------------

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False

        self.simplex = initial_simplex(self.initial_guess, self.initial_simplex_scale)
        self.f_values = np.array([self.objective.evaluate(v) for v in self.simplex])
        self._sort()
        self.result = self._best()
        return True

    def step(self) -> bool:
        if not self.keep_going or self.converged():
            return False

        f_best = float(self.f_values[0])
        f_second_worst = float(self.f_values[-2])
        f_worst = float(self.f_values[-1])
        x_worst = self.simplex[-1]
        centroid = np.mean(self.simplex[:-1], axis=0)

        x_reflect = centroid + self.alpha * (centroid - x_worst)
        f_reflect = self.objective.evaluate(x_reflect)

        if f_best <= f_reflect < f_second_worst:
            step_type = "reflection"
            self.simplex[-1], self.f_values[-1] = x_reflect, f_reflect

        elif f_reflect < f_best:
            x_expand = centroid + self.gamma * (x_reflect - centroid)
            f_expand = self.objective.evaluate(x_expand)
            if f_expand < f_reflect:
                step_type = "expansion"
                self.simplex[-1], self.f_values[-1] = x_expand, f_expand
            else:
                step_type = "reflection"
                self.simplex[-1], self.f_values[-1] = x_reflect, f_reflect

        else:
            if f_reflect < f_worst:
                x_contract = centroid + self.rho * (x_reflect - centroid)
            else:
                x_contract = centroid - self.rho * (centroid - x_worst)
            f_contract = self.objective.evaluate(x_contract)

            if f_contract < min(f_reflect, f_worst):
                step_type = "contraction"
                self.simplex[-1], self.f_values[-1] = x_contract, f_contract
            else:
                step_type = "shrink"
                x_best = self.simplex[0]
                for i in range(1, len(self.simplex)):
                    self.simplex[i] = x_best + self.sigma * (self.simplex[i] - x_best)
                    self.f_values[i] = self.objective.evaluate(self.simplex[i])

        self._sort()
        self.result = self._best(step_type)
        logger.debug("iteration %d: %s, f=%.6g", self.iteration, step_type, self.result.f)
        return True

    def cleanup_algorithm(self) -> None:
        pass


__all__ = [
    "ALPHA",
    "GAMMA",
    "RHO",
    "SIGMA",
    "DEFAULT_INITIAL_SIMPLEX_SCALE",
    "initial_simplex",
    "simplex_diameter",
    "FunctionMinimizerNelderMead",
]
