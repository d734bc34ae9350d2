"""
minimizer_base.py

Base class and result type for unconstrained minimizers of f: R^n -> R.

Idea:
    - FunctionMinimizer is an AnytimeIterativeAlgorithm: one step() is one
      outer iteration of the method; result always holds the best point
      found so far.
    - Concrete methods (quasi-Newton, Powell, Nelder-Mead, conjugate gradient) implement
      initialize_algorithm() and step().
    - minimize(func, grad, x0) wraps func into an Objective so the number
      of function / gradient evaluations ends up in result.meta.

Usage:
    minimizer = FunctionMinimizerBFGS(tolerance=1e-8)
    res = minimizer.minimize(f, grad, x0)    # MinimizationResult or None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from ..core.functions import ArrayLike, Objective, VectorFunction, as_objective
from ..core.iterative import AnytimeIterativeAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-5
DEFAULT_MAX_ITERATIONS = 1000

# Threshold on the largest relative coordinate change between iterations
TOLERANCE_DELTA_X = 1e-7


# ---------------------------------------------------------------------------
# Result of a minimization (also used by minimize_along_direction)
# ---------------------------------------------------------------------------

@dataclass
class MinimizationResult:
    """
    A point, its value and how it was reached.

    Attributes:
        x            - the point
        f            - f(x)
        step_length  - line-search scale factor that produced x (0.0 if none)
        meta         - method name, iterations, evaluation counts, stop reason
    """
    x: np.ndarray
    f: float
    step_length: float = 0.0
    meta: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Convergence tests
# ---------------------------------------------------------------------------

def function_value_converged(f_old: float, f_new: float, tolerance: float) -> bool:
    """2 |f_old - f_new| <= tolerance (|f_old| + |f_new|)"""
    return 2.0 * abs(f_old - f_new) <= tolerance * (abs(f_old) + abs(f_new))


def max_relative_change(delta: ArrayLike, x: ArrayLike) -> float:
    """max_i |delta_i| / max(|x_i|, 1)"""
    delta = np.asarray(delta, dtype=float)
    x = np.asarray(x, dtype=float)
    if delta.size == 0:
        return 0.0
    return float(np.max(np.abs(delta) / np.maximum(np.abs(x), 1.0)))


def gradient_converged(
    gradient: ArrayLike,
    x: ArrayLike,
    f: float,
    tolerance: float,
) -> bool:
    """max_i |g_i| max(|x_i|, 1) / max(|f|, 1) < tolerance"""
    g = np.asarray(gradient, dtype=float)
    x = np.asarray(x, dtype=float)
    if g.size == 0:
        return True
    scaled = np.abs(g) * np.maximum(np.abs(x), 1.0) / max(abs(f), 1.0)
    return bool(np.max(scaled) < tolerance)


def minimization_converged(
    x_new: ArrayLike,
    f_old: float,
    f_new: float,
    delta: ArrayLike,
    tolerance: float,
    gradient: Optional[ArrayLike] = None,
) -> bool:
    """Outer-loop convergence used by the gradient-based minimizers."""
    if function_value_converged(f_old, f_new, tolerance):
        return True
    if max_relative_change(delta, x_new) < TOLERANCE_DELTA_X:
        return True
    if gradient is not None and gradient_converged(gradient, x_new, f_new, tolerance):
        return True
    return False


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class FunctionMinimizer(AnytimeIterativeAlgorithm):
    """
    Base class for iterative minimizers of a scalar function of a vector.

    Flags that subclasses may override:
        requires_gradient - the method uses the gradient (falls back to
                            numerical_gradient when none is given);
                            methods without it never receive a gradient.
    """

    requires_gradient: bool = False

    def __init__(
        self,
        initial_guess: Optional[ArrayLike] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        line_minimizer=None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(max_iterations)
        self.initial_guess = None if initial_guess is None else np.asarray(initial_guess, dtype=float)
        self.tolerance = tolerance
        self.line_minimizer = line_minimizer
        self.name: str = name or self.__class__.__name__
        self.objective: Optional[Objective] = None

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        if value < 0.0:
            raise ValueError(f"tolerance must be non-negative, got: {value}")
        self._tolerance = float(value)

    def minimize(
        self,
        func,
        grad: Optional[VectorFunction] = None,
        initial_guess: Optional[ArrayLike] = None,
    ) -> Optional[MinimizationResult]:
        """
        Minimize func starting from initial_guess (or the one given to the
        constructor).

        Returns
        -------
        MinimizationResult, or None if there is no initial guess.
        """
        if initial_guess is not None:
            self.initial_guess = np.asarray(initial_guess, dtype=float)
        self.objective = as_objective(func, grad if self.requires_gradient else None)
        numerical = self.requires_gradient and not self.objective.has_gradient
        if numerical:
            logger.debug("%s: no gradient given, using central differences", self.name)
        self.objective.reset_counters()

        result = self.run()
        if result is None:
            return None

        result.meta.update(
            {
                "method": self.name,
                "iterations": self.iteration,
                "func_evals": self.objective.func_evals,
                "grad_evals": self.objective.grad_evals,
                "stopped_by": self.stopped_by,
                "numerical_gradient": numerical,
            }
        )
        return result

    def initialize_algorithm(self) -> bool:
        return self.initial_guess is not None and self.initial_guess.size > 0

    def cleanup_algorithm(self) -> None:
        pass


__all__ = [
    "DEFAULT_TOLERANCE",
    "DEFAULT_MAX_ITERATIONS",
    "TOLERANCE_DELTA_X",
    "MinimizationResult",
    "function_value_converged",
    "max_relative_change",
    "gradient_converged",
    "minimization_converged",
    "FunctionMinimizer",
]
