"""
matrix_solver.py

Iterative solvers for A x = b with a symmetric positive-definite A that is
only available as a matrix-vector product.

    ConjugateGradientMatrixSolver - conjugate gradients, exact in at most
                                    N iterations in exact arithmetic;
    SteepestDescentMatrixSolver   - steepest descent (reference method).

The operator may be a square numpy array, a callable v -> A v, or any
object with a ``matvec`` method.
"""

from __future__ import annotations

import logging
import warnings
from abc import abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

from ..core.functions import ArrayLike
from ..core.iterative import AnytimeIterativeAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-10
# Every RESIDUAL_RESET iterations the residual is recomputed as b - A x
RESIDUAL_RESET = 50

MatVec = Callable[[np.ndarray], np.ndarray]


@dataclass
class LinearSolution:
    """
    Attributes:
        x              - the solution estimate
        residual_norm  - ||b - A x|| of the returned estimate
        iterations     - iterations performed
        converged      - squared residual fell below the tolerance
    """
    x: np.ndarray
    residual_norm: float
    iterations: int
    converged: bool


def as_matvec(operator, dimension: int) -> MatVec:
    """Turn an array / callable / matvec object into v -> A v, checking sizes."""
    if isinstance(operator, np.ndarray):
        if operator.ndim != 2 or operator.shape != (dimension, dimension):
            raise ValueError(
                f"operator of shape {operator.shape} cannot solve for a vector of size {dimension}"
            )
        return lambda v: operator @ v
    if hasattr(operator, "matvec"):
        return operator.matvec
    if callable(operator):
        return operator
    raise TypeError(f"operator must be an array, a callable or have matvec(), got: {type(operator)}")


class IterativeMatrixSolver(AnytimeIterativeAlgorithm):
    """
    Base class: run iterate() until the value it returns (the squared
    residual norm) is below the tolerance.

    Subclasses implement initialize_solver() and iterate().
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: Optional[int] = None,
    ) -> None:
        super().__init__(max_iterations)
        if tolerance < 0.0:
            raise ValueError(f"tolerance must be non-negative, got: {tolerance}")
        self.tolerance = float(tolerance)

        self.matvec: Optional[MatVec] = None
        self.rhs: Optional[np.ndarray] = None
        self.x: Optional[np.ndarray] = None
        self.x0: Optional[np.ndarray] = None
        self.residual_squared: float = np.inf

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: Optional[int]) -> None:
        # None means 10 * dimension, fixed in solve()
        if value is None:
            self._max_iterations = 1
        else:
            AnytimeIterativeAlgorithm.max_iterations.fset(self, value)
        self._max_iterations_setting = None if value is None else self._max_iterations

    def solve(self, operator, b: ArrayLike, x0: Optional[ArrayLike] = None) -> LinearSolution:
        b = np.asarray(b, dtype=float)
        if b.ndim != 1:
            raise ValueError(f"right-hand side must be a vector, got shape {b.shape}")
        n = b.size
        if x0 is None:
            x0 = np.zeros(n)
        x0 = np.asarray(x0, dtype=float)
        if x0.shape != b.shape:
            raise ValueError(f"initial guess of size {x0.size} does not match right-hand side of size {n}")

        self.matvec = as_matvec(operator, n)
        self.rhs = b
        self.x0 = x0
        if self._max_iterations_setting is None:
            self._max_iterations = max(1, 10 * n)

        self.run()

        residual = self.rhs - self.matvec(self.x)
        solution = LinearSolution(
            x=self.x.copy(),
            residual_norm=float(np.linalg.norm(residual)),
            iterations=self.iteration,
            converged=self.residual_squared < self.tolerance,
        )
        self.result = solution
        return solution

    def initialize_algorithm(self) -> bool:
        self.x = self.x0.copy()
        self.initialize_solver()
        # Already solved (e.g. b = 0 or exact x0)
        return self.residual_squared >= self.tolerance

    def step(self) -> bool:
        self.residual_squared = self.iterate()
        return self.residual_squared >= self.tolerance

    def cleanup_algorithm(self) -> None:
        pass

    @abstractmethod
    def initialize_solver(self) -> None:
        """Set up residual_squared (and any method state) from x."""
        raise NotImplementedError

    @abstractmethod
    def iterate(self) -> float:
        """One iteration; returns the new squared residual norm."""
        raise NotImplementedError


class ConjugateGradientMatrixSolver(IterativeMatrixSolver):
    """
    Conjugate gradients:

        q = A d;  alpha = delta / (d' q);  x += alpha d
        r -= alpha q   (r = b - A x every RESIDUAL_RESET iterations)
        beta = delta_new / delta_old;  d = r + beta d
    """

    def initialize_solver(self) -> None:
        self.residual = self.rhs - self.matvec(self.x)
        self.direction = self.residual.copy()
        self.residual_squared = float(self.residual @ self.residual)

    def iterate(self) -> float:
        q = np.asarray(self.matvec(self.direction), dtype=float)
        curvature = float(self.direction @ q)
        if curvature == 0.0:
            logger.debug("iteration %d: d'Ad is zero, stopping", self.iteration)
            self.stop()
            return self.residual_squared
        if curvature < 0.0:
            warnings.warn(
                "ConjugateGradientMatrixSolver: negative curvature d'Ad < 0, "
                "the operator is not positive definite",
                RuntimeWarning,
                stacklevel=2,
            )

        alpha = self.residual_squared / curvature
        self.x = self.x + alpha * self.direction

        if self.iteration % RESIDUAL_RESET == 0:
            self.residual = self.rhs - self.matvec(self.x)
        else:
            self.residual = self.residual - alpha * q

        delta_old = self.residual_squared
        delta_new = float(self.residual @ self.residual)
        self.direction = self.residual + (delta_new / delta_old) * self.direction
        return delta_new


class SteepestDescentMatrixSolver(IterativeMatrixSolver):
    """
    Steepest descent: x += (r'r / r'Ar) r with r = b - A x.
    """

    def initialize_solver(self) -> None:
        self.residual = self.rhs - self.matvec(self.x)
        self.residual_squared = float(self.residual @ self.residual)

    def iterate(self) -> float:
        q = np.asarray(self.matvec(self.residual), dtype=float)
        curvature = float(self.residual @ q)
        if curvature == 0.0:
            self.stop()
            return self.residual_squared

        alpha = self.residual_squared / curvature
        self.x = self.x + alpha * self.residual

        if self.iteration % RESIDUAL_RESET == 0:
            self.residual = self.rhs - self.matvec(self.x)
        else:
            self.residual = self.residual - alpha * q
        return float(self.residual @ self.residual)


__all__ = [
    "DEFAULT_TOLERANCE",
    "RESIDUAL_RESET",
    "LinearSolution",
    "as_matvec",
    "IterativeMatrixSolver",
    "ConjugateGradientMatrixSolver",
    "SteepestDescentMatrixSolver",
]
