"""
least_squares.py

Nonlinear least-squares parameter estimation:

    minimize  C(theta) = 0.5 * ||r(theta)||^2,   gradient J' r,

where r is the residual vector and J = dr/dtheta its Jacobian.

    GaussNewtonEstimator       - direction -pinv(J) r;
    FletcherXuHybridEstimator  - Levenberg-Marquardt steps while the cost
                                 drops by at least REDUCTION_TEST of its
                                 value, BFGS steps (least-squares secant)
                                 otherwise.

Both clip the search direction to STEP_MAX before the line search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from ..core.functions import (
    ArrayLike,
    DirectionalFunction,
    MatrixFunction,
    Objective,
    numerical_jacobian,
)
from ..minimization.line_search import LineMinimizerDerivativeBased
from ..minimization.minimizer_base import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    FunctionMinimizer,
    MinimizationResult,
    minimization_converged,
)
from ..minimization.quasi_newton import INITIAL_HESSIAN_SCALE, bfgs_update

logger = logging.getLogger(__name__)

# Longest search direction handed to the line search
STEP_MAX = 100.0


def clip_direction(direction: np.ndarray, step_max: float = STEP_MAX) -> np.ndarray:
    norm = float(np.linalg.norm(direction))
    if norm > step_max:
        return direction * (step_max / norm)
    return direction


# ---------------------------------------------------------------------------
# Problem definition
# ---------------------------------------------------------------------------

@dataclass
class CostCache:
    """Residual, Jacobian, cost and gradient at one parameter vector."""
    parameters: np.ndarray
    residual: np.ndarray
    jacobian: np.ndarray
    cost: float
    gradient: np.ndarray


class LeastSquaresProblem:
    """
    Residual function r(theta) with an optional analytic Jacobian.

    Parameters
    ----------
    residual : callable
        theta -> vector of residuals.
    jacobian : callable, optional
        theta -> matrix dr_i/dtheta_j; numerical when None.
    """

    def __init__(
        self,
        residual: Callable[[np.ndarray], ArrayLike],
        jacobian: Optional[MatrixFunction] = None,
    ) -> None:
        self.residual = residual
        self.jacobian = jacobian
        self.objective = Objective(self.cost, self.gradient, name="sum_squared_error")

    @classmethod
    def from_model(
        cls,
        model: Callable[[np.ndarray, ArrayLike], float],
        inputs: Sequence[ArrayLike],
        targets: Sequence[float],
        model_gradient: Optional[Callable[[np.ndarray, ArrayLike], ArrayLike]] = None,
    ) -> "LeastSquaresProblem":
        """
        Fit model(theta, x) to (inputs, targets): r_i = model(theta, x_i) - y_i.

        model_gradient(theta, x) is d model / d theta; numerical when None.
        """
        inputs = list(inputs)
        targets = np.asarray(targets, dtype=float)
        if len(inputs) != targets.size:
            raise ValueError(
                f"got {len(inputs)} inputs but {targets.size} targets"
            )

        def residual(theta: np.ndarray) -> np.ndarray:
            predictions = np.array([model(theta, x) for x in inputs], dtype=float)
            return predictions - targets

        jacobian = None
        if model_gradient is not None:
            def jacobian(theta: np.ndarray) -> np.ndarray:
                return np.array([model_gradient(theta, x) for x in inputs], dtype=float)

        return cls(residual, jacobian)

    def residual_vector(self, theta: ArrayLike) -> np.ndarray:
        return np.asarray(self.residual(np.asarray(theta, dtype=float)), dtype=float)

    def jacobian_matrix(self, theta: ArrayLike) -> np.ndarray:
        theta = np.asarray(theta, dtype=float)
        if self.jacobian is not None:
            return np.atleast_2d(np.asarray(self.jacobian(theta), dtype=float))
        return numerical_jacobian(self.residual, theta)

    def cost(self, theta: ArrayLike) -> float:
        r = self.residual_vector(theta)
        return 0.5 * float(r @ r)

    def gradient(self, theta: ArrayLike) -> np.ndarray:
        return self.jacobian_matrix(theta).T @ self.residual_vector(theta)

    def compute_cache(self, theta: ArrayLike) -> CostCache:
        theta = np.asarray(theta, dtype=float)
        r = self.residual_vector(theta)
        J = self.jacobian_matrix(theta)
        return CostCache(
            parameters=theta.copy(),
            residual=r,
            jacobian=J,
            cost=0.5 * float(r @ r),
            gradient=J.T @ r,
        )


# ---------------------------------------------------------------------------
# Estimators
# ---------------------------------------------------------------------------

class LeastSquaresEstimator(FunctionMinimizer):
    """
    Base of the least-squares estimators: estimate(problem, theta0) runs the
    minimizer on the problem's cost and keeps a CostCache of the current
    parameters.
    """

    requires_gradient = True

    def __init__(
        self,
        initial_guess=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        line_minimizer=None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(
            initial_guess=initial_guess,
            tolerance=tolerance,
            max_iterations=max_iterations,
            line_minimizer=line_minimizer if line_minimizer is not None else LineMinimizerDerivativeBased(),
            name=name,
        )
        self.problem: Optional[LeastSquaresProblem] = None
        self.last_cost: Optional[CostCache] = None
        self.line_function: Optional[DirectionalFunction] = None

    def estimate(
        self,
        problem: LeastSquaresProblem,
        initial_guess: Optional[ArrayLike] = None,
    ) -> Optional[MinimizationResult]:
        """Fit the parameters; None if there is no initial guess."""
        self.problem = problem
        return self.minimize(problem.objective, None, initial_guess)

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False
        if self.problem is None or self.objective is not self.problem.objective:
            raise ValueError(f"{self.name}: use estimate(problem, initial_guess)")

        self.last_cost = self.problem.compute_cache(self.initial_guess)
        self.result = MinimizationResult(x=self.last_cost.parameters.copy(), f=self.last_cost.cost)
        self.line_function = DirectionalFunction(
            self.objective, self.last_cost.parameters, self.first_direction()
        )
        return True

    def first_direction(self) -> np.ndarray:
        return clip_direction(-self.last_cost.gradient)

    def _line_search(self) -> CostCache:
        """Search along the current direction; return the cache at the new point."""
        self.result = self.line_minimizer.minimize_along_direction(
            self.line_function, self.last_cost.cost, self.last_cost.gradient
        )
        return self.problem.compute_cache(self.result.x)

    def _converged(self, new_cost: CostCache) -> bool:
        return minimization_converged(
            new_cost.parameters,
            self.last_cost.cost,
            new_cost.cost,
            new_cost.parameters - self.last_cost.parameters,
            self.tolerance,
            new_cost.gradient,
        )

    def cleanup_algorithm(self) -> None:
        self.line_function = None


class GaussNewtonEstimator(LeastSquaresEstimator):
    """
    Gauss-Newton with a line search: direction -pinv(J) r, clipped to
    STEP_MAX. pinv keeps rank-deficient Jacobians usable.
    """

    def __init__(self, *args, **kwargs) -> None:
        kwargs.setdefault("name", "GaussNewton")
        super().__init__(*args, **kwargs)

    def first_direction(self) -> np.ndarray:
        return self._gauss_newton_direction(self.last_cost)

    @staticmethod
    def _gauss_newton_direction(cache: CostCache) -> np.ndarray:
        return clip_direction(-(np.linalg.pinv(cache.jacobian) @ cache.residual))

    def step(self) -> bool:
        new_cost = self._line_search()
        converged = self._converged(new_cost)
        self.last_cost = new_cost
        if converged:
            return False

        self.line_function.set_line(new_cost.parameters, self._gauss_newton_direction(new_cost))
        return True


class FletcherXuHybridEstimator(LeastSquaresEstimator):
    """
    Fletcher-Xu hybrid method.

    After each line search:
        cost reduction >= REDUCTION_TEST * old cost
            -> Levenberg-Marquardt direction -(J'J + damping I)^-1 J'r,
               damping /= DAMPING_DIVISOR;
        otherwise
            -> BFGS direction -H J'r with the secant vector
               gamma = J'J delta + (J_new - J_old)' r_new,
               damping *= DAMPING_DIVISOR.
    """

    DEFAULT_REDUCTION_TEST = 0.2
    DEFAULT_DAMPING_DIVISOR = 2.0
    INITIAL_DAMPING = 1.0

    def __init__(
        self,
        initial_guess=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        line_minimizer=None,
        reduction_test: float = DEFAULT_REDUCTION_TEST,
        damping_divisor: float = DEFAULT_DAMPING_DIVISOR,
        name: Optional[str] = None,
    ) -> None:
        if not 0.0 < reduction_test < 1.0:
            raise ValueError(f"reduction_test must be in (0, 1), got: {reduction_test}")
        if damping_divisor <= 1.0:
            raise ValueError(f"damping_divisor must be greater than 1, got: {damping_divisor}")
        super().__init__(
            initial_guess=initial_guess,
            tolerance=tolerance,
            max_iterations=max_iterations,
            line_minimizer=line_minimizer,
            name=name or "FletcherXuHybrid",
        )
        self.reduction_test = float(reduction_test)
        self.damping_divisor = float(damping_divisor)
        self.damping_factor: float = self.INITIAL_DAMPING
        self.hessian_inverse: Optional[np.ndarray] = None
        self.levenberg_marquardt_steps: int = 0
        self.bfgs_steps: int = 0

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False
        n = self.initial_guess.size
        self.hessian_inverse = INITIAL_HESSIAN_SCALE * np.eye(n)
        self.damping_factor = self.INITIAL_DAMPING
        self.levenberg_marquardt_steps = 0
        self.bfgs_steps = 0
        return True

    def step(self) -> bool:
        old_cost = self.last_cost
        new_cost = self._line_search()
        converged = self._converged(new_cost)
        self.last_cost = new_cost
        if converged:
            return False

        delta = new_cost.parameters - old_cost.parameters
        if self.reduction_test * old_cost.cost <= old_cost.cost - new_cost.cost:
            JtJ = new_cost.jacobian.T @ new_cost.jacobian
            damped = JtJ + self.damping_factor * np.eye(JtJ.shape[0])
            direction = -np.linalg.solve(damped, new_cost.gradient)
            self.damping_factor /= self.damping_divisor
            self.levenberg_marquardt_steps += 1
        else:
            gamma = (
                new_cost.jacobian.T @ (new_cost.jacobian @ delta)
                + (new_cost.jacobian - old_cost.jacobian).T @ new_cost.residual
            )
            updated = bfgs_update(self.hessian_inverse, delta, gamma, self.tolerance)
            if updated is not None:
                self.hessian_inverse = updated
            direction = -(self.hessian_inverse @ new_cost.gradient)
            self.damping_factor *= self.damping_divisor
            self.bfgs_steps += 1

        self.line_function.set_line(new_cost.parameters, clip_direction(direction))
        return True


__all__ = [
    "STEP_MAX",
    "clip_direction",
    "CostCache",
    "LeastSquaresProblem",
    "LeastSquaresEstimator",
    "GaussNewtonEstimator",
    "FletcherXuHybridEstimator",
]
