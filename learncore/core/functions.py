"""
functions.py

Objective-function adapters shared by the line searches, the function
minimizers and the least-squares estimators.

Contents:
    - type aliases for scalar/vector/matrix callables;
    - central-difference numerical derivatives (gradient, scalar
      derivative, Jacobian);
    - Objective            - f(x) with optional analytic gradient and
                             evaluation counters;
    - UnivariateFunction   - a scalar function of one real argument;
    - DirectionalFunction  - phi(s) = f(offset + s * direction);
    - TARGET_FUNCTIONS     - a small registry of benchmark functions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np

ArrayLike = np.ndarray
ScalarFunction = Callable[[ArrayLike], float]
VectorFunction = Callable[[ArrayLike], ArrayLike]
MatrixFunction = Callable[[ArrayLike], ArrayLike]
Scalar1DFunction = Callable[[float], float]


# ---------------------------------------------------------------------------
# Numerical derivatives (central differences)
# ---------------------------------------------------------------------------

def numerical_gradient(
    func: ScalarFunction,
    x: ArrayLike,
    h: float = 1e-6,
) -> ArrayLike:
    """
    Numerical gradient by central differences.

    df/dx_i ~ (f(x + h e_i) - f(x - h e_i)) / (2h)
    """
    x = np.asarray(x, dtype=float)
    grad = np.zeros_like(x, dtype=float)

    for i in range(len(x)):
        x_fwd = x.copy()
        x_bwd = x.copy()
        x_fwd[i] += h
        x_bwd[i] -= h
        grad[i] = (func(x_fwd) - func(x_bwd)) / (2.0 * h)

    return grad


def numerical_derivative(
    func: Scalar1DFunction,
    s: float,
    h: float = 1e-6,
) -> float:
    """Central-difference derivative of a scalar function of one argument."""
    return (float(func(s + h)) - float(func(s - h))) / (2.0 * h)


def numerical_jacobian(
    func: VectorFunction,
    x: ArrayLike,
    h: float = 1e-6,
) -> ArrayLike:
    """
    Numerical Jacobian of a vector function, shape (len(func(x)), len(x)).

    Column i is (F(x + h e_i) - F(x - h e_i)) / (2h).
    """
    x = np.asarray(x, dtype=float)
    columns = []

    for i in range(len(x)):
        x_fwd = x.copy()
        x_bwd = x.copy()
        x_fwd[i] += h
        x_bwd[i] -= h
        diff = np.asarray(func(x_fwd), dtype=float) - np.asarray(func(x_bwd), dtype=float)
        columns.append(diff / (2.0 * h))

    return np.column_stack(columns)


# ---------------------------------------------------------------------------
# Objective with counters
# ---------------------------------------------------------------------------

class Objective:
    """
    Scalar objective f(x) over vectors, optionally with an analytic gradient.

    If grad is None, differentiate() falls back to numerical_gradient.
    Every call is counted so the totals can go into a results table.
    """

    def __init__(
        self,
        func: ScalarFunction,
        grad: Optional[VectorFunction] = None,
        name: Optional[str] = None,
    ) -> None:
        self.func = func
        self._grad = grad
        self.name: str = name or getattr(func, "__name__", "objective")

        self.func_evals: int = 0
        self.grad_evals: int = 0

    @property
    def has_gradient(self) -> bool:
        return self._grad is not None

    def evaluate(self, x: ArrayLike) -> float:
        """Evaluate f(x) and bump the function counter."""
        self.func_evals += 1
        return float(self.func(np.asarray(x, dtype=float)))

    def differentiate(self, x: ArrayLike) -> np.ndarray:
        """
        Evaluate grad f(x):
            - the analytic gradient if one was supplied;
            - otherwise numerical_gradient.
        """
        self.grad_evals += 1
        x_arr = np.asarray(x, dtype=float)
        if self._grad is not None:
            return np.asarray(self._grad(x_arr), dtype=float)
        return numerical_gradient(self.func, x_arr)

    def __call__(self, x: ArrayLike) -> float:
        return self.evaluate(x)

    def reset_counters(self) -> None:
        self.func_evals = 0
        self.grad_evals = 0


def as_objective(
    func,
    grad: Optional[VectorFunction] = None,
) -> Objective:
    """
    Wrap a plain callable into an Objective. An Objective passes through
    unchanged, unless it has no gradient and grad is given: then a new
    Objective with the same function and name is returned.
    """
    if isinstance(func, Objective):
        if grad is not None and not func.has_gradient:
            return Objective(func.func, grad, name=func.name)
        return func
    if not callable(func):
        raise TypeError(f"objective must be callable, got: {type(func)}")
    return Objective(func, grad)


# ---------------------------------------------------------------------------
# One-dimensional functions
# ---------------------------------------------------------------------------

class UnivariateFunction:
    """A scalar function of one real argument with an optional derivative."""

    def __init__(
        self,
        func: Scalar1DFunction,
        deriv: Optional[Scalar1DFunction] = None,
    ) -> None:
        self.func = func
        self.deriv = deriv

    def evaluate(self, s: float) -> float:
        return float(self.func(float(s)))

    def differentiate(self, s: float) -> float:
        if self.deriv is not None:
            return float(self.deriv(float(s)))
        return numerical_derivative(self.func, float(s))

    def __call__(self, s: float) -> float:
        return self.evaluate(s)


class DirectionalFunction:
    """
    Restriction of a vector objective to a line:

        phi(s)  = f(offset + s * direction)
        phi'(s) = grad f(offset + s * direction) . direction

    The gradient of the last differentiated point is cached in
    last_gradient as (x, g), so a minimizer that lands on that point can
    reuse it instead of calling the gradient again.
    """

    def __init__(
        self,
        objective: Objective,
        offset: Optional[ArrayLike] = None,
        direction: Optional[ArrayLike] = None,
    ) -> None:
        self.objective = objective
        self.offset = None if offset is None else np.asarray(offset, dtype=float)
        self.direction = None if direction is None else np.asarray(direction, dtype=float)
        self.last_gradient: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def set_line(self, offset: ArrayLike, direction: ArrayLike) -> None:
        self.offset = np.asarray(offset, dtype=float)
        self.direction = np.asarray(direction, dtype=float)

    def compute_vector(self, s: float) -> np.ndarray:
        return self.offset + float(s) * self.direction

    def evaluate(self, s: float) -> float:
        return self.objective.evaluate(self.compute_vector(s))

    def differentiate(self, s: float) -> float:
        x = self.compute_vector(s)
        g = self.objective.differentiate(x)
        self.last_gradient = (x, g)
        return float(np.dot(g, self.direction))

    def gradient_at(self, x: ArrayLike) -> np.ndarray:
        """Gradient at x, taken from last_gradient when x is that point."""
        x = np.asarray(x, dtype=float)
        if self.last_gradient is not None and np.array_equal(self.last_gradient[0], x):
            return self.last_gradient[1]
        return self.objective.differentiate(x)

    def __call__(self, s: float) -> float:
        return self.evaluate(s)


# ---------------------------------------------------------------------------
# Benchmark functions
# ---------------------------------------------------------------------------

def shifted_sphere(x: ArrayLike) -> float:
    """
    f(x1, x2) = (x1 - 1)^2 + (x2 + 2)^2
    (simple quadratic, minimum at (1, -2))
    """
    x1, x2 = np.asarray(x, dtype=float)
    return (x1 - 1.0) ** 2 + (x2 + 2.0) ** 2


def grad_shifted_sphere(x: ArrayLike) -> ArrayLike:
    x1, x2 = np.asarray(x, dtype=float)
    return np.array([2.0 * (x1 - 1.0), 2.0 * (x2 + 2.0)])


def skewed_quadratic(x: ArrayLike) -> float:
    """
    f(x1, x2) = (x1 - x2)^2 + (x1 + x2 - 10)^2 / 9
    (minimum at (5, 5))
    """
    x1, x2 = np.asarray(x, dtype=float)
    return (x1 - x2) ** 2 + (x1 + x2 - 10.0) ** 2 / 9.0


def grad_skewed_quadratic(x: ArrayLike) -> ArrayLike:
    x1, x2 = np.asarray(x, dtype=float)
    common = 2.0 * (x1 + x2 - 10.0) / 9.0
    return np.array([2.0 * (x1 - x2) + common, -2.0 * (x1 - x2) + common])


def rosenbrock(x: ArrayLike) -> float:
    """
    f(x1, x2) = 100 * (x2 - x1^2)^2 + (1 - x1)^2
    (minimum at (1, 1))
    """
    x1, x2 = np.asarray(x, dtype=float)
    return 100.0 * (x2 - x1 ** 2) ** 2 + (1.0 - x1) ** 2


def grad_rosenbrock(x: ArrayLike) -> ArrayLike:
    x1, x2 = np.asarray(x, dtype=float)
    return np.array([
        -400.0 * x1 * (x2 - x1 ** 2) - 2.0 * (1.0 - x1),
        200.0 * (x2 - x1 ** 2),
    ])


@dataclass
class TargetFunction:
    """
    Benchmark objective for tests and demos.

    Attributes:
        key      - short identifier ("sphere", "rosenbrock", ...)
        name     - human-readable name
        func     - f(x)
        grad     - grad f(x)
        minimum  - known minimizer
        x0       - conventional starting point
    """
    key: str
    name: str
    func: ScalarFunction
    grad: VectorFunction
    minimum: Tuple[float, ...]
    x0: Tuple[float, ...]

    def objective(self, analytic_gradient: bool = True) -> Objective:
        return Objective(self.func, self.grad if analytic_gradient else None, name=self.key)


TARGET_FUNCTIONS: Dict[str, TargetFunction] = {
    "sphere": TargetFunction(
        key="sphere",
        name="(x1 - 1)^2 + (x2 + 2)^2",
        func=shifted_sphere,
        grad=grad_shifted_sphere,
        minimum=(1.0, -2.0),
        x0=(0.0, 0.0),
    ),
    "skewed": TargetFunction(
        key="skewed",
        name="(x1 - x2)^2 + (x1 + x2 - 10)^2 / 9",
        func=skewed_quadratic,
        grad=grad_skewed_quadratic,
        minimum=(5.0, 5.0),
        x0=(0.0, 1.0),
    ),
    "rosenbrock": TargetFunction(
        key="rosenbrock",
        name="Rosenbrock",
        func=rosenbrock,
        grad=grad_rosenbrock,
        minimum=(1.0, 1.0),
        x0=(-1.2, 1.0),
    ),
}


def get_target_function(key: str) -> TargetFunction:
    try:
        return TARGET_FUNCTIONS[key]
    except KeyError as exc:
        raise ValueError(
            f"Unknown target function '{key}'. "
            f"Available: {', '.join(sorted(TARGET_FUNCTIONS))}"
        ) from exc


__all__ = [
    "ArrayLike",
    "ScalarFunction",
    "VectorFunction",
    "MatrixFunction",
    "Scalar1DFunction",
    "numerical_gradient",
    "numerical_derivative",
    "numerical_jacobian",
    "Objective",
    "as_objective",
    "UnivariateFunction",
    "DirectionalFunction",
    "TargetFunction",
    "TARGET_FUNCTIONS",
    "get_target_function",
    "shifted_sphere",
    "skewed_quadratic",
    "rosenbrock",
]
