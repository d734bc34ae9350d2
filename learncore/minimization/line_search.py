"""
line_search.py

One-dimensional minimization (line search) as a two-phase state machine:

    UNINITIALIZED -> BRACKETING -> SECTIONING -> DONE

Bracketing looks for an interval that must contain a minimum (or finds an
acceptable point directly and jumps to DONE). Sectioning narrows that
interval until it is smaller than the tolerance or an acceptance test
passes.

Variants:

    1) LineMinimizerDerivativeFree  - Brent-style bracketing with golden
       magnification, parabolic / golden-section sectioning;
    2) LineMinimizerDerivativeBased - Fletcher's bracketing and sectioning
       with Hermite interpolation and Wolfe acceptance tests;
    3) LineMinimizerBacktracking    - Armijo backtracking from a Newton step.

Public interface:
    - LineSearchResult                       - result of a 1-D search;
    - LineMinimizer.minimize(...)            - minimize a scalar function;
    - LineMinimizer.minimize_along_direction - minimize f(x + s d) over s;
    - create_line_minimizer(kind, **options) - construct by name, using the
      LINE_MINIMIZER_* constants.
"""

from __future__ import annotations

import enum
import logging
import math
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from ..core.functions import DirectionalFunction, UnivariateFunction
from ..core.iterative import AnytimeIterativeAlgorithm
from .interpolators import (
    GOLDEN_RATIO,
    HermiteInterpolator,
    ParabolicInterpolator,
    parabola_vertex,
)
from .line_bracket import InputOutputSlopeTriplet, LineBracket
from .minimizer_base import MinimizationResult
from .wolfe import (
    DEFAULT_CURVATURE_CONDITION,
    DEFAULT_SLOPE_CONDITION,
    WolfeConditions,
    goldstein_condition,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LINE_MINIMIZER_DEFAULT = "default"
LINE_MINIMIZER_DERIVATIVE_FREE = "derivative_free"
LINE_MINIMIZER_DERIVATIVE_BASED = "derivative_based"
LINE_MINIMIZER_BACKTRACKING = "backtracking"

DEFAULT_TOLERANCE = 1e-5
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_INITIAL_STEP = 1.0


class LineSearchPhase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    BRACKETING = "bracketing"
    SECTIONING = "sectioning"
    DONE = "done"


@dataclass
class LineSearchResult:
    """
    Result of a one-dimensional search.

    Attributes:
        alpha       - the minimizing argument found;
        phi_value   - the function value there;
        iterations  - number of state-machine steps;
        func_evals  - function evaluations made by the search;
        grad_evals  - derivative evaluations made by the search;
        meta        - slope at alpha (if known), stop reason, final bracket.
    """
    alpha: float
    phi_value: float
    iterations: int
    func_evals: int
    grad_evals: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Base state machine
# ---------------------------------------------------------------------------

class LineMinimizer(AnytimeIterativeAlgorithm):
    """
    Base class of the line searches.

    Subclasses implement bracketing_step() and sectioning_step():

        bracketing_step() -> True once the bracket is valid;
                             may call _accept(point) to finish directly
        sectioning_step() -> False when converged, True to keep narrowing
    """

    def __init__(
        self,
        interpolator=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        super().__init__(max_iterations)
        self.interpolator = interpolator
        self.tolerance = tolerance

        self.phase: LineSearchPhase = LineSearchPhase.UNINITIALIZED
        self.bracket: LineBracket = LineBracket()
        self.function = None
        self.initial_guess: Optional[float] = None
        self.initial_guess_value: Optional[float] = None
        self.initial_guess_slope: Optional[float] = None

        self.func_evals: int = 0
        self.grad_evals: int = 0

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        if value < 0.0:
            raise ValueError(f"tolerance must be non-negative, got: {value}")
        self._tolerance = float(value)

    # ------------------------------------------------------------------
    # Evaluation with counters
    # ------------------------------------------------------------------

    def _evaluate(self, s: float) -> float:
        self.func_evals += 1
        return float(self.function.evaluate(s))

    def _differentiate(self, s: float) -> float:
        self.grad_evals += 1
        return float(self.function.differentiate(s))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def minimize(
        self,
        func,
        initial_guess: float = 0.0,
        initial_value: Optional[float] = None,
        initial_slope: Optional[float] = None,
        deriv=None,
    ) -> Optional[LineSearchResult]:
        """
        Minimize a scalar function of one variable.

        Parameters
        ----------
        func : callable or object with evaluate()/differentiate()
            The function phi(s).
        initial_guess : float
            Where the search starts.
        initial_value, initial_slope : Optional[float]
            phi and phi' at initial_guess, if the caller already knows them.
        deriv : Optional[callable]
            phi'(s) for a plain callable func; numerical otherwise.

        Returns
        -------
        LineSearchResult, or None if there was no initial guess.
        """
        if hasattr(func, "evaluate") and hasattr(func, "differentiate"):
            self.function = func
        elif callable(func):
            self.function = UnivariateFunction(func, deriv)
        else:
            raise TypeError(f"line search needs a callable function, got: {type(func)}")

        self.initial_guess = None if initial_guess is None else float(initial_guess)
        self.initial_guess_value = initial_value
        self.initial_guess_slope = initial_slope

        point = self.run()
        if point is None:
            return None

        return LineSearchResult(
            alpha=point.input,
            phi_value=point.output,
            iterations=self.iteration,
            func_evals=self.func_evals,
            grad_evals=self.grad_evals,
            meta={
                "slope": point.slope,
                "stopped_by": self.stopped_by,
                "bracket": (
                    (self.bracket.lower_bound.input, self.bracket.upper_bound.input)
                    if self.bracket.is_valid() else None
                ),
            },
        )

    def minimize_along_direction(
        self,
        function: DirectionalFunction,
        known_value: Optional[float] = None,
        known_gradient: Optional[np.ndarray] = None,
    ) -> MinimizationResult:
        """
        Minimize f(offset + s * direction) over s, starting at s = 0.

        known_value is f(offset) and known_gradient is grad f(offset), when
        the caller has them. The returned step_length is the optimal s; it
        scales the direction into the actual displacement.
        """
        slope = None
        if known_gradient is not None:
            slope = float(np.dot(known_gradient, function.direction))

        if not np.any(function.direction):
            f0 = known_value if known_value is not None else function.evaluate(0.0)
            return MinimizationResult(
                x=function.compute_vector(0.0), f=float(f0), step_length=0.0,
                meta={"line_search_iterations": 0},
            )

        res = self.minimize(function, 0.0, known_value, slope)
        return MinimizationResult(
            x=function.compute_vector(res.alpha),
            f=res.phi_value,
            step_length=res.alpha,
            meta={
                "line_search_iterations": res.iterations,
                "line_search_func_evals": res.func_evals,
            },
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _set_phase(self, phase: LineSearchPhase) -> None:
        if phase is not self.phase:
            logger.debug("%s: %s -> %s", self.__class__.__name__, self.phase.name, phase.name)
        self.phase = phase

    def _accept(self, point: InputOutputSlopeTriplet) -> None:
        """Finish the search with point as the answer."""
        self.result = self._to_external(point)
        self._set_phase(LineSearchPhase.DONE)

    def _to_external(self, point: InputOutputSlopeTriplet) -> InputOutputSlopeTriplet:
        """Map a bracket point to the caller's coordinate."""
        return point

    def _initial_value(self) -> float:
        if self.initial_guess_value is not None:
            return float(self.initial_guess_value)
        return self._evaluate(self.initial_guess)

    def _initial_slope(self) -> float:
        if self.initial_guess_slope is not None:
            return float(self.initial_guess_slope)
        return self._differentiate(self.initial_guess)

    def initialize_algorithm(self) -> bool:
        self.phase = LineSearchPhase.UNINITIALIZED
        self.bracket = LineBracket()
        self.result = None
        self.func_evals = 0
        self.grad_evals = 0
        if self.initial_guess is None:
            return False
        self._set_phase(LineSearchPhase.BRACKETING)
        return True

    def step(self) -> bool:
        if self.phase is LineSearchPhase.BRACKETING:
            valid = self.bracketing_step()
            if self.phase is LineSearchPhase.DONE:
                return False
            if valid:
                self._set_phase(LineSearchPhase.SECTIONING)
            return True

        if self.phase is LineSearchPhase.SECTIONING:
            if not self.sectioning_step():
                self._set_phase(LineSearchPhase.DONE)
                return False
            return True

        return False

    def cleanup_algorithm(self) -> None:
        # Out of iterations (or stopped) before DONE: answer with the best
        # point seen so far.
        best = self.bracket.best_point()
        if best is not None and self.phase is not LineSearchPhase.DONE:
            best = self._to_external(best)
            if self.result is None or best.output < self.result.output:
                self.result = best
        self.function = None

    @abstractmethod
    def bracketing_step(self) -> bool:
        """One bracketing step; True once the bracket is valid."""
        raise NotImplementedError

    @abstractmethod
    def sectioning_step(self) -> bool:
        """One sectioning step; False when converged."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Derivative-free (Brent-style bracketing, parabolic sectioning)
# ---------------------------------------------------------------------------

class LineMinimizerDerivativeFree(LineMinimizer):
    """
    Line search that only evaluates the function.

    Bracketing keeps three points a, b, c with f(a) >= f(b) and walks
    downhill, magnifying the step (parabolic extrapolation limited to
    GROW_LIMIT times the last step, golden magnification otherwise) until
    f(c) >= f(b). Sectioning then replaces a or c with parabolic or
    golden-section trial points until the bracket is narrower than the
    tolerance.
    """

    GROW_LIMIT = 100.0

    def __init__(
        self,
        interpolator=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        initial_step: float = DEFAULT_INITIAL_STEP,
    ) -> None:
        super().__init__(
            interpolator if interpolator is not None else ParabolicInterpolator(),
            tolerance,
            max_iterations,
        )
        if initial_step <= 0.0:
            raise ValueError(f"initial_step must be positive, got: {initial_step}")
        self.initial_step = float(initial_step)

    def _point(self, x: float) -> InputOutputSlopeTriplet:
        return InputOutputSlopeTriplet(x, self._evaluate(x))

    def bracketing_step(self) -> bool:
        bracket = self.bracket

        if bracket.lower_bound is None:
            bracket.lower_bound = InputOutputSlopeTriplet(
                self.initial_guess, self._initial_value(), self.initial_guess_slope
            )

        # Second point one step away, downhill if the slope is known
        if bracket.other_point is None:
            step = self.initial_step
            if self.initial_guess_slope is not None and self.initial_guess_slope > 0.0:
                step = -step
            b = self._point(bracket.lower_bound.input + step)
            if bracket.lower_bound.output < b.output:
                bracket.other_point = bracket.lower_bound
                bracket.lower_bound = b
            else:
                bracket.other_point = b

        if bracket.upper_bound is None:
            ax = bracket.lower_bound.input
            bx = bracket.other_point.input
            bracket.upper_bound = self._point(bx + GOLDEN_RATIO * (bx - ax))

        a = bracket.lower_bound
        b = bracket.other_point
        c = bracket.upper_bound

        if b.output <= c.output:
            valid = True
        else:
            # Parabolic extrapolation when it moves past b, at most
            # GROW_LIMIT steps; golden magnification otherwise.
            downhill = c.input - b.input
            limit_x = b.input + self.GROW_LIMIT * downhill
            xstar = parabola_vertex(a, b, c)
            if xstar is None or (xstar - b.input) * downhill <= 0.0 or xstar == c.input:
                xstar = c.input + GOLDEN_RATIO * downhill
            elif (xstar - limit_x) * downhill > 0.0:
                xstar = limit_x

            star = self._point(xstar)

            if (b.input - xstar) * (xstar - c.input) > 0.0:
                # xstar between b and c
                if star.output < c.output:
                    bracket.lower_bound = b
                    bracket.other_point = star
                    valid = True
                elif b.output < star.output:
                    bracket.upper_bound = star
                    valid = True
                else:
                    bracket.other_point = star
                    valid = False
            else:
                # xstar beyond c: drop a and move on
                bracket.lower_bound = b
                bracket.other_point = c
                bracket.upper_bound = star
                valid = c.output < star.output

        if valid and bracket.lower_bound.input > bracket.upper_bound.input:
            bracket.lower_bound, bracket.upper_bound = bracket.upper_bound, bracket.lower_bound

        return valid

    def sectioning_step(self) -> bool:
        bracket = self.bracket
        a = bracket.lower_bound
        b = bracket.other_point
        c = bracket.upper_bound

        tol1 = self.tolerance * (abs(b.input) + 1.0)
        midx = 0.5 * (a.input + c.input)
        if abs(b.input - midx) <= 2.0 * tol1 - 0.5 * (c.input - a.input):
            self.result = b
            return False

        minx = min(a.input + tol1, b.input)
        maxx = max(c.input - tol1, b.input)
        xstar = self.interpolator.find_minimum(bracket, minx, maxx)

        # Never evaluate (almost) on top of b
        if abs(xstar - b.input) < tol1:
            if c.input - b.input >= b.input - a.input:
                xstar = b.input + tol1
            else:
                xstar = b.input - tol1

        star = self._point(xstar)

        if star.output < b.output:
            if xstar <= b.input:
                c = b
            else:
                a = b
            b = star
        else:
            if xstar <= b.input:
                a = star
            else:
                c = star

        self.result = b
        bracket.lower_bound = a
        bracket.other_point = b
        bracket.upper_bound = c
        return True


# ---------------------------------------------------------------------------
# Derivative-based (Fletcher)
# ---------------------------------------------------------------------------

class LineMinimizerDerivativeBased(LineMinimizer):
    """
    Fletcher's line search with Hermite interpolation.

    Works in an internal coordinate t = sign * (s - s0), with the sign chosen
    so the slope at t = 0 is negative. Bracketing extrapolates from the last
    two points by between one and TAU1 times the previous step (never past
    max_x, the step at which the sufficient-decrease line reaches
    min_function_value). Sectioning interpolates inside
    [a + TAU2 * delta, b - TAU3 * delta] and narrows the bracket using the
    Wolfe tests.
    """

    TAU1 = 5.0
    TAU2 = 0.1
    TAU3 = 0.5

    def __init__(
        self,
        interpolator=None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        min_function_value: float = -math.inf,
        slope_condition: float = DEFAULT_SLOPE_CONDITION,
        curvature_condition: float = DEFAULT_CURVATURE_CONDITION,
        initial_step: float = DEFAULT_INITIAL_STEP,
    ) -> None:
        super().__init__(
            interpolator if interpolator is not None else HermiteInterpolator(),
            tolerance,
            max_iterations,
        )
        if not 0.0 < slope_condition < curvature_condition < 1.0:
            raise ValueError(
                "need 0 < slope_condition < curvature_condition < 1, got: "
                f"slope_condition={slope_condition}, curvature_condition={curvature_condition}"
            )
        if initial_step <= 0.0:
            raise ValueError(f"initial_step must be positive, got: {initial_step}")
        self.min_function_value = float(min_function_value)
        self.slope_condition = float(slope_condition)
        self.curvature_condition = float(curvature_condition)
        self.initial_step = float(initial_step)

        self.direction: float = 1.0
        self.wolfe: Optional[WolfeConditions] = None
        self.max_x: float = math.inf

    # internal coordinate helpers

    def _internal_evaluate(self, t: float) -> float:
        return self._evaluate(self.initial_guess + self.direction * t)

    def _internal_slope(self, t: float) -> float:
        return self.direction * self._differentiate(self.initial_guess + self.direction * t)

    def _internal_point(self, t: float) -> InputOutputSlopeTriplet:
        return InputOutputSlopeTriplet(t, self._internal_evaluate(t))

    def _with_slope(self, point: InputOutputSlopeTriplet) -> InputOutputSlopeTriplet:
        if point.slope is None:
            point = point.with_slope(self._internal_slope(point.input))
        return point

    def _to_external(self, point: InputOutputSlopeTriplet) -> InputOutputSlopeTriplet:
        slope = None if point.slope is None else self.direction * point.slope
        return InputOutputSlopeTriplet(
            self.initial_guess + self.direction * point.input, point.output, slope
        )

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False

        f0 = self._initial_value()
        slope0 = self._initial_slope()
        self.direction = 1.0 if slope0 < 0.0 else -1.0
        origin = InputOutputSlopeTriplet(0.0, f0, self.direction * slope0)
        self.bracket.lower_bound = origin

        # Essentially flat: nothing to gain along this line
        if abs(slope0) <= self.tolerance * 1e-3:
            self._accept(origin)
            return True

        self.wolfe = WolfeConditions(origin, self.slope_condition, self.curvature_condition)
        if self.min_function_value < f0:
            self.max_x = (self.min_function_value - f0) / (self.slope_condition * origin.slope)
        else:
            self.max_x = math.inf

        self.bracket.upper_bound = self._internal_point(min(self.initial_step, self.max_x))
        return True

    def bracketing_step(self) -> bool:
        bracket = self.bracket
        previous = bracket.lower_bound
        current = bracket.upper_bound

        if current.output < self.min_function_value:
            self._accept(current)
            return True

        # Too far (no sufficient decrease) or no better: [previous, current]
        if (not self.wolfe.evaluate_goldstein_condition(current)) or current.output >= previous.output:
            return True

        current = self._with_slope(current)
        bracket.upper_bound = current

        if self.wolfe.evaluate_strict_curvature_condition(current.slope):
            self._accept(current)
            return True

        # Slope changed sign: minimum between them, reversed order
        if current.slope >= 0.0:
            bracket.lower_bound = current
            bracket.upper_bound = previous
            return True

        delta = current.input - previous.input
        delta_plus_current = current.input + delta
        if self.max_x <= delta_plus_current:
            next_x = self.max_x
        else:
            minx = delta_plus_current
            maxx = min(self.max_x, current.input + self.TAU1 * delta)
            if minx > maxx:
                minx, maxx = maxx, minx
            next_x = self.interpolator.find_minimum(bracket, minx, maxx)

        if next_x == current.input:
            self._accept(current)
            return True

        bracket.other_point = previous
        bracket.lower_bound = current
        bracket.upper_bound = self._internal_point(next_x)
        return False

    def sectioning_step(self) -> bool:
        bracket = self.bracket
        a = bracket.lower_bound
        b = bracket.upper_bound
        bracket_delta = b.input - a.input

        if abs(bracket_delta) < self.tolerance:
            self.result = self._to_external(a if a.output < b.output else b)
            return False

        minx = a.input + self.TAU2 * bracket_delta
        maxx = b.input - self.TAU3 * bracket_delta
        if minx > maxx:
            minx, maxx = maxx, minx

        alpha = self.interpolator.find_minimum(bracket, minx, maxx)
        current = self._internal_point(alpha)

        midx = 0.5 * (minx + maxx)
        threshold = self.tolerance * abs(b.input) - 0.5 * (maxx - minx)
        if abs(midx - alpha) <= threshold or current.output < self.min_function_value:
            self.result = self._to_external(current)
            return False

        if (not self.wolfe.evaluate_goldstein_condition(current)) or current.output >= a.output:
            bracket.other_point = b
            b = current
        else:
            current = self._with_slope(current)
            if self.wolfe.evaluate_strict_curvature_condition(current.slope):
                self.result = self._to_external(current)
                return False

            previous_a = a
            bracket.other_point = previous_a
            a = current
            if bracket_delta * current.slope >= 0.0:
                bracket.other_point = b
                b = previous_a

        bracket.lower_bound = a
        bracket.upper_bound = b
        return True


# ---------------------------------------------------------------------------
# Backtracking (Armijo)
# ---------------------------------------------------------------------------

class LineMinimizerBacktracking(LineMinimizer):
    """
    Armijo backtracking.

    The first trial step is the Newton step -|f(s0)| / f'(s0), at most
    STEP_MAX long; it is multiplied by geometric_decrease until the point
    satisfies the sufficient-decrease test or the step is below the
    tolerance. Never brackets; the best point seen is the answer.
    """

    STEP_MAX = 100.0
    DEFAULT_GEOMETRIC_DECREASE = 0.5
    DEFAULT_SUFFICIENT_DECREASE = 0.5

    def __init__(
        self,
        geometric_decrease: float = DEFAULT_GEOMETRIC_DECREASE,
        sufficient_decrease: float = DEFAULT_SUFFICIENT_DECREASE,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        super().__init__(None, tolerance, max_iterations)
        if not 0.0 < geometric_decrease < 1.0:
            raise ValueError(f"geometric_decrease must be in (0, 1), got: {geometric_decrease}")
        if not 0.0 < sufficient_decrease < 1.0:
            raise ValueError(f"sufficient_decrease must be in (0, 1), got: {sufficient_decrease}")
        self.geometric_decrease = float(geometric_decrease)
        self.sufficient_decrease = float(sufficient_decrease)
        self.step_value: float = 0.0

    def bracketing_step(self) -> bool:
        origin = InputOutputSlopeTriplet(
            self.initial_guess, self._initial_value(), self._initial_slope()
        )
        self.result = origin
        self.bracket.lower_bound = origin

        slope = origin.slope
        if abs(slope) <= self.tolerance:
            self._accept(origin)
            return True

        newton_step = -abs(origin.output) / slope
        if abs(newton_step) > self.STEP_MAX:
            newton_step = -math.copysign(self.STEP_MAX, slope)
        self.step_value = newton_step
        return True

    def sectioning_step(self) -> bool:
        bracket = self.bracket
        origin = bracket.lower_bound

        trial = InputOutputSlopeTriplet(
            origin.input + self.step_value, self._evaluate(origin.input + self.step_value)
        )
        bracket.other_point = bracket.upper_bound
        bracket.upper_bound = trial

        if trial.output < self.result.output:
            self.result = trial

        if goldstein_condition(origin, trial, self.sufficient_decrease):
            self.result = trial
            return False

        self.step_value *= self.geometric_decrease
        return abs(self.step_value) > self.tolerance


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_line_minimizer(kind: str = LINE_MINIMIZER_DEFAULT, **options) -> LineMinimizer:
    """
    Build a line minimizer by name.

    LINE_MINIMIZER_DEFAULT maps to the derivative-based search.
    """
    if kind in (LINE_MINIMIZER_DEFAULT, LINE_MINIMIZER_DERIVATIVE_BASED):
        return LineMinimizerDerivativeBased(**options)
    if kind == LINE_MINIMIZER_DERIVATIVE_FREE:
        return LineMinimizerDerivativeFree(**options)
    if kind == LINE_MINIMIZER_BACKTRACKING:
        return LineMinimizerBacktracking(**options)
    raise ValueError(f"Unknown line minimizer: {kind!r}")


__all__ = [
    "LINE_MINIMIZER_DEFAULT",
    "LINE_MINIMIZER_DERIVATIVE_FREE",
    "LINE_MINIMIZER_DERIVATIVE_BASED",
    "LINE_MINIMIZER_BACKTRACKING",
    "LineSearchPhase",
    "LineSearchResult",
    "LineMinimizer",
    "LineMinimizerDerivativeFree",
    "LineMinimizerDerivativeBased",
    "LineMinimizerBacktracking",
    "create_line_minimizer",
]
