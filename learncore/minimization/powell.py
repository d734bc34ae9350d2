"""
powell.py

Powell's direction-set method (no gradients).

One outer iteration:
    - line search from the current point along every direction of the set,
      remembering which one gave the largest decrease (best_index);
    - the net displacement x_new - x_original is the candidate conjugate
      direction; line search along it as well;
    - unless the iteration converged, remove the direction at best_index
      and append the scaled conjugate direction, so the set always keeps
      exactly N directions.

The stop flag is checked before every line search, so a stopped run
returns the best point reached inside the partial pass.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from ..core.functions import DirectionalFunction
from .line_search import LineMinimizerDerivativeFree
from .minimizer_base import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    TOLERANCE_DELTA_X,
    FunctionMinimizer,
    MinimizationResult,
    function_value_converged,
    max_relative_change,
)

logger = logging.getLogger(__name__)


def scaled_direction(direction: np.ndarray, scale: float) -> np.ndarray:
    """New direction vector scale * direction; zero scale keeps the direction."""
    if scale == 0.0:
        return direction.copy()
    return scale * direction


class FunctionMinimizerDirectionSetPowell(FunctionMinimizer):
    """
    Powell's method with conjugate-direction replacement.

    Parameters
    ----------
    line_minimizer : LineMinimizer, optional
        Defaults to LineMinimizerDerivativeFree().
    """

    requires_gradient = False

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
            line_minimizer=line_minimizer if line_minimizer is not None else LineMinimizerDerivativeFree(),
            name=name or "Powell",
        )
        self._directions: List[np.ndarray] = []
        self.line_function: Optional[DirectionalFunction] = None

    @property
    def direction_set(self) -> Tuple[np.ndarray, ...]:
        """Copies of the current search directions."""
        return tuple(d.copy() for d in self._directions)

    def initialize_algorithm(self) -> bool:
        if not super().initialize_algorithm():
            return False

        x0 = self.initial_guess.copy()
        self._directions = [row.copy() for row in np.eye(x0.size)]
        self.result = MinimizationResult(x=x0, f=self.objective.evaluate(x0))
        self.line_function = DirectionalFunction(self.objective)
        return True

    def _line_search(self, offset: np.ndarray, direction: np.ndarray, f_offset: float) -> MinimizationResult:
        self.line_function.set_line(offset, direction)
        return self.line_minimizer.minimize_along_direction(self.line_function, f_offset)

    def step(self) -> bool:
        best_index = -1
        best_decrease = np.inf

        x_original = self.result.x
        f_original = self.result.f

        for index, direction in enumerate(self._directions):
            if not self.keep_going:
                return False

            f_old = self.result.f
            self.result = self._line_search(self.result.x, direction, f_old)

            decrease = self.result.f - f_old
            if best_decrease > decrease:
                best_decrease = decrease
                best_index = index

            self._directions[index] = scaled_direction(direction, self.result.step_length)

        x_new = self.result.x
        f_new = self.result.f

        if function_value_converged(f_original, f_new, self.tolerance):
            return False

        if not self.keep_going:
            return False

        conjugate = x_new - x_original
        self.result = self._line_search(x_new, conjugate, f_new)
        scale = self.result.step_length

        if max_relative_change(self.result.x - x_original, self.result.x) < TOLERANCE_DELTA_X:
            return False

        if scale != 0.0:
            del self._directions[best_index]
            self._directions.append(scaled_direction(conjugate, scale))
            logger.debug("iteration %d: direction %d replaced by conjugate direction", self.iteration, best_index)

        return True

    def cleanup_algorithm(self) -> None:
        self.line_function = None


__all__ = [
    "scaled_direction",
    "FunctionMinimizerDirectionSetPowell",
]
