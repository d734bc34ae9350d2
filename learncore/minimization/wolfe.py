"""
wolfe.py

Acceptance tests for a trial point of a line search, relative to the point
the search started from (which must be a descent point, slope < 0):

    sufficient decrease (Goldstein / Armijo):
        f(trial) <= f(origin) + (x_trial - x_origin) * slope_condition * f'(origin)

    strict curvature:
        |f'(trial)| <= -curvature_condition * f'(origin)

with 0 < slope_condition < curvature_condition < 1.
"""

from __future__ import annotations

from typing import Optional

from .line_bracket import InputOutputSlopeTriplet

DEFAULT_SLOPE_CONDITION = 0.01
DEFAULT_CURVATURE_CONDITION = 0.1


def goldstein_condition(
    origin: InputOutputSlopeTriplet,
    trial: InputOutputSlopeTriplet,
    slope_condition: float,
) -> bool:
    """Sufficient-decrease test without the construction-time checks."""
    delta = trial.input - origin.input
    return trial.output <= origin.output + delta * slope_condition * origin.slope


class WolfeConditions:
    """
    Wolfe acceptance tests bound to one line-search origin.

    Parameters
    ----------
    origin : InputOutputSlopeTriplet
        Starting point of the search; its slope must be known and < 0.
    slope_condition : float
        Sufficient-decrease constant, in (0, curvature_condition).
    curvature_condition : float
        Curvature constant, in (slope_condition, 1).
    """

    def __init__(
        self,
        origin: InputOutputSlopeTriplet,
        slope_condition: float = DEFAULT_SLOPE_CONDITION,
        curvature_condition: float = DEFAULT_CURVATURE_CONDITION,
    ) -> None:
        if origin.slope is None:
            raise ValueError("WolfeConditions: the origin point must have a slope")
        if origin.slope >= 0.0:
            raise ValueError(
                f"WolfeConditions: the origin slope must be negative, got: {origin.slope}"
            )
        if not 0.0 < slope_condition < 1.0:
            raise ValueError(f"slope_condition must be in (0, 1), got: {slope_condition}")
        if not 0.0 < curvature_condition < 1.0:
            raise ValueError(f"curvature_condition must be in (0, 1), got: {curvature_condition}")
        if slope_condition >= curvature_condition:
            raise ValueError(
                "slope_condition must be less than curvature_condition, got: "
                f"{slope_condition} >= {curvature_condition}"
            )

        self.origin = origin
        self.slope_condition = float(slope_condition)
        self.curvature_condition = float(curvature_condition)

    def evaluate_goldstein_condition(self, trial: InputOutputSlopeTriplet) -> bool:
        return goldstein_condition(self.origin, trial, self.slope_condition)

    def evaluate_strict_curvature_condition(self, trial_slope: Optional[float]) -> bool:
        if trial_slope is None:
            raise ValueError("the trial point has no slope")
        return abs(trial_slope) <= -self.curvature_condition * self.origin.slope

    def evaluate(self, trial: InputOutputSlopeTriplet) -> bool:
        """Both tests; the trial point must carry its slope."""
        return (
            self.evaluate_goldstein_condition(trial)
            and self.evaluate_strict_curvature_condition(trial.slope)
        )


__all__ = [
    "DEFAULT_SLOPE_CONDITION",
    "DEFAULT_CURVATURE_CONDITION",
    "goldstein_condition",
    "WolfeConditions",
]
