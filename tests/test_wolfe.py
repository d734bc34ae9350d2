"""
Goldstein and strict-curvature acceptance tests.
"""

import pytest

from learncore.minimization.line_bracket import InputOutputSlopeTriplet, LineBracket
from learncore.minimization.wolfe import WolfeConditions, goldstein_condition

ORIGIN = InputOutputSlopeTriplet(0.0, 1.0, -1.0)


def test_goldstein_condition():
    # bound at x = 1 is 1 + 1 * 0.01 * (-1) = 0.99
    assert goldstein_condition(ORIGIN, InputOutputSlopeTriplet(1.0, 0.98), 0.01)
    assert not goldstein_condition(ORIGIN, InputOutputSlopeTriplet(1.0, 0.995), 0.01)


def test_strict_curvature_condition():
    wolfe = WolfeConditions(ORIGIN, 0.01, 0.1)
    assert wolfe.evaluate_strict_curvature_condition(0.05)
    assert wolfe.evaluate_strict_curvature_condition(-0.1)
    assert not wolfe.evaluate_strict_curvature_condition(0.2)
    with pytest.raises(ValueError):
        wolfe.evaluate_strict_curvature_condition(None)


def test_evaluate_combines_both_tests():
    wolfe = WolfeConditions(ORIGIN)
    assert wolfe.evaluate(InputOutputSlopeTriplet(1.0, 0.5, 0.01))
    assert not wolfe.evaluate(InputOutputSlopeTriplet(1.0, 0.5, -0.5))
    assert not wolfe.evaluate(InputOutputSlopeTriplet(1.0, 2.0, 0.0))


@pytest.mark.parametrize(
    "origin, slope_condition, curvature_condition",
    [
        (InputOutputSlopeTriplet(0.0, 1.0), 0.01, 0.1),
        (InputOutputSlopeTriplet(0.0, 1.0, 0.0), 0.01, 0.1),
        (InputOutputSlopeTriplet(0.0, 1.0, 2.0), 0.01, 0.1),
        (ORIGIN, 0.0, 0.1),
        (ORIGIN, 0.01, 1.0),
        (ORIGIN, 0.5, 0.1),
        (ORIGIN, 0.1, 0.1),
    ],
)
def test_invalid_configuration(origin, slope_condition, curvature_condition):
    with pytest.raises(ValueError):
        WolfeConditions(origin, slope_condition, curvature_condition)


def test_line_bracket():
    bracket = LineBracket()
    assert not bracket.is_valid()
    assert bracket.best_point() is None

    bracket.lower_bound = InputOutputSlopeTriplet(0.0, 3.0)
    bracket.upper_bound = InputOutputSlopeTriplet(2.0, 1.0)
    bracket.other_point = InputOutputSlopeTriplet(1.0, 2.0)
    assert bracket.is_valid()
    assert bracket.width() == 2.0
    assert bracket.best_point().input == 2.0

    point = bracket.lower_bound.with_slope(-1.5)
    assert point.has_slope and point.slope == -1.5
    assert not bracket.lower_bound.has_slope
