"""
Nelder-Mead downhill simplex.
"""

import numpy as np
import pytest

from learncore.core.iterative import IterativeAlgorithmListener
from learncore.minimization.nelder_mead import (
    FunctionMinimizerNelderMead,
    initial_simplex,
    simplex_diameter,
)


@pytest.mark.parametrize("key", ["sphere", "skewed"])
def test_nelder_mead_converges_on_quadratics(key, request):
    target = request.getfixturevalue(key)
    minimizer = FunctionMinimizerNelderMead(tolerance=1e-10)
    result = minimizer.minimize(target.func, target.grad, target.x0)

    np.testing.assert_allclose(result.x, target.minimum, atol=1e-3)
    assert result.meta["method"] == "Nelder-Mead"
    assert result.meta["stopped_by"] == "converged"
    # The gradient is never used, not even numerically
    assert result.meta["grad_evals"] == 0
    assert result.meta["numerical_gradient"] is False


def test_nelder_mead_on_rosenbrock(rosenbrock):
    minimizer = FunctionMinimizerNelderMead(tolerance=1e-12, max_iterations=5000)
    result = minimizer.minimize(rosenbrock.func, initial_guess=rosenbrock.x0)

    np.testing.assert_allclose(result.x, rosenbrock.minimum, atol=1e-3)
    assert result.f < 1e-6
    assert result.meta["simplex_diameter"] < 1e-3


def test_initial_simplex():
    simplex = initial_simplex([2.0, 0.0], scale=0.05)
    np.testing.assert_allclose(simplex, [[2.0, 0.0], [2.1, 0.0], [2.0, 0.05]])
    assert simplex_diameter(simplex) == pytest.approx(0.1)


def test_zero_simplex_scale_is_rejected():
    with pytest.raises(ValueError):
        FunctionMinimizerNelderMead(initial_simplex_scale=0.0)


class StepTypes(IterativeAlgorithmListener):
    def __init__(self):
        self.seen = []

    def on_step_end(self, algorithm):
        self.seen.append(algorithm.result.meta.get("step_type"))


def test_simplex_stays_sorted_and_result_is_best_vertex(rosenbrock):
    minimizer = FunctionMinimizerNelderMead(tolerance=1e-12, max_iterations=300)
    listener = StepTypes()
    minimizer.add_listener(listener)
    result = minimizer.minimize(rosenbrock.func, initial_guess=rosenbrock.x0)

    assert np.all(np.diff(minimizer.f_values) >= 0.0)
    np.testing.assert_allclose(result.x, minimizer.simplex[0])
    assert result.f == minimizer.f_values[0]
    assert {"reflection", "expansion", "contraction"} <= set(listener.seen)


def test_best_value_never_increases(skewed):
    values = []

    class Record(IterativeAlgorithmListener):
        def on_step_end(self, algorithm):
            values.append(algorithm.result.f)

    minimizer = FunctionMinimizerNelderMead(tolerance=1e-10)
    minimizer.add_listener(Record())
    minimizer.minimize(skewed.func, initial_guess=skewed.x0)

    assert len(values) > 1
    assert all(b <= a for a, b in zip(values, values[1:]))


class StopImmediately(IterativeAlgorithmListener):
    def on_step_start(self, algorithm):
        algorithm.stop()


def test_stopped_run_returns_best_initial_vertex(sphere):
    minimizer = FunctionMinimizerNelderMead()
    minimizer.add_listener(StopImmediately())
    result = minimizer.minimize(sphere.func, initial_guess=sphere.x0)

    vertices = initial_simplex(sphere.x0)
    best = min(vertices, key=sphere.func)
    np.testing.assert_allclose(result.x, best)
    assert result.meta["stopped_by"] == "stopped"
    assert result.meta["func_evals"] == 3


def test_missing_initial_guess_returns_none(sphere):
    assert FunctionMinimizerNelderMead().minimize(sphere.func) is None
