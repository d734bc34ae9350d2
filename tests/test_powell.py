"""
Powell's direction-set method.
"""

import numpy as np
import pytest

from learncore.core.iterative import IterativeAlgorithmListener
from learncore.minimization.line_search import LineMinimizerDerivativeFree
from learncore.minimization.powell import FunctionMinimizerDirectionSetPowell, scaled_direction


@pytest.mark.parametrize("key", ["sphere", "skewed"])
def test_powell_converges_on_quadratics(key, request):
    target = request.getfixturevalue(key)
    minimizer = FunctionMinimizerDirectionSetPowell(tolerance=1e-10, max_iterations=200)
    result = minimizer.minimize(target.func, initial_guess=target.x0)

    np.testing.assert_allclose(result.x, target.minimum, atol=1e-3)
    assert result.meta["grad_evals"] == 0
    assert result.meta["method"] == "Powell"


def test_direction_set_keeps_dimension(skewed):
    minimizer = FunctionMinimizerDirectionSetPowell(tolerance=1e-10)
    minimizer.minimize(skewed.func, initial_guess=skewed.x0)

    directions = minimizer.direction_set
    assert len(directions) == 2
    assert all(d.shape == (2,) for d in directions)

    directions[0][:] = 0.0
    assert np.any(minimizer.direction_set[0])


def test_initial_direction_set_is_the_identity(sphere):
    minimizer = FunctionMinimizerDirectionSetPowell(initial_guess=[0.0, 0.0])
    minimizer.objective = sphere.objective()
    assert minimizer.initialize_algorithm()
    np.testing.assert_array_equal(np.array(minimizer.direction_set), np.eye(2))


class StopImmediately(IterativeAlgorithmListener):
    def on_step_start(self, algorithm):
        algorithm.stop()


def test_stopped_run_keeps_initial_point(skewed):
    minimizer = FunctionMinimizerDirectionSetPowell()
    minimizer.add_listener(StopImmediately())
    result = minimizer.minimize(skewed.func, initial_guess=skewed.x0)

    np.testing.assert_allclose(result.x, skewed.x0)
    assert result.meta["stopped_by"] == "stopped"
    assert result.meta["iterations"] == 1


class StopAfterFirstLineSearch(LineMinimizerDerivativeFree):
    """Asks the owning minimizer to stop after its first line search."""

    def __init__(self):
        super().__init__()
        self.owner = None
        self.searches = 0

    def minimize_along_direction(self, function, known_value=None, known_gradient=None):
        result = super().minimize_along_direction(function, known_value, known_gradient)
        self.searches += 1
        self.owner.stop()
        return result


def test_stop_inside_a_pass_returns_partial_point(skewed):
    line_minimizer = StopAfterFirstLineSearch()
    minimizer = FunctionMinimizerDirectionSetPowell(line_minimizer=line_minimizer)
    line_minimizer.owner = minimizer
    result = minimizer.minimize(skewed.func, initial_guess=skewed.x0)

    # Only the x1 line search ran: min over x1 of f(x1, 1) is at x1 = 1.8
    assert line_minimizer.searches == 1
    np.testing.assert_allclose(result.x, [1.8, 1.0], atol=1e-3)
    assert result.f < skewed.func(np.asarray(skewed.x0, dtype=float))
    assert result.meta["stopped_by"] == "stopped"
    assert result.meta["iterations"] == 1
    assert len(minimizer.direction_set) == 2


def test_given_gradient_is_never_called(sphere):
    def gradient(x):
        raise AssertionError("Powell must not differentiate")

    result = FunctionMinimizerDirectionSetPowell(tolerance=1e-10).minimize(sphere.func, gradient, sphere.x0)

    np.testing.assert_allclose(result.x, sphere.minimum, atol=1e-3)
    assert result.meta["numerical_gradient"] is False
    assert result.meta["grad_evals"] == 0


def test_scaled_direction_returns_new_vector():
    direction = np.array([1.0, 2.0])
    scaled = scaled_direction(direction, 0.5)
    np.testing.assert_allclose(scaled, [0.5, 1.0])

    kept = scaled_direction(direction, 0.0)
    np.testing.assert_allclose(kept, direction)
    assert kept is not direction
