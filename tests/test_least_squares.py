"""
Gauss-Newton and Fletcher-Xu hybrid least-squares estimation.
"""

import numpy as np
import pytest

from learncore.minimization.line_search import LineMinimizerBacktracking, LineMinimizerDerivativeBased
from learncore.regression.least_squares import (
    STEP_MAX,
    FletcherXuHybridEstimator,
    GaussNewtonEstimator,
    LeastSquaresProblem,
    clip_direction,
)

X_EXP = np.linspace(0.0, 2.0, 12)
TRUE_EXP = np.array([2.0, 0.5])


def linear_model(theta, x):
    return theta[0] + theta[1] * x


def exponential_model(theta, x):
    return theta[0] * np.exp(theta[1] * x)


def exponential_gradient(theta, x):
    e = np.exp(theta[1] * x)
    return [e, theta[0] * x * e]


@pytest.fixture
def exponential_problem():
    targets = [exponential_model(TRUE_EXP, x) for x in X_EXP]
    return LeastSquaresProblem.from_model(exponential_model, X_EXP, targets, exponential_gradient)


def test_problem_cost_and_gradient():
    xs = [0.0, 1.0, 2.0]
    problem = LeastSquaresProblem.from_model(linear_model, xs, [1.0, 3.0, 5.0])
    theta = np.array([0.0, 0.0])

    np.testing.assert_allclose(problem.residual_vector(theta), [-1.0, -3.0, -5.0])
    assert problem.cost(theta) == pytest.approx(17.5)
    # numerical Jacobian of the linear model is [1, x]
    np.testing.assert_allclose(problem.jacobian_matrix(theta), [[1, 0], [1, 1], [1, 2]], atol=1e-6)
    np.testing.assert_allclose(problem.gradient(theta), [-9.0, -13.0], atol=1e-5)

    cache = problem.compute_cache(theta)
    assert cache.cost == pytest.approx(17.5)
    np.testing.assert_allclose(cache.gradient, [-9.0, -13.0], atol=1e-5)


def test_from_model_length_mismatch():
    with pytest.raises(ValueError):
        LeastSquaresProblem.from_model(linear_model, [0.0, 1.0], [1.0])


def test_gauss_newton_linear_model():
    xs = np.arange(5.0)
    problem = LeastSquaresProblem.from_model(linear_model, xs, 1.0 + 2.0 * xs)
    result = GaussNewtonEstimator().estimate(problem, [0.0, 0.0])

    np.testing.assert_allclose(result.x, [1.0, 2.0], atol=1e-6)
    assert result.f == pytest.approx(0.0, abs=1e-10)
    assert result.meta["method"] == "GaussNewton"


@pytest.mark.parametrize("estimator", [GaussNewtonEstimator, FletcherXuHybridEstimator])
def test_estimators_default_to_derivative_based_line_search(estimator, exponential_problem):
    assert isinstance(estimator().line_minimizer, LineMinimizerDerivativeBased)

    backtracking = estimator(line_minimizer=LineMinimizerBacktracking())
    result = backtracking.estimate(exponential_problem, [1.0, 0.0])
    assert isinstance(backtracking.line_minimizer, LineMinimizerBacktracking)
    assert result.f < exponential_problem.cost([1.0, 0.0])


def test_from_model_takes_model_gradient_by_keyword():
    xs = [0.0, 1.0, 2.0]
    problem = LeastSquaresProblem.from_model(
        linear_model, xs, [1.0, 3.0, 5.0], model_gradient=lambda theta, x: [1.0, x]
    )
    np.testing.assert_array_equal(problem.jacobian_matrix([0.0, 0.0]), [[1, 0], [1, 1], [1, 2]])


def test_gauss_newton_exponential_model(exponential_problem):
    estimator = GaussNewtonEstimator(tolerance=1e-8)
    result = estimator.estimate(exponential_problem, [1.0, 0.2])
    np.testing.assert_allclose(result.x, TRUE_EXP, atol=1e-4)


def test_fletcher_xu_exponential_model(exponential_problem):
    estimator = FletcherXuHybridEstimator(tolerance=1e-8)
    result = estimator.estimate(exponential_problem, [1.0, 0.2])

    np.testing.assert_allclose(result.x, TRUE_EXP, atol=1e-4)
    assert estimator.levenberg_marquardt_steps + estimator.bfgs_steps >= 1


def test_estimator_needs_a_problem():
    with pytest.raises(ValueError):
        GaussNewtonEstimator().minimize(lambda theta: 0.0, None, [0.0])


def test_missing_initial_guess_gives_none(exponential_problem):
    assert GaussNewtonEstimator().estimate(exponential_problem) is None


def test_clip_direction():
    long = np.array([300.0, 400.0])
    clipped = clip_direction(long)
    assert np.linalg.norm(clipped) == pytest.approx(STEP_MAX)
    np.testing.assert_allclose(clipped / np.linalg.norm(clipped), [0.6, 0.8])

    short = np.array([1.0, 1.0])
    assert clip_direction(short) is short


@pytest.mark.parametrize("kwargs", [{"reduction_test": 0.0}, {"reduction_test": 1.0}, {"damping_divisor": 1.0}])
def test_fletcher_xu_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        FletcherXuHybridEstimator(**kwargs)
