"""
Objective adapters, numerical derivatives and the benchmark registry.
"""

import numpy as np
import pytest

from learncore.core.functions import (
    TARGET_FUNCTIONS,
    DirectionalFunction,
    Objective,
    UnivariateFunction,
    as_objective,
    get_target_function,
    numerical_derivative,
    numerical_gradient,
    numerical_jacobian,
)


@pytest.mark.parametrize("key", sorted(TARGET_FUNCTIONS))
def test_numerical_gradient_matches_analytic(key):
    target = TARGET_FUNCTIONS[key]
    x = np.array([0.3, -0.7])
    np.testing.assert_allclose(numerical_gradient(target.func, x), target.grad(x), rtol=1e-5, atol=1e-6)


@pytest.mark.parametrize("key", sorted(TARGET_FUNCTIONS))
def test_known_minimum_has_zero_value_and_gradient(key):
    target = TARGET_FUNCTIONS[key]
    x_star = np.array(target.minimum)
    assert target.func(x_star) == pytest.approx(0.0, abs=1e-12)
    np.testing.assert_allclose(target.grad(x_star), [0.0, 0.0], atol=1e-12)


def test_numerical_derivative_and_jacobian():
    assert numerical_derivative(lambda s: s ** 3, 2.0) == pytest.approx(12.0, rel=1e-6)

    A = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
    np.testing.assert_allclose(numerical_jacobian(lambda x: A @ x, np.array([0.5, 1.5])), A, atol=1e-6)


def test_objective_counts_evaluations(sphere):
    objective = sphere.objective()
    objective.evaluate([0.0, 0.0])
    objective([1.0, 1.0])
    objective.differentiate([0.0, 0.0])

    assert objective.func_evals == 2
    assert objective.grad_evals == 1
    assert objective.has_gradient

    objective.reset_counters()
    assert objective.func_evals == 0 and objective.grad_evals == 0


def test_objective_without_gradient_differentiates_numerically(sphere):
    objective = Objective(sphere.func)
    assert not objective.has_gradient
    np.testing.assert_allclose(objective.differentiate([0.0, 0.0]), [-2.0, 4.0], atol=1e-6)


def test_as_objective():
    objective = Objective(lambda x: float(x @ x))
    assert as_objective(objective) is objective
    assert isinstance(as_objective(lambda x: 0.0), Objective)
    with pytest.raises(TypeError):
        as_objective(42)


def test_as_objective_leaves_callers_objective_untouched(sphere):
    objective = Objective(sphere.func, name="mine")
    wrapped = as_objective(objective, sphere.grad)

    assert wrapped is not objective
    assert not objective.has_gradient
    assert wrapped.has_gradient and wrapped.name == "mine"
    np.testing.assert_allclose(wrapped.differentiate([0.0, 0.0]), sphere.grad(np.zeros(2)))

    with_gradient = Objective(sphere.func, sphere.grad)
    assert as_objective(with_gradient, lambda x: np.zeros(2)) is with_gradient


def test_univariate_function():
    func = UnivariateFunction(lambda s: (s - 3.0) ** 2)
    assert func(1.0) == pytest.approx(4.0)
    assert func.differentiate(1.0) == pytest.approx(-4.0, rel=1e-6)

    with_deriv = UnivariateFunction(lambda s: s * s, lambda s: 2.0 * s)
    assert with_deriv.differentiate(5.0) == 10.0


def test_directional_function_reuses_last_gradient(sphere):
    objective = sphere.objective()
    line = DirectionalFunction(objective, [0.0, 0.0], [1.0, 0.0])

    assert line(1.0) == pytest.approx(4.0)
    assert line.differentiate(0.0) == pytest.approx(-2.0)
    np.testing.assert_allclose(line.compute_vector(2.0), [2.0, 0.0])

    grad_evals = objective.grad_evals
    np.testing.assert_allclose(line.gradient_at(line.compute_vector(0.0)), [-2.0, 4.0])
    assert objective.grad_evals == grad_evals

    line.gradient_at(np.array([5.0, 5.0]))
    assert objective.grad_evals == grad_evals + 1


def test_get_target_function():
    assert get_target_function("rosenbrock").minimum == (1.0, 1.0)
    with pytest.raises(ValueError):
        get_target_function("himmelblau")
