"""
Nonlinear conjugate gradients (Fletcher-Reeves / Polak-Ribiere).
"""

import numpy as np
import pytest

from learncore.minimization.conjugate_gradient import (
    BETA_RULE_FLETCHER_REEVES,
    BETA_RULE_POLAK_RIBIERE,
    FunctionMinimizerConjugateGradient,
    fletcher_reeves_beta,
    polak_ribiere_beta,
)


def test_beta_rules():
    g = np.array([1.0, 0.0])
    g_prev = np.array([2.0, 0.0])
    assert fletcher_reeves_beta(g, g_prev) == pytest.approx(0.25)
    # 1 * (1 - 2) / 4 < 0 is clamped
    assert polak_ribiere_beta(g, g_prev) == 0.0
    assert polak_ribiere_beta(np.array([1.0, 1.0]), np.array([1.0, 0.0])) == pytest.approx(1.0)

    zero = np.zeros(2)
    assert fletcher_reeves_beta(g, zero) == 0.0
    assert polak_ribiere_beta(g, zero) == 0.0


@pytest.mark.parametrize("rule", [BETA_RULE_FLETCHER_REEVES, BETA_RULE_POLAK_RIBIERE])
def test_conjugate_gradient_on_sphere(rule, sphere):
    minimizer = FunctionMinimizerConjugateGradient(beta_rule=rule, tolerance=1e-10)
    result = minimizer.minimize(sphere.func, sphere.grad, [0.0, 0.0])
    np.testing.assert_allclose(result.x, sphere.minimum, atol=1e-5)
    assert result.meta["method"] == f"ConjugateGradient[{rule}]"


@pytest.mark.parametrize("rule", [BETA_RULE_FLETCHER_REEVES, BETA_RULE_POLAK_RIBIERE])
def test_conjugate_gradient_on_skewed_quadratic(rule, skewed):
    minimizer = FunctionMinimizerConjugateGradient(beta_rule=rule, tolerance=1e-10, max_iterations=500)
    result = minimizer.minimize(skewed.func, skewed.grad, skewed.x0)
    np.testing.assert_allclose(result.x, skewed.minimum, atol=1e-3)


def test_unknown_beta_rule():
    with pytest.raises(ValueError):
        FunctionMinimizerConjugateGradient(beta_rule="hestenes_stiefel")
