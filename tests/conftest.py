"""
Shared fixtures: benchmark targets and a small labelled dataset.
"""

import matplotlib

matplotlib.use("Agg")

import pytest

from learncore.core.functions import TARGET_FUNCTIONS


@pytest.fixture
def sphere():
    return TARGET_FUNCTIONS["sphere"]


@pytest.fixture
def skewed():
    return TARGET_FUNCTIONS["skewed"]


@pytest.fixture
def rosenbrock():
    return TARGET_FUNCTIONS["rosenbrock"]


@pytest.fixture
def threshold_data():
    """20 one-dimensional points: "low" below 10, "high" from 10 on."""
    return [([float(x)], "low" if x < 10 else "high") for x in range(20)]
