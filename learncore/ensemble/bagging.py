"""
bagging.py

Bagging (bootstrap aggregation) of categorizers.

Every step draws a bag of max(1, int(percent_to_sample * n)) examples with
replacement, fits one member on it with the base learner and adds it to a
WeightedVotingCategorizerEnsemble with weight 1.0.

The learner exposes the OutOfBagLearner protocol, so
OutOfBagErrorStoppingCriteria can be attached as a listener to stop early
and roll the ensemble back.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import numpy as np

from ..core.iterative import AnytimeIterativeAlgorithm
from .stump import DecisionStumpLearner, Example
from .voting import WeightedMember, WeightedVotingCategorizerEnsemble

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_PERCENT_TO_SAMPLE = 1.0


def unique_outputs(data: Sequence[Example]) -> List[Any]:
    """Distinct output categories in order of first appearance."""
    return list(dict.fromkeys(label for _, label in data))


def read_only_view(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


class BaggingCategorizerLearner(AnytimeIterativeAlgorithm):
    """
    Parameters
    ----------
    learner : object with learn(data), optional
        Base learner; DecisionStumpLearner() by default.
    max_iterations : int
        Number of members to build (upper bound when stopped early).
    percent_to_sample : float
        Bag size as a fraction of the dataset size (> 0).
    random_state : int | numpy.random.Generator | None
        Seed for numpy.random.default_rng; the same int seed gives the same
        ensemble on every learn().
    """

    def __init__(
        self,
        learner=None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        percent_to_sample: float = DEFAULT_PERCENT_TO_SAMPLE,
        random_state=None,
    ) -> None:
        super().__init__(max_iterations)
        self.learner = learner if learner is not None else DecisionStumpLearner()
        self.percent_to_sample = percent_to_sample
        self.random_state = random_state

        self.data: List[Example] = []
        self.ensemble: Optional[WeightedVotingCategorizerEnsemble] = None
        self.sample_count: int = 0
        self._data_in_bag: np.ndarray = np.zeros(0, dtype=int)
        self._rng: Optional[np.random.Generator] = None

    @property
    def percent_to_sample(self) -> float:
        return self._percent_to_sample

    @percent_to_sample.setter
    def percent_to_sample(self, value: float) -> None:
        if value <= 0.0:
            raise ValueError(f"percent_to_sample must be positive, got: {value}")
        self._percent_to_sample = float(value)

    def learn(self, data: Sequence[Example]) -> Optional[WeightedVotingCategorizerEnsemble]:
        """Build the ensemble; None for empty data."""
        self.data = list(data)
        return self.run()

    # ------------------------------------------------------------------
    # AnytimeIterativeAlgorithm
    # ------------------------------------------------------------------

    def initialize_algorithm(self) -> bool:
        n = len(self.data)
        if n == 0:
            return False

        self._rng = np.random.default_rng(self.random_state)
        self.ensemble = WeightedVotingCategorizerEnsemble(unique_outputs(self.data))
        self.result = self.ensemble
        self.sample_count = max(1, int(self.percent_to_sample * n))
        self._data_in_bag = np.zeros(n, dtype=int)
        logger.debug("bagging %d examples, %d per bag", n, self.sample_count)
        return True

    def step(self) -> bool:
        n = len(self.data)
        self._data_in_bag[:] = 0
        indices = self._rng.integers(0, n, size=self.sample_count)
        np.add.at(self._data_in_bag, indices, 1)

        bag = [self.data[i] for i in indices]
        member = self.learner.learn(bag)
        if member is not None:
            self.ensemble.add(member, 1.0)
        return True

    def cleanup_algorithm(self) -> None:
        self._rng = None

    # ------------------------------------------------------------------
    # OutOfBagLearner
    # ------------------------------------------------------------------

    @property
    def dataset_size(self) -> int:
        return len(self.data)

    @property
    def data_in_bag_indicator(self) -> np.ndarray:
        return read_only_view(self._data_in_bag)

    def example(self, index: int) -> Example:
        return self.data[index]

    def current_ensemble_snapshot(self) -> Sequence[WeightedMember]:
        return self.ensemble.members if self.ensemble is not None else ()

    def truncate_ensemble_to(self, index: int) -> None:
        self.ensemble.truncate(index + 1)


__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_PERCENT_TO_SAMPLE",
    "unique_outputs",
    "read_only_view",
    "BaggingCategorizerLearner",
]
