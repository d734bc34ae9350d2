"""
adaboost.py

Multi-category AdaBoost (AdaBoost.M1) over a weak categorizer learner.

Every step:
    - normalize the example weights to sum to 1;
    - fit one member with weak_learner.learn(data, weights);
    - weighted error e = sum of the weights of misclassified examples;
    - e >= 0.5: the member is no better than chance, stop without it;
    - beta = e / (1 - e); add the member with weight log(1 / beta)
      (infinite when e == 0, and the run stops there);
    - multiply the weights of correctly classified examples by beta.

The result is a WeightedVotingCategorizerEnsemble.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from ..core.iterative import AnytimeIterativeAlgorithm
from .bagging import unique_outputs
from .stump import DecisionStumpLearner, Example
from .voting import WeightedVotingCategorizerEnsemble, evaluate_member

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100


class AdaBoostCategorizerLearner(AnytimeIterativeAlgorithm):
    """
    Parameters
    ----------
    weak_learner : object with learn(data, weights), optional
        DecisionStumpLearner() by default.
    max_iterations : int
        Upper bound on the number of members.
    """

    def __init__(self, weak_learner=None, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        super().__init__(max_iterations)
        self.weak_learner = weak_learner if weak_learner is not None else DecisionStumpLearner()

        self.data: List[Example] = []
        self.weights: np.ndarray = np.zeros(0)
        self.error_rates: List[float] = []
        self.ensemble: Optional[WeightedVotingCategorizerEnsemble] = None

    def learn(self, data: Sequence[Example]) -> Optional[WeightedVotingCategorizerEnsemble]:
        """Boost on data; examples without an output are ignored. None if nothing is left."""
        self.data = [(x, label) for x, label in data if label is not None]
        return self.run()

    # ------------------------------------------------------------------
    # AnytimeIterativeAlgorithm
    # ------------------------------------------------------------------

    def initialize_algorithm(self) -> bool:
        if not self.data:
            return False

        self.weights = np.full(len(self.data), 1.0 / len(self.data))
        self.error_rates = []
        self.ensemble = WeightedVotingCategorizerEnsemble(unique_outputs(self.data))
        self.result = self.ensemble
        return True

    def step(self) -> bool:
        self.weights = self.weights / np.sum(self.weights)

        member = self.weak_learner.learn(self.data, self.weights)
        if member is None:
            return False

        correct = np.array([evaluate_member(member, x) == label for x, label in self.data])
        error = float(np.sum(self.weights[~correct]))
        self.error_rates.append(error)

        if error >= 0.5:
            logger.debug("iteration %d: weighted error %.4f, no better than chance", self.iteration, error)
            return False

        if error == 0.0:
            self.ensemble.add(member, math.inf)
            logger.debug("iteration %d: member classifies every example", self.iteration)
            return False

        beta = error / (1.0 - error)
        self.ensemble.add(member, math.log(1.0 / beta))
        self.weights[correct] *= beta
        return True

    def cleanup_algorithm(self) -> None:
        pass


__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "AdaBoostCategorizerLearner",
]
