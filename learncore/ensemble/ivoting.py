"""
ivoting.py

Importance-sampled voting (Breiman's "pasting small votes").

Each step builds a bag of sample_size examples, about
proportion_incorrect_in_sample of them drawn (with replacement) from the
examples the current ensemble gets wrong and the rest from the ones it gets
right. When one of the two pools is empty, both halves come from the other.

Every example keeps two vote distributions built with counter_factory:
votes from all members and votes from members it was out-of-bag for. The
ensemble's answer for an example is the out-of-bag winner when
vote_out_of_bag_only is set and it has out-of-bag votes, the overall winner
otherwise. An example without any vote is treated as correct (it sat in
every bag so far).
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..core.iterative import AnytimeIterativeAlgorithm
from .bagging import read_only_view, unique_outputs
from .stump import DecisionStumpLearner, Example
from .voting import WeightedMember, WeightedVotingCategorizerEnsemble, evaluate_member

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 500
DEFAULT_PERCENT_TO_SAMPLE = 0.1
DEFAULT_PROPORTION_INCORRECT_IN_SAMPLE = 0.5
DEFAULT_VOTE_OUT_OF_BAG_ONLY = True


class IVotingCategorizerLearner(AnytimeIterativeAlgorithm):
    """
    Parameters
    ----------
    learner : object with learn(data), optional
        Base learner; DecisionStumpLearner() by default.
    max_iterations : int
    percent_to_sample : float
        Bag size as a fraction of the dataset size (> 0).
    proportion_incorrect_in_sample : float
        Share of the bag drawn from misclassified examples, in [0, 1].
    vote_out_of_bag_only : bool
    counter_factory : callable
        Creates an empty vote distribution (Counter-like, with update by
        ``dist[category] += weight``).
    random_state : int | numpy.random.Generator | None
    """

    def __init__(
        self,
        learner=None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        percent_to_sample: float = DEFAULT_PERCENT_TO_SAMPLE,
        proportion_incorrect_in_sample: float = DEFAULT_PROPORTION_INCORRECT_IN_SAMPLE,
        vote_out_of_bag_only: bool = DEFAULT_VOTE_OUT_OF_BAG_ONLY,
        counter_factory: Callable[[], Counter] = Counter,
        random_state=None,
    ) -> None:
        super().__init__(max_iterations)
        self.learner = learner if learner is not None else DecisionStumpLearner()
        self.percent_to_sample = percent_to_sample
        self.proportion_incorrect_in_sample = proportion_incorrect_in_sample
        self.vote_out_of_bag_only = bool(vote_out_of_bag_only)
        self.counter_factory = counter_factory
        self.random_state = random_state

        self.data: List[Example] = []
        self.ensemble: Optional[WeightedVotingCategorizerEnsemble] = None
        self.sample_size: int = 0
        self.num_incorrect_to_sample: int = 0
        self.num_correct_to_sample: int = 0
        self.current_ensemble_correct: Optional[np.ndarray] = None
        self._full_votes: Optional[List[Counter]] = None
        self._out_of_bag_votes: Optional[List[Counter]] = None
        self._data_in_bag: np.ndarray = np.zeros(0, dtype=int)
        self._rng: Optional[np.random.Generator] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def percent_to_sample(self) -> float:
        return self._percent_to_sample

    @percent_to_sample.setter
    def percent_to_sample(self, value: float) -> None:
        if value <= 0.0:
            raise ValueError(f"percent_to_sample must be positive, got: {value}")
        self._percent_to_sample = float(value)

    @property
    def proportion_incorrect_in_sample(self) -> float:
        return self._proportion_incorrect_in_sample

    @proportion_incorrect_in_sample.setter
    def proportion_incorrect_in_sample(self, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"proportion_incorrect_in_sample must be in [0, 1], got: {value}")
        self._proportion_incorrect_in_sample = float(value)

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

        self._full_votes = [self.counter_factory() for _ in range(n)]
        self._out_of_bag_votes = [self.counter_factory() for _ in range(n)]
        # Everything is incorrect before the first member
        self.current_ensemble_correct = np.zeros(n, dtype=bool)
        self._data_in_bag = np.zeros(n, dtype=int)

        self.sample_size = max(1, int(self.percent_to_sample * n))
        self.num_incorrect_to_sample = int(self.proportion_incorrect_in_sample * self.sample_size)
        self.num_correct_to_sample = self.sample_size - self.num_incorrect_to_sample
        logger.debug(
            "i-voting %d examples: %d correct + %d incorrect per bag",
            n, self.num_correct_to_sample, self.num_incorrect_to_sample,
        )
        return True

    def _sample_into(self, pool: np.ndarray, count: int, bag: List[Example]) -> None:
        if count <= 0:
            return
        indices = pool[self._rng.integers(0, pool.size, size=count)]
        np.add.at(self._data_in_bag, indices, 1)
        bag.extend(self.data[i] for i in indices)

    def step(self) -> bool:
        self._data_in_bag[:] = 0

        correct_pool = np.flatnonzero(self.current_ensemble_correct)
        incorrect_pool = np.flatnonzero(~self.current_ensemble_correct)
        if incorrect_pool.size == 0:
            incorrect_pool = correct_pool
        elif correct_pool.size == 0:
            correct_pool = incorrect_pool

        bag: List[Example] = []
        self._sample_into(correct_pool, self.num_correct_to_sample, bag)
        self._sample_into(incorrect_pool, self.num_incorrect_to_sample, bag)

        member = self.learner.learn(bag)
        if member is None:
            return True
        self.ensemble.add(member, 1.0)

        for i, (x, actual) in enumerate(self.data):
            guess = evaluate_member(member, x)
            full = self._full_votes[i]
            out_of_bag = self._out_of_bag_votes[i]
            if guess is not None:
                full[guess] += 1.0
                if self._data_in_bag[i] <= 0:
                    out_of_bag[guess] += 1.0

            if self.vote_out_of_bag_only and out_of_bag:
                ensemble_guess = WeightedVotingCategorizerEnsemble.winner(out_of_bag)
            else:
                ensemble_guess = WeightedVotingCategorizerEnsemble.winner(full)

            self.current_ensemble_correct[i] = ensemble_guess is None or ensemble_guess == actual

        return True

    def cleanup_algorithm(self) -> None:
        self._full_votes = None
        self._out_of_bag_votes = None
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
    "DEFAULT_PROPORTION_INCORRECT_IN_SAMPLE",
    "DEFAULT_VOTE_OUT_OF_BAG_ONLY",
    "IVotingCategorizerLearner",
]
