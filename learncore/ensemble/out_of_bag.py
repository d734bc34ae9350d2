"""
out_of_bag.py

Out-of-bag early stopping for bagging-style ensemble learners.

After every step of the learner, each example left out of that step's bag
receives the newest member's vote. The ensemble's out-of-bag vote for such
an example may flip between correct and wrong; the error count is updated
only on a flip, so one step costs O(number of out-of-bag examples).

The raw error rate (error count / dataset size) is smoothed with the mean
of the last smoothing_window_size rates. As soon as the smoothed rate stops
decreasing, the learner is stopped and its ensemble truncated back to the
member with the lowest raw rate inside the smoothing window.

The criterion talks to the learner only through the OutOfBagLearner
protocol.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, deque
from typing import Any, Deque, List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from ..core.iterative import IterativeAlgorithmListener
from .voting import WeightedMember, evaluate_member

logger = logging.getLogger(__name__)

DEFAULT_SMOOTHING_WINDOW_SIZE = 25


@runtime_checkable
class OutOfBagLearner(Protocol):
    """What an ensemble learner exposes to out-of-bag stopping."""

    @property
    def dataset_size(self) -> int:
        ...

    @property
    def data_in_bag_indicator(self) -> np.ndarray:
        """Per-example bag count of the current step (read-only view)."""
        ...

    def example(self, index: int) -> Any:
        """The (input, output) pair at index."""
        ...

    def current_ensemble_snapshot(self) -> Sequence[WeightedMember]:
        ...

    def truncate_ensemble_to(self, index: int) -> None:
        """Keep members[0..index], drop the rest."""
        ...

    def stop(self) -> None:
        ...


class OutOfBagErrorStoppingCriteria(IterativeAlgorithmListener):
    """
    Listener implementing out-of-bag stopping with ensemble rollback.

    Attributes (valid after a run):
        raw_error_rates       - out-of-bag error rate after each step
        smoothed_error_rates  - running mean over the smoothing window
        best_index            - member index the ensemble was truncated to
                                (None if the criterion never fired)
    """

    def __init__(self, smoothing_window_size: int = DEFAULT_SMOOTHING_WINDOW_SIZE) -> None:
        if smoothing_window_size <= 0:
            raise ValueError(
                f"smoothing_window_size must be positive, got: {smoothing_window_size}"
            )
        self.smoothing_window_size = int(smoothing_window_size)

        self.raw_error_rates: List[float] = []
        self.smoothed_error_rates: List[float] = []
        self.best_index: Optional[int] = None

        self._smoothing_buffer: Deque[float] = deque(maxlen=self.smoothing_window_size)
        self._previous_smoothed_error_rate: float = math.inf
        self._out_of_bag_votes: Optional[List[Counter]] = None
        self._out_of_bag_correct: Optional[np.ndarray] = None
        self.out_of_bag_error_count: int = 0
        self._dataset_size: int = 0
        self._member_count: int = 0

    # ------------------------------------------------------------------
    # Error-rate bookkeeping
    # ------------------------------------------------------------------

    def reset(self, dataset_size: int) -> None:
        """Fresh state for a dataset of the given size (everything wrong)."""
        self._dataset_size = int(dataset_size)
        self._out_of_bag_votes = [Counter() for _ in range(self._dataset_size)]
        self._out_of_bag_correct = np.zeros(self._dataset_size, dtype=bool)
        self.out_of_bag_error_count = self._dataset_size
        self._member_count = 0
        self.raw_error_rates = []
        self.smoothed_error_rates = []
        self.best_index = None
        self._smoothing_buffer = deque(maxlen=self.smoothing_window_size)
        self._previous_smoothed_error_rate = math.inf

    def update_error_rate(self, error_rate: float) -> Optional[int]:
        """
        Record one raw error rate.

        Returns the index of the best member to roll back to when the
        smoothed rate did not improve, None otherwise.
        """
        self.raw_error_rates.append(float(error_rate))
        self._smoothing_buffer.append(float(error_rate))
        smoothed = float(np.mean(self._smoothing_buffer))
        self.smoothed_error_rates.append(smoothed)

        best_index = None
        if smoothed >= self._previous_smoothed_error_rate:
            # Walk the window backwards; <= lets an equal older rate win
            last = len(self.raw_error_rates) - 1
            best_rate = math.inf
            for offset in range(len(self._smoothing_buffer)):
                index = last - offset
                if self.raw_error_rates[index] <= best_rate:
                    best_rate = self.raw_error_rates[index]
                    best_index = index

        self._previous_smoothed_error_rate = smoothed
        return best_index

    # ------------------------------------------------------------------
    # Listener hooks
    # ------------------------------------------------------------------

    def on_algorithm_start(self, algorithm: OutOfBagLearner) -> None:
        self.reset(algorithm.dataset_size)

    def on_step_end(self, algorithm: OutOfBagLearner) -> None:
        members = algorithm.current_ensemble_snapshot()
        # The base learner declined this bag: no new member, nothing to record
        if len(members) == self._member_count:
            return
        self._member_count = len(members)
        newest = members[-1]
        in_bag = algorithm.data_in_bag_indicator

        for i in np.flatnonzero(in_bag <= 0):
            x, actual = algorithm.example(int(i))
            guess = evaluate_member(newest.member, x)
            votes = self._out_of_bag_votes[i]
            if guess is not None:
                votes[guess] += newest.weight

            ensemble_guess = votes.most_common(1)[0][0] if votes else None
            correct = ensemble_guess is not None and ensemble_guess == actual
            if correct != self._out_of_bag_correct[i]:
                self._out_of_bag_correct[i] = correct
                self.out_of_bag_error_count += -1 if correct else 1

        error_rate = self.out_of_bag_error_count / self._dataset_size
        best_index = self.update_error_rate(error_rate)
        if best_index is not None:
            self.best_index = best_index
            logger.debug(
                "out-of-bag error stopped improving at step %d (smoothed %.4f), "
                "rolling back to member %d (raw %.4f)",
                len(self.raw_error_rates), self.smoothed_error_rates[-1],
                best_index, self.raw_error_rates[best_index],
            )
            algorithm.stop()
            algorithm.truncate_ensemble_to(best_index)
            self._member_count = best_index + 1

    def on_algorithm_end(self, algorithm: OutOfBagLearner) -> None:
        # Histories stay readable; per-example state is released.
        self._out_of_bag_votes = None
        self._out_of_bag_correct = None


__all__ = [
    "DEFAULT_SMOOTHING_WINDOW_SIZE",
    "OutOfBagLearner",
    "OutOfBagErrorStoppingCriteria",
]
