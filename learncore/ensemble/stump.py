"""
stump.py

Decision stump: a one-split categorizer used as the default weak learner of
the ensemble learners.

    x[feature] <= threshold  -> below
    otherwise                -> above

The learner tries every midpoint between consecutive distinct values of
every feature and keeps the split with the smallest weighted
misclassification. A constant feature set gives a stump without a split
that always answers the majority category.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Hashable, Optional, Sequence, Tuple

import numpy as np

Example = Tuple[Any, Hashable]


@dataclass
class DecisionStump:
    feature: Optional[int]
    threshold: float
    below: Hashable
    above: Hashable

    def evaluate(self, x: Any) -> Hashable:
        if self.feature is None:
            return self.below
        value = float(np.atleast_1d(np.asarray(x, dtype=float))[self.feature])
        return self.below if value <= self.threshold else self.above

    def __call__(self, x: Any) -> Hashable:
        return self.evaluate(x)


def _majority(counts: Counter) -> Tuple[Hashable, float]:
    """(category, weight) with the largest weight; first seen wins ties."""
    category, weight = counts.most_common(1)[0]
    return category, weight


class DecisionStumpLearner:
    """Fits a DecisionStump to a sequence of (input, output) pairs."""

    def learn(
        self,
        data: Sequence[Example],
        weights: Optional[Sequence[float]] = None,
    ) -> Optional[DecisionStump]:
        """Best single split, or None for empty data."""
        if len(data) == 0:
            return None

        X = np.array([np.atleast_1d(np.asarray(x, dtype=float)) for x, _ in data])
        y = [label for _, label in data]
        w = np.ones(len(data)) if weights is None else np.asarray(weights, dtype=float)

        total: Counter = Counter()
        for label, weight in zip(y, w):
            total[label] += weight
        majority, majority_weight = _majority(total)
        total_weight = float(np.sum(w))

        best = DecisionStump(feature=None, threshold=np.inf, below=majority, above=majority)
        best_error = total_weight - majority_weight

        for feature in range(X.shape[1]):
            order = np.argsort(X[:, feature], kind="stable")
            values = X[order, feature]
            left: Counter = Counter()
            for position in range(len(order) - 1):
                i = order[position]
                left[y[i]] += w[i]
                if values[position] == values[position + 1]:
                    continue

                right = total - left
                below, below_correct = _majority(left)
                above, above_correct = _majority(right) if right else (below, 0.0)
                error = total_weight - below_correct - above_correct
                if error < best_error:
                    best_error = error
                    best = DecisionStump(
                        feature=feature,
                        threshold=0.5 * (values[position] + values[position + 1]),
                        below=below,
                        above=above,
                    )

        return best


__all__ = [
    "DecisionStump",
    "DecisionStumpLearner",
]
