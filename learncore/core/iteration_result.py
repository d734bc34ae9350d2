"""
iteration_result.py

Per-iteration trace records for minimization runs, plus a listener that
collects them from any function minimizer. The trace feeds the plotting
helpers and the results table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from .iterative import AnytimeIterativeAlgorithm, IterativeAlgorithmListener


@dataclass
class IterationResult:
    """
    One iteration of a minimization run.

    Attributes:
        index      - iteration number (0 is the initial guess)
        x          - current point x_k
        f          - f(x_k)
        step_norm  - ||x_k - x_{k-1}|| (0.0 for k = 0)
        meta       - anything else (line-search step length, ...)
    """
    index: int
    x: np.ndarray
    f: float
    step_norm: float
    meta: Dict[str, Any] = field(default_factory=dict)


class IterationRecorder(IterativeAlgorithmListener):
    """
    Listener that records the algorithm's current result after every step.

    Works with any algorithm whose ``result`` has ``x`` and ``f`` attributes
    (MinimizationResult). Steps that leave ``result`` as None are skipped.
    """

    def __init__(self) -> None:
        self.iterations: List[IterationResult] = []

    def _record(self, algorithm: AnytimeIterativeAlgorithm, index: int) -> None:
        result = algorithm.result
        if result is None:
            return
        x = np.array(result.x, dtype=float, copy=True)
        if self.iterations:
            step_norm = float(np.linalg.norm(x - self.iterations[-1].x))
        else:
            step_norm = 0.0
        meta = {"step_length": float(getattr(result, "step_length", 0.0))}
        if index == 0:
            meta["initial"] = True
        self.iterations.append(
            IterationResult(index=index, x=x, f=float(result.f), step_norm=step_norm, meta=meta)
        )

    def on_algorithm_start(self, algorithm: AnytimeIterativeAlgorithm) -> None:
        self.iterations = []
        self._record(algorithm, 0)

    def on_step_end(self, algorithm: AnytimeIterativeAlgorithm) -> None:
        self._record(algorithm, algorithm.iteration)


__all__ = [
    "IterationResult",
    "IterationRecorder",
]
