"""
iterative.py

Generic control loop for anytime iterative algorithms.

Every minimizer, line search and ensemble learner in the package runs on
AnytimeIterativeAlgorithm:

    initialize_algorithm()        -> False aborts with no result
    step() while keep_going       -> False means converged
    cleanup_algorithm()           -> always called exactly once

A listener can observe the run (start / step start / step end / end) and
may call stop() on the algorithm; the flag is checked between steps and at
explicit checkpoints inside a step.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


STOPPED_BY_INITIALIZE = "initialize"
STOPPED_BY_CONVERGED = "converged"
STOPPED_BY_MAX_ITERATIONS = "max_iterations"
STOPPED_BY_STOP = "stopped"


class IterativeAlgorithmListener:
    """
    Observer of an AnytimeIterativeAlgorithm run.
    All hooks are no-ops; override the ones you need.
    """

    def on_algorithm_start(self, algorithm: "AnytimeIterativeAlgorithm") -> None:
        pass

    def on_step_start(self, algorithm: "AnytimeIterativeAlgorithm") -> None:
        pass

    def on_step_end(self, algorithm: "AnytimeIterativeAlgorithm") -> None:
        pass

    def on_algorithm_end(self, algorithm: "AnytimeIterativeAlgorithm") -> None:
        pass


class AnytimeIterativeAlgorithm(ABC):
    """
    Base class for algorithms that improve a result one step at a time and
    can be stopped between steps with a usable result.

    Attributes:
        iteration       - number of steps started in the current run
        max_iterations  - hard cap on the number of steps
        keep_going      - cooperative run flag, cleared by stop()
        stopped_by      - why the last run ended (see STOPPED_BY_*)
        result          - the current best result (None before a run)
    """

    def __init__(self, max_iterations: int) -> None:
        self.max_iterations = max_iterations
        self.listeners: List[IterativeAlgorithmListener] = []
        self.iteration: int = 0
        self.keep_going: bool = False
        self.stopped_by: Optional[str] = None
        self.result: Any = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        if int(value) <= 0:
            raise ValueError(f"max_iterations must be positive, got: {value}")
        self._max_iterations = int(value)

    def add_listener(self, listener: IterativeAlgorithmListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: IterativeAlgorithmListener) -> None:
        self.listeners.remove(listener)

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Ask the algorithm to stop after the current step (or checkpoint)."""
        if self.keep_going and self.stopped_by is None:
            self.stopped_by = STOPPED_BY_STOP
        self.keep_going = False

    @property
    def is_running(self) -> bool:
        return self.keep_going

    def run(self) -> Any:
        """
        Execute one full run.

        Returns
        -------
        The algorithm's result, or None when initialize_algorithm()
        declined to start (e.g. empty data).
        """
        self.iteration = 0
        self.stopped_by = None
        self.keep_going = True

        try:
            initialized = bool(self.initialize_algorithm())
            self.keep_going = initialized and self.keep_going

            if not initialized:
                self.stopped_by = STOPPED_BY_INITIALIZE
                logger.debug("%s: initialization declined, no result", self.__class__.__name__)
                return None

            for listener in list(self.listeners):
                listener.on_algorithm_start(self)

            while self.keep_going and self.iteration < self.max_iterations:
                self.iteration += 1
                for listener in list(self.listeners):
                    listener.on_step_start(self)

                if not self.step():
                    if self.stopped_by is None:
                        self.stopped_by = STOPPED_BY_CONVERGED
                    self.keep_going = False

                for listener in list(self.listeners):
                    listener.on_step_end(self)

            if self.stopped_by is None:
                self.stopped_by = STOPPED_BY_MAX_ITERATIONS
        finally:
            self.keep_going = False
            self.cleanup_algorithm()

        for listener in list(self.listeners):
            listener.on_algorithm_end(self)

        logger.debug(
            "%s finished after %d iteration(s), stopped_by=%s",
            self.__class__.__name__, self.iteration, self.stopped_by,
        )
        return self.result

    # ------------------------------------------------------------------
    # Algorithm body
    # ------------------------------------------------------------------

    @abstractmethod
    def initialize_algorithm(self) -> bool:
        """Set up transient state; return False to abort with no result."""
        raise NotImplementedError

    @abstractmethod
    def step(self) -> bool:
        """Do one unit of work; return False when converged."""
        raise NotImplementedError

    @abstractmethod
    def cleanup_algorithm(self) -> None:
        """Release transient state. Called once per run, even on abort."""
        raise NotImplementedError


__all__ = [
    "STOPPED_BY_INITIALIZE",
    "STOPPED_BY_CONVERGED",
    "STOPPED_BY_MAX_ITERATIONS",
    "STOPPED_BY_STOP",
    "IterativeAlgorithmListener",
    "AnytimeIterativeAlgorithm",
]
