"""
results_summary.py

Comparison table of several minimization runs on the same objective.

Works with any object shaped like MinimizationResult:
    - x
    - f
    - meta["method"], meta["iterations"], meta["func_evals"],
      meta["grad_evals"], meta["stopped_by"]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class ResultsSummary:
    """
    Summary of several minimizer runs.

    Example:
        summary = ResultsSummary()
        summary.add_run(FunctionMinimizerBFGS().minimize(f, grad, x0))
        summary.add_run(FunctionMinimizerDirectionSetPowell().minimize(f, x0))
        rows = summary.as_rows()
    """
    runs: List[Any] = field(default_factory=list)

    def add_run(self, run: Any) -> None:
        """Add one run; None (a run that never started) is ignored."""
        if run is not None:
            self.runs.append(run)

    # ------------------------------------------------------------------
    # Tabular view
    # ------------------------------------------------------------------

    def as_rows(self) -> List[Dict[str, Any]]:
        """
        Return one dict per run, suitable for a DataFrame or CSV export.

        Keys: method, x_star, f_star, n_iter, func_evals, grad_evals, stopped_by
        """
        rows: List[Dict[str, Any]] = []

        for run in self.runs:
            meta = getattr(run, "meta", None) or {}
            x_star = getattr(run, "x", None)
            f_star = getattr(run, "f", None)

            if isinstance(x_star, np.ndarray):
                x_star_repr = x_star.tolist()
            else:
                x_star_repr = x_star

            n_iter = meta.get("iterations")
            func_evals = meta.get("func_evals")
            grad_evals = meta.get("grad_evals")

            rows.append(
                {
                    "method": meta.get("method", "<unknown>"),
                    "x_star": x_star_repr,
                    "f_star": float(f_star) if f_star is not None else None,
                    "n_iter": int(n_iter) if n_iter is not None else None,
                    "func_evals": int(func_evals) if func_evals is not None else None,
                    "grad_evals": int(grad_evals) if grad_evals is not None else None,
                    "stopped_by": meta.get("stopped_by"),
                }
            )

        return rows

    def best_by_f(self) -> Optional[Any]:
        """Run with the smallest f; None if there are no runs with a value."""
        best_run = None
        best_f = None

        for run in self.runs:
            f_star = getattr(run, "f", None)
            if f_star is None:
                continue
            f_val = float(f_star)
            if best_f is None or f_val < best_f:
                best_f = f_val
                best_run = run

        return best_run

    def to_dataframe(self):
        """
        Return the table as a pandas.DataFrame.

        Requires the optional 'pandas' dependency.
        """
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "ResultsSummary.to_dataframe() needs the 'pandas' package "
                "(pip install learncore[pandas])."
            ) from exc

        return pd.DataFrame(self.as_rows())


__all__ = ["ResultsSummary"]
