"""
plotting.py

matplotlib figures for minimization runs and out-of-bag curves:

    - f(k) against the iteration number;
    - contour lines of a 2-D target function with the iterate path;
    - raw and smoothed out-of-bag error rates with the rollback point.

Every function builds its own matplotlib.figure.Figure (no pyplot state),
so the result can be saved with fig.savefig(...) or embedded in any canvas.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import numpy as np
from matplotlib.figure import Figure

from .core.functions import TargetFunction
from .core.iteration_result import IterationResult
from .ensemble.out_of_bag import OutOfBagErrorStoppingCriteria

_ACCENT = "#5fb3f7"
_ACCENT_ALT = "#f7a35f"
_MUTED = "#9aa4b5"
_GRID = "#d0d5dd"


def _style_axes(ax) -> None:
    ax.tick_params(labelsize=9)
    ax.grid(True, color=_GRID, linestyle="--", linewidth=0.5, alpha=0.6)


def _placeholder(ax, message: str) -> None:
    ax.text(0.5, 0.5, message, ha="center", va="center", transform=ax.transAxes, color=_MUTED)


# ---------------------------------------------------------------------------
# Minimization
# ---------------------------------------------------------------------------

def plot_minimization_trace(
    iterations: Sequence[IterationResult],
    title: Optional[str] = None,
) -> Figure:
    """f(x_k) against k on a logarithmic axis (symlog when f reaches 0 or below)."""
    figure = Figure(figsize=(6, 4))
    ax = figure.add_subplot(111)
    _style_axes(ax)

    if not iterations:
        _placeholder(ax, "no iterations recorded")
        return figure

    ks = [it.index for it in iterations]
    fs = np.array([float(it.f) for it in iterations])

    ax.plot(ks, fs, marker="o", linestyle="-", linewidth=1.5, markersize=4, color=_ACCENT)
    ax.set_yscale("log" if np.all(fs > 0.0) else "symlog")
    ax.set_xlabel("k (iteration)")
    ax.set_ylabel("f(x_k)")
    ax.set_title(title or "f(k)")
    figure.tight_layout()
    return figure


def plot_contour_path(
    target: TargetFunction | Callable[[np.ndarray], float],
    iterations: Sequence[IterationResult],
    levels: int = 18,
    padding: float = 0.5,
    grid_size: int = 80,
) -> Figure:
    """Contour lines of a 2-D function with the path x_0, x_1, ... on top."""
    func = target.func if isinstance(target, TargetFunction) else target
    name = target.name if isinstance(target, TargetFunction) else "f"

    figure = Figure(figsize=(6, 5))
    ax = figure.add_subplot(111)
    _style_axes(ax)

    if not iterations:
        _placeholder(ax, "no iterations recorded")
        return figure

    xs = np.array([it.x for it in iterations], dtype=float)
    if xs.ndim != 2 or xs.shape[1] != 2:
        _placeholder(ax, "contour is only available for functions of two variables")
        return figure

    x1_min, x1_max = xs[:, 0].min(), xs[:, 0].max()
    x2_min, x2_max = xs[:, 1].min(), xs[:, 1].max()
    if abs(x1_max - x1_min) < 1e-9:
        x1_min -= 1.0
        x1_max += 1.0
    if abs(x2_max - x2_min) < 1e-9:
        x2_min -= 1.0
        x2_max += 1.0

    x1_vals = np.linspace(x1_min - padding, x1_max + padding, grid_size)
    x2_vals = np.linspace(x2_min - padding, x2_max + padding, grid_size)
    X1, X2 = np.meshgrid(x1_vals, x2_vals)
    Z = np.array(
        [[func(np.array([a, b])) for a, b in zip(row1, row2)] for row1, row2 in zip(X1, X2)],
        dtype=float,
    )

    ax.contour(X1, X2, Z, levels=levels, colors=_MUTED, linewidths=0.8)
    ax.contourf(X1, X2, Z, levels=levels, cmap="magma", alpha=0.45)
    ax.plot(xs[:, 0], xs[:, 1], marker="o", linestyle="-", linewidth=1.2, markersize=4, color=_ACCENT)
    ax.scatter(xs[0, 0], xs[0, 1], color=_ACCENT_ALT, marker="s", s=50, zorder=5)
    ax.scatter(xs[-1, 0], xs[-1, 1], color=_ACCENT, marker="*", s=120, zorder=6)

    ax.set_xlabel("x1")
    ax.set_ylabel("x2")
    ax.set_title(f"{name}: level lines and path")
    figure.tight_layout()
    return figure


# ---------------------------------------------------------------------------
# Ensembles
# ---------------------------------------------------------------------------

def plot_out_of_bag_errors(criteria: OutOfBagErrorStoppingCriteria) -> Figure:
    """Raw and smoothed out-of-bag error rate per member; marks the rollback member."""
    figure = Figure(figsize=(6, 4))
    ax = figure.add_subplot(111)
    _style_axes(ax)

    raw: List[float] = criteria.raw_error_rates
    if not raw:
        _placeholder(ax, "no out-of-bag error rates recorded")
        return figure

    members = np.arange(len(raw))
    ax.plot(members, raw, linestyle="-", linewidth=1.0, color=_MUTED, label="raw")
    ax.plot(members, criteria.smoothed_error_rates, linestyle="-", linewidth=1.8,
            color=_ACCENT, label="smoothed")
    if criteria.best_index is not None:
        ax.axvline(criteria.best_index, color=_ACCENT_ALT, linestyle="--", linewidth=1.0,
                   label=f"kept members 0..{criteria.best_index}")

    ax.set_xlabel("ensemble member")
    ax.set_ylabel("out-of-bag error rate")
    ax.set_title("Out-of-bag error")
    ax.legend(loc="best", fontsize=8)
    figure.tight_layout()
    return figure


__all__ = [
    "plot_minimization_trace",
    "plot_contour_path",
    "plot_out_of_bag_errors",
]
