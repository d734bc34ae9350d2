"""
line_bracket.py

Value types for one-dimensional searches:

    InputOutputSlopeTriplet - (x, f(x), f'(x)) for one evaluated point;
    LineBracket             - the points that bound a 1-D minimum.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class InputOutputSlopeTriplet:
    """
    One measured point on a line.

    Attributes:
        input   - x
        output  - f(x)
        slope   - f'(x), or None until it is needed
    """
    input: float
    output: float
    slope: Optional[float] = None

    @property
    def has_slope(self) -> bool:
        return self.slope is not None

    def with_slope(self, slope: float) -> "InputOutputSlopeTriplet":
        """Copy of this point with the slope filled in."""
        return replace(self, slope=float(slope))

    def __str__(self) -> str:
        return f"(x={self.input:g}, f={self.output:g}, f'={self.slope})"


@dataclass
class LineBracket:
    """
    Points bounding a one-dimensional minimum.

    lower_bound / upper_bound are the ends of the interval; other_point is
    an extra point interpolators may use for higher-order fits (the middle
    point for the derivative-free search). A bracket is re-created for every
    line search and updated in place during bracketing and sectioning.
    """
    lower_bound: Optional[InputOutputSlopeTriplet] = None
    upper_bound: Optional[InputOutputSlopeTriplet] = None
    other_point: Optional[InputOutputSlopeTriplet] = None

    def is_valid(self) -> bool:
        """True when both ends are known."""
        return self.lower_bound is not None and self.upper_bound is not None

    def width(self) -> float:
        if not self.is_valid():
            return float("inf")
        return abs(self.upper_bound.input - self.lower_bound.input)

    def points(self):
        """Known points, in (lower, other, upper) order."""
        return [p for p in (self.lower_bound, self.other_point, self.upper_bound) if p is not None]

    def best_point(self) -> Optional[InputOutputSlopeTriplet]:
        """Known point with the smallest output, or None."""
        known = self.points()
        if not known:
            return None
        return min(known, key=lambda p: p.output)


__all__ = [
    "InputOutputSlopeTriplet",
    "LineBracket",
]
