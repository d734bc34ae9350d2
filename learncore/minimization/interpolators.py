"""
interpolators.py

Interpolators used by the line searches to propose the next trial point
inside (or beyond) a LineBracket.

Every interpolator has the same signature:

    find_minimum(bracket, minx, maxx) -> float

and always returns a point on [minx, maxx].

    GoldenSectionInterpolator - golden-section step, no fitting;
    ParabolicInterpolator     - parabola through three values (Brent),
                                golden-section fallback;
    HermiteInterpolator       - cubic/parabola fitted to values and slopes,
                                minimized exactly over [minx, maxx].
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from .line_bracket import InputOutputSlopeTriplet, LineBracket

# Golden ratio (1 + sqrt(5)) / 2, used for magnification beyond a bracket
GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0
# 2 - GOLDEN_RATIO ~ 0.381966, the golden-section fraction of an interval
GOLDEN_SECTION = 2.0 - GOLDEN_RATIO

_TINY = 1e-20


def _clip(x: float, minx: float, maxx: float) -> float:
    return min(max(x, minx), maxx)


def parabola_vertex(
    a: InputOutputSlopeTriplet,
    b: InputOutputSlopeTriplet,
    c: InputOutputSlopeTriplet,
) -> Optional[float]:
    """
    Vertex of the parabola through three points (values only).

    Returns None when the points are collinear or the parabola opens
    downwards (the vertex would be a maximum).
    """
    ab = b.input - a.input
    bc = c.input - b.input
    ac = c.input - a.input
    if abs(ab) < _TINY or abs(bc) < _TINY or abs(ac) < _TINY:
        return None

    curvature = ((c.output - b.output) / bc - (b.output - a.output) / ab) / ac
    if curvature <= 0.0:
        return None

    r = ab * (b.output - c.output)
    q = -bc * (b.output - a.output)
    denom = 2.0 * (q - r)
    if abs(denom) < _TINY:
        return None
    return b.input - (-bc * q - ab * r) / denom


def minimize_polynomial(coefficients: Sequence[float], minx: float, maxx: float) -> float:
    """
    Minimize a polynomial (np.polyval coefficient order) over [minx, maxx]
    by comparing the end points with the real critical points inside.
    """
    poly = np.asarray(coefficients, dtype=float)
    candidates = [minx, maxx]
    if len(poly) > 1:
        deriv = np.polyder(poly)
        # Drop leading terms at rounding level (a cubic fitted to a parabola)
        scale = float(np.max(np.abs(deriv)))
        while deriv.size > 1 and abs(deriv[0]) <= 1e-12 * scale:
            deriv = deriv[1:]
        if np.any(deriv != 0.0):
            for root in np.roots(deriv):
                if abs(root.imag) < 1e-12 and minx <= root.real <= maxx:
                    candidates.append(float(root.real))
    values = [float(np.polyval(poly, x)) for x in candidates]
    return candidates[int(np.argmin(values))]


# ---------------------------------------------------------------------------
# Golden section
# ---------------------------------------------------------------------------

class GoldenSectionInterpolator:
    """
    Golden-section step.

    With a middle point strictly inside the bracket, step GOLDEN_SECTION of
    the way into the larger sub-interval. Otherwise magnify past the upper
    bound by GOLDEN_RATIO.
    """

    def find_minimum(self, bracket: LineBracket, minx: float, maxx: float) -> float:
        a = bracket.lower_bound
        c = bracket.upper_bound
        b = bracket.other_point

        if a is not None and c is not None and b is not None and (
            (b.input - a.input) * (c.input - b.input) > 0.0
        ):
            if abs(c.input - b.input) >= abs(b.input - a.input):
                x = b.input + GOLDEN_SECTION * (c.input - b.input)
            else:
                x = b.input - GOLDEN_SECTION * (b.input - a.input)
            return _clip(x, minx, maxx)

        if a is not None and c is not None and a.input != c.input:
            return _clip(c.input + GOLDEN_RATIO * (c.input - a.input), minx, maxx)

        return minx + GOLDEN_SECTION * (maxx - minx)


# ---------------------------------------------------------------------------
# Parabolic (Brent)
# ---------------------------------------------------------------------------

class ParabolicInterpolator:
    """
    Parabola through lower_bound, other_point and upper_bound; falls back
    to a golden-section step when the parabola has no minimum on the
    interval.
    """

    def __init__(self) -> None:
        self.fallback = GoldenSectionInterpolator()

    def find_minimum(self, bracket: LineBracket, minx: float, maxx: float) -> float:
        a = bracket.lower_bound
        b = bracket.other_point
        c = bracket.upper_bound
        if a is not None and b is not None and c is not None:
            vertex = parabola_vertex(a, b, c)
            if vertex is not None and minx <= vertex <= maxx:
                return vertex
        return self.fallback.find_minimum(bracket, minx, maxx)


# ---------------------------------------------------------------------------
# Hermite (values and slopes)
# ---------------------------------------------------------------------------

class HermiteInterpolator:
    """
    Polynomial fitted to the two bracket ends, minimized over [minx, maxx].

        both slopes known  -> cubic Hermite polynomial;
        one slope known    -> parabola (value + slope at one end, value at
                              the other);
        no slopes          -> ParabolicInterpolator on the three points.
    """

    def __init__(self) -> None:
        self.fallback = ParabolicInterpolator()

    def find_minimum(self, bracket: LineBracket, minx: float, maxx: float) -> float:
        a = bracket.lower_bound
        b = bracket.upper_bound
        if a is None or b is None or a.input == b.input:
            return self.fallback.find_minimum(bracket, minx, maxx)

        if not a.has_slope and b.has_slope:
            a, b = b, a
        if not a.has_slope:
            return self.fallback.find_minimum(bracket, minx, maxx)

        # Local coordinate u = x - a.input
        h = b.input - a.input
        fa, ga, fb = a.output, a.slope, b.output
        if b.has_slope:
            gb = b.slope
            secant = (fb - fa) / h
            c2 = (3.0 * secant - 2.0 * ga - gb) / h
            c3 = (ga + gb - 2.0 * secant) / (h * h)
            poly = [c3, c2, ga, fa]
        else:
            c2 = (fb - fa - ga * h) / (h * h)
            poly = [c2, ga, fa]

        u = minimize_polynomial(poly, minx - a.input, maxx - a.input)
        return _clip(a.input + u, minx, maxx)


__all__ = [
    "GOLDEN_RATIO",
    "GOLDEN_SECTION",
    "parabola_vertex",
    "minimize_polynomial",
    "GoldenSectionInterpolator",
    "ParabolicInterpolator",
    "HermiteInterpolator",
]
