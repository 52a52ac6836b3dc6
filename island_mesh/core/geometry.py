"""
Planar geometry primitives shared by the triangulator and the dual mesh.

All predicates work in double precision and use the same relative
tolerance, so an in-circle decision made during triangulation agrees with
the circumcenter later computed for the same triangle.
"""

import math
from typing import NamedTuple, Tuple

# Relative tolerance for orientation, in-circle and circumcenter tests
EPSILON = 1e-10


class Point(NamedTuple):
    """Immutable 2D point."""
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


def orient2d(ax: float, ay: float, bx: float, by: float,
             cx: float, cy: float) -> float:
    """
    Twice the signed area of triangle abc.

    Positive when a, b, c turn counter-clockwise (y axis pointing up).
    """
    return (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)


def is_degenerate(ax: float, ay: float, bx: float, by: float,
                  cx: float, cy: float) -> bool:
    """Check whether triangle abc is (nearly) collinear."""
    scale = ((bx - ax) ** 2 + (by - ay) ** 2 +
             (cx - bx) ** 2 + (cy - by) ** 2 +
             (ax - cx) ** 2 + (ay - cy) ** 2)
    if scale == 0.0:
        return True
    return abs(orient2d(ax, ay, bx, by, cx, cy)) <= EPSILON * scale


def in_circle(ax: float, ay: float, bx: float, by: float,
              cx: float, cy: float, px: float, py: float) -> float:
    """
    In-circle determinant of p against the circle through a, b, c.

    For a counter-clockwise triangle the result is positive when p lies
    inside the circumcircle, negative outside and zero on the circle.
    """
    adx = ax - px
    ady = ay - py
    bdx = bx - px
    bdy = by - py
    cdx = cx - px
    cdy = cy - py

    ap = adx * adx + ady * ady
    bp = bdx * bdx + bdy * bdy
    cp = cdx * cdx + cdy * cdy

    return (adx * (bdy * cp - bp * cdy) -
            ady * (bdx * cp - bp * cdx) +
            ap * (bdx * cdy - bdy * cdx))


def in_circumcircle(ax: float, ay: float, bx: float, by: float,
                    cx: float, cy: float, px: float, py: float) -> bool:
    """
    Strict in-circle test for a counter-clockwise triangle.

    Points on the circle (within tolerance) count as outside, which keeps
    co-circular inputs from flip-flopping between triangulations.
    """
    det = in_circle(ax, ay, bx, by, cx, cy, px, py)
    scale = ((ax - px) ** 2 + (ay - py) ** 2 +
             (bx - px) ** 2 + (by - py) ** 2 +
             (cx - px) ** 2 + (cy - py) ** 2)
    return det > EPSILON * scale * scale


def circumcenter(ax: float, ay: float, bx: float, by: float,
                 cx: float, cy: float) -> Tuple[float, float]:
    """
    Circumcenter of triangle abc.

    Degenerate (near-collinear) triangles fall back to the centroid so the
    result is always finite.
    """
    if is_degenerate(ax, ay, bx, by, cx, cy):
        return (ax + bx + cx) / 3.0, (ay + by + cy) / 3.0

    d = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    a2 = ax * ax + ay * ay
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy

    ux = (a2 * (by - cy) + b2 * (cy - ay) + c2 * (ay - by)) / d
    uy = (a2 * (cx - bx) + b2 * (ax - cx) + c2 * (bx - ax)) / d
    return ux, uy


def circumcircle(ax: float, ay: float, bx: float, by: float,
                 cx: float, cy: float) -> Tuple[float, float, float]:
    """
    Circumcircle of abc as (center x, center y, squared radius).

    Degenerate triangles report an infinite radius.
    """
    if is_degenerate(ax, ay, bx, by, cx, cy):
        return (ax + bx + cx) / 3.0, (ay + by + cy) / 3.0, math.inf
    ux, uy = circumcenter(ax, ay, bx, by, cx, cy)
    return ux, uy, (ax - ux) ** 2 + (ay - uy) ** 2
