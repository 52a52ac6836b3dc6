"""
Incremental Delaunay triangulation (Bowyer-Watson).

Points are inserted in x order into a working triangulation seeded with a
super-triangle. Each insertion removes every triangle whose circumcircle
strictly contains the new point and re-fills the resulting cavity with a
fan of triangles around it. Triangles are kept counter-clockwise
(y axis up), and the result is packed into flat ``triangles`` /
``halfedges`` arrays.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
import structlog

from .exceptions import MeshInvariantError
from .geometry import circumcircle, in_circumcircle

logger = structlog.get_logger()

# Distance of super-triangle vertices from the bounding box center,
# in bounding box diagonals
SUPER_TRIANGLE_SCALE = 20.0

# Slack when retiring triangles whose circumcircle lies left of the sweep
_RETIRE_SLACK = 1e-8

# (a, b, c, circumcenter x, circumcenter y, squared radius)
_Tri = Tuple[int, int, int, float, float, float]


def s_next(s: int) -> int:
    """Next side within the same triangle."""
    return s - 2 if s % 3 == 2 else s + 1


def s_prev(s: int) -> int:
    """Previous side within the same triangle."""
    return s + 2 if s % 3 == 0 else s - 1


@dataclass(frozen=True)
class Triangulation:
    """
    Flat triangle / half-edge arrays.

    ``triangles[s]`` is the start vertex of side ``s``; sides ``3t``,
    ``3t+1``, ``3t+2`` form triangle ``t``. ``halfedges[s]`` is the
    opposite side or -1 on the convex hull.
    """
    triangles: np.ndarray
    halfedges: np.ndarray

    @property
    def num_sides(self) -> int:
        return len(self.triangles)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles) // 3

    @classmethod
    def empty(cls) -> "Triangulation":
        return cls(triangles=np.zeros(0, dtype=np.int32),
                   halfedges=np.zeros(0, dtype=np.int32))


def _make_triangle(a: int, b: int, c: int,
                   xs: List[float], ys: List[float]) -> _Tri:
    ux, uy, r2 = circumcircle(xs[a], ys[a], xs[b], ys[b], xs[c], ys[c])
    return a, b, c, ux, uy, r2


def build_halfedges(triangles: np.ndarray, num_points: int) -> np.ndarray:
    """
    Pair every directed side with its reverse.

    Sides are keyed by the packed integer ``start * num_points + end``, so
    each lookup is a single dict probe.

    Raises:
        MeshInvariantError: if a directed side occurs twice
    """
    n_sides = len(triangles)
    halfedges = np.full(n_sides, -1, dtype=np.int32)
    starts = triangles.tolist()
    open_sides: Dict[int, int] = {}

    for s in range(n_sides):
        a = starts[s]
        b = starts[s_next(s)]
        reverse = open_sides.pop(b * num_points + a, None)
        if reverse is not None:
            halfedges[s] = reverse
            halfedges[reverse] = s
            continue
        key = a * num_points + b
        if key in open_sides:
            raise MeshInvariantError(
                f"Directed edge {a}->{b} is used by two triangles", s)
        open_sides[key] = s

    return halfedges


def triangulate(points: Sequence[Sequence[float]]) -> Triangulation:
    """
    Compute the Delaunay triangulation of a point set.

    Fewer than three points, or points that are all coincident, give an
    empty result. Collinear input yields no triangles because every
    triangle still touches the super-triangle. Duplicate points are left
    out of the triangulation.

    Args:
        points: Sequence of [x, y] coordinates

    Returns:
        Triangulation with counter-clockwise triangles
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    n = len(pts)
    if n < 3:
        return Triangulation.empty()

    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    diagonal = math.hypot(max_x - min_x, max_y - min_y)
    if diagonal == 0.0 or not math.isfinite(diagonal):
        logger.warning("Point set has no extent, nothing to triangulate",
                       points=n)
        return Triangulation.empty()

    logger.debug("Triangulating", points=n)

    # Predicates run on coordinates centered and scaled to a unit diagonal
    mid_x = (min_x + max_x) / 2
    mid_y = (min_y + max_y) / 2
    xs = ((pts[:, 0] - mid_x) / diagonal).tolist()
    ys = ((pts[:, 1] - mid_y) / diagonal).tolist()

    # Counter-clockwise super-triangle
    for angle in (90.0, 210.0, 330.0):
        xs.append(SUPER_TRIANGLE_SCALE * math.cos(math.radians(angle)))
        ys.append(SUPER_TRIANGLE_SCALE * math.sin(math.radians(angle)))

    order = sorted(range(n), key=lambda i: (xs[i], ys[i]))

    active: List[_Tri] = [_make_triangle(n, n + 1, n + 2, xs, ys)]
    retired: List[_Tri] = []
    skipped = 0

    for i in order:
        px = xs[i]
        py = ys[i]
        bad: List[_Tri] = []
        keep: List[_Tri] = []

        for tri in active:
            a, b, c, ux, uy, r2 = tri
            dx = px - ux
            # Circle lies left of the sweep; no later point can reach it
            if dx > 0.0 and dx * dx > r2 * (1.0 + _RETIRE_SLACK):
                retired.append(tri)
            elif in_circumcircle(xs[a], ys[a], xs[b], ys[b],
                                 xs[c], ys[c], px, py):
                bad.append(tri)
            else:
                keep.append(tri)

        if not bad:
            skipped += 1
            active = keep
            continue

        cavity_sides = set()
        for a, b, c, _, _, _ in bad:
            cavity_sides.add((a, b))
            cavity_sides.add((b, c))
            cavity_sides.add((c, a))

        for a, b, c, _, _, _ in bad:
            for u, v in ((a, b), (b, c), (c, a)):
                if (v, u) not in cavity_sides:
                    keep.append(_make_triangle(u, v, i, xs, ys))

        active = keep

    if skipped:
        logger.warning("Points left out of the triangulation",
                       skipped=skipped, reason="duplicate or degenerate")

    flat: List[int] = []
    for a, b, c, _, _, _ in retired + active:
        if a < n and b < n and c < n:
            flat.extend((a, b, c))

    triangles = np.array(flat, dtype=np.int32)
    halfedges = build_halfedges(triangles, n)

    logger.debug("Triangulation complete",
                 triangles=len(triangles) // 3,
                 hull_sides=int(np.count_nonzero(halfedges == -1)))
    return Triangulation(triangles=triangles, halfedges=halfedges)
