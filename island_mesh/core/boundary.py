"""
Deterministic boundary points framing the generation rectangle.

Interior points hug the inside of the rectangle edges and seed the
Poisson-disc sampler, giving the mesh a clean perimeter. Exterior points sit
just outside the rectangle and pad the triangulation so the cells along the
edge are not truncated.
"""

import math
from typing import NamedTuple

import numpy as np

# Bulge of boundary runs away from the edge, in map units
CURVATURE = 1.0
# Minimum inset of interior points from the rectangle edge
EDGE_EPSILON = 1e-4


class Rect(NamedTuple):
    """Axis-aligned rectangle given by origin and size."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


def _run_counts(rect: Rect, spacing: float):
    w = int(math.ceil((rect.width - 2 * CURVATURE) / spacing))
    h = int(math.ceil((rect.height - 2 * CURVATURE) / spacing))
    return max(w, 1), max(h, 1)


def interior_boundary_points(rect: Rect, spacing: float) -> np.ndarray:
    """
    Generate points just inside the rectangle edges.

    Each edge run bows inward quadratically towards the corners, so no
    three consecutive points are exactly collinear and the triangulator
    never has to build flat triangles along the edge.

    Args:
        rect: Rectangle to frame
        spacing: Distance between consecutive points along an edge

    Returns:
        Array of [x, y] point coordinates
    """
    count_x, count_y = _run_counts(rect, spacing)
    span_x = rect.width - 2 * CURVATURE
    span_y = rect.height - 2 * CURVATURE
    points = []

    # Top and bottom
    for q in range(count_x):
        t = q / count_x
        dx = span_x * t
        dy = EDGE_EPSILON + CURVATURE * 4 * (t - 0.5) ** 2
        points.append([rect.left + CURVATURE + dx, rect.top + dy])
        points.append([rect.right - CURVATURE - dx, rect.bottom - dy])

    # Left and right
    for r in range(count_y):
        t = r / count_y
        dy = span_y * t
        dx = EDGE_EPSILON + CURVATURE * 4 * (t - 0.5) ** 2
        points.append([rect.left + dx, rect.bottom - CURVATURE - dy])
        points.append([rect.right - dx, rect.top + CURVATURE + dy])

    return np.array(points, dtype=np.float64).reshape(-1, 2)


def exterior_boundary_points(rect: Rect, spacing: float) -> np.ndarray:
    """
    Generate padding points just outside the rectangle, corners included.

    Args:
        rect: Rectangle to frame
        spacing: Distance between consecutive points along an edge

    Returns:
        Array of [x, y] point coordinates
    """
    count_x, count_y = _run_counts(rect, spacing)
    span_x = rect.width - 2 * CURVATURE
    span_y = rect.height - 2 * CURVATURE
    diagonal = spacing / math.sqrt(2)
    points = []

    # Top and bottom
    for q in range(count_x):
        t = q / count_x
        dx = span_x * t + spacing / 2
        points.append([rect.left + dx, rect.top - diagonal])
        points.append([rect.right - dx, rect.bottom + diagonal])

    # Left and right
    for r in range(count_y):
        t = r / count_y
        dy = span_y * t + spacing / 2
        points.append([rect.left - diagonal, rect.bottom - dy])
        points.append([rect.right + diagonal, rect.top + dy])

    # Corners
    points.append([rect.left - diagonal, rect.top - diagonal])
    points.append([rect.right + diagonal, rect.top - diagonal])
    points.append([rect.left - diagonal, rect.bottom + diagonal])
    points.append([rect.right + diagonal, rect.bottom + diagonal])

    return np.array(points, dtype=np.float64).reshape(-1, 2)
