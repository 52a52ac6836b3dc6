"""
Voronoi cells derived from a ghost-closed dual mesh.

Each solid vertex owns one region whose corners are the centers of the
triangles around it. A region touching the hull also passes through the
centers of its ghost triangles, which sit outside the hull on the
perpendicular bisectors of the hull sides, so every triangulated vertex
gets at least three corners. Such regions are reported as open since
their true extent is unbounded. Polygons are counter-clockwise with the
y axis up.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import structlog
from scipy.spatial import cKDTree
from shapely import make_valid
from shapely.geometry import Polygon, box
from shapely.geometry.polygon import orient

from .boundary import Rect
from .dual_mesh import TriangleMesh

logger = structlog.get_logger()


def _empty_polygon() -> np.ndarray:
    return np.zeros((0, 2), dtype=np.float64)


def region_triangles(mesh: TriangleMesh, r: int) -> List[int]:
    """
    Triangles around vertex ``r`` in counter-clockwise order.

    When ghost triangles are present the list starts right after them, so
    the solid triangles come first and the ghost triangles close the ring.
    """
    ring = mesh.triangles_around_vertex(r)
    # Mesh rotation is clockwise; flip it
    ring.reverse()
    ghost = [mesh.is_ghost_triangle(t) for t in ring]
    if any(ghost) and not all(ghost):
        n = len(ring)
        start = next(i for i in range(n) if ghost[i - 1] and not ghost[i])
        ring = ring[start:] + ring[:start]
    return ring


def _largest_polygon(shape) -> Optional[Polygon]:
    if shape.is_empty:
        return None
    if shape.geom_type == "Polygon":
        return shape
    parts = [g for g in getattr(shape, "geoms", []) if g.geom_type == "Polygon"]
    if not parts:
        return None
    return max(parts, key=lambda g: g.area)


@dataclass(frozen=True)
class VoronoiDiagram:
    """
    Per-vertex Voronoi polygons.

    ``regions[r]`` is an (k, 2) array of corners for solid vertex ``r``;
    ``closed[r]`` is False when the region touches the hull.
    """
    mesh: TriangleMesh = field(repr=False)
    regions: List[np.ndarray] = field(repr=False)
    closed: np.ndarray = field(repr=False)

    @property
    def num_regions(self) -> int:
        return len(self.regions)

    @property
    def circumcenters(self) -> np.ndarray:
        return self.mesh.centers

    def region(self, r: int) -> np.ndarray:
        return self.regions[r]

    def edges(self) -> np.ndarray:
        """
        Voronoi edges between solid triangle centers.

        Returns:
            (m, 2, 2) array of segment endpoints, one per shared solid side
        """
        mesh = self.mesh
        halfedges = mesh.halfedges
        segments = []
        for s in range(mesh.num_solid_sides):
            opposite = int(halfedges[s])
            if s < opposite < mesh.num_solid_sides:
                segments.append((mesh.centers[s // 3], mesh.centers[opposite // 3]))
        if not segments:
            return np.zeros((0, 2, 2), dtype=np.float64)
        return np.array(segments, dtype=np.float64)

    def clipped_regions(self, bounds: Rect) -> List[np.ndarray]:
        """
        Clip every region to a rectangle.

        Args:
            bounds: Clipping rectangle, usually the generation domain

        Returns:
            List of counter-clockwise (k, 2) arrays; empty where the region
            lies outside ``bounds`` or has fewer than three corners
        """
        frame = box(bounds.left, bounds.top, bounds.right, bounds.bottom)
        clipped = []
        for coords in self.regions:
            if len(coords) < 3:
                clipped.append(_empty_polygon())
                continue
            polygon = Polygon(coords)
            if not polygon.is_valid:
                # Obtuse hull triangles can fold an open region over itself
                polygon = make_valid(polygon)
            shape = _largest_polygon(polygon.intersection(frame))
            if shape is None:
                clipped.append(_empty_polygon())
                continue
            ring = np.asarray(orient(shape, sign=1.0).exterior.coords)[:-1]
            clipped.append(ring.astype(np.float64))
        return clipped


class RegionLocator:
    """
    Point-in-region lookup.

    The Voronoi region containing a location is the one whose site is
    nearest, so a k-d tree over the solid vertices answers it exactly.
    """

    def __init__(self, mesh: TriangleMesh):
        self.vertex_ids = np.array(
            [r for r in range(mesh.num_solid_vertices) if mesh.has_triangles(r)],
            dtype=np.int64)
        if len(self.vertex_ids) == 0:
            raise ValueError("Mesh has no triangulated vertices to locate")
        self._tree = cKDTree(mesh.points[self.vertex_ids])

    def find_region(self, x: float, y: float) -> int:
        """Vertex id of the region containing (x, y)."""
        _, index = self._tree.query([x, y])
        return int(self.vertex_ids[index])

    def find_regions(self, coords) -> np.ndarray:
        """Vectorized :meth:`find_region` for an (n, 2) array."""
        coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
        _, indices = self._tree.query(coords)
        return self.vertex_ids[indices]


def extract_voronoi(mesh: TriangleMesh,
                    bounds: Optional[Rect] = None) -> VoronoiDiagram:
    """
    Build the Voronoi polygon of every solid vertex.

    Args:
        mesh: Ghost-closed dual mesh
        bounds: Optional rectangle; when given, regions are clipped to it

    Returns:
        VoronoiDiagram indexed by solid vertex
    """
    centers = mesh.centers
    regions = []
    closed = np.zeros(mesh.num_solid_vertices, dtype=bool)

    for r in range(mesh.num_solid_vertices):
        if not mesh.has_triangles(r):
            regions.append(_empty_polygon())
            continue
        triangles = region_triangles(mesh, r)
        closed[r] = not any(mesh.is_ghost_triangle(t) for t in triangles)
        regions.append(centers[triangles].astype(np.float64).reshape(-1, 2))

    diagram = VoronoiDiagram(mesh=mesh, regions=regions, closed=closed)
    if bounds is not None:
        diagram = VoronoiDiagram(mesh=mesh,
                                 regions=diagram.clipped_regions(bounds),
                                 closed=closed)

    logger.debug("Voronoi regions extracted",
                 regions=len(regions), closed=int(closed.sum()))
    return diagram
