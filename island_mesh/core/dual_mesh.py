"""
Half-edge dual mesh with a closed ghost boundary.

A Delaunay triangulation leaves its convex hull sides unpaired. This module
closes the surface by adding one ghost vertex and, for every hull side, one
ghost triangle joining that side to the ghost vertex. After that every side
has an opposite, so walking the sides around any vertex (including hull
vertices and the ghost vertex itself) always returns to where it started.

Vertices, sides and triangles are plain integer indices into flat arrays:

    triangle of side s      t = s // 3
    sides of triangle t     3t, 3t + 1, 3t + 2
    start vertex of side s  triangles[s]
    opposite of side s      halfedges[s]

Elements at or beyond the solid counts (and the ghost vertex) are synthetic
and must never be treated as terrain.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .delaunay import Triangulation, s_next, s_prev
from .exceptions import MeshInvariantError
from .geometry import circumcenter

logger = structlog.get_logger()

# Distance of a ghost triangle center from its hull side
GHOST_CENTER_OFFSET = 10.0


def add_ghost_structure(triangulation: Triangulation, points: np.ndarray
                        ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """
    Close a triangulation with ghost triangles.

    Hull sides are visited in boundary order. For hull side ``s`` the ghost
    triangle is (end(s), start(s), ghost); its first side is the opposite of
    ``s`` and its remaining two sides pair with the neighbouring ghost
    triangles, forming a fan around the ghost vertex.

    Args:
        triangulation: Raw triangulation with -1 on hull sides
        points: Array of [x, y] vertex coordinates

    Returns:
        Tuple of (points with ghost vertex appended, triangles, halfedges,
        number of solid sides)

    Raises:
        MeshInvariantError: if the hull sides do not form one simple loop
    """
    triangles = triangulation.triangles
    halfedges = triangulation.halfedges
    num_solid_sides = len(triangles)

    hull_side_of_start = {}
    first_hull_side = -1
    for s in np.flatnonzero(halfedges == -1).tolist():
        start = int(triangles[s])
        if start in hull_side_of_start:
            raise MeshInvariantError(
                f"Vertex {start} starts more than one hull side", s)
        hull_side_of_start[start] = s
        if first_hull_side == -1:
            first_hull_side = s
    num_hull_sides = len(hull_side_of_start)

    ghost_vertex = len(points)
    ghost_points = np.vstack([points, [[np.nan, np.nan]]])

    total_sides = num_solid_sides + 3 * num_hull_sides
    new_triangles = np.empty(total_sides, dtype=np.int32)
    new_triangles[:num_solid_sides] = triangles
    new_halfedges = np.empty(total_sides, dtype=np.int32)
    new_halfedges[:num_solid_sides] = halfedges

    s = first_hull_side
    for i in range(num_hull_sides):
        ghost_side = num_solid_sides + 3 * i
        end = int(new_triangles[s_next(s)])

        new_halfedges[s] = ghost_side
        new_halfedges[ghost_side] = s
        new_triangles[ghost_side] = end
        new_triangles[ghost_side + 1] = new_triangles[s]
        new_triangles[ghost_side + 2] = ghost_vertex

        # ghost -> end pairs with end -> ghost of the next ghost triangle
        k = num_solid_sides + (3 * i + 4) % (3 * num_hull_sides)
        new_halfedges[ghost_side + 2] = k
        new_halfedges[k] = ghost_side + 2

        previous = s
        s = hull_side_of_start.get(end, -1)
        if s == -1:
            raise MeshInvariantError(
                f"Hull side ending at vertex {end} has no successor", previous)
        if s == first_hull_side and i != num_hull_sides - 1:
            raise MeshInvariantError(
                "Hull sides form more than one loop", previous)

    if num_hull_sides and s != first_hull_side:
        raise MeshInvariantError(
            "Hull sides form more than one loop", first_hull_side)

    return ghost_points, new_triangles, new_halfedges, num_solid_sides


def _triangle_centers(points: np.ndarray, triangles: np.ndarray,
                      num_solid_sides: int) -> np.ndarray:
    n_triangles = len(triangles) // 3
    centers = np.empty((n_triangles, 2), dtype=np.float64)
    xs = points[:, 0].tolist()
    ys = points[:, 1].tolist()
    tri = triangles.tolist()

    for t in range(n_triangles):
        s = 3 * t
        a, b, c = tri[s], tri[s + 1], tri[s + 2]
        if s < num_solid_sides:
            centers[t] = circumcenter(xs[a], ys[a], xs[b], ys[b], xs[c], ys[c])
            continue

        # Ghost: push the hull side midpoint outward
        dx = xs[b] - xs[a]
        dy = ys[b] - ys[a]
        length = math.hypot(dx, dy)
        mid_x = 0.5 * (xs[a] + xs[b])
        mid_y = 0.5 * (ys[a] + ys[b])
        if length == 0.0:
            centers[t] = (mid_x, mid_y)
        else:
            scale = GHOST_CENTER_OFFSET / length
            centers[t] = (mid_x - dy * scale, mid_y + dx * scale)

    return centers


@dataclass(frozen=True)
class TriangleMesh:
    """
    Ghost-closed half-edge mesh.

    Build with :func:`build_dual_mesh` rather than directly.
    """
    points: np.ndarray
    triangles: np.ndarray
    halfedges: np.ndarray
    num_solid_sides: int
    num_boundary_vertices: int = 0
    centers: np.ndarray = field(default=None, repr=False)
    side_of_vertex: np.ndarray = field(default=None, repr=False)

    def __post_init__(self):
        if self.centers is None:
            object.__setattr__(self, "centers", _triangle_centers(
                self.points, self.triangles, self.num_solid_sides))
        if self.side_of_vertex is None:
            side_of_vertex = np.full(len(self.points), -1, dtype=np.int32)
            starts, first = np.unique(self.triangles, return_index=True)
            side_of_vertex[starts] = first
            object.__setattr__(self, "side_of_vertex", side_of_vertex)
        for array in (self.points, self.triangles, self.halfedges,
                      self.centers, self.side_of_vertex):
            array.flags.writeable = False

    # Counts

    @property
    def num_sides(self) -> int:
        return len(self.triangles)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles) // 3

    @property
    def num_solid_triangles(self) -> int:
        return self.num_solid_sides // 3

    @property
    def num_vertices(self) -> int:
        return len(self.points)

    @property
    def num_solid_vertices(self) -> int:
        return len(self.points) - 1

    @property
    def ghost_vertex(self) -> int:
        return len(self.points) - 1

    # Classification

    def is_ghost_side(self, s: int) -> bool:
        return s >= self.num_solid_sides

    def is_ghost_triangle(self, t: int) -> bool:
        return 3 * t >= self.num_solid_sides

    def is_ghost_vertex(self, r: int) -> bool:
        return r == len(self.points) - 1

    def is_boundary_side(self, s: int) -> bool:
        """Ghost side paired with a solid hull side."""
        return s >= self.num_solid_sides and s % 3 == 0

    def is_boundary_vertex(self, r: int) -> bool:
        """Vertex generated from a boundary point."""
        return r < self.num_boundary_vertices

    def is_hull_vertex(self, r: int) -> bool:
        """Solid vertex adjacent to the ghost vertex."""
        if self.is_ghost_vertex(r) or self.side_of_vertex[r] == -1:
            return False
        return self.ghost_vertex in self.vertices_around_vertex(r)

    def has_triangles(self, r: int) -> bool:
        """False for vertices the triangulation left out (e.g. duplicates)."""
        return self.side_of_vertex[r] != -1

    # Side queries

    def side_begin(self, s: int) -> int:
        return int(self.triangles[s])

    def side_end(self, s: int) -> int:
        return int(self.triangles[s_next(s)])

    def opposite(self, s: int) -> int:
        return int(self.halfedges[s])

    def inner_triangle(self, s: int) -> int:
        return s // 3

    def outer_triangle(self, s: int) -> int:
        return int(self.halfedges[s]) // 3

    next_side = staticmethod(s_next)
    prev_side = staticmethod(s_prev)

    # Triangle queries

    def sides_of_triangle(self, t: int) -> List[int]:
        return [3 * t, 3 * t + 1, 3 * t + 2]

    def vertices_of_triangle(self, t: int) -> List[int]:
        return [int(r) for r in self.triangles[3 * t:3 * t + 3]]

    def triangles_around_triangle(self, t: int) -> List[int]:
        return [int(self.halfedges[s]) // 3 for s in range(3 * t, 3 * t + 3)]

    def triangle_center(self, t: int) -> Tuple[float, float]:
        x, y = self.centers[t]
        return float(x), float(y)

    # Vertex queries

    def vertex_position(self, r: int) -> Tuple[float, float]:
        x, y = self.points[r]
        return float(x), float(y)

    def sides_around_vertex(self, r: int) -> List[int]:
        """
        Outgoing sides of ``r`` in rotation order.

        Each step takes the opposite side and then the next side of that
        triangle. For counter-clockwise triangles this visits the fan
        clockwise (y axis up).

        Raises:
            MeshInvariantError: if the rotation hits an unpaired side or
                does not return to its start side
        """
        start = int(self.side_of_vertex[r])
        if start == -1:
            return []

        halfedges = self.halfedges
        limit = len(halfedges)
        ring = []
        s = start
        while True:
            ring.append(s)
            opposite = int(halfedges[s])
            if opposite == -1:
                raise MeshInvariantError("Rotation reached an unpaired side", s)
            s = s_next(opposite)
            if s == start:
                return ring
            if len(ring) > limit:
                raise MeshInvariantError(
                    "Rotation did not return to its start side", r, "vertex")

    def vertices_around_vertex(self, r: int) -> List[int]:
        tri = self.triangles
        return [int(tri[s_next(s)]) for s in self.sides_around_vertex(r)]

    def triangles_around_vertex(self, r: int) -> List[int]:
        return [s // 3 for s in self.sides_around_vertex(r)]

    def solid_neighbors(self, r: int) -> List[int]:
        """Adjacent vertices excluding the ghost vertex."""
        ghost = self.ghost_vertex
        return [n for n in self.vertices_around_vertex(r) if n != ghost]


def _check_index_ranges(num_vertices: int, triangles: np.ndarray,
                        halfedges: np.ndarray, num_solid_sides: int) -> None:
    n_sides = len(halfedges)
    if len(triangles) != n_sides:
        raise MeshInvariantError("Triangle and opposite arrays differ in length",
                                 min(len(triangles), n_sides))
    if n_sides % 3:
        raise MeshInvariantError("Side count is not a multiple of 3", n_sides)
    if num_solid_sides % 3 or not 0 <= num_solid_sides <= n_sides:
        raise MeshInvariantError(
            "Solid side count is not a whole number of triangles in the mesh",
            num_solid_sides)

    unpaired = np.flatnonzero(halfedges == -1)
    if len(unpaired):
        raise MeshInvariantError("Side has no opposite", int(unpaired[0]))

    out_of_range = np.flatnonzero((halfedges < 0) | (halfedges >= n_sides))
    if len(out_of_range):
        raise MeshInvariantError("Opposite index out of range",
                                 int(out_of_range[0]))

    bad_vertex = np.flatnonzero((triangles < 0) | (triangles >= num_vertices))
    if len(bad_vertex):
        raise MeshInvariantError("Vertex index out of range", int(bad_vertex[0]))


def validate_mesh(mesh: TriangleMesh) -> None:
    """
    Check every half-edge invariant of a ghost-closed mesh.

    Raises:
        MeshInvariantError: naming the first offending side, triangle or vertex
    """
    halfedges = mesh.halfedges
    triangles = mesh.triangles
    n_sides = len(halfedges)
    _check_index_ranges(mesh.num_vertices, triangles, halfedges,
                        mesh.num_solid_sides)

    if n_sides == 0:
        return

    ghost = mesh.ghost_vertex
    num_solid_sides = mesh.num_solid_sides
    in_solid = np.flatnonzero(triangles[:num_solid_sides] == ghost)
    if len(in_solid):
        raise MeshInvariantError("Solid triangle references the ghost vertex",
                                 int(in_solid[0]))

    # Ghost triangles are (end, start, ghost) over a hull side
    ghost_rows = triangles[num_solid_sides:].reshape(-1, 3)
    misplaced = np.flatnonzero((ghost_rows[:, 2] != ghost) |
                               (ghost_rows[:, 0] == ghost) |
                               (ghost_rows[:, 1] == ghost))
    if len(misplaced):
        raise MeshInvariantError(
            "Ghost triangle does not end at the ghost vertex",
            num_solid_sides // 3 + int(misplaced[0]), "triangle")

    sides = np.arange(n_sides)
    broken = np.flatnonzero((halfedges[halfedges] != sides) | (halfedges == sides))
    if len(broken):
        raise MeshInvariantError("Opposite relation is not an involution",
                                 int(broken[0]))

    next_index = np.where(sides % 3 == 2, sides - 2, sides + 1)
    ends = triangles[next_index]
    mismatched = np.flatnonzero(triangles[halfedges] != ends)
    if len(mismatched):
        raise MeshInvariantError("Opposite side has mismatched endpoints",
                                 int(mismatched[0]))

    # Every outgoing side must lie on its start vertex's single rotation
    outgoing = np.bincount(triangles, minlength=mesh.num_vertices)
    for r in range(mesh.num_vertices):
        if outgoing[r] and len(mesh.sides_around_vertex(r)) != outgoing[r]:
            raise MeshInvariantError(
                "Vertex rotation does not cover all its sides", r, "vertex")


def build_dual_mesh(triangulation: Triangulation,
                    points: Sequence[Sequence[float]],
                    num_boundary_vertices: int = 0,
                    validate: bool = True) -> TriangleMesh:
    """
    Build a ghost-closed half-edge mesh from a triangulation.

    Args:
        triangulation: Output of :func:`triangulate`
        points: Array of [x, y] coordinates the triangulation indexes
        num_boundary_vertices: Leading points that came from boundary points
        validate: Run :func:`validate_mesh` on the result

    Returns:
        TriangleMesh
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    ghost_points, triangles, halfedges, num_solid_sides = add_ghost_structure(
        triangulation, pts)

    mesh = TriangleMesh(
        points=ghost_points,
        triangles=triangles,
        halfedges=halfedges,
        num_solid_sides=num_solid_sides,
        num_boundary_vertices=num_boundary_vertices,
    )
    if validate:
        validate_mesh(mesh)

    logger.debug("Dual mesh built",
                 vertices=mesh.num_vertices,
                 solid_triangles=mesh.num_solid_triangles,
                 ghost_triangles=mesh.num_triangles - mesh.num_solid_triangles)
    return mesh


def mesh_from_arrays(points: np.ndarray, triangles: np.ndarray,
                     halfedges: np.ndarray, num_solid_sides: int,
                     num_boundary_vertices: int = 0,
                     centers: Optional[np.ndarray] = None) -> TriangleMesh:
    """Rebuild and validate a mesh from already ghost-closed arrays."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    triangles = np.asarray(triangles, dtype=np.int32)
    halfedges = np.asarray(halfedges, dtype=np.int32)
    num_solid_sides = int(num_solid_sides)
    # Centers are computed on construction and need in-range indices
    _check_index_ranges(len(points), triangles, halfedges, num_solid_sides)

    mesh = TriangleMesh(
        points=points,
        triangles=triangles,
        halfedges=halfedges,
        num_solid_sides=num_solid_sides,
        num_boundary_vertices=int(num_boundary_vertices),
        centers=centers,
    )
    validate_mesh(mesh)
    return mesh
