"""Tests for Delaunay triangulation."""

import numpy as np
import pytest
from scipy.spatial import Delaunay

from island_mesh.core.delaunay import (
    Triangulation, build_halfedges, s_next, s_prev, triangulate
)
from island_mesh.core.exceptions import MeshInvariantError
from island_mesh.core.geometry import circumcenter, orient2d
from island_mesh.core.poisson_disc import poisson_disc_sample


def _triangle_set(triangles):
    """Orientation-independent set of vertex triples."""
    return {tuple(sorted(tri)) for tri in np.asarray(triangles).reshape(-1, 3).tolist()}


class TestSideArithmetic:
    """Test side index helpers."""

    def test_next_and_prev(self):
        assert [s_next(s) for s in range(6)] == [1, 2, 0, 4, 5, 3]
        assert [s_prev(s) for s in range(6)] == [2, 0, 1, 5, 3, 4]

    def test_round_trip(self):
        for s in range(30):
            assert s_prev(s_next(s)) == s


class TestTriangulateSmall:
    """Test triangulation of hand-made inputs."""

    def test_square(self):
        """Test that a square gives two triangles sharing a diagonal."""
        points = [(0, 0), (10, 0), (10, 10), (0, 10)]
        result = triangulate(points)

        assert result.num_triangles == 2
        assert result.num_sides == 6
        assert np.count_nonzero(result.halfedges == -1) == 4

        paired = np.flatnonzero(result.halfedges != -1)
        assert len(paired) == 2
        a, b = paired
        assert result.halfedges[a] == b
        assert result.halfedges[b] == a

        diagonal = {int(result.triangles[a]), int(result.triangles[s_next(a)])}
        assert diagonal in ({0, 2}, {1, 3})

    def test_single_triangle(self):
        result = triangulate([(0, 0), (4, 0), (1, 3)])

        assert result.num_triangles == 1
        assert sorted(result.triangles.tolist()) == [0, 1, 2]
        assert np.all(result.halfedges == -1)

    def test_counter_clockwise(self):
        """Test that triangles are counter-clockwise even for clockwise input."""
        result = triangulate([(0, 0), (1, 3), (4, 0)])
        pts = np.array([(0, 0), (1, 3), (4, 0)], dtype=float)

        a, b, c = result.triangles
        assert orient2d(*pts[a], *pts[b], *pts[c]) > 0

    def test_collinear_points(self):
        """Test that collinear input produces no triangles."""
        result = triangulate([(0, 0), (1, 0), (2, 0)])
        assert result.num_triangles == 0

        result = triangulate([(0, 0), (1, 1), (2, 2), (3, 3), (4, 4)])
        assert result.num_triangles == 0

    @pytest.mark.parametrize("points", [
        [],
        [(0, 0)],
        [(0, 0), (1, 1)],
        [(5, 5), (5, 5), (5, 5)],
    ])
    def test_degenerate_inputs(self, points):
        result = triangulate(points)
        assert result.num_triangles == 0
        assert len(result.halfedges) == 0

    def test_duplicate_point_skipped(self):
        """Test that a duplicate point does not corrupt the triangulation."""
        points = [(0, 0), (10, 0), (10, 10), (0, 10), (10, 0)]
        result = triangulate(points)

        assert result.num_triangles == 2
        used = set(result.triangles.tolist())
        assert len(used) == 4
        assert not ({1, 4} <= used)

    def test_hexagon_with_center(self):
        angles = np.radians(np.arange(0, 360, 60))
        points = [(0.0, 0.0)] + [(10 * np.cos(a), 10 * np.sin(a)) for a in angles]
        result = triangulate(points)

        assert result.num_triangles == 6
        assert np.count_nonzero(result.triangles == 0) == 6
        assert np.count_nonzero(result.halfedges == -1) == 6


class TestTriangulateRandom:
    """Test triangulation of sampled point sets."""

    @pytest.fixture
    def sampled_points(self):
        """Poisson samples framed by four far corners."""
        samples = poisson_disc_sample(100, 100, 10, seed=7)
        corners = np.array([(-50, -50), (150, -50), (150, 150), (-50, 150)],
                           dtype=float)
        return np.vstack([corners, samples])

    def test_matches_scipy(self, sampled_points):
        """Test against Qhull's Delaunay triangulation."""
        result = triangulate(sampled_points)
        reference = Delaunay(sampled_points)

        assert result.num_triangles == len(reference.simplices)
        assert _triangle_set(result.triangles) == _triangle_set(reference.simplices)

    def test_empty_circumcircles(self, sampled_points):
        """Test that no point lies strictly inside any triangle's circumcircle."""
        result = triangulate(sampled_points)
        pts = sampled_points

        for a, b, c in result.triangles.reshape(-1, 3):
            ux, uy = circumcenter(*pts[a], *pts[b], *pts[c])
            r2 = (pts[a, 0] - ux) ** 2 + (pts[a, 1] - uy) ** 2
            d2 = (pts[:, 0] - ux) ** 2 + (pts[:, 1] - uy) ** 2
            assert np.all(d2 >= r2 * (1 - 1e-9))

    def test_all_counter_clockwise(self, sampled_points):
        result = triangulate(sampled_points)
        pts = sampled_points

        for a, b, c in result.triangles.reshape(-1, 3):
            assert orient2d(*pts[a], *pts[b], *pts[c]) > 0

    def test_halfedge_consistency(self, sampled_points):
        """Test that paired sides run between the same vertices, reversed."""
        result = triangulate(sampled_points)
        tri = result.triangles
        he = result.halfedges

        for s in range(result.num_sides):
            o = he[s]
            if o == -1:
                continue
            assert he[o] == s
            assert tri[s] == tri[s_next(o)]
            assert tri[s_next(s)] == tri[o]

    def test_hull_sides(self, sampled_points):
        """Test that only the four framing corners are on the hull."""
        result = triangulate(sampled_points)
        hull = np.flatnonzero(result.halfedges == -1)

        assert len(hull) == 4
        assert set(result.triangles[hull].tolist()) == {0, 1, 2, 3}

    def test_deterministic(self, sampled_points):
        result1 = triangulate(sampled_points)
        result2 = triangulate(sampled_points)

        np.testing.assert_array_equal(result1.triangles, result2.triangles)
        np.testing.assert_array_equal(result1.halfedges, result2.halfedges)


class TestBuildHalfedges:
    """Test side pairing."""

    def test_pairs_shared_edge(self):
        triangles = np.array([0, 1, 2, 0, 2, 3], dtype=np.int32)
        halfedges = build_halfedges(triangles, 4)

        # 2->0 in the first triangle pairs with 0->2 in the second
        np.testing.assert_array_equal(halfedges, [-1, -1, 3, 2, -1, -1])

    def test_duplicate_directed_edge(self):
        """Test that two triangles using the same directed edge are rejected."""
        triangles = np.array([0, 1, 2, 0, 1, 3], dtype=np.int32)
        with pytest.raises(MeshInvariantError):
            build_halfedges(triangles, 4)

    def test_empty(self):
        empty = Triangulation.empty()
        assert empty.num_triangles == 0
        assert len(build_halfedges(empty.triangles, 0)) == 0
