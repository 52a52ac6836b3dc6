"""
Core mesh generation functionality.
"""

from .boundary import Rect, exterior_boundary_points, interior_boundary_points
from .delaunay import Triangulation, triangulate
from .dual_mesh import TriangleMesh, build_dual_mesh, validate_mesh
from .exceptions import (GenerationCancelled, InvalidParameterError,
                         MeshError, MeshInvariantError)
from .geometry import Point
from .island_shaper import BiomeType, IslandShape, ShaperOptions, shape_island
from .pipeline import IslandMesh, generate_island_mesh, generate_or_reuse_mesh
from .poisson_disc import PoissonDiscSampler, poisson_disc_sample
from .voronoi import RegionLocator, VoronoiDiagram, extract_voronoi

__all__ = ['Rect', 'exterior_boundary_points', 'interior_boundary_points',
           'Triangulation', 'triangulate',
           'TriangleMesh', 'build_dual_mesh', 'validate_mesh',
           'GenerationCancelled', 'InvalidParameterError', 'MeshError',
           'MeshInvariantError', 'Point',
           'BiomeType', 'IslandShape', 'ShaperOptions', 'shape_island',
           'IslandMesh', 'generate_island_mesh', 'generate_or_reuse_mesh',
           'PoissonDiscSampler', 'poisson_disc_sample',
           'RegionLocator', 'VoronoiDiagram', 'extract_voronoi']
