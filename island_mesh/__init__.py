"""
Procedural island mesh generation.

Blue-noise sampling, Delaunay triangulation, a ghost-closed half-edge dual
mesh and the Voronoi regions derived from it.
"""

__version__ = "0.1.0"
