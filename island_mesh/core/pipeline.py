"""
End-to-end mesh generation.

boundary points -> Poisson-disc samples -> Delaunay triangulation ->
ghost-closed dual mesh -> Voronoi regions

Every stage is a pure function of the request, so the whole chain can run
on a worker thread and hand its result over once complete.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
import structlog

from ..config import MeshConfig, Settings
from .boundary import Rect, exterior_boundary_points, interior_boundary_points
from .delaunay import Triangulation, triangulate
from .dual_mesh import TriangleMesh, build_dual_mesh
from .exceptions import GenerationCancelled, InvalidParameterError
from .poisson_disc import PoissonDiscSampler
from .voronoi import RegionLocator, VoronoiDiagram, extract_voronoi

logger = structlog.get_logger()

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class IslandMesh:
    """Complete output of one generation request."""
    config: MeshConfig
    points: np.ndarray = field(repr=False)
    num_boundary_points: int
    triangulation: Triangulation = field(repr=False)
    mesh: TriangleMesh = field(repr=False)
    voronoi: VoronoiDiagram = field(repr=False)

    @property
    def bounds(self) -> Rect:
        return Rect(self.config.left, self.config.top,
                    self.config.width, self.config.height)

    def locator(self) -> RegionLocator:
        return RegionLocator(self.mesh)


def _check_cancelled(should_cancel: Optional[CancelCheck], stage: str) -> None:
    if should_cancel is not None and should_cancel():
        logger.info("Generation cancelled", stage=stage)
        raise GenerationCancelled(stage)


def sample_points(config: MeshConfig):
    """
    Produce the full point set for a request.

    Returns:
        Tuple of (points, number of leading boundary points). Exterior
        boundary points come first, then admitted interior boundary points,
        then the Poisson-disc samples.
    """
    boundary_spacing = config.spacing * math.sqrt(2)
    local = Rect(0.0, 0.0, config.width, config.height)

    sampler = PoissonDiscSampler(config.width, config.height, config.spacing,
                                 seed=config.seed,
                                 max_attempts=config.max_attempts)
    sampler.add_fixed_points(interior_boundary_points(local, boundary_spacing))
    sampled = sampler.generate() + np.array([config.left, config.top])

    if len(sampled) < 3:
        raise InvalidParameterError(
            f"Only {len(sampled)} points fit the domain; need at least 3")

    if config.use_exterior_boundary:
        exterior = exterior_boundary_points(
            Rect(config.left, config.top, config.width, config.height),
            boundary_spacing)
    else:
        exterior = np.zeros((0, 2), dtype=np.float64)

    points = np.vstack([exterior, sampled])
    return points, len(exterior) + sampler.num_fixed


def generate_island_mesh(config: MeshConfig,
                         should_cancel: Optional[CancelCheck] = None,
                         settings: Optional[Settings] = None) -> IslandMesh:
    """
    Run the whole generation chain for one request.

    Args:
        config: Validated generation request
        should_cancel: Optional callable polled between stages
        settings: Limits; defaults to environment settings

    Returns:
        IslandMesh holding every stage's output

    Raises:
        InvalidParameterError: request too large or yields a degenerate point set
        GenerationCancelled: ``should_cancel`` returned True between stages
    """
    settings = settings or Settings()
    if config.estimated_points > settings.max_points:
        raise InvalidParameterError(
            f"Request would produce about {config.estimated_points} points, "
            f"limit is {settings.max_points}")

    logger.info("Generating island mesh",
                width=config.width, height=config.height,
                spacing=config.spacing, seed=config.seed)
    started = time.perf_counter()

    _check_cancelled(should_cancel, "sampling")
    points, num_boundary = sample_points(config)
    logger.info("Points sampled", points=len(points), boundary=num_boundary)

    _check_cancelled(should_cancel, "triangulating")
    triangulation = triangulate(points)
    if triangulation.num_triangles == 0:
        raise InvalidParameterError("Point set is degenerate; no triangles formed")
    logger.info("Triangulation built", triangles=triangulation.num_triangles)

    _check_cancelled(should_cancel, "building mesh")
    mesh = build_dual_mesh(triangulation, points, num_boundary)

    _check_cancelled(should_cancel, "extracting regions")
    voronoi = extract_voronoi(mesh)

    logger.info("Island mesh complete",
                vertices=mesh.num_solid_vertices,
                solid_triangles=mesh.num_solid_triangles,
                total_triangles=mesh.num_triangles,
                seconds=round(time.perf_counter() - started, 3))

    return IslandMesh(
        config=config,
        points=points,
        num_boundary_points=num_boundary,
        triangulation=triangulation,
        mesh=mesh,
        voronoi=voronoi,
    )


def generate_or_reuse_mesh(existing: Optional[IslandMesh], config: MeshConfig,
                           should_cancel: Optional[CancelCheck] = None,
                           settings: Optional[Settings] = None) -> IslandMesh:
    """
    Return ``existing`` when it was built from an identical request,
    otherwise rebuild everything from scratch.
    """
    if existing is not None and existing.config == config:
        logger.info("Reusing existing mesh", seed=config.seed,
                    vertices=existing.mesh.num_solid_vertices)
        return existing
    return generate_island_mesh(config, should_cancel, settings)
