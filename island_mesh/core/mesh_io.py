"""
Flat JSON encoding of a ghost-closed mesh.

The encoding stores the two ghost-extended index arrays, the solid point
coordinates and the counts needed to tell solid from ghost elements.
Decoding re-appends the ghost vertex and recomputes triangle centers, which
reproduces the encoded mesh exactly.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
import structlog

from .dual_mesh import TriangleMesh, mesh_from_arrays
from .exceptions import InvalidParameterError

logger = structlog.get_logger()

FORMAT_VERSION = 1


def mesh_to_dict(mesh: TriangleMesh) -> Dict[str, Any]:
    """Encode a mesh as plain JSON-compatible types."""
    return {
        "format_version": FORMAT_VERSION,
        "num_solid_sides": int(mesh.num_solid_sides),
        "num_boundary_vertices": int(mesh.num_boundary_vertices),
        "points": mesh.points[:mesh.num_solid_vertices].tolist(),
        "triangles": mesh.triangles.tolist(),
        "halfedges": mesh.halfedges.tolist(),
    }


def mesh_from_dict(data: Dict[str, Any]) -> TriangleMesh:
    """
    Decode a mesh produced by :func:`mesh_to_dict`.

    Raises:
        InvalidParameterError: on unknown versions, missing fields, or
            counts and indices that do not fit the arrays
        MeshInvariantError: if the arrays do not form a closed mesh
    """
    version = data.get("format_version")
    if version != FORMAT_VERSION:
        raise InvalidParameterError(f"Unsupported mesh format version: {version}")

    try:
        points = np.asarray(data["points"], dtype=np.float64).reshape(-1, 2)
        triangles = np.asarray(data["triangles"], dtype=np.int32)
        halfedges = np.asarray(data["halfedges"], dtype=np.int32)
        num_solid_sides = int(data["num_solid_sides"])
        num_boundary_vertices = int(data.get("num_boundary_vertices", 0))
    except KeyError as e:
        raise InvalidParameterError(f"Mesh data is missing field {e}") from e

    n_sides = len(triangles)
    if n_sides != len(halfedges):
        raise InvalidParameterError("triangles and halfedges differ in length")
    if n_sides % 3:
        raise InvalidParameterError(f"Side count {n_sides} is not a multiple of 3")
    if num_solid_sides % 3 or not 0 <= num_solid_sides <= n_sides:
        raise InvalidParameterError(
            f"num_solid_sides {num_solid_sides} must be a multiple of 3 "
            f"in [0, {n_sides}]")
    if n_sides and (triangles.min() < 0 or triangles.max() > len(points)):
        # len(points) is the ghost vertex re-appended below
        raise InvalidParameterError(
            f"Triangle vertex indices must lie in [0, {len(points)}]")
    if n_sides and (halfedges.min() < 0 or halfedges.max() >= n_sides):
        raise InvalidParameterError(
            f"Opposite side indices must lie in [0, {n_sides})")

    ghost_points = np.vstack([points, [[np.nan, np.nan]]])
    return mesh_from_arrays(ghost_points, triangles, halfedges,
                            num_solid_sides, num_boundary_vertices)


def save_mesh(mesh: TriangleMesh, path: Union[str, Path]) -> None:
    """Write a mesh to a JSON file."""
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        json.dump(mesh_to_dict(mesh), f)
    logger.info("Mesh saved", path=str(path), sides=mesh.num_sides)


def load_mesh(path: Union[str, Path]) -> TriangleMesh:
    """Read a mesh written by :func:`save_mesh`."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    mesh = mesh_from_dict(data)
    logger.info("Mesh loaded", path=str(path), sides=mesh.num_sides)
    return mesh
