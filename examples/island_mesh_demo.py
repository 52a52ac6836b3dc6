#!/usr/bin/env python3
"""
Demonstration of island mesh generation.

This script walks through:
1. Generating a ghost-closed mesh from a request
2. Querying the half-edge structure
3. Voronoi regions and point lookup
4. Mesh reuse and cancellation
5. Island shaping
6. Saving and loading the mesh
"""

import tempfile
from pathlib import Path

import numpy as np

from island_mesh.config import MeshConfig, configure_logging, Settings
from island_mesh.core import (
    BiomeType, GenerationCancelled, generate_island_mesh,
    generate_or_reuse_mesh, shape_island
)
from island_mesh.core.mesh_io import load_mesh, save_mesh


def main():
    configure_logging(Settings(log_format="console", log_level="WARNING"))

    config = MeshConfig(width=400, height=300, spacing=12, seed=2024)

    print("=== Island Mesh Demo ===\n")

    # 1. Generate
    print("1. Generating mesh...")
    island = generate_island_mesh(config)
    mesh = island.mesh
    print(f"   - Points: {len(island.points)} ({island.num_boundary_points} boundary)")
    print(f"   - Solid triangles: {mesh.num_solid_triangles}")
    print(f"   - Ghost triangles: {mesh.num_triangles - mesh.num_solid_triangles}")
    print(f"   - Unpaired sides: {int(np.count_nonzero(mesh.halfedges == -1))}")

    # 2. Half-edge queries
    print("\n2. Walking around a vertex...")
    r = island.locator().find_region(200, 150)
    print(f"   - Region at (200, 150): {r}")
    print(f"   - Neighbours: {mesh.solid_neighbors(r)}")
    print(f"   - Triangles: {mesh.triangles_around_vertex(r)}")

    # 3. Voronoi
    print("\n3. Voronoi regions...")
    diagram = island.voronoi
    print(f"   - Regions: {diagram.num_regions}, closed: {int(diagram.closed.sum())}")
    print(f"   - Corners of region {r}: {len(diagram.region(r))}")
    clipped = diagram.clipped_regions(island.bounds)
    print(f"   - Non-empty after clipping: {sum(1 for c in clipped if len(c))}")

    # 4. Reuse and cancellation
    print("\n4. Reuse and cancellation...")
    print(f"   - Same request reused: {generate_or_reuse_mesh(island, config) is island}")
    changed = config.model_copy(update={"seed": 7})
    print(f"   - New seed rebuilt: {generate_or_reuse_mesh(island, changed) is not island}")
    try:
        generate_island_mesh(config, should_cancel=lambda: True)
    except GenerationCancelled as e:
        print(f"   - Cancelled before '{e.stage}'")

    # 5. Shaping
    print("\n5. Shaping an island...")
    shape = shape_island(mesh, island.bounds, seed=config.seed)
    land = shape.elevation > 0
    print(f"   - Land regions: {int(land.sum())} / {len(land)}")
    print(f"   - Rivers: {len(shape.rivers)}")
    print(f"   - Coastline segments: {len(shape.coastlines)}")
    counts = np.bincount(shape.biomes, minlength=len(BiomeType))
    for biome in BiomeType:
        if counts[biome]:
            print(f"     {biome.name:<11} {counts[biome]}")

    # 6. Persistence
    print("\n6. Saving and loading...")
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "island.json"
        save_mesh(mesh, path)
        loaded = load_mesh(path)
        print(f"   - File size: {path.stat().st_size} bytes")
        print(f"   - Round trip identical: "
              f"{np.array_equal(loaded.halfedges, mesh.halfedges)}")


if __name__ == "__main__":
    main()
