"""
Island shaping on top of a finished dual mesh.

This module implements:
- Radial elevation falloff with Perlin noise variation and smoothing
- Moisture propagated inland from water
- Ocean / lake separation and biome classification
- Steepest-descent rivers
- Coastline segments along land/water Voronoi edges

Ghost vertices and triangles are never shaped; attribute arrays cover the
solid vertices only.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple

import noise
import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .boundary import Rect
from .dual_mesh import TriangleMesh

logger = structlog.get_logger()

NOISE_BASES = 256


class BiomeType(IntEnum):
    """Biome of a Voronoi region."""

    OCEAN = 0
    LAKE = 1
    BEACH = 2
    GRASSLAND = 3
    FOREST = 4
    RAINFOREST = 5
    DESERT = 6
    TUNDRA = 7
    MOUNTAIN = 8
    SNOW = 9


@dataclass
class ShaperOptions:
    """Island shaping parameters."""

    island_factor: float = 1.1  # Scales land extent before peaking
    mountain_peakiness: float = 0.4  # Exponent applied to elevation
    sea_threshold: float = 0.3  # Raw elevation below this becomes water
    smoothing_passes: int = 3
    center_weight: float = 3.0  # Weight of a region against its neighbours when smoothing

    # (frequency, amplitude) Perlin octaves added to the falloff
    elevation_octaves: Tuple[Tuple[float, float], ...] = (
        (0.01, 0.3), (0.02, 0.2), (0.04, 0.1))
    moisture_noise: Tuple[float, float] = (0.03, 0.3)
    moisture_decay: float = 0.9  # Moisture kept per step inland
    moisture_climb_penalty: float = 0.5  # Loss per unit of elevation gained

    # Biome thresholds
    beach_elevation: float = 0.1
    tundra_elevation: float = 0.7
    mountain_elevation: float = 0.8
    snow_elevation: float = 0.9

    # Rivers
    num_rivers: int = 10
    river_source_range: Tuple[float, float] = (0.7, 0.9)
    min_river_length: int = 5
    flow_step: float = 0.1


@dataclass
class River:
    """A river traced downhill from its source."""

    vertices: List[int]
    path: np.ndarray
    flow: float


@dataclass
class IslandShape:
    """Per-region terrain attributes for one mesh."""

    elevation: np.ndarray
    moisture: np.ndarray
    biomes: np.ndarray
    rivers: List[River] = field(default_factory=list)
    coastlines: np.ndarray = field(
        default_factory=lambda: np.zeros((0, 2, 2), dtype=np.float64))

    def is_land(self, r: int) -> bool:
        return self.elevation[r] > 0

    def biome(self, r: int) -> BiomeType:
        return BiomeType(int(self.biomes[r]))


def noise_base(seed: int) -> int:
    """Perlin permutation offset for a seed, kept within the 256-entry table."""
    return seed % NOISE_BASES


class IslandShaper:
    """Assigns elevation, moisture, biomes, rivers and coastlines."""

    def __init__(self, mesh: TriangleMesh, bounds: Rect, seed: int = 0,
                 options: Optional[ShaperOptions] = None):
        """
        Initialize island shaper.

        Args:
            mesh: Ghost-closed dual mesh
            bounds: Generation domain; the island is centred in it
            seed: Seed for noise and river selection
            options: Shaping parameters
        """
        self.mesh = mesh
        self.bounds = bounds
        self.seed = seed
        self.options = options or ShaperOptions()
        self.n_regions = mesh.num_solid_vertices

        self._neighbors = [
            mesh.solid_neighbors(r) if mesh.has_triangles(r) else []
            for r in range(self.n_regions)
        ]

    def assign_elevation(self) -> np.ndarray:
        opts = self.options
        b = self.bounds
        cx = b.left + b.width / 2
        cy = b.top + b.height / 2
        half_extent = min(b.width, b.height) / 2

        base = noise_base(self.seed)
        elevation = np.zeros(self.n_regions, dtype=np.float64)
        for r in range(self.n_regions):
            if not self.mesh.has_triangles(r):
                continue
            x, y = self.mesh.vertex_position(r)
            e = 1 - math.hypot(x - cx, y - cy) / half_extent
            for frequency, amplitude in opts.elevation_octaves:
                e += noise.pnoise2(x * frequency, y * frequency, base=base) * amplitude

            e = max(e * opts.island_factor, 0.0) ** opts.mountain_peakiness
            e = min(max(e, 0.0), 1.0)
            elevation[r] = 0.0 if e < opts.sea_threshold else e

        for _ in range(opts.smoothing_passes):
            elevation = self._smooth(elevation)

        return elevation

    def _smooth(self, elevation: np.ndarray) -> np.ndarray:
        weight = self.options.center_weight
        smoothed = elevation.copy()
        for r in range(self.n_regions):
            neighbors = self._neighbors[r]
            if not neighbors:
                continue
            total = elevation[r] * weight + elevation[neighbors].sum()
            smoothed[r] = total / (weight + len(neighbors))
        return smoothed

    def find_lakes(self, elevation: np.ndarray) -> np.ndarray:
        """Water regions not connected to the map edge through water."""
        water = elevation <= 0
        ocean = np.zeros(self.n_regions, dtype=bool)
        queue = deque()

        for r in range(self.n_regions):
            if water[r] and (self.mesh.is_boundary_vertex(r) or
                             self.mesh.is_hull_vertex(r)):
                ocean[r] = True
                queue.append(r)

        while queue:
            r = queue.popleft()
            for n in self._neighbors[r]:
                if water[n] and not ocean[n]:
                    ocean[n] = True
                    queue.append(n)

        return water & ~ocean

    def assign_moisture(self, elevation: np.ndarray) -> np.ndarray:
        opts = self.options
        moisture = np.zeros(self.n_regions, dtype=np.float64)
        visited = np.zeros(self.n_regions, dtype=bool)
        queue = deque()

        for r in range(self.n_regions):
            if elevation[r] <= 0:
                moisture[r] = 1.0
                visited[r] = True
                queue.append(r)

        while queue:
            r = queue.popleft()
            for n in self._neighbors[r]:
                if visited[n]:
                    continue
                visited[n] = True
                climb = max(0.0, elevation[n] - elevation[r])
                moisture[n] = moisture[r] * (opts.moisture_decay -
                                             climb * opts.moisture_climb_penalty)
                if moisture[n] > 0.01:
                    queue.append(n)

        frequency, amplitude = opts.moisture_noise
        base = noise_base(self.seed + 1)
        for r in range(self.n_regions):
            if elevation[r] > 0:
                x, y = self.mesh.vertex_position(r)
                noisy = moisture[r] + noise.pnoise2(x * frequency, y * frequency,
                                                    base=base) * amplitude
                moisture[r] = min(max(noisy, 0.0), 1.0)

        return moisture

    def classify_biome(self, e: float, m: float, lake: bool = False) -> BiomeType:
        opts = self.options
        if e <= 0:
            return BiomeType.LAKE if lake else BiomeType.OCEAN
        if e < opts.beach_elevation:
            return BiomeType.BEACH
        if e > opts.snow_elevation:
            return BiomeType.SNOW
        if e > opts.mountain_elevation:
            return BiomeType.MOUNTAIN
        if e > opts.tundra_elevation and m < 0.3:
            return BiomeType.TUNDRA
        if m < 0.2:
            return BiomeType.DESERT
        if m < 0.5:
            return BiomeType.GRASSLAND
        if m < 0.8:
            return BiomeType.FOREST
        return BiomeType.RAINFOREST

    def assign_biomes(self, elevation: np.ndarray, moisture: np.ndarray,
                      lakes: np.ndarray) -> np.ndarray:
        biomes = np.zeros(self.n_regions, dtype=np.int8)
        for r in range(self.n_regions):
            biomes[r] = self.classify_biome(elevation[r], moisture[r], lakes[r])
        return biomes

    def trace_river(self, elevation: np.ndarray, source: int) -> Optional[River]:
        """Follow the steepest descent from ``source`` until water or a pit."""
        vertices = []
        visited = set()
        current = source
        flow = 1.0

        while elevation[current] > 0 and current not in visited:
            visited.add(current)
            vertices.append(current)

            lowest = None
            lowest_elevation = elevation[current]
            for n in self._neighbors[current]:
                if n not in visited and elevation[n] < lowest_elevation:
                    lowest_elevation = elevation[n]
                    lowest = n

            if lowest is None:
                break
            current = lowest
            flow += self.options.flow_step

        if len(vertices) < 3:
            return None
        path = self.mesh.points[vertices].astype(np.float64)
        return River(vertices=vertices, path=path, flow=flow)

    def generate_rivers(self, elevation: np.ndarray) -> List[River]:
        low, high = self.options.river_source_range
        sources = [r for r in range(self.n_regions) if low < elevation[r] < high]

        prng = AleaPRNG([self.seed, "rivers"])
        prng.shuffle(sources)

        rivers = []
        for source in sources[:self.options.num_rivers]:
            river = self.trace_river(elevation, source)
            if river is not None and len(river.vertices) > self.options.min_river_length:
                rivers.append(river)
        return rivers

    def find_coastlines(self, elevation: np.ndarray) -> np.ndarray:
        """Voronoi edges separating a land region from a water region."""
        mesh = self.mesh
        ghost = mesh.ghost_vertex
        segments = []
        for s in range(mesh.num_solid_sides):
            r0 = mesh.side_begin(s)
            r1 = mesh.side_end(s)
            if r0 == ghost or r1 == ghost:
                continue
            if not (elevation[r0] > 0 and elevation[r1] <= 0):
                continue
            opposite = mesh.opposite(s)
            if mesh.is_ghost_side(opposite):
                continue
            segments.append((mesh.centers[s // 3], mesh.centers[opposite // 3]))

        if not segments:
            return np.zeros((0, 2, 2), dtype=np.float64)
        return np.array(segments, dtype=np.float64)

    def shape(self) -> IslandShape:
        logger.info("Shaping island", regions=self.n_regions, seed=self.seed)

        elevation = self.assign_elevation()
        moisture = self.assign_moisture(elevation)
        lakes = self.find_lakes(elevation)
        biomes = self.assign_biomes(elevation, moisture, lakes)
        rivers = self.generate_rivers(elevation)
        coastlines = self.find_coastlines(elevation)

        logger.info("Island shaped",
                    land=int(np.count_nonzero(elevation > 0)),
                    lakes=int(np.count_nonzero(lakes)),
                    rivers=len(rivers),
                    coastline_segments=len(coastlines))

        return IslandShape(elevation=elevation, moisture=moisture,
                           biomes=biomes, rivers=rivers, coastlines=coastlines)


def shape_island(mesh: TriangleMesh, bounds: Rect, seed: int = 0,
                 options: Optional[ShaperOptions] = None) -> IslandShape:
    """Convenience wrapper around :class:`IslandShaper`."""
    return IslandShaper(mesh, bounds, seed, options).shape()
