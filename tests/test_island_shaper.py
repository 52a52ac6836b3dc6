"""Tests for island shaping on a dual mesh."""

import noise
import numpy as np
import pytest

from island_mesh.config import MeshConfig
from island_mesh.core.boundary import Rect
from island_mesh.core.delaunay import triangulate
from island_mesh.core.dual_mesh import build_dual_mesh
from island_mesh.core.island_shaper import (
    BiomeType, IslandShaper, ShaperOptions, noise_base, shape_island
)
from island_mesh.core.pipeline import generate_island_mesh


@pytest.fixture
def hexagon_shaper():
    """Shaper over a center point ringed by six hull points."""
    angles = np.radians(np.arange(0, 360, 60))
    ring = np.column_stack([10 * np.cos(angles), 10 * np.sin(angles)])
    points = np.vstack([[0.0, 0.0], ring])
    mesh = build_dual_mesh(triangulate(points), points)
    return IslandShaper(mesh, Rect(-10, -10, 20, 20), seed=1)


@pytest.fixture(scope="module")
def island():
    return generate_island_mesh(MeshConfig(width=200, height=200, spacing=10, seed=8))


class TestNoise:
    """Test Perlin noise seeding of elevation and moisture."""

    @pytest.mark.parametrize("seed,expected", [
        (0, 0), (5, 5), (255, 255), (256, 0), (1000, 232), (-1, 255),
    ])
    def test_noise_base(self, seed, expected):
        assert noise_base(seed) == expected

    def test_pnoise_range(self):
        values = [noise.pnoise2(x * 0.37, y * 0.53, base=noise_base(4))
                  for x in range(30) for y in range(30)]
        assert min(values) >= -1.0
        assert max(values) <= 1.0

    def test_elevation_deterministic(self, island):
        shaper1 = IslandShaper(island.mesh, island.bounds, seed=3)
        shaper2 = IslandShaper(island.mesh, island.bounds, seed=3)

        np.testing.assert_array_equal(shaper1.assign_elevation(),
                                      shaper2.assign_elevation())

    def test_seed_changes_elevation(self, island):
        elevation1 = IslandShaper(island.mesh, island.bounds, seed=1).assign_elevation()
        elevation2 = IslandShaper(island.mesh, island.bounds, seed=2).assign_elevation()

        assert not np.array_equal(elevation1, elevation2)

    def test_no_octaves_is_radial(self, island):
        """Test that without noise octaves elevation depends only on distance."""
        options = ShaperOptions(elevation_octaves=(), smoothing_passes=0)
        elevation1 = IslandShaper(island.mesh, island.bounds, seed=1,
                                  options=options).assign_elevation()
        elevation2 = IslandShaper(island.mesh, island.bounds, seed=2,
                                  options=options).assign_elevation()

        np.testing.assert_array_equal(elevation1, elevation2)


class TestBiomeClassification:
    """Test elevation/moisture to biome mapping."""

    @pytest.mark.parametrize("e,m,lake,expected", [
        (0.0, 1.0, False, BiomeType.OCEAN),
        (0.0, 1.0, True, BiomeType.LAKE),
        (0.05, 0.5, False, BiomeType.BEACH),
        (0.95, 0.5, False, BiomeType.SNOW),
        (0.85, 0.5, False, BiomeType.MOUNTAIN),
        (0.75, 0.1, False, BiomeType.TUNDRA),
        (0.75, 0.6, False, BiomeType.FOREST),
        (0.4, 0.1, False, BiomeType.DESERT),
        (0.4, 0.3, False, BiomeType.GRASSLAND),
        (0.4, 0.6, False, BiomeType.FOREST),
        (0.4, 0.9, False, BiomeType.RAINFOREST),
    ])
    def test_classify(self, hexagon_shaper, e, m, lake, expected):
        assert hexagon_shaper.classify_biome(e, m, lake) == expected


class TestHexagonShaping:
    """Test shaping steps on a hand-made mesh."""

    def test_enclosed_water_is_lake(self, hexagon_shaper):
        elevation = np.array([0.0, 0.5, 0.5, 0.5, 0.5, 0.5, 0.5])
        lakes = hexagon_shaper.find_lakes(elevation)

        assert lakes.tolist() == [True] + [False] * 6

    def test_water_reaching_hull_is_ocean(self, hexagon_shaper):
        elevation = np.array([0.0, 0.0, 0.5, 0.5, 0.5, 0.5, 0.5])
        lakes = hexagon_shaper.find_lakes(elevation)

        assert not lakes.any()

    def test_coastlines(self, hexagon_shaper):
        """Test that a land center in water gets a closed coastline."""
        elevation = np.array([0.5, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        coastlines = hexagon_shaper.find_coastlines(elevation)

        assert coastlines.shape == (6, 2, 2)
        lengths = np.linalg.norm(coastlines[:, 0] - coastlines[:, 1], axis=1)
        np.testing.assert_allclose(lengths, 10 / np.sqrt(3), rtol=1e-9)

    def test_no_coastline_on_dry_land(self, hexagon_shaper):
        coastlines = hexagon_shaper.find_coastlines(np.full(7, 0.5))
        assert coastlines.shape == (0, 2, 2)

    def test_trace_river(self, hexagon_shaper):
        """Test that a river follows steepest descent until it reaches water."""
        elevation = np.array([0.8, 0.0, 0.3, 0.5, 0.7, 0.75, 0.78])
        river = hexagon_shaper.trace_river(elevation, 4)

        assert river.vertices == [4, 3, 2]
        assert river.flow == pytest.approx(1.3)
        assert river.path.shape == (3, 2)

    def test_short_river_dropped(self, hexagon_shaper):
        elevation = np.array([0.8, 0.0, 0.3, 0.5, 0.7, 0.75, 0.78])
        assert hexagon_shaper.trace_river(elevation, 2) is None

    def test_moisture_from_water(self, hexagon_shaper):
        elevation = np.array([0.5, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        moisture = hexagon_shaper.assign_moisture(elevation)

        assert np.all(moisture[1:] == 1.0)
        assert 0.0 <= moisture[0] <= 1.0


class TestIslandShape:
    """Test full shaping of a generated mesh."""

    def test_attribute_shapes(self, island):
        shape = shape_island(island.mesh, island.bounds, seed=8)
        n = island.mesh.num_solid_vertices

        assert shape.elevation.shape == (n,)
        assert shape.moisture.shape == (n,)
        assert shape.biomes.shape == (n,)

    def test_value_ranges(self, island):
        shape = shape_island(island.mesh, island.bounds, seed=8)

        assert np.all(shape.elevation >= 0.0)
        assert np.all(shape.elevation <= 1.0)
        assert np.all(shape.moisture >= 0.0)
        assert np.all(shape.moisture <= 1.0)
        assert set(np.unique(shape.biomes)) <= {int(b) for b in BiomeType}

    def test_center_is_land(self, island):
        shape = shape_island(island.mesh, island.bounds, seed=8)
        r = island.locator().find_region(100, 100)

        assert shape.is_land(r)
        assert shape.biome(r) not in (BiomeType.OCEAN, BiomeType.LAKE)

    def test_water_biomes_match_elevation(self, island):
        shape = shape_island(island.mesh, island.bounds, seed=8)
        water = shape.elevation <= 0
        water_biomes = np.isin(shape.biomes, [BiomeType.OCEAN, BiomeType.LAKE])

        np.testing.assert_array_equal(water, water_biomes)

    def test_rivers_run_downhill(self, island):
        options = ShaperOptions(num_rivers=50, min_river_length=2)
        shape = shape_island(island.mesh, island.bounds, seed=8, options=options)

        for river in shape.rivers:
            heights = shape.elevation[river.vertices]
            assert np.all(np.diff(heights) < 0)
            assert len(river.vertices) > options.min_river_length

    def test_coastlines_finite(self, island):
        shape = shape_island(island.mesh, island.bounds, seed=8)
        assert shape.coastlines.ndim == 3
        assert np.all(np.isfinite(shape.coastlines))

    def test_deterministic(self, island):
        shape1 = shape_island(island.mesh, island.bounds, seed=8)
        shape2 = shape_island(island.mesh, island.bounds, seed=8)

        np.testing.assert_array_equal(shape1.elevation, shape2.elevation)
        np.testing.assert_array_equal(shape1.biomes, shape2.biomes)
        assert [r.vertices for r in shape1.rivers] == [r.vertices for r in shape2.rivers]
