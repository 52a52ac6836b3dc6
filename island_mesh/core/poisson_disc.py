"""
Poisson-disc (blue noise) point sampling.

Bridson-style dart throwing over a background grid whose cells are small
enough to hold at most one accepted sample. Every pair of returned points
is at least ``min_distance`` apart.
"""

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .exceptions import InvalidParameterError

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 30


class PoissonDiscSampler:
    """
    Stateful sampler for a single [0, width) x [0, height) domain.

    Fixed points (typically boundary points) may be admitted before
    ``generate()``; they are validated against the same spacing rule and
    seed the active list.
    """

    def __init__(self, width: float, height: float, min_distance: float,
                 seed: int = 0, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
            raise InvalidParameterError(
                f"Sampling domain must have positive area, got {width}x{height}")
        if not math.isfinite(min_distance) or min_distance <= 0:
            raise InvalidParameterError(
                f"Minimum distance must be positive, got {min_distance}")
        if max_attempts < 1:
            raise InvalidParameterError(
                f"Attempt budget must be at least 1, got {max_attempts}")

        self.width = float(width)
        self.height = float(height)
        self.min_distance = float(min_distance)
        self.max_attempts = int(max_attempts)
        self.seed = seed
        self._prng = AleaPRNG(seed)

        self.cell_size = self.min_distance / math.sqrt(2)
        self.grid_width = int(math.ceil(self.width / self.cell_size))
        self.grid_height = int(math.ceil(self.height / self.cell_size))
        self._grid = [-1] * (self.grid_width * self.grid_height)

        self.points: List[Tuple[float, float]] = []
        self.active: List[int] = []
        self.num_fixed = 0

    def _cell_of(self, x: float, y: float) -> Tuple[int, int]:
        gx = min(int(x / self.cell_size), self.grid_width - 1)
        gy = min(int(y / self.cell_size), self.grid_height - 1)
        return gx, gy

    def is_valid_point(self, x: float, y: float) -> bool:
        """Check domain bounds and the minimum spacing to accepted points."""
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return False

        gx, gy = self._cell_of(x, y)
        min_sq = self.min_distance * self.min_distance

        # 5x5 neighbourhood covers every cell within min_distance
        for ny in range(max(gy - 2, 0), min(gy + 3, self.grid_height)):
            row = ny * self.grid_width
            for nx in range(max(gx - 2, 0), min(gx + 3, self.grid_width)):
                index = self._grid[row + nx]
                if index != -1:
                    px, py = self.points[index]
                    if (px - x) ** 2 + (py - y) ** 2 < min_sq:
                        return False
        return True

    def _add_point(self, x: float, y: float) -> None:
        index = len(self.points)
        self.points.append((x, y))
        self.active.append(index)
        gx, gy = self._cell_of(x, y)
        self._grid[gy * self.grid_width + gx] = index

    def add_fixed_points(self, fixed_points: Iterable[Sequence[float]]) -> int:
        """
        Admit externally supplied points that satisfy the spacing rule.

        Returns:
            Number of points admitted
        """
        admitted = 0
        rejected = 0
        for point in fixed_points:
            x, y = float(point[0]), float(point[1])
            if self.is_valid_point(x, y):
                self._add_point(x, y)
                admitted += 1
            else:
                rejected += 1

        self.num_fixed += admitted
        if rejected:
            logger.warning("Fixed points rejected by spacing or bounds check",
                           admitted=admitted, rejected=rejected)
        return admitted

    def _seed_first_point(self) -> None:
        if not self.points:
            self._add_point(self._prng.random() * self.width,
                            self._prng.random() * self.height)
            return

        # With fixed points present the random seed point must respect them
        for _ in range(self.max_attempts):
            x = self._prng.random() * self.width
            y = self._prng.random() * self.height
            if self.is_valid_point(x, y):
                self._add_point(x, y)
                return

    def generate(self) -> np.ndarray:
        """
        Run dart throwing until the active list is exhausted.

        Returns:
            Array of [x, y] points, admitted fixed points first
        """
        self._seed_first_point()
        prng = self._prng
        two_pi = 2 * math.pi

        while self.active:
            slot = prng.randrange(len(self.active))
            cx, cy = self.points[self.active[slot]]

            for _ in range(self.max_attempts):
                angle = prng.random() * two_pi
                radius = self.min_distance * (1 + prng.random())
                x = cx + radius * math.cos(angle)
                y = cy + radius * math.sin(angle)
                if self.is_valid_point(x, y):
                    self._add_point(x, y)
                    break
            else:
                # Exhausted; swap-remove keeps the draw order deterministic
                self.active[slot] = self.active[-1]
                self.active.pop()

        logger.debug("Poisson disc sampling complete",
                     points=len(self.points), fixed=self.num_fixed)
        return np.array(self.points, dtype=np.float64).reshape(-1, 2)


def poisson_disc_sample(width: float, height: float, min_distance: float,
                        seed: int = 0,
                        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                        fixed_points: Optional[Iterable[Sequence[float]]] = None
                        ) -> np.ndarray:
    """
    Sample a maximal blue-noise point set in [0, width) x [0, height).

    Pure function of its arguments: the same inputs always return the same
    array.

    Args:
        width: Domain width
        height: Domain height
        min_distance: Minimum distance between any two points
        seed: Random seed
        max_attempts: Candidate attempts per active point
        fixed_points: Optional points admitted (if valid) before sampling

    Returns:
        Array of [x, y] point coordinates
    """
    sampler = PoissonDiscSampler(width, height, min_distance, seed, max_attempts)
    if fixed_points is not None:
        sampler.add_fixed_points(fixed_points)
    return sampler.generate()
