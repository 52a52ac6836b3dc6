"""Configuration management and logging setup."""

import logging
import math
import sys
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fraction of the plane covered by maximal Poisson-disc samples, expressed
# as points per spacing**2
POISSON_DENSITY = 0.7


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Generation defaults
    default_width: float = Field(default=1000.0, description="Default domain width")
    default_height: float = Field(default=1000.0, description="Default domain height")
    default_spacing: float = Field(default=20.0, description="Default minimum point spacing")
    default_seed: int = Field(default=12345, description="Default random seed")
    max_attempts: int = Field(default=30, description="Poisson-disc candidates per active point")

    # Limits
    max_points: int = Field(default=250_000, description="Largest accepted point estimate")

    model_config = SettingsConfigDict(
        env_prefix="ISLAND_MESH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class MeshConfig(BaseModel):
    """One mesh generation request."""

    left: float = Field(default=0.0, description="Domain origin x")
    top: float = Field(default=0.0, description="Domain origin y")
    width: float = Field(..., gt=0, description="Domain width")
    height: float = Field(..., gt=0, description="Domain height")
    spacing: float = Field(..., gt=0, description="Minimum distance between points")
    seed: int = Field(default=0, description="Random seed")
    max_attempts: int = Field(default=30, ge=1, description="Candidates per active point")
    use_exterior_boundary: bool = Field(
        default=True, description="Pad the triangulation with exterior boundary points")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_finite(self) -> "MeshConfig":
        for name in ("left", "top", "width", "height", "spacing"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        return self

    @property
    def estimated_points(self) -> int:
        """Rough number of points the sampler will produce."""
        return int(POISSON_DENSITY * self.width * self.height / self.spacing ** 2)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None,
                      **overrides: Any) -> "MeshConfig":
        """Build a request, filling unspecified fields from settings."""
        settings = settings or Settings()
        values = {
            "width": settings.default_width,
            "height": settings.default_height,
            "spacing": settings.default_spacing,
            "seed": settings.default_seed,
            "max_attempts": settings.max_attempts,
        }
        values.update(overrides)
        return cls(**values)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog on top of the standard logging module."""
    settings = settings or Settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    if settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
