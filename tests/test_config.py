"""Tests for settings, request validation and logging setup."""

import math

import pytest
import structlog
from pydantic import ValidationError

from island_mesh.config import MeshConfig, Settings, configure_logging


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ISLAND_MESH_DEFAULT_SPACING", raising=False)
        settings = Settings()

        assert settings.default_spacing == 20.0
        assert settings.max_points == 250_000
        assert settings.log_format == "json"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ISLAND_MESH_DEFAULT_SPACING", "5")
        monkeypatch.setenv("ISLAND_MESH_MAX_POINTS", "1000")
        settings = Settings()

        assert settings.default_spacing == 5.0
        assert settings.max_points == 1000


class TestMeshConfig:
    """Test generation request validation."""

    def test_valid(self):
        config = MeshConfig(width=100, height=50, spacing=5, seed=3)

        assert config.left == 0
        assert config.max_attempts == 30
        assert config.use_exterior_boundary

    @pytest.mark.parametrize("overrides", [
        {"width": 0},
        {"height": -1},
        {"spacing": 0},
        {"max_attempts": 0},
        {"width": math.inf},
        {"left": math.nan},
    ])
    def test_invalid(self, overrides):
        values = {"width": 100, "height": 100, "spacing": 10}
        values.update(overrides)

        with pytest.raises(ValidationError):
            MeshConfig(**values)

    def test_frozen(self):
        config = MeshConfig(width=100, height=100, spacing=10)
        with pytest.raises(ValidationError):
            config.seed = 5

    def test_equality(self):
        assert (MeshConfig(width=100, height=100, spacing=10, seed=1) ==
                MeshConfig(width=100, height=100, spacing=10, seed=1))
        assert (MeshConfig(width=100, height=100, spacing=10, seed=1) !=
                MeshConfig(width=100, height=100, spacing=10, seed=2))

    def test_estimated_points(self):
        config = MeshConfig(width=100, height=100, spacing=10)
        assert config.estimated_points == 70

    def test_from_settings(self):
        settings = Settings(default_width=300, default_height=200,
                            default_spacing=15, default_seed=99)
        config = MeshConfig.from_settings(settings, seed=7)

        assert config.width == 300
        assert config.height == 200
        assert config.spacing == 15
        assert config.seed == 7


class TestConfigureLogging:
    """Test structlog configuration."""

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_configure(self, log_format):
        configure_logging(Settings(log_format=log_format, log_level="DEBUG"))

        logger = structlog.get_logger("island_mesh.test")
        logger.info("Logging configured", log_format=log_format)
        assert structlog.is_configured()
