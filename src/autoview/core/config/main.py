"""Configuration management for AutoView."""

from __future__ import annotations

from pathlib import Path
from typing import Self

import yaml
from pydantic import BaseModel, Field, ValidationError

from autoview.core.errors import ConfigLoadingError

CONFIG_FILE_NAME = "autoview.yaml"


class ViewportConfig(BaseModel):
    """Viewport configuration settings."""

    width: int = 1280
    height: int = 800


class BrowserConfig(BaseModel):
    """Browser configuration settings."""

    headless: bool = False
    timeout: int = 30000  # milliseconds
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)

    @classmethod
    def default(cls) -> Self:
        return cls()


class InspectorConfig(BaseModel):
    """Timings and limits of the inspection handshake."""

    settle_delay_ms: int = 500
    ack_timeout_ms: int = 1500
    start_attempts: int = 3
    self_inject_timeout_ms: int = 1000
    reinject_delay_ms: int = 100
    flash_ms: int = 200
    host_port: int = 5173  # never reported as a preview server

    @classmethod
    def default(cls) -> Self:
        return cls()


class MapperConfig(BaseModel):
    """Source mapper search settings."""

    scope_globs: list[str] = Field(
        default_factory=lambda: ["**/*.tsx", "**/*.jsx", "**/*.ts", "**/*.js", "**/*.vue", "**/*.svelte"]
    )
    max_name_hits: int = 10
    max_convention_hits: int = 5

    @classmethod
    def default(cls) -> Self:
        return cls()


class ProjectConfig(BaseModel):
    """Project configuration settings."""

    root: str = "."
    preview_url: str = "http://localhost:3000"

    @property
    def root_path(self) -> Path:
        return Path(self.root).expanduser().resolve()


class AutoViewConfig(BaseModel):
    """Main AutoView configuration."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig.default)
    inspector: InspectorConfig = Field(default_factory=InspectorConfig.default)
    mapper: MapperConfig = Field(default_factory=MapperConfig.default)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the configuration file."""
        return Path.cwd() / CONFIG_FILE_NAME

    @classmethod
    def load_config(cls, path: Path | None = None) -> Self:
        """Load configuration from autoview.yaml."""
        config_path = path or cls.get_config_path()

        if not config_path.exists():
            raise ConfigLoadingError(f"No {CONFIG_FILE_NAME} found at {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
            return cls(**config_data)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigLoadingError(f"{e.__class__.__name__} loading {config_path}: {e}") from e

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> Self:
        try:
            return cls.load_config(path)
        except ConfigLoadingError:
            return cls()

    def save(self, path: Path | None = None) -> Path:
        """Save configuration to autoview.yaml."""
        config_path = path or self.get_config_path()

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self.model_dump(), f, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigLoadingError(f"Error saving configuration: {e}") from e

        return config_path
