"""Configuration for AutoView."""

from .main import (
    AutoViewConfig,
    BrowserConfig,
    InspectorConfig,
    MapperConfig,
    ProjectConfig,
    ViewportConfig,
)

__all__ = [
    "AutoViewConfig",
    "BrowserConfig",
    "InspectorConfig",
    "MapperConfig",
    "ProjectConfig",
    "ViewportConfig",
]
