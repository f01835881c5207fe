"""Error types raised inside AutoView.

None of these escape the inspection controller: every boundary turns them
into a degraded but valid result.
"""

from __future__ import annotations


class AutoViewError(Exception):
    """Base class for AutoView errors."""


class ConfigLoadingError(AutoViewError):
    """Raised when autoview.yaml is missing or invalid."""


class InjectionError(AutoViewError):
    """An injection strategy could not get the probe running in the target."""

    def __init__(self, strategy: str, reason: str) -> None:
        super().__init__(f"{strategy}: {reason}")
        self.strategy = strategy
        self.reason = reason


class AccessDeniedError(InjectionError):
    """The target document or global scope is not reachable (cross-origin)."""


class SurfaceUnavailableError(AutoViewError):
    """The preview surface is detached or has no content frame."""
