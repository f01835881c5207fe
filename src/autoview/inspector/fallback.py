"""Fallback Inspector: whole-surface inspection when the probe cannot run."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from autoview.core.models import BoundingBox, DOMNodeInfo, FrameworkInfo, FrameworkType, InspectionResult

if TYPE_CHECKING:
    from .surface import PreviewSurface

logger = logging.getLogger("autoview.fallback")

FALLBACK_TAG = "iframe-fallback"
FALLBACK_CLASS = "fallback-inspection"
FALLBACK_VERSION = "Cross-origin iframe - inspector script injection failed"


def fallback_result(rect: BoundingBox | None) -> InspectionResult:
    """Describe the surface element itself as the inspected node."""
    return InspectionResult(
        dom_node=DOMNodeInfo(
            tag_name=FALLBACK_TAG,
            class_list=[FALLBACK_CLASS],
            attributes={"data-fallback": "true"},
            xpath="iframe",
            css_selector="iframe",
            bounding_rect=rect or BoundingBox(),
        ),
        framework=FrameworkInfo(type=FrameworkType.UNKNOWN, version=FALLBACK_VERSION),
        component_source=None,
        fallback=True,
    )


class FallbackInspector:
    """Listens on the surface element, never on the target's own DOM.

    ``armed`` means surface click/move events are forwarded; ``active`` means
    the probe path gave up and those events now produce results.
    """

    def __init__(self, surface: PreviewSurface) -> None:
        self.surface = surface
        self.armed = False
        self.active = False

    async def arm(self) -> None:
        if not self.armed:
            await self.surface.arm_fallback()
            self.armed = True

    async def activate(self) -> None:
        if self.active:
            return
        logger.info("Probe unavailable in %s, using whole-surface inspection", self.surface.identity)
        await self.arm()
        await self.surface.set_fallback_style(True)
        self.active = True

    async def deactivate(self) -> None:
        if not self.active:
            return
        await self.surface.set_fallback_style(False)
        self.active = False

    async def disarm(self) -> None:
        await self.deactivate()
        if self.armed:
            await self.surface.disarm_fallback()
            self.armed = False

    async def handle_move(self, rect: BoundingBox | None) -> BoundingBox | None:
        """Highlight the whole surface; returns the highlighted rect."""
        if not self.active:
            return None
        box = rect or await self.surface.bounding_box()
        if box is not None:
            await self.surface.show_overlay(box)
        return box

    async def handle_click(self, rect: BoundingBox | None) -> InspectionResult | None:
        if not self.active:
            return None
        return fallback_result(rect or await self.surface.bounding_box())
