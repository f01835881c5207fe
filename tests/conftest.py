"""Pytest configuration and fixtures for AutoView tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from autoview.core.config import InspectorConfig
from autoview.core.models import BoundingBox
from autoview.inspector import messages
from autoview.inspector.controller import InspectionController
from autoview.inspector.surface import PreviewSurface
from autoview.mapping import SourceMapper
from autoview.workspace import SearchHit


class FakeSurface(PreviewSurface):
    """In-memory surface whose "probe" answers like the real one would."""

    def __init__(
        self,
        *,
        accessible: bool = True,
        privileged: bool = False,
        acks: bool = True,
        self_injects: bool = False,
        box: BoundingBox | None = None,
    ) -> None:
        super().__init__(identity="fake")
        self.accessible = accessible
        self.supports_privileged = privileged
        self.acks = acks
        self.self_injects = self_injects
        self.box = box or BoundingBox.from_xywh(100, 50, 800, 600)
        self.box_error: Exception | None = None

        self.posted: list[dict[str, Any]] = []
        self.scripts: list[tuple[str, str]] = []
        self.probe_running = False
        self.overlay: BoundingBox | None = None
        self.overlay_removed = False
        self.armed = False
        self.fallback_style = False
        self.html: str | None = None

    def posted_types(self) -> list[str]:
        return [message["type"] for message in self.posted]

    async def _start_probe(self, how: str, script: str) -> None:
        self.scripts.append((how, script))
        self.probe_running = True
        await self.emit_message({"type": messages.INSPECTOR_READY, "framework": {"react": {"globalObject": True}}})

    async def bounding_box(self) -> BoundingBox | None:
        if self.box_error is not None:
            raise self.box_error
        return self.box

    async def post_message(self, message: dict[str, Any]) -> None:
        self.posted.append(message)
        if message["type"] == messages.INJECT_INSPECTOR and self.self_injects:
            await self._start_probe("self", message["script"])
        elif message["type"] == messages.START_INSPECTION and self.probe_running and self.acks:
            await self.emit_message({"type": messages.INSPECTION_ACK})

    async def execute_privileged(self, script: str) -> None:
        await self._start_probe("privileged", script)

    async def inject_script_element(self, script: str) -> None:
        if not self.accessible:
            raise RuntimeError("SecurityError: Blocked a frame with origin from accessing a cross-origin frame.")
        await self._start_probe("script-element", script)

    async def evaluate_in_target(self, script: str) -> None:
        if not self.accessible:
            raise RuntimeError("Permission denied to access property 'eval' on cross-origin object")
        await self._start_probe("eval", script)

    async def snapshot_html(self) -> str | None:
        return self.html

    async def show_overlay(self, rect: BoundingBox) -> None:
        self.overlay = rect

    async def hide_overlay(self) -> None:
        self.overlay = None

    async def remove_overlay(self) -> None:
        self.overlay = None
        self.overlay_removed = True

    async def arm_fallback(self) -> None:
        self.armed = True

    async def disarm_fallback(self) -> None:
        self.armed = False
        self.fallback_style = False

    async def set_fallback_style(self, active: bool) -> None:
        self.fallback_style = active


class StaticTextSearch:
    def __init__(self, hits: dict[str, list[SearchHit]] | None = None, error: Exception | None = None) -> None:
        self.hits = hits or {}
        self.error = error
        self.patterns: list[str] = []

    async def search(self, pattern: str, scope_globs: Any) -> list[SearchHit]:
        self.patterns.append(pattern)
        if self.error is not None:
            raise self.error
        return self.hits.get(pattern, [])


class StaticFileSearch:
    def __init__(self, files: dict[str, list[Path]] | None = None) -> None:
        self.files = files or {}
        self.globs: list[str] = []

    async def find_files(self, glob: str) -> list[Path]:
        self.globs.append(glob)
        return self.files.get(glob, [])


def react_click(
    candidates: list[dict[str, Any]] | None = None,
    element_area: float = 2000.0,
    tag_name: str = "div",
    class_list: list[str] | None = None,
) -> dict[str, Any]:
    """An INSPECT_CLICK payload the way the probe posts it."""
    class_list = ["todo-item"] if class_list is None else class_list
    if candidates is None:
        candidates = [
            {
                "name": "TodoItem",
                "depth": 1,
                "directMatch": True,
                "boxArea": element_area,
                "debugSource": {"fileName": "/home/dev/todo/app/TodoItem.tsx", "lineNumber": 12, "columnNumber": 5},
                "props": {"title": "Buy milk", "done": False},
            },
            {"name": "TodoList", "depth": 3, "directMatch": False, "boxArea": element_area * 6},
            {"name": "App", "depth": 5, "directMatch": False, "boxArea": element_area * 100},
        ]
    return {
        "type": messages.INSPECT_CLICK,
        "domNode": {
            "tagName": tag_name,
            "classList": class_list,
            "attributes": {"class": " ".join(class_list)},
            "xpath": "/html/body/div[1]/ul[1]/div[1]",
            "cssSelector": f"{tag_name}." + ".".join(class_list) if class_list else tag_name,
            "boundingRect": {"x": 10, "y": 20, "width": 200, "height": 10, "top": 20, "right": 210, "bottom": 30, "left": 10},
        },
        "framework": {"react": {"instanceKeys": True, "version": "18.2.0"}},
        "component": {"candidates": candidates, "elementArea": element_area, "entryMethod": "instance-key"},
    }


@pytest.fixture
def fast_config() -> InspectorConfig:
    return InspectorConfig(
        settle_delay_ms=0,
        ack_timeout_ms=50,
        start_attempts=2,
        self_inject_timeout_ms=50,
        reinject_delay_ms=0,
    )


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def mapper(tmp_path: Path) -> SourceMapper:
    return SourceMapper(tmp_path, text_search=StaticTextSearch(), file_search=StaticFileSearch())


@pytest.fixture
def controller(surface: FakeSurface, fast_config: InspectorConfig, mapper: SourceMapper) -> InspectionController:
    return InspectionController(surface, config=fast_config, source_mapper=mapper)


@pytest.fixture
def make_surface() -> type[FakeSurface]:
    return FakeSurface


@pytest.fixture
def click_payload():
    return react_click


@pytest.fixture
def text_search() -> type[StaticTextSearch]:
    return StaticTextSearch


@pytest.fixture
def file_search() -> type[StaticFileSearch]:
    return StaticFileSearch
