"""Data model shared by the probe protocol, the locator and the source mapper."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

ARRAY_PLACEHOLDER = "[Array]"
OBJECT_PLACEHOLDER = "[Object]"
FUNCTION_PLACEHOLDER = "[Function]"
UNKNOWN_PLACEHOLDER = "[Unknown]"

_PRIMITIVES = (str, int, float, bool, type(None))


def safe_copy(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy a props/state mapping keeping primitives and replacing the rest by placeholders."""
    if not isinstance(values, Mapping):
        return {}

    copied: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, _PRIMITIVES):
            copied[str(key)] = value
        elif callable(value):
            copied[str(key)] = FUNCTION_PLACEHOLDER
        elif isinstance(value, list | tuple | set | frozenset):
            copied[str(key)] = ARRAY_PLACEHOLDER
        else:
            copied[str(key)] = OBJECT_PLACEHOLDER
    return copied


class WireModel(BaseModel):
    """Base for models that cross the postMessage boundary (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BoundingBox(WireModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    @classmethod
    def from_xywh(cls, x: float, y: float, width: float, height: float) -> BoundingBox:
        return cls(
            x=x,
            y=y,
            width=width,
            height=height,
            top=y,
            right=x + width,
            bottom=y + height,
            left=x,
        )

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def translated(self, dx: float, dy: float) -> BoundingBox:
        """Offset the box, e.g. from target-local into host-local coordinates."""
        return BoundingBox.from_xywh(self.left + dx, self.top + dy, self.width, self.height)


class DOMNodeInfo(WireModel):
    tag_name: str
    class_list: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)
    xpath: str = ""
    css_selector: str = ""
    bounding_rect: BoundingBox = Field(default_factory=BoundingBox)

    @field_validator("class_list")
    @classmethod
    def _ordered_unique(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(name for name in value if name))


class FrameworkType(StrEnum):
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"
    SVELTE = "svelte"
    UNKNOWN = "unknown"


class FrameworkInfo(WireModel):
    type: FrameworkType = FrameworkType.UNKNOWN
    version: str | None = None
    devtools: bool = False


class SourceLocation(WireModel):
    file_path: str
    line_number: int | None = None
    column_number: int | None = None
    relative_path: str | None = None

    @property
    def key(self) -> tuple[str, int | None, int | None]:
        return (self.file_path, self.line_number, self.column_number)

    def __str__(self) -> str:
        parts = [self.relative_path or self.file_path]
        if self.line_number is not None:
            parts.append(str(self.line_number))
            if self.column_number is not None:
                parts.append(str(self.column_number))
        return ":".join(parts)


class ComponentDescriptor(WireModel):
    component_name: str
    display_name: str | None = None
    props: dict[str, Any] = Field(default_factory=dict)
    state: dict[str, Any] | None = None
    source_location: SourceLocation | None = None

    @field_validator("props", mode="before")
    @classmethod
    def _safe_props(cls, value: Any) -> dict[str, Any]:
        return safe_copy(value)

    @field_validator("state", mode="before")
    @classmethod
    def _safe_state(cls, value: Any) -> dict[str, Any] | None:
        if value is None:
            return None
        return safe_copy(value)


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def dedupe_sources(sources: list[SourceLocation]) -> list[SourceLocation]:
    """Drop later entries whose (file, line, column) was already seen."""
    seen: set[tuple[str, int | None, int | None]] = set()
    unique: list[SourceLocation] = []
    for source in sources:
        if source.key in seen:
            continue
        seen.add(source.key)
        unique.append(source)
    return unique


class ComponentSourceInfo(WireModel):
    component: ComponentDescriptor
    source_location: SourceLocation | None = None
    possible_sources: list[SourceLocation] = Field(default_factory=list)
    confidence: Confidence = Confidence.LOW

    @model_validator(mode="after")
    def _ranked_unique(self) -> ComponentSourceInfo:
        sources = dedupe_sources(self.possible_sources)
        primary = self.source_location
        if primary is not None and self.confidence is Confidence.HIGH:
            sources = [primary] + [s for s in sources if s.key != primary.key]
        self.possible_sources = sources
        return self


class InspectionResult(WireModel):
    """Everything known about one click: DOM facts, framework and ranked sources."""

    dom_node: DOMNodeInfo
    framework: FrameworkInfo = Field(default_factory=FrameworkInfo)
    component_source: ComponentSourceInfo | None = None
    fallback: bool = False

    @property
    def component(self) -> ComponentDescriptor | None:
        return self.component_source.component if self.component_source else None
