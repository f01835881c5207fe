"""Component Locator, host half.

The probe walks the framework's ownership chain inside the page and ships
every component candidate it met (already safe-copied). This module decides
which of those candidates the user actually clicked and where its source is.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from pydantic import Field, field_validator

from autoview.core.models import ComponentDescriptor, SourceLocation, WireModel, safe_copy

logger = logging.getLogger("autoview.locator")

# Walk limits, shared with the in-page half of the locator (see probe.py).
MAX_ANCESTOR_DEPTH = 15
MAX_DESCENDANT_SCAN = 10
MAX_OWNER_DEPTH = 15
MAX_TREE_VISIT = 500
OVERSIZED_AREA_RATIO = 10.0

ANONYMOUS = "Anonymous"

GENERIC_WRAPPER_NAMES = (
    "Layout",
    "RootLayout",
    "PageLayout",
    "AppLayout",
    "Router",
    "Route",
    "Routes",
    "BrowserRouter",
    "HashRouter",
    "Provider",
    "Context",
    "ContextProvider",
    "App",
    "Root",
    "Main",
    "Container",
    "Wrapper",
    "Page",
    "Template",
    "Shell",
    "Frame",
    "ErrorBoundary",
    "Suspense",
    "Boundary",
    ANONYMOUS,
    "ForwardRef",
    "memo",
    "withRouter",
)

SOURCE_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js", ".mjs", ".vue", ".svelte")
DEPENDENCY_MARKERS = ("node_modules", "react-dom", "next/dist", "/.vite/", "webpack/runtime", "react-refresh")
PROJECT_ROOT_MARKERS = ("/src/", "/app/", "/components/", "/pages/", "/lib/", "/utils/")

_PROTOCOL_RE = re.compile(r"^[a-zA-Z][\w+.-]*://")
_V8_FRAME_RE = re.compile(r"^\s*at\s+(?:.*?\s+\()?(?P<file>\S+?):(?P<line>\d+):(?P<col>\d+)\)?\s*$")
_GECKO_FRAME_RE = re.compile(r"^[^@\s]*@(?P<file>\S+?):(?P<line>\d+):(?P<col>\d+)\s*$")


class RawSource(WireModel):
    """Debug source metadata as attached by the JSX dev transform."""

    file_name: str
    line_number: int | None = None
    column_number: int | None = None


class RawCandidate(WireModel):
    """One component met on the ownership chain, as reported by the probe."""

    name: str = ANONYMOUS
    display_name: str | None = None
    depth: int = 0
    direct_match: bool = False
    box_area: float | None = None
    debug_source: RawSource | None = None
    type_source: RawSource | None = None
    debug_stack: str | None = None
    module_id: str | None = None
    props: dict = Field(default_factory=dict)
    state: dict | None = None

    @field_validator("props", mode="before")
    @classmethod
    def _safe_props(cls, value: object) -> dict:
        return safe_copy(value)  # type: ignore[arg-type]

    @field_validator("state", mode="before")
    @classmethod
    def _safe_state(cls, value: object) -> dict | None:
        return None if value is None else safe_copy(value)  # type: ignore[arg-type]


class ComponentReport(WireModel):
    """Output of the in-page walk for one clicked element."""

    candidates: list[RawCandidate] = Field(default_factory=list)
    element_area: float = 0.0
    entry_method: str | None = None


def is_generic_wrapper(name: str) -> bool:
    return any(generic in name for generic in GENERIC_WRAPPER_NAMES)


def is_oversized(box_area: float | None, element_area: float) -> bool:
    if box_area is None:
        return False
    if element_area <= 0:
        return box_area > 0
    return box_area / element_area > OVERSIZED_AREA_RATIO


@dataclass
class ComponentCandidate:
    raw: RawCandidate
    is_generic_wrapper: bool
    is_oversized_container: bool
    has_source_location: bool
    is_direct_match: bool

    @classmethod
    def from_raw(cls, raw: RawCandidate, element_area: float) -> ComponentCandidate:
        direct = raw.direct_match
        return cls(
            raw=raw,
            is_generic_wrapper=is_generic_wrapper(raw.name),
            is_oversized_container=not direct and is_oversized(raw.box_area, element_area),
            has_source_location=raw.debug_source is not None or raw.type_source is not None,
            is_direct_match=direct,
        )

    @property
    def name(self) -> str:
        return self.raw.name


def select_candidate(candidates: list[ComponentCandidate]) -> ComponentCandidate | None:
    """Pick the most specific candidate; the first non-empty bucket wins.

    The nearest function-type ancestor is frequently a wrapper (layout,
    provider, router) rather than the widget under the pointer, hence the
    ordered buckets below.
    """
    if not candidates:
        return None

    buckets = (
        lambda c: c.is_direct_match and c.has_source_location and not c.is_generic_wrapper,
        lambda c: c.is_direct_match,
        lambda c: not c.is_generic_wrapper and not c.is_oversized_container and c.has_source_location,
        lambda c: not c.is_generic_wrapper and not c.is_oversized_container,
        lambda c: not c.is_oversized_container,
    )
    for matches in buckets:
        for candidate in candidates:
            if matches(candidate):
                return candidate
    return candidates[0]


def clean_source_path(path: str) -> str:
    """Normalize a bundler/devtools file name into a project-relative path when possible."""
    cleaned = _PROTOCOL_RE.sub("", path.strip())
    cleaned = cleaned.split("?", 1)[0].split("#", 1)[0]
    cleaned = cleaned.replace("\\", "/")
    for marker in PROJECT_ROOT_MARKERS:
        index = cleaned.find(marker)
        if index >= 0:
            return cleaned[index + 1 :]
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned


def _is_project_source(file: str) -> bool:
    bare = file.split("?", 1)[0].split("#", 1)[0]
    if not bare.endswith(SOURCE_EXTENSIONS):
        return False
    return not any(marker in bare for marker in DEPENDENCY_MARKERS)


def parse_stack_source(stack: str) -> SourceLocation | None:
    """First frame of a JS stack trace that points into project code."""
    for line in stack.splitlines():
        match = _V8_FRAME_RE.match(line) or _GECKO_FRAME_RE.match(line)
        if not match or not _is_project_source(match["file"]):
            continue
        return SourceLocation(
            file_path=clean_source_path(match["file"]),
            line_number=int(match["line"]),
            column_number=int(match["col"]),
        )
    return None


def _from_raw_source(source: RawSource) -> SourceLocation:
    return SourceLocation(
        file_path=clean_source_path(source.file_name),
        line_number=source.line_number,
        column_number=source.column_number,
    )


def resolve_source(raw: RawCandidate) -> SourceLocation | None:
    """Source ladder: debug source, type source, stack scan, module registry id."""
    if raw.debug_source is not None and raw.debug_source.file_name:
        return _from_raw_source(raw.debug_source)
    if raw.type_source is not None and raw.type_source.file_name:
        return _from_raw_source(raw.type_source)
    if raw.debug_stack:
        location = parse_stack_source(raw.debug_stack)
        if location is not None:
            return location
    if raw.module_id and "/" in raw.module_id:
        return SourceLocation(file_path=clean_source_path(raw.module_id), line_number=1, column_number=1)
    return None


class ComponentLocator:
    """Turns a probe ComponentReport into a safe ComponentDescriptor."""

    def candidates(self, report: ComponentReport) -> list[ComponentCandidate]:
        return [ComponentCandidate.from_raw(raw, report.element_area) for raw in report.candidates]

    def describe(self, report: ComponentReport | None) -> ComponentDescriptor | None:
        if report is None:
            return None

        candidates = self.candidates(report)
        chosen = select_candidate(candidates)
        if chosen is None:
            logger.debug("No component candidates (entry: %s)", report.entry_method)
            return None

        for candidate in candidates:
            logger.debug(
                "candidate %s depth=%d generic=%s oversized=%s source=%s direct=%s",
                candidate.name,
                candidate.raw.depth,
                candidate.is_generic_wrapper,
                candidate.is_oversized_container,
                candidate.has_source_location,
                candidate.is_direct_match,
            )
        logger.debug("Selected component %s", chosen.name)

        raw = chosen.raw
        return ComponentDescriptor(
            component_name=raw.name or raw.display_name or ANONYMOUS,
            display_name=raw.display_name,
            props=raw.props,
            state=raw.state,
            source_location=resolve_source(raw),
        )
