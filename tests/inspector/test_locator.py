"""Tests for component candidate selection and source resolution."""

import pytest

from autoview.core.models import safe_copy
from autoview.inspector.locator import (
    MAX_OWNER_DEPTH,
    ComponentCandidate,
    ComponentLocator,
    ComponentReport,
    RawCandidate,
    RawSource,
    clean_source_path,
    is_generic_wrapper,
    is_oversized,
    parse_stack_source,
    resolve_source,
    select_candidate,
)


def candidate(name: str, *, direct: bool = False, source: bool = False, area: float | None = 100.0) -> RawCandidate:
    return RawCandidate(
        name=name,
        direct_match=direct,
        box_area=area,
        debug_source=RawSource(file_name=f"src/{name}.tsx", line_number=1) if source else None,
    )


def choose(*raws: RawCandidate, element_area: float = 100.0) -> str | None:
    chosen = select_candidate([ComponentCandidate.from_raw(raw, element_area) for raw in raws])
    return chosen.name if chosen else None


def test_specific_component_beats_generic_wrapper() -> None:
    """A non-generic candidate with a source wins over a generic one without."""
    assert choose(candidate("GenericLayout"), candidate("SpecificButton", source=True)) == "SpecificButton"


@pytest.mark.parametrize(
    "raws, expected",
    [
        # (a) direct match with source and specific name
        ([candidate("Card", source=True), candidate("TodoItem", direct=True, source=True)], "TodoItem"),
        # (b) any direct match, even generic and without source
        ([candidate("Card", source=True), candidate("PageLayout", direct=True)], "PageLayout"),
        # (c) specific, not oversized, with source
        ([candidate("Card"), candidate("Button", source=True)], "Button"),
        # (d) specific and not oversized
        ([candidate("AppLayout", source=True), candidate("Button")], "Button"),
        # (e) not oversized, generic allowed
        ([candidate("Button", area=5000.0), candidate("Provider")], "Provider"),
        # (f) first candidate found
        ([candidate("Huge", area=5000.0), candidate("Bigger", area=9000.0)], "Huge"),
    ],
)
def test_selection_buckets(raws: list[RawCandidate], expected: str) -> None:
    """The first non-empty bucket decides."""
    assert choose(*raws) == expected


def test_direct_match_is_always_preferred() -> None:
    """Whatever else is on the chain, a direct match is chosen."""
    chains = [
        [candidate("App"), candidate("Label", direct=True), candidate("Form", source=True)],
        [candidate("Form", source=True), candidate("Router", direct=True, area=10_000.0)],
        [candidate("Provider", direct=True), candidate("ErrorBoundary", direct=True, source=True)],
    ]
    for chain in chains:
        candidates = [ComponentCandidate.from_raw(raw, 100.0) for raw in chain]
        assert select_candidate(candidates).is_direct_match


def test_no_candidates_selects_nothing() -> None:
    """An empty chain has no selection."""
    assert select_candidate([]) is None


@pytest.mark.parametrize(
    "name, generic",
    [("RootLayout", True), ("ThemeProvider", True), ("Anonymous", True), ("TodoItem", False), ("Button", False)],
)
def test_generic_wrapper_names(name: str, generic: bool) -> None:
    """Generic wrappers are matched by substring."""
    assert is_generic_wrapper(name) is generic


def test_oversized_container_ratio() -> None:
    """Only areas more than ten times the element are oversized."""
    assert not is_oversized(1000.0, 100.0)
    assert is_oversized(1001.0, 100.0)
    assert not is_oversized(None, 100.0)
    assert is_oversized(10.0, 0.0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("webpack:///./src/components/Button.tsx", "src/components/Button.tsx"),
        ("http://localhost:5173/src/App.tsx?t=1700000000", "src/App.tsx"),
        ("C:\\Users\\dev\\shop\\app\\page.tsx", "app/page.tsx"),
        ("/home/dev/todo/app/TodoItem.tsx", "app/TodoItem.tsx"),
        ("./widgets/Card.jsx", "widgets/Card.jsx"),
    ],
)
def test_clean_source_path(raw: str, expected: str) -> None:
    """Protocols, queries and absolute prefixes are stripped."""
    assert clean_source_path(raw) == expected


def test_stack_scan_skips_dependency_frames() -> None:
    """The first frame inside project code is used."""
    stack = "\n".join(
        [
            "Error: react-stack-top-frame",
            "    at exports.jsxDEV (http://localhost:3000/node_modules/.vite/deps/react_jsx-dev-runtime.js:250:30)",
            "    at renderWithHooks (http://localhost:3000/node_modules/react-dom/cjs/react-dom.development.js:1:2)",
            "    at TodoList (http://localhost:3000/src/components/TodoList.tsx?t=123:18:9)",
        ]
    )

    location = parse_stack_source(stack)

    assert location.file_path == "src/components/TodoList.tsx"
    assert location.line_number == 18
    assert location.column_number == 9


def test_stack_scan_reads_gecko_frames() -> None:
    """Firefox-style frames are understood too."""
    location = parse_stack_source("TodoItem@http://localhost:3000/src/TodoItem.jsx:7:3")

    assert location.file_path == "src/TodoItem.jsx"
    assert location.line_number == 7


def test_stack_scan_without_project_frames() -> None:
    """No usable frame means no location."""
    assert parse_stack_source("    at run (node:internal/process/task_queues:95:5)") is None


def test_source_ladder_order() -> None:
    """Debug source wins over type source, stack and module id."""
    raw = RawCandidate(
        name="Button",
        debug_source=RawSource(file_name="/repo/src/Button.tsx", line_number=4, column_number=2),
        type_source=RawSource(file_name="/repo/src/Other.tsx", line_number=9),
        debug_stack="    at Button (http://localhost/src/Stack.tsx:1:1)",
        module_id="./src/Module.tsx",
    )
    assert resolve_source(raw).file_path == "src/Button.tsx"

    raw.debug_source = None
    assert resolve_source(raw).file_path == "src/Other.tsx"

    raw.type_source = None
    assert resolve_source(raw).file_path == "src/Stack.tsx"

    raw.debug_stack = None
    location = resolve_source(raw)
    assert location.file_path == "src/Module.tsx"
    assert location.line_number == 1

    raw.module_id = "42"
    assert resolve_source(raw) is None


def test_safe_copy_placeholders() -> None:
    """Only primitives survive a safe copy."""
    props = {"a": 1, "b": "x", "c": [1, 2], "d": {}, "e": lambda: None}

    assert safe_copy(props) == {"a": 1, "b": "x", "c": "[Array]", "d": "[Object]", "e": "[Function]"}


def test_describe_builds_safe_descriptor() -> None:
    """The locator returns the chosen component with safe props and its source."""
    report = ComponentReport.model_validate(
        {
            "elementArea": 100,
            "candidates": [
                {
                    "name": "TodoItem",
                    "directMatch": True,
                    "boxArea": 100,
                    "debugSource": {"fileName": "/home/dev/todo/app/TodoItem.tsx", "lineNumber": 12},
                    "props": {"todo": {"id": 1}, "onToggle": "[Function]", "index": 0},
                    "state": None,
                },
                {"name": "TodoList", "boxArea": 400},
            ],
        }
    )

    descriptor = ComponentLocator().describe(report)

    assert descriptor.component_name == "TodoItem"
    assert descriptor.props == {"todo": "[Object]", "onToggle": "[Function]", "index": 0}
    assert descriptor.state is None
    assert descriptor.source_location.file_path == "app/TodoItem.tsx"
    assert descriptor.source_location.line_number == 12


def test_describe_without_report_or_candidates() -> None:
    """Introspection misses are not errors."""
    locator = ComponentLocator()

    assert locator.describe(None) is None
    assert locator.describe(ComponentReport()) is None


def test_owner_depth_is_bounded() -> None:
    """The walk limit is an explicit constant."""
    assert 10 <= MAX_OWNER_DEPTH <= 20
