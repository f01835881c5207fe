"""Click-test runner: fires synthetic clicks on known selectors of demo apps."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from autoview.core.models import FrameworkType

from . import snapshot
from .messages import TEST_RESULT, ClickTestReport

if TYPE_CHECKING:
    from .messages import MessageBus
    from .surface import PreviewSurface

logger = logging.getLogger("autoview.test_runner")

DEFAULT_TIMEOUT_S = 5.0


class DemoElement(BaseModel):
    selector: str
    description: str
    expected_component: str | None = None


class DemoApp(BaseModel):
    name: str
    framework: FrameworkType
    url: str
    description: str
    test_elements: list[DemoElement] = Field(default_factory=list)


DEMO_APPS: list[DemoApp] = [
    DemoApp(
        name="React Todo App",
        framework=FrameworkType.REACT,
        url="http://localhost:3000",
        description="A simple React todo application with hooks and components",
        test_elements=[
            DemoElement(selector=".todo-item", expected_component="TodoItem", description="Individual todo item component"),
            DemoElement(selector=".todo-list", expected_component="TodoList", description="Container for todo items"),
            DemoElement(selector=".add-todo-form", expected_component="AddTodoForm", description="Form for adding new todos"),
        ],
    ),
    DemoApp(
        name="Next.js App",
        framework=FrameworkType.REACT,
        url="http://localhost:3000",
        description="Next.js application with SSR and routing",
        test_elements=[
            DemoElement(selector='[data-testid="header"]', expected_component="Header", description="Navigation header component"),
            DemoElement(selector=".page-content", expected_component="PageLayout", description="Main page layout component"),
        ],
    ),
    DemoApp(
        name="Vue.js App",
        framework=FrameworkType.VUE,
        url="http://localhost:8080",
        description="Vue.js application with composition API",
        test_elements=[
            DemoElement(selector=".vue-component", expected_component="VueComponent", description="Basic Vue component"),
        ],
    ),
    DemoApp(
        name="Vite React App",
        framework=FrameworkType.REACT,
        url="http://localhost:5173",
        description="React app built with Vite",
        test_elements=[
            DemoElement(selector="#root", expected_component="App", description="Root application component"),
        ],
    ),
    DemoApp(
        name="Angular App",
        framework=FrameworkType.ANGULAR,
        url="http://localhost:4200",
        description="Angular application with components and services",
        test_elements=[
            DemoElement(selector="app-root", expected_component="AppComponent", description="Root Angular component"),
        ],
    ),
]


@dataclass
class ClickTestOutcome:
    selector: str
    success: bool
    description: str
    error: str | None = None
    component_found: bool | None = None
    expected_component: str | None = None


_CLICK_SCRIPT = """
(function () {
  var selector = __SELECTOR__;
  var type = __TYPE__;
  var element = document.querySelector(selector);
  if (!element) {
    window.parent.postMessage({ type: type, selector: selector, success: false, error: 'Element not found' }, '*');
    return;
  }
  var rect = element.getBoundingClientRect();
  element.dispatchEvent(new MouseEvent('click', {
    clientX: rect.left + rect.width / 2,
    clientY: rect.top + rect.height / 2,
    bubbles: true
  }));
  var componentFound = Object.keys(element).some(function (key) {
    return key.indexOf('__reactFiber') === 0 || key.indexOf('__reactInternalInstance') === 0;
  }) || !!(element._reactInternalFiber || element.__reactInternalFiber);
  setTimeout(function () {
    window.parent.postMessage({ type: type, selector: selector, success: true, componentFound: componentFound }, '*');
  }, 100);
})();
"""


def click_script(selector: str) -> str:
    return _CLICK_SCRIPT.replace("__SELECTOR__", json.dumps(selector)).replace("__TYPE__", json.dumps(TEST_RESULT))


class InspectorTestRunner:
    """Runs a DemoApp's click tests against a surface; results come back over the bus."""

    def __init__(self, surface: PreviewSurface, bus: MessageBus, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        self.surface = surface
        self.bus = bus
        self.timeout = timeout

    async def run_tests(self, app: DemoApp) -> list[ClickTestOutcome]:
        results = []
        for element in app.test_elements:
            try:
                results.append(await self.test_element(element))
            except Exception as e:
                logger.warning("Click test for %s failed", element.selector, exc_info=True)
                results.append(ClickTestOutcome(selector=element.selector, success=False, description=element.description, error=str(e)))
        return results

    async def test_element(self, element: DemoElement) -> ClickTestOutcome:
        def outcome(success: bool, error: str | None = None, component_found: bool | None = None) -> ClickTestOutcome:
            return ClickTestOutcome(
                selector=element.selector,
                success=success,
                description=element.description,
                error=error,
                component_found=component_found,
                expected_component=element.expected_component,
            )

        html = await self.surface.snapshot_html()
        if html is not None and snapshot.find_element(html, element.selector) is None:
            return outcome(False, "Element not found")

        loop = asyncio.get_running_loop()
        reported: asyncio.Future[ClickTestReport] = loop.create_future()

        def on_report(report: ClickTestReport) -> None:
            if report.selector == element.selector and not reported.done():
                reported.set_result(report)

        unsubscribe = self.bus.subscribe(ClickTestReport, on_report)
        try:
            if not await self._run_script(click_script(element.selector)):
                return outcome(False, "Could not inject test script")
            try:
                report = await asyncio.wait_for(reported, self.timeout)
            except TimeoutError:
                return outcome(False, "Test timeout")
        finally:
            unsubscribe()
        return outcome(report.success, report.error, report.component_found)

    async def _run_script(self, script: str) -> bool:
        runners = [self.surface.inject_script_element, self.surface.evaluate_in_target]
        if self.surface.supports_privileged:
            runners.insert(0, self.surface.execute_privileged)
        for run in runners:
            try:
                await run(script)
            except Exception as e:
                logger.debug("Test script not run via %s: %s", run.__name__, e)
                continue
            return True
        return False


def generate_report(app: DemoApp, results: list[ClickTestOutcome]) -> str:
    """Markdown summary of one demo app's click tests."""
    passed = sum(1 for result in results if result.success)
    total = len(results)
    rate = round(passed / total * 100) if total else 0

    lines = [
        "# Iframe Inspector Test Report",
        "",
        f"**App:** {app.name} ({app.framework})",
        f"**URL:** {app.url}",
        f"**Description:** {app.description}",
        "",
        f"**Results:** {passed}/{total} tests passed ({rate}%)",
        "",
    ]
    for index, result in enumerate(results, start=1):
        status = "✅" if result.success else "❌"
        lines.append(f"{index}. {status} **{result.selector}**")
        lines.append(f"   - {result.description}")
        if result.expected_component:
            lines.append(f"   - Expected: {result.expected_component}")
        if result.component_found is not None:
            lines.append(f"   - Component detected: {'Yes' if result.component_found else 'No'}")
        if result.error:
            lines.append(f"   - Error: {result.error}")
        lines.append("")
    return "\n".join(lines)
