"""Inspect command: click elements of a running app and see where they come from."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console, Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from autoview.core.config import AutoViewConfig
from autoview.core.models import Confidence, InspectionResult
from autoview.inspector.controller import InspectionController
from autoview.inspector.probe import SELF_INJECTION_SNIPPET
from autoview.mapping import SourceMapper
from autoview.preview.host import open_preview
from autoview.workspace import CodeEditor

console = Console()

CONFIDENCE_STYLES = {
    Confidence.HIGH: "green",
    Confidence.MEDIUM: "yellow",
    Confidence.LOW: "red",
}


def render_result(result: InspectionResult) -> Panel:
    """Panel describing one inspected element."""
    node = result.dom_node
    facts = Table.grid(padding=(0, 2))
    facts.add_column(style="bold")
    facts.add_column()
    facts.add_row("Element", f"<{node.tag_name}>" + "".join(f".{name}" for name in node.class_list))
    facts.add_row("Selector", node.css_selector)
    facts.add_row("XPath", node.xpath)
    framework = result.framework
    facts.add_row("Framework", f"{framework.type} {framework.version or ''}".strip())

    parts: list = [facts]
    source_info = result.component_source
    if source_info is not None:
        component = source_info.component
        facts.add_row("Component", component.component_name)
        style = CONFIDENCE_STYLES[source_info.confidence]
        facts.add_row("Confidence", f"[{style}]{source_info.confidence}[/{style}]")

        if source_info.possible_sources:
            sources = Table(title="Possible sources", show_lines=False)
            sources.add_column("#", justify="right")
            sources.add_column("Location", style="cyan")
            for index, location in enumerate(source_info.possible_sources, start=1):
                sources.add_row(str(index), str(location))
            parts.append(sources)

        if component.props:
            props = Table(title="Props")
            props.add_column("Name", style="bold")
            props.add_column("Value")
            for name, value in component.props.items():
                props.add_row(name, repr(value))
            parts.append(props)
    elif not result.fallback:
        facts.add_row("Component", "[dim]not found[/dim]")

    return Panel(
        Group(*parts),
        title="🔍 Fallback inspection" if result.fallback else "🔍 Inspected element",
        border_style="yellow" if result.fallback else "blue",
    )


def inspect_command(
    url: str | None = typer.Argument(None, help="App URL to inspect (defaults to project.preview_url)"),
    open_in_editor: bool = typer.Option(False, "--open", help="Open the best source match in your editor"),
    headless: bool | None = typer.Option(None, "--headless/--headed", help="Override browser.headless"),
) -> None:
    """Inspect elements of a running app and map them to source files."""
    config = AutoViewConfig.load_or_default()
    if headless is not None:
        config.browser.headless = headless
    target = url or config.project.preview_url

    try:
        asyncio.run(_inspect(target, config, open_in_editor))
    except KeyboardInterrupt:
        console.print("\n[yellow]Inspection stopped by user[/yellow]")


async def _inspect(url: str, config: AutoViewConfig, open_in_editor: bool) -> None:
    editor = CodeEditor()

    def on_result(result: InspectionResult) -> None:
        console.print(render_result(result))
        source_info = result.component_source
        if open_in_editor and source_info is not None and source_info.source_location is not None:
            location = source_info.source_location
            editor.open_file(location.file_path, location.line_number, location.column_number)

    console.print(f"🌐 Opening preview of: {url}")
    async with open_preview(url, config.browser) as preview:
        controller = InspectionController(
            preview.surface,
            config=config.inspector,
            source_mapper=SourceMapper(config.project.root_path, config=config.mapper),
        )
        await controller.start(on_result)

        session = controller.session
        if session is not None and session.mode == "fallback":
            console.print("[yellow]Could not run the inspector inside the page, whole-frame inspection only.[/yellow]")
        console.print("\n[bold green]Inspection started![/bold green] Click elements in the browser window.")
        console.print("Close the browser or press [bold]Ctrl+C[/bold] when done.\n")

        await preview.page.wait_for_event("close", timeout=0)
        await controller.detach()


def snippet_command() -> None:
    """Print the opt-in snippet that lets an app inject the inspector itself."""
    console.print(
        Panel(
            Syntax(SELF_INJECTION_SNIPPET, "javascript", word_wrap=True),
            title="Add to your app's entry point (development builds only)",
        )
    )
