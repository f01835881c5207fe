"""Check command: run the inspector's click tests against a demo app."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from autoview.core.config import AutoViewConfig
from autoview.inspector.controller import InspectionController
from autoview.inspector.test_runner import (
    DEMO_APPS,
    ClickTestOutcome,
    DemoApp,
    InspectorTestRunner,
    generate_report,
)
from autoview.mapping import SourceMapper
from autoview.preview.host import open_preview

console = Console()


def _find_app(name: str) -> DemoApp | None:
    for app in DEMO_APPS:
        if app.name.lower() == name.lower():
            return app
    return None


def _print_demo_apps() -> None:
    table = Table(title="Demo apps")
    table.add_column("Name", style="bold")
    table.add_column("Framework")
    table.add_column("URL", style="cyan")
    table.add_column("Checks", justify="right")
    for app in DEMO_APPS:
        table.add_row(app.name, app.framework, app.url, str(len(app.test_elements)))
    console.print(table)


def check_command(
    app_name: str | None = typer.Argument(None, help="Demo app name; omit to list them"),
    url: str | None = typer.Option(None, "--url", help="Override the demo app URL"),
) -> None:
    """Click known elements of a demo app and report what the inspector found."""
    if app_name is None:
        _print_demo_apps()
        return

    app = _find_app(app_name)
    if app is None:
        console.print(f"[red]❌ Unknown demo app:[/red] {app_name}")
        _print_demo_apps()
        raise typer.Exit(1)
    if url:
        app = app.model_copy(update={"url": url})

    config = AutoViewConfig.load_or_default()
    results = asyncio.run(_run_checks(app, config))
    console.print(Markdown(generate_report(app, results)))
    if not all(result.success for result in results):
        raise typer.Exit(1)


async def _run_checks(app: DemoApp, config: AutoViewConfig) -> list[ClickTestOutcome]:
    console.print(f"\n[bold blue]🔍 Checking {app.name}[/bold blue] at {app.url}")
    async with open_preview(app.url, config.browser) as preview:
        controller = InspectionController(
            preview.surface,
            config=config.inspector,
            source_mapper=SourceMapper(config.project.root_path, config=config.mapper),
        )
        await controller.start(lambda result: None)
        runner = InspectorTestRunner(preview.surface, controller.bus)
        with console.status("Clicking test elements...", spinner="dots"):
            results = await runner.run_tests(app)
        await controller.detach()
    return results
