"""Init command: writes autoview.yaml for the current project."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from autoview.core.config import AutoViewConfig, ProjectConfig

console = Console()


def init_command(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing autoview.yaml"),
    preview_url: str | None = typer.Option(None, "--url", help="Dev server URL to preview"),
    root: str | None = typer.Option(None, "--root", help="Project root used for source mapping"),
) -> None:
    """Initialize AutoView in your project."""
    config_path = AutoViewConfig.get_config_path()
    if config_path.exists() and not force:
        if not Confirm.ask(f"[yellow]{config_path.name} already exists.[/yellow] Overwrite?", default=False):
            console.print("Keeping the existing configuration.")
            return

    defaults = ProjectConfig()
    project = ProjectConfig(
        root=root or Prompt.ask("Project root (where your components live)", default=defaults.root),
        preview_url=preview_url or Prompt.ask("Dev server URL to preview", default=defaults.preview_url),
    )
    saved = AutoViewConfig(project=project).save()

    console.print(
        Panel.fit(
            f"Configuration written to [bold]{saved.name}[/bold]\n"
            f"Preview: [cyan]{project.preview_url}[/cyan]\n"
            f"Sources: [cyan]{project.root_path}[/cyan]\n\n"
            "Next: [bold]autoview inspect[/bold]",
            title="✅ AutoView initialized",
            border_style="green",
        )
    )
