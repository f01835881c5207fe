"""Main CLI application for AutoView."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__

console = Console()
app = typer.Typer(
    name="autoview",
    help="Click any element of your running web app and jump to the component that rendered it",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        console.print(f"AutoView v{__version__}")
        console.print("Cross-frame element inspector and source mapper")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    logging.getLogger("autoview").setLevel(logging.DEBUG if verbose else logging.INFO)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs of the inspector"),
) -> None:
    """
    AutoView: cross-frame element inspection.

    Embeds your dev server in a browser window, injects an inspector into it and
    maps every clicked element to the UI component and source file behind it.
    """
    setup_logging(verbose)


def register_commands() -> None:
    """Register CLI commands."""
    from .commands.check import check_command
    from .commands.init import init_command
    from .commands.inspect import inspect_command, snippet_command
    from .commands.ports import ports_command

    app.command("init", help="Initialize AutoView in your project")(init_command)
    app.command("inspect", help="Inspect a running app and map elements to source")(inspect_command)
    app.command("ports", help="Find running dev servers")(ports_command)
    app.command("check", help="Run the inspector's click tests against a demo app")(check_command)
    app.command("snippet", help="Print the self-injection opt-in snippet")(snippet_command)


register_commands()


if __name__ == "__main__":
    app()
