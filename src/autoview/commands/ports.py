"""Ports command: find running dev servers."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from autoview.core.config import AutoViewConfig
from autoview.preview.ports import parse_terminal_output_for_ports, scan_ports

console = Console()


def ports_command(
    log: Path | None = typer.Option(None, "--log", help="Terminal output of your dev server to scan for ports"),
    host: str = typer.Option("localhost", "--host", help="Host to probe"),
) -> None:
    """List dev servers that accept connections."""
    config = AutoViewConfig.load_or_default()

    terminal_ports: list[int] = []
    if log is not None:
        try:
            output = log.read_text(encoding="utf-8", errors="ignore")
        except OSError as e:
            console.print(f"[red]❌ Cannot read {log}: {e}[/red]")
            raise typer.Exit(1) from e
        terminal_ports = parse_terminal_output_for_ports(output, host_port=config.inspector.host_port)
        console.print(f"📜 Ports mentioned in {log.name}: {terminal_ports or 'none'}")

    detected = asyncio.run(scan_ports(terminal_ports, host=host))
    if not detected:
        console.print("[yellow]No running dev server found.[/yellow]")
        raise typer.Exit(1)

    table = Table(title="Dev servers")
    table.add_column("Port", justify="right", style="bold")
    table.add_column("URL", style="cyan")
    table.add_column("Description")
    for port in detected:
        table.add_row(str(port.port), f"http://{host}:{port.port}", port.description)
    console.print(table)
