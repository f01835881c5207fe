"""CLI commands for AutoView."""
