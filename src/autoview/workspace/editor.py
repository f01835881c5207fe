"""Opening source locations in the user's editor."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

import typer

logger = logging.getLogger("autoview.editor")


class Editor(Protocol):
    def open_file(self, path: Path | str, line: int | None = None, column: int | None = None) -> None: ...


def goto_target(path: Path | str, line: int | None = None, column: int | None = None) -> str:
    """``path:line:column`` as understood by ``code --goto``."""
    target = str(path)
    if line is not None:
        target += f":{line}"
        if column is not None:
            target += f":{column}"
    return target


class CodeEditor:
    """VS Code when its launcher is on PATH, otherwise the system default application."""

    def __init__(self, command: str = "code") -> None:
        self.command = command

    def open_file(self, path: Path | str, line: int | None = None, column: int | None = None) -> None:
        executable = shutil.which(self.command)
        if executable:
            subprocess.Popen([executable, "--goto", goto_target(path, line, column)])
            return

        logger.debug("%s not found, opening %s with the default application", self.command, path)
        if typer.launch(str(path)) != 0:
            logger.warning("Could not open %s", path)
