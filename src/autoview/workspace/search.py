"""Project-local text and file search used by the source mapper."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger("autoview.workspace")

IGNORED_DIRECTORIES = frozenset({"node_modules", ".git", "dist", "build", ".next", ".cache", "coverage"})
MAX_FILE_SIZE = 1_000_000


@dataclass(frozen=True)
class SearchHit:
    file: Path
    line: int
    column: int | None = None
    text: str = ""


class TextSearch(Protocol):
    async def search(self, pattern: str, scope_globs: Sequence[str]) -> list[SearchHit]: ...


class FileSearch(Protocol):
    async def find_files(self, glob: str) -> list[Path]: ...


def _is_ignored(path: Path, root: Path) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        return True
    return any(part in IGNORED_DIRECTORIES for part in parts)


def iter_project_files(root: Path, globs: Sequence[str]) -> Iterator[Path]:
    """Files under root matching any glob, once each, skipping build output and dependencies."""
    seen: set[Path] = set()
    for pattern in globs:
        for path in sorted(root.glob(pattern)):
            if path in seen or not path.is_file() or _is_ignored(path, root):
                continue
            seen.add(path)
            yield path


class WorkspaceTextSearch:
    """Regex search over project files, line by line."""

    def __init__(self, root: Path, limit: int | None = None) -> None:
        self.root = Path(root)
        self.limit = limit

    async def search(self, pattern: str, scope_globs: Sequence[str]) -> list[SearchHit]:
        return await asyncio.to_thread(self._search, re.compile(pattern), list(scope_globs))

    def _search(self, regex: re.Pattern[str], scope_globs: list[str]) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for path in iter_project_files(self.root, scope_globs):
            if path.stat().st_size > MAX_FILE_SIZE:
                continue
            try:
                text = path.read_text(encoding="utf-8", errors="ignore")
            except OSError as e:
                logger.debug("Skipping unreadable %s: %s", path, e)
                continue

            for number, line in enumerate(text.splitlines(), start=1):
                match = regex.search(line)
                if match is None:
                    continue
                hits.append(SearchHit(file=path, line=number, column=match.start() + 1, text=line.strip()))
                if self.limit is not None and len(hits) >= self.limit:
                    return hits
        return hits


class WorkspaceFileSearch:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    async def find_files(self, glob: str) -> list[Path]:
        return await asyncio.to_thread(lambda: list(iter_project_files(self.root, [glob])))
