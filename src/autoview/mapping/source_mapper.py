"""Source Mapper: ranks candidate source files for a component descriptor.

Three strategies, each less trustworthy than the one before:

1. the location the locator already resolved (``high``),
2. a text search for declarations of the component name (``medium``),
3. a file search over naming-convention variants of the name (``low``),
   only tried when the first two produced nothing.

The confidence of the result is the confidence of whichever strategy
produced the primary location.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from autoview.core.config import MapperConfig
from autoview.core.models import ComponentDescriptor, ComponentSourceInfo, Confidence, SourceLocation
from autoview.inspector.locator import ANONYMOUS
from autoview.workspace import WorkspaceFileSearch, WorkspaceTextSearch

if TYPE_CHECKING:
    from autoview.workspace import FileSearch, SearchHit, TextSearch

logger = logging.getLogger("autoview.mapper")

DECLARATION_PATTERNS = (
    r"export\s+function\s+{name}\b",
    r"export\s+const\s+{name}\b",
    r"export\s+default\s+{name}\b",
    r"export\s+class\s+{name}\b",
    r"class\s+{name}\s+extends\b",
    r"function\s+{name}\s*\(",
    r"const\s+{name}\s*=",
    r"export\s*\{[^}]*\b{name}\b[^}]*\}",
)

CONVENTION_DIRECTORIES = (
    "src/components",
    "src/pages",
    "src",
    "components",
    "pages",
    "lib/components",
    "app/components",
)
CONVENTION_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js", ".vue", ".svelte")


def name_patterns(name: str) -> list[str]:
    escaped = re.escape(name)
    return [pattern.replace("{name}", escaped) for pattern in DECLARATION_PATTERNS]


def name_variants(name: str) -> list[str]:
    """PascalCase as-is, lowercase, kebab-case, snake_case and camelCase, without repeats."""
    kebab = re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "-", name).lower()
    snake = kebab.replace("-", "_")
    camel = name[:1].lower() + name[1:]
    return list(dict.fromkeys([name, name.lower(), kebab, snake, camel]))


def _convention_rank(path: Path, root: Path) -> int:
    relative = _relative(path, root) or path.as_posix()
    for rank, directory in enumerate(CONVENTION_DIRECTORIES):
        if relative.startswith(directory + "/"):
            return rank
    return len(CONVENTION_DIRECTORIES)


def _relative(path: Path, root: Path) -> str | None:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return None


class SourceMapper:
    def __init__(
        self,
        project_root: Path | str,
        text_search: TextSearch | None = None,
        file_search: FileSearch | None = None,
        config: MapperConfig | None = None,
    ) -> None:
        self.project_root = Path(project_root).expanduser().resolve()
        self.config = config or MapperConfig.default()
        self.text_search = text_search or WorkspaceTextSearch(self.project_root)
        self.file_search = file_search or WorkspaceFileSearch(self.project_root)

    def locate(self, path: Path | str, line: int | None = None, column: int | None = None) -> SourceLocation:
        """Absolute location for a project-relative or absolute path."""
        candidate = Path(path)
        absolute = candidate if candidate.is_absolute() else self.project_root / candidate
        return SourceLocation(
            file_path=str(absolute),
            line_number=line,
            column_number=column,
            relative_path=_relative(absolute, self.project_root),
        )

    async def map_component(self, component: ComponentDescriptor) -> ComponentSourceInfo:
        primary: SourceLocation | None = None
        confidence = Confidence.LOW
        sources: list[SourceLocation] = []

        known = component.source_location
        if known is not None:
            primary = self.locate(known.file_path, known.line_number, known.column_number)
            confidence = Confidence.HIGH
            sources.append(primary)
            component = component.model_copy(update={"source_location": primary})

        name = component.component_name
        if name and name != ANONYMOUS:
            found = await self._search_declarations(name)
            sources.extend(found)
            if primary is None and found:
                primary = found[0]
                confidence = Confidence.MEDIUM

            if not sources:
                guessed = await self._search_conventions(name)
                sources.extend(guessed)
                if guessed:
                    primary = guessed[0]

        logger.debug("Mapped %s to %d source(s), confidence %s", name, len(sources), confidence)
        return ComponentSourceInfo(
            component=component,
            source_location=primary,
            possible_sources=sources,
            confidence=confidence,
        )

    async def _search_declarations(self, name: str) -> list[SourceLocation]:
        found: list[SourceLocation] = []
        seen_lines: set[tuple[str, int]] = set()
        for pattern in name_patterns(name):
            try:
                hits: list[SearchHit] = await self.text_search.search(pattern, self.config.scope_globs)
            except Exception:
                logger.warning("Text search failed for %r", pattern, exc_info=True)
                continue

            for hit in hits:
                # Patterns overlap (`export function X` / `function X(`); one hit per line.
                line_key = (str(hit.file), hit.line)
                if line_key in seen_lines:
                    continue
                seen_lines.add(line_key)
                found.append(self.locate(hit.file, hit.line, hit.column))
                if len(found) >= self.config.max_name_hits:
                    return found
        return found

    async def _search_conventions(self, name: str) -> list[SourceLocation]:
        paths: list[Path] = []
        for variant in name_variants(name):
            for glob in (f"**/{variant}.*", f"**/{variant}/index.*"):
                try:
                    matches = await self.file_search.find_files(glob)
                except Exception:
                    logger.warning("File search failed for %r", glob, exc_info=True)
                    continue
                paths.extend(Path(p) for p in matches if Path(p).suffix in CONVENTION_EXTENSIONS)

        unique = list(dict.fromkeys(p if p.is_absolute() else self.project_root / p for p in paths))
        unique.sort(key=lambda p: _convention_rank(p, self.project_root))
        return [self.locate(path, 1, 1) for path in unique[: self.config.max_convention_hits]]
