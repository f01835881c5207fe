"""Workspace collaborators: text search, file search and the external editor."""

from .editor import CodeEditor, Editor
from .search import FileSearch, SearchHit, TextSearch, WorkspaceFileSearch, WorkspaceTextSearch, iter_project_files

__all__ = [
    "CodeEditor",
    "Editor",
    "FileSearch",
    "SearchHit",
    "TextSearch",
    "WorkspaceFileSearch",
    "WorkspaceTextSearch",
    "iter_project_files",
]
