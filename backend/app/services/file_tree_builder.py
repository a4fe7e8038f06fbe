"""
File Tree Builder

Walks a working copy on disk and materializes it as FileNode documents:

    [
        {"name": "src", "path": "src", "type": "folder", "children": [
            {"name": "main.py", "path": "src/main.py", "type": "file", "content": "..."}
        ]},
        {"name": "logo.png", "path": "logo.png", "type": "file", "content": ""}
    ]

Entries come back in directory-listing order, which is not sorted. Symlinks
are listed but never followed: linked folders are skipped and linked files
carry empty content.
The walk is synchronous; async callers should run it in a worker thread.
"""

import os
from pathlib import Path
from typing import FrozenSet, List, Optional, Union

from app.core.logging_config import logger
from app.schemas.project import FileNode


# Folders that are never materialized (VCS metadata, dependency caches, build output)
EXCLUDED_DIRECTORIES: FrozenSet[str] = frozenset({
    ".git", ".hg", ".svn",
    "node_modules", "__pycache__", ".venv", "venv", ".cache",
    ".next", "dist", "build", "target", "coverage",
})

# Files whose content is inlined, by extension
TEXT_EXTENSIONS: FrozenSet[str] = frozenset({
    ".txt", ".md", ".rst",
    ".py", ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".vue", ".svelte",
    ".java", ".kt", ".go", ".rs", ".rb", ".php", ".c", ".h", ".cpp", ".hpp", ".cs", ".swift",
    ".html", ".css", ".scss", ".less",
    ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".xml", ".env",
    ".sh", ".bat", ".sql", ".graphql",
})

# Extension-less files that are still text
TEXT_FILENAMES: FrozenSet[str] = frozenset({
    "Dockerfile", "Makefile", "Procfile", "LICENSE", ".gitignore", ".dockerignore", ".editorconfig",
})

MAX_INLINE_BYTES = 500 * 1024


class FileTreeBuilder:
    """Builds FileNode trees from directories on disk."""

    def __init__(
        self,
        excluded_directories: Optional[FrozenSet[str]] = None,
        max_inline_bytes: int = MAX_INLINE_BYTES,
    ):
        self.excluded_directories = excluded_directories or EXCLUDED_DIRECTORIES
        self.max_inline_bytes = max_inline_bytes

    def build(self, root_path: Union[str, Path]) -> List[FileNode]:
        """
        Materialize everything under root_path.

        Returns an empty list when root_path does not exist.
        """
        root = Path(root_path)
        if not root.is_dir():
            logger.debug(f"[FileTreeBuilder] No directory at {root}")
            return []
        return self._walk(root, root)

    def _walk(self, directory: Path, root: Path) -> List[FileNode]:
        nodes: List[FileNode] = []

        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.warning(f"[FileTreeBuilder] Cannot list {directory}: {e}")
            return nodes

        for entry in entries:
            relative_path = Path(entry.path).relative_to(root).as_posix()

            # Symlinked folders are not followed
            if entry.is_dir(follow_symlinks=False):
                if entry.name in self.excluded_directories:
                    continue
                nodes.append(FileNode(
                    name=entry.name,
                    path=relative_path,
                    type="folder",
                    children=self._walk(Path(entry.path), root),
                ))
            elif entry.is_file():
                nodes.append(FileNode(
                    name=entry.name,
                    path=relative_path,
                    type="file",
                    content=self._read_content(entry),
                ))

        return nodes

    def is_text_file(self, name: str) -> bool:
        return name in TEXT_FILENAMES or Path(name).suffix.lower() in TEXT_EXTENSIONS

    def _read_content(self, entry: os.DirEntry) -> str:
        # Link targets may sit outside the working copy; list the link, never its target
        if entry.is_symlink() or not self.is_text_file(entry.name):
            return ""

        try:
            if entry.stat().st_size >= self.max_inline_bytes:
                return ""
            with open(entry.path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            # Node is still emitted, just without content
            logger.warning(f"[FileTreeBuilder] Failed to read {entry.path}: {e}")
            return ""
