"""Project directory access: open a root, list its tree, read files.

The engine only talks to ``DirectoryAccessor``; ``LocalDirectoryAccessor``
is the implementation backed by the local file system.
"""
from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from codelink.common.models import (
    ContextExport,
    ExportMetadata,
    FileRecord,
    NodeKind,
    ProjectInfo,
    ProjectNode,
)
from codelink.core.errors import AccessDenied, NotFound, UserCancelled

logger = logging.getLogger(__name__)

SKIP_EXTENSIONS = frozenset({
    ".exe", ".dll", ".obj", ".bin", ".png", ".jpg", ".jpeg",
    ".gif", ".bmp", ".ico", ".svg", ".mp3", ".mp4", ".avi",
    ".mov", ".pdf", ".zip", ".rar", ".7z", ".tar", ".gz",
})

ACCESS_GUIDANCE = (
    "Please ensure:\n"
    "1. You selected a valid folder\n"
    "2. The folder is readable by your user account\n"
    "3. No other program holds an exclusive lock on it"
)

EXPORT_SIZE_WARNING = 1_000_000


def file_extension(name: str) -> str:
    """Return the extension including its dot, or '' (``a.b.js`` -> ``.js``)."""
    index = name.rfind(".")
    return "" if index == -1 else name[index:]


def should_skip(name: str) -> bool:
    """Hidden entries and binary/media files never enter the tree."""
    if name.startswith("."):
        return True
    return file_extension(name).lower() in SKIP_EXTENSIONS


def _sort_key(node: ProjectNode):
    return (node.kind is not NodeKind.DIRECTORY, node.name.lower(), node.name)


class DirectoryAccessor(ABC):
    """Abstract directory collaborator consumed by the engine."""

    @abstractmethod
    async def open_project(self) -> ProjectInfo:
        """Open the project root. Raises AccessDenied or UserCancelled."""

    @abstractmethod
    async def list_tree(self) -> list[ProjectNode]:
        """Return the sorted, filtered project tree."""

    @abstractmethod
    async def read_file(self, path: str) -> FileRecord:
        """Read a file by its project-relative path. Raises NotFound/AccessDenied."""

    async def export_context(
        self, records: Iterable[FileRecord], destination: Path | str
    ) -> Path:
        """Write ``records`` as a context export file."""
        export = build_context_export(records)
        return await asyncio.to_thread(save_context_file, export, Path(destination))


class LocalDirectoryAccessor(DirectoryAccessor):
    """Directory accessor over a folder on the local disk."""

    def __init__(self, root: Optional[Path | str]):
        self._requested_root = Path(root).expanduser() if root else None
        self.root: Optional[Path] = None
        self.project_name = ""

    async def open_project(self) -> ProjectInfo:
        if self._requested_root is None:
            raise UserCancelled("Project folder selection was cancelled.")
        root = self._requested_root
        if not root.is_dir():
            raise AccessDenied(f"Unable to read the selected folder: {root}", ACCESS_GUIDANCE)
        try:
            # Touch the listing so permission problems surface here.
            next(root.iterdir(), None)
        except PermissionError as e:
            raise AccessDenied(f"Permission denied for {root}: {e}", ACCESS_GUIDANCE) from e

        self.root = root.resolve()
        self.project_name = self.root.name
        logger.info("Opened project %s at %s", self.project_name, self.root)
        return ProjectInfo(name=self.project_name, root=str(self.root))

    async def list_tree(self) -> list[ProjectNode]:
        root = self._require_root()
        return await asyncio.to_thread(self._walk, root, "")

    def _walk(self, directory: Path, prefix: str) -> list[ProjectNode]:
        nodes: list[ProjectNode] = []
        try:
            entries = list(directory.iterdir())
        except PermissionError:
            logger.warning("Skipping unreadable directory %s", directory)
            return nodes

        for entry in entries:
            if entry.name.startswith("."):
                continue
            entry_path = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir():
                if entry.is_symlink():
                    logger.debug("Skipping symlinked directory %s", entry)
                    continue
                nodes.append(ProjectNode(
                    name=entry.name,
                    path=entry_path,
                    kind=NodeKind.DIRECTORY,
                    children=tuple(self._walk(entry, entry_path)),
                ))
            elif entry.is_file() and not should_skip(entry.name):
                nodes.append(ProjectNode(
                    name=entry.name,
                    path=entry_path,
                    kind=NodeKind.FILE,
                    extension=file_extension(entry.name),
                ))
        return sorted(nodes, key=_sort_key)

    async def read_file(self, path: str) -> FileRecord:
        root = self._require_root()
        target = (root / path).resolve()
        if root not in target.parents:
            raise NotFound(path, f"Failed to read file: {path}")
        try:
            content = await asyncio.to_thread(
                target.read_text, encoding="utf-8", errors="replace"
            )
        except FileNotFoundError as e:
            raise NotFound(path, f"Failed to read file: {path}") from e
        except IsADirectoryError as e:
            raise NotFound(path, f"Failed to read file: {path}") from e
        except PermissionError as e:
            raise AccessDenied(f"Failed to read file: {path}", ACCESS_GUIDANCE) from e

        name = path.rsplit("/", 1)[-1]
        return FileRecord(
            name=name,
            path=path,
            extension=file_extension(name),
            content=content,
            size=target.stat().st_size,
        )

    def _require_root(self) -> Path:
        if self.root is None:
            raise AccessDenied("No project folder opened")
        return self.root


def build_context_export(records: Iterable[FileRecord]) -> ContextExport:
    """Build the export document, filling placeholder content where missing."""
    files = []
    for record in records:
        if not record.content:
            logger.warning("File %s has no content, adding placeholder", record.name)
            record = record.model_copy(update={"content": "[Content not available]"})
        elif len(record.content) > EXPORT_SIZE_WARNING:
            logger.warning(
                "File %s has very large content (%d chars)", record.name, len(record.content)
            )
        files.append(record)
    return ContextExport(files=files, metadata=ExportMetadata(total_files=len(files)))


def save_context_file(export: ContextExport, destination: Path) -> Path:
    """Write the export document as indented JSON and return its path."""
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(export.model_dump(by_alias=True), ensure_ascii=False, indent=2)
    destination.write_text(payload, encoding="utf-8")
    logger.info(
        "Context file saved: %s (%.2fKB)", destination, len(payload) / 1024
    )
    return destination
