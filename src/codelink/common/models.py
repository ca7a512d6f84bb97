"""Shared value models between the engine, its hosts and the control API.

Keep these lightweight and stable; they form the engine↔host contract.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class ProjectNode(BaseModel):
    """One entry of the project tree. ``path`` is ``/``-joined and relative."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    kind: NodeKind
    extension: str = ""
    children: Optional[tuple["ProjectNode", ...]] = None


class ProjectInfo(BaseModel):
    name: str
    root: str


class FileRecord(BaseModel):
    name: str
    path: str
    extension: str = ""
    content: str = ""
    size: int = 0


class ConversationTurn(BaseModel):
    user: Optional[str] = None
    ai: Optional[str] = None


class ExportMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = "1.0"
    generator: str = "CodeLinkGPT"
    exported_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias="exportedAt",
    )
    total_files: int = Field(default=0, alias="totalFiles")


class ContextExport(BaseModel):
    """Persisted export document: ``{files, _metadata}``."""

    model_config = ConfigDict(populate_by_name=True)

    files: list[FileRecord] = Field(default_factory=list)
    metadata: ExportMetadata = Field(default_factory=ExportMetadata, alias="_metadata")


class Rect(BaseModel):
    left: float = 0
    top: float = 0
    width: float = 0
    height: float = 0


class EngineStatus(BaseModel):
    is_initialized: bool
    state: str
    project: Optional[str] = None
    total_files: int = 0


class InitRequest(BaseModel):
    project_root: Optional[str] = None


class ExportRequest(BaseModel):
    destination: Optional[str] = None


class ControlResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[Literal["access_denied", "cancelled", "not_found", "unavailable", "error"]] = None
