"""Pydantic v2 models exchanged with callers of the virtual file system.

``FileNode`` is a detached, read-only snapshot of a tree node. The file system
keeps its own internal entries; a snapshot handed out before a rename or
delete never aliases live tree state.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(str, Enum):
    """Kind of a tree node. Values double as the wire-format ``type`` field."""
    FILE = "file"
    DIRECTORY = "directory"


class FileNode(BaseModel):
    """A file or directory as seen by callers."""

    model_config = ConfigDict(frozen=True)

    kind: NodeKind = Field(..., description="File or directory")
    name: str = Field(..., description="Last path segment")
    path: str = Field(..., description="Canonical absolute path")
    content: Optional[str] = Field(default=None, description="File content (files only)")
    children: Optional[tuple[str, ...]] = Field(
        default=None, description="Sorted child names (directories only)"
    )

    @property
    def is_file(self) -> bool:
        return self.kind is NodeKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY


class NodeDescriptor(BaseModel):
    """Lightweight wire descriptor used by ``serialize``/``deserialize_from_nodes``.

    The persisted shape is ``{"type", "name", "path", "content"?}``.
    """

    type: NodeKind
    name: str
    path: str
    content: Optional[str] = None

    def to_wire(self) -> dict[str, Any]:
        """Return the plain-dict form, omitting ``content`` for directories."""
        return self.model_dump(mode="json", exclude_none=True)
