"""UIGen virtual file system.

An in-memory, path-indexed tree of files and directories with the editor
operations used by the tool-calling layer.

Key classes:
    VirtualFileSystem - Arena-backed tree with create/update/rename/delete
    FileNode          - Read-only snapshot of a node
    NodeDescriptor    - Wire format used for persistence
"""

from . import paths
from .filesystem import (
    ContentTooLarge,
    FileCountExceeded,
    InvalidPath,
    VFSError,
    VirtualFileSystem,
)
from .models import FileNode, NodeDescriptor, NodeKind

__all__ = [
    "paths",
    # File system
    "VirtualFileSystem",
    "VFSError",
    "InvalidPath",
    "ContentTooLarge",
    "FileCountExceeded",
    # Models
    "FileNode",
    "NodeDescriptor",
    "NodeKind",
]
