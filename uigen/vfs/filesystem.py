"""In-memory hierarchical file system.

The tree is stored as an arena: a flat ``{path: entry}`` index plus a set of
child names on every directory entry. There are no parent/child object
pointers, so structural mutations only ever touch the index and the child
name sets, and both are kept in agreement by every public method.

Two classes of failure are distinguished:

* Caller errors (invalid path, oversized content, too many files) raise a
  :class:`VFSError` subclass.
* Routine failures (missing file, path conflict, file/directory mismatch)
  return ``None``/``False`` or an ``"Error: ..."`` status string.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from uigen.config import FileSystemLimits
from uigen.vfs import paths
from uigen.vfs.models import FileNode, NodeDescriptor, NodeKind


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class VFSError(Exception):
    """Base class for invariant violations raised by the file system."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(message)


class InvalidPath(VFSError):
    """Raised for empty, over-long, non-string or NUL-containing paths."""


class ContentTooLarge(VFSError):
    """Raised when file content exceeds ``FileSystemLimits.max_file_size``."""


class FileCountExceeded(VFSError):
    """Raised when creating a file would exceed ``FileSystemLimits.max_files``."""


# ---------------------------------------------------------------------------
# Internal arena entry
# ---------------------------------------------------------------------------


@dataclass
class _Entry:
    kind: NodeKind
    name: str
    path: str
    content: Optional[str] = None
    # Always empty for files.
    children: set[str] = field(default_factory=set)

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    def snapshot(self) -> FileNode:
        return FileNode(
            kind=self.kind,
            name=self.name,
            path=self.path,
            content=self.content if self.kind is NodeKind.FILE else None,
            children=tuple(sorted(self.children)) if self.is_directory else None,
        )


def _root_entry() -> _Entry:
    return _Entry(kind=NodeKind.DIRECTORY, name=paths.ROOT, path=paths.ROOT)


# ---------------------------------------------------------------------------
# VirtualFileSystem
# ---------------------------------------------------------------------------


@dataclass
class VirtualFileSystem:
    """An addressable, mutable tree of files and directories held in memory.

    Attributes:
        limits: Size and count limits enforced on every mutation.
        epoch: Change counter, incremented by every successful mutation. It
            never decreases, not even on ``reset``.
    """

    limits: FileSystemLimits = field(default_factory=FileSystemLimits)
    epoch: int = field(init=False, default=0)
    _index: dict[str, _Entry] = field(init=False, repr=False)
    _file_count: int = field(init=False, default=0, repr=False)

    def __post_init__(self) -> None:
        self._index = {paths.ROOT: _root_entry()}

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_path(self, path: Any) -> str:
        if not paths.is_valid_path(path):
            raise InvalidPath("Invalid path provided", path=str(path))
        if len(path) > self.limits.max_path_length:
            raise InvalidPath(
                f"Path exceeds maximum length: {len(path)} > {self.limits.max_path_length}",
                path=path[:64],
            )
        return paths.normalize(path)

    def _validate_content(self, content: str, path: str) -> None:
        if len(content) > self.limits.max_file_size:
            raise ContentTooLarge(
                f"File content exceeds size limit: {len(content)} > {self.limits.max_file_size}",
                path=path,
            )

    def _lookup(self, path: Any) -> Optional[_Entry]:
        """Lenient lookup used by the read-only queries: invalid paths miss."""
        if not paths.is_valid_path(path):
            return None
        return self._index.get(paths.normalize(path))

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    def _ancestors_are_directories(self, normalized: str) -> bool:
        """Return ``False`` if any existing ancestor of *normalized* is a file."""
        for dir_path in paths.ancestor_chain(normalized):
            entry = self._index.get(dir_path)
            if entry is not None and not entry.is_directory:
                return False
        return True

    def _ensure_parent_directories(self, normalized: str) -> None:
        for dir_path in paths.ancestor_chain(normalized):
            if dir_path not in self._index:
                self._attach(_Entry(
                    kind=NodeKind.DIRECTORY,
                    name=paths.basename(dir_path),
                    path=dir_path,
                ))

    def _attach(self, entry: _Entry) -> None:
        parent = self._index[paths.parent(entry.path)]
        parent.children.add(entry.name)
        self._index[entry.path] = entry
        if entry.kind is NodeKind.FILE:
            self._file_count += 1

    def _detach_subtree(self, entry: _Entry) -> list[_Entry]:
        """Remove *entry* and its descendants from the index, deepest first."""
        removed: list[_Entry] = []
        if entry.children:
            for name in list(entry.children):
                child = self._index[paths.join(entry.path, name)]
                removed.extend(self._detach_subtree(child))
        del self._index[entry.path]
        if entry.kind is NodeKind.FILE:
            self._file_count -= 1
        removed.append(entry)
        return removed

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def create_file(self, path: str, content: str = "") -> Optional[FileNode]:
        """Create a file, auto-creating any missing ancestor directories.

        Returns:
            A snapshot of the new node, or ``None`` if *path* already exists
            or one of its ancestors is a file.

        Raises:
            InvalidPath: If *path* is invalid.
            ContentTooLarge: If *content* exceeds the size limit.
            FileCountExceeded: If the file limit has been reached.
        """
        normalized = self._validate_path(path)
        self._validate_content(content, normalized)

        if normalized in self._index or not self._ancestors_are_directories(normalized):
            return None
        if self._file_count >= self.limits.max_files:
            raise FileCountExceeded(
                f"File limit reached: {self.limits.max_files} files", path=normalized
            )

        self._ensure_parent_directories(normalized)
        entry = _Entry(
            kind=NodeKind.FILE,
            name=paths.basename(normalized),
            path=normalized,
            content=content,
        )
        self._attach(entry)
        self.epoch += 1
        return entry.snapshot()

    def create_directory(self, path: str) -> Optional[FileNode]:
        """Create a directory (and missing ancestors).

        Returns ``None`` if *path* already exists or an ancestor is a file.
        """
        normalized = self._validate_path(path)
        if normalized in self._index or not self._ancestors_are_directories(normalized):
            return None

        self._ensure_parent_directories(normalized)
        entry = _Entry(
            kind=NodeKind.DIRECTORY,
            name=paths.basename(normalized),
            path=normalized,
        )
        self._attach(entry)
        self.epoch += 1
        return entry.snapshot()

    def read_file(self, path: str) -> Optional[str]:
        """Return file content, or ``None`` if missing or a directory."""
        normalized = self._validate_path(path)
        entry = self._index.get(normalized)
        if entry is None or entry.is_directory:
            return None
        return entry.content or ""

    def update_file(self, path: str, content: str) -> bool:
        """Replace the content of an existing file. Never creates."""
        normalized = self._validate_path(path)
        self._validate_content(content, normalized)
        entry = self._index.get(normalized)
        if entry is None or entry.is_directory:
            return False
        entry.content = content
        self.epoch += 1
        return True

    def delete_file(self, path: str) -> bool:
        """Delete a file or, recursively, a directory.

        Returns ``False`` for the root or a missing path.
        """
        normalized = self._validate_path(path)
        entry = self._index.get(normalized)
        if entry is None or normalized == paths.ROOT:
            return False

        parent = self._index[paths.parent(normalized)]
        parent.children.discard(entry.name)
        self._detach_subtree(entry)
        self.epoch += 1
        return True

    def rename(self, old_path: str, new_path: str) -> bool:
        """Move a node to *new_path*, rewriting every descendant path.

        Returns ``False`` if the source is missing, the destination exists,
        either argument is the root, the destination lies inside the source,
        or a destination ancestor is a file.
        """
        old = self._validate_path(old_path)
        new = self._validate_path(new_path)

        if paths.ROOT in (old, new):
            return False
        source = self._index.get(old)
        if source is None or new in self._index:
            return False
        if paths.is_descendant(new, old):
            return False
        if not self._ancestors_are_directories(new):
            return False

        self._ensure_parent_directories(new)

        old_parent = self._index[paths.parent(old)]
        old_parent.children.discard(source.name)

        moved = self._detach_subtree(source)
        prefix_len = len(old)
        for entry in reversed(moved):
            entry.path = new + entry.path[prefix_len:]
            if entry is source:
                entry.name = paths.basename(new)
            self._attach(entry)
        self.epoch += 1
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self._lookup(path) is not None

    def get_node(self, path: str) -> Optional[FileNode]:
        entry = self._lookup(path)
        return entry.snapshot() if entry is not None else None

    def list_directory(self, path: str) -> Optional[list[FileNode]]:
        """Return snapshots of a directory's children, or ``None``."""
        entry = self._lookup(path)
        if entry is None or not entry.is_directory:
            return None
        return [
            self._index[paths.join(entry.path, name)].snapshot()
            for name in sorted(entry.children)
        ]

    def get_all_files(self) -> dict[str, str]:
        """Return ``{path: content}`` for every file node."""
        return {
            path: entry.content or ""
            for path, entry in self._index.items()
            if entry.kind is NodeKind.FILE
        }

    def walk(self, path: str = paths.ROOT) -> Iterator[FileNode]:
        """Yield every node under *path* depth-first, children sorted by name."""
        entry = self._lookup(path)
        if entry is None:
            return
        yield entry.snapshot()
        for name in sorted(entry.children):
            yield from self.walk(paths.join(entry.path, name))

    @property
    def file_count(self) -> int:
        return self._file_count

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.exists(path)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def serialize(self) -> dict[str, dict[str, Any]]:
        """Return the flat ``{path: descriptor}`` wire format, sorted by path."""
        result: dict[str, dict[str, Any]] = {}
        for path in sorted(self._index):
            entry = self._index[path]
            descriptor = NodeDescriptor(
                type=entry.kind,
                name=entry.name,
                path=entry.path,
                content=entry.content if entry.kind is NodeKind.FILE else None,
            )
            result[path] = descriptor.to_wire()
        return result

    def deserialize(self, data: Mapping[str, str]) -> None:
        """Replace the tree with files from a flat ``{path: content}`` mapping."""
        self.reset()
        for path in sorted(data):
            for dir_path in paths.ancestor_chain(path):
                if not self.exists(dir_path):
                    self.create_directory(dir_path)
            self.create_file(path, data[path])

    def deserialize_from_nodes(
        self, data: Mapping[str, Mapping[str, Any] | NodeDescriptor]
    ) -> None:
        """Replace the tree with the nodes of a ``serialize()`` payload.

        Paths are processed in sorted order so that parent directories always
        exist before their children are created.
        """
        self.reset()
        for path in sorted(data):
            if paths.normalize(path) == paths.ROOT:
                continue
            raw = data[path]
            node = raw if isinstance(raw, NodeDescriptor) else NodeDescriptor.model_validate(raw)
            for dir_path in paths.ancestor_chain(path):
                if not self.exists(dir_path):
                    self.create_directory(dir_path)
            if node.type is NodeKind.FILE:
                self.create_file(path, node.content or "")
            else:
                self.create_directory(path)

    def reset(self) -> None:
        """Discard the entire tree, leaving a single root directory."""
        self._index = {paths.ROOT: _root_entry()}
        self._file_count = 0
        self.epoch += 1

    # ------------------------------------------------------------------
    # Editor commands (status strings for the tool-calling layer)
    # ------------------------------------------------------------------

    def view_file(self, path: str, view_range: Optional[tuple[int, int]] = None) -> str:
        """Render a file with line numbers, or list a directory.

        Args:
            path: File or directory to view.
            view_range: Optional 1-based ``(start, end)`` line range; an end
                of ``-1`` means "to the last line".
        """
        entry = self._lookup(path)
        if entry is None:
            return f"File not found: {path}"

        if entry.is_directory:
            children = self.list_directory(path) or []
            if not children:
                return "(empty directory)"
            return "\n".join(
                f"{'[DIR]' if child.is_directory else '[FILE]'} {child.name}"
                for child in children
            )

        lines = (entry.content or "").split("\n")
        if view_range is not None and len(view_range) == 2:
            start, end = view_range
            start_line = max(1, start)
            end_line = len(lines) if end == -1 else min(len(lines), end)
            return "\n".join(
                f"{start_line + offset}\t{line}"
                for offset, line in enumerate(lines[start_line - 1:end_line])
            )

        return "\n".join(f"{number}\t{line}" for number, line in enumerate(lines, start=1))

    def create_file_with_parents(self, path: str, content: str = "") -> str:
        """Create a file and its parents, reporting the outcome as a string."""
        if self.exists(path):
            return f"Error: File already exists: {path}"
        if self.create_file(path, content) is None:
            return f"Error: Cannot create file: {path}"
        return f"File created: {path}"

    def replace_in_file(self, path: str, old_str: str, new_str: str) -> str:
        """Replace *every* occurrence of *old_str* and report how many."""
        entry = self._lookup(path)
        if entry is None:
            return f"Error: File not found: {path}"
        if entry.is_directory:
            return f"Error: Cannot edit a directory: {path}"

        content = entry.content or ""
        if not old_str or old_str not in content:
            return f'Error: String not found in file: "{old_str}"'

        occurrences = content.count(old_str)
        self.update_file(path, content.replace(old_str, new_str or ""))
        return f"Replaced {occurrences} occurrence(s) of the string in {path}"

    def insert_in_file(self, path: str, insert_line: int, text: str) -> str:
        """Insert *text* before line index *insert_line* (``0`` = top)."""
        entry = self._lookup(path)
        if entry is None:
            return f"Error: File not found: {path}"
        if entry.is_directory:
            return f"Error: Cannot edit a directory: {path}"

        lines = (entry.content or "").split("\n")
        if insert_line is None or insert_line < 0 or insert_line > len(lines):
            return f"Error: Invalid line number: {insert_line}. File has {len(lines)} lines."

        lines.insert(insert_line, text or "")
        self.update_file(path, "\n".join(lines))
        return f"Text inserted at line {insert_line} in {path}"
