"""Preview session orchestrator.

Owns the virtual file system and drives the preview pipeline on demand:

1. Every successful mutation of the file system bumps its ``epoch``, whether
   it comes through the session, a tool call, or ``session.vfs`` directly.
2. ``refresh()`` rebuilds only when the epoch (or the requested entry point)
   moved since the last build.
3. Each rebuild gets a fresh :class:`ModuleArena`; the previous one is
   released as soon as it is superseded.

The outcome is either a runnable document, an error report, or one of the
two empty states (welcome on first load, "No Preview Available" otherwise).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from uigen.config import DEFAULT_CONFIG, PreviewConfig
from uigen.tools import ToolCall, execute_tool_call, retarget_selection
from uigen.transform import (
    BuildResult,
    ImportGraphBuilder,
    ModuleArena,
    ModuleTransformer,
    PreviewRenderer,
)
from uigen.utils import print_success, print_warning
from uigen.vfs import FileNode, VFSError, VirtualFileSystem, paths

FIRST_LOAD = "firstLoad"
NO_FILES_MESSAGE = "No files to preview"
NO_ENTRY_POINT_MESSAGE = (
    "No React component found. Create an App.jsx or index.jsx file to get started."
)

PreviewStatus = Literal["welcome", "empty", "errors", "ready"]


class SessionError(Exception):
    """Raised when a session cannot be created from the given input."""

    def __init__(self, message: str, source: str = ""):
        self.source = source
        super().__init__(message)


# ---------------------------------------------------------------------------
# Preview utilities
# ---------------------------------------------------------------------------


def find_entry_point(
    files: Mapping[str, str],
    current: str,
    candidates: Iterable[str],
    extensions: tuple[str, ...] = (".jsx", ".tsx"),
) -> str:
    """Pick the module the preview starts from.

    The current entry point wins while it exists, then the first existing
    candidate, then the first component file. When nothing matches the
    current value is returned unchanged.
    """
    if current in files:
        return current
    for candidate in candidates:
        if candidate in files:
            return candidate
    for path in files:
        if path.endswith(extensions):
            return path
    return current


def should_show_first_load_state(file_count: int, is_first_load: bool) -> bool:
    return file_count == 0 and is_first_load


def get_preview_error(
    file_count: int,
    entry_point: str,
    files: Mapping[str, str],
    is_first_load: bool,
) -> Optional[str]:
    """Return why no preview can be rendered, or ``None``.

    ``FIRST_LOAD`` signals the welcome state rather than an error.
    """
    if file_count == 0:
        return FIRST_LOAD if is_first_load else NO_FILES_MESSAGE
    if not entry_point or entry_point not in files:
        return NO_ENTRY_POINT_MESSAGE
    return None


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


class PreviewOutcome(BaseModel):
    """What the host surface should display after a refresh."""

    model_config = ConfigDict(frozen=True)

    status: PreviewStatus
    html: str
    epoch: int
    entry_point: Optional[str] = None
    message: Optional[str] = None
    build: Optional[BuildResult] = None

    @property
    def runnable(self) -> bool:
        return self.status == "ready"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class PreviewSession:
    """Single-user editing session with a live preview.

    Attributes:
        vfs: The project file tree.
        selected_file: Path currently open in the editor, if any.
        entry_point: Module the preview starts from.
        is_first_load: ``True`` until the first non-empty preview.
    """

    def __init__(
        self,
        config: PreviewConfig | None = None,
        vfs: VirtualFileSystem | None = None,
        initial_data: Mapping[str, Any] | None = None,
        verbose: bool = False,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.vfs = vfs or VirtualFileSystem(self.config.limits)
        self.verbose = verbose

        self.transformer = ModuleTransformer(self.config)
        self.renderer = PreviewRenderer(self.config)

        self.selected_file: Optional[str] = None
        self.entry_point = self.config.preview.default_entry_point
        self.is_first_load = True
        self.last_outcome: Optional[PreviewOutcome] = None
        self._built_for: Optional[tuple[int, str]] = None
        self._arena: Optional[ModuleArena] = None
        self._generation = 0

        if initial_data:
            self.load_snapshot(initial_data)

    # ------------------------------------------------------------------
    # Snapshot I/O
    # ------------------------------------------------------------------

    def load_snapshot(self, data: Mapping[str, Any]) -> None:
        """Replace the tree from a ``serialize()`` payload or a flat
        ``{path: content}`` mapping.

        Raises:
            SessionError: If *data* matches neither format.
        """
        if not isinstance(data, Mapping):
            raise SessionError("Snapshot must be a JSON object")
        try:
            if all(isinstance(value, str) for value in data.values()):
                self.vfs.deserialize(data)
            else:
                self.vfs.deserialize_from_nodes(data)
        except (ValidationError, VFSError, TypeError, AttributeError) as exc:
            raise SessionError(f"Malformed snapshot: {exc}") from exc

    def serialize(self) -> dict[str, dict[str, Any]]:
        return self.vfs.serialize()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @property
    def epoch(self) -> int:
        """Change counter of the underlying file system."""
        return self.vfs.epoch

    def create_file(self, path: str, content: str = "") -> Optional[FileNode]:
        return self.vfs.create_file(path, content)

    def update_file(self, path: str, content: str) -> bool:
        return self.vfs.update_file(path, content)

    def delete_file(self, path: str) -> bool:
        deleted = self.vfs.delete_file(path)
        if deleted:
            self.selected_file = retarget_selection(self.selected_file, path, None)
        return deleted

    def rename_file(self, old_path: str, new_path: str) -> bool:
        renamed = self.vfs.rename(old_path, new_path)
        if renamed:
            self.selected_file = retarget_selection(self.selected_file, old_path, new_path)
        return renamed

    def reset(self) -> None:
        self.vfs.reset()
        self.selected_file = None
        self.transformer.clear_cache()

    def handle_tool_call(self, call: ToolCall | Mapping[str, Any]) -> str:
        """Execute an assistant tool call and return its status string."""
        if not isinstance(call, ToolCall):
            call = ToolCall.model_validate(call)
        outcome = execute_tool_call(self.vfs, call, self.selected_file)
        self.selected_file = outcome.selected_file
        if self.verbose:
            report = print_warning if outcome.is_error else print_success
            summary = outcome.status.splitlines()[0] if outcome.status else ""
            report(f"{call.tool_name}.{call.command}: {summary}")
        return outcome.status

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def auto_select_file(self) -> Optional[str]:
        """Select ``/App.jsx`` or the first root-level file when nothing is selected."""
        if self.selected_file is not None:
            return self.selected_file
        files = self.vfs.get_all_files()
        if self.config.preview.default_entry_point in files:
            self.selected_file = self.config.preview.default_entry_point
        else:
            self.selected_file = next(
                (path for path in files if paths.parent(path) == paths.ROOT), None
            )
        return self.selected_file

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    @property
    def arena(self) -> Optional[ModuleArena]:
        """Arena backing the most recent build."""
        return self._arena

    def refresh(self, force: bool = False) -> PreviewOutcome:
        """Rebuild the preview if anything changed since the last build."""
        if (
            not force
            and self.last_outcome is not None
            and self._built_for == (self.epoch, self.entry_point)
        ):
            return self.last_outcome
        self.last_outcome = self._rebuild()
        self._built_for = (self.epoch, self.entry_point)
        return self.last_outcome

    def render_frame(self, outcome: PreviewOutcome | None = None) -> str:
        """Return the host markup: a sandboxed frame or an empty state."""
        outcome = outcome or self.refresh()
        if outcome.status in ("welcome", "empty"):
            return outcome.html
        return self.renderer.render_frame(outcome.html)

    def _next_arena(self) -> ModuleArena:
        if self._arena is not None:
            self._arena.release()
        self._generation += 1
        self._arena = ModuleArena(self.config.security, generation=self._generation)
        return self._arena

    def _rebuild(self) -> PreviewOutcome:
        files = self.vfs.get_all_files()
        entry = find_entry_point(
            files,
            self.entry_point,
            self.config.preview.entry_point_candidates,
            self.config.runtime.component_extensions,
        )
        self.entry_point = entry
        arena = self._next_arena()

        if should_show_first_load_state(len(files), self.is_first_load):
            return PreviewOutcome(
                status="welcome",
                html=self.renderer.render_empty_state(first_load=True),
                epoch=self.epoch,
            )
        problem = get_preview_error(len(files), entry, files, self.is_first_load)
        if problem is not None:
            return PreviewOutcome(
                status="empty",
                html=self.renderer.render_empty_state(first_load=False, message=problem),
                epoch=self.epoch,
                message=problem,
            )

        self.is_first_load = False
        build = ImportGraphBuilder(
            files,
            self.config,
            arena=arena,
            transformer=self.transformer,
            verbose=self.verbose,
        ).build()
        document = self.renderer.render(entry, build)

        if self.verbose:
            if build.has_errors:
                print_warning(f"{len(build.errors)} file(s) failed to transform")
            else:
                print_success(f"Preview ready from {entry} ({len(arena)} modules)")

        return PreviewOutcome(
            status="errors" if build.has_errors else "ready",
            html=document,
            epoch=self.epoch,
            entry_point=entry,
            build=build,
        )
