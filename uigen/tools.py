"""Tool-call vocabulary used by the assistant to edit the project.

Two tools are understood:

* ``str_replace_editor`` with commands ``view``, ``create``,
  ``str_replace`` and ``insert``;
* ``file_manager`` with commands ``rename`` and ``delete``.

Every call produces a human-readable status string. Failures are reported
as strings starting with ``"Error:"`` and never raise, so the caller can feed
the status straight back to the assistant.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from uigen.vfs import VFSError, VirtualFileSystem, paths

STR_REPLACE_EDITOR = "str_replace_editor"
FILE_MANAGER = "file_manager"

_REQUIRED_ARGS: dict[tuple[str, str], tuple[str, ...]] = {
    (STR_REPLACE_EDITOR, "view"): ("path",),
    (STR_REPLACE_EDITOR, "create"): ("path", "file_text"),
    (STR_REPLACE_EDITOR, "str_replace"): ("path", "old_str", "new_str"),
    (STR_REPLACE_EDITOR, "insert"): ("path", "new_str", "insert_line"),
    (FILE_MANAGER, "rename"): ("path", "new_path"),
    (FILE_MANAGER, "delete"): ("path",),
}

_READ_ONLY_COMMANDS = frozenset({"view"})


class ToolCall(BaseModel):
    """A single tool invocation as emitted by the assistant."""

    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)

    @property
    def command(self) -> Optional[str]:
        return self.args.get("command")


class ToolOutcome(BaseModel):
    """Result of executing a :class:`ToolCall`."""

    status: str
    changed: bool = Field(default=False, description="The file tree was modified")
    selected_file: Optional[str] = Field(
        default=None, description="Selection after the call (retargeted by rename/delete)"
    )

    @property
    def is_error(self) -> bool:
        return self.status.startswith("Error:")


def execute_tool_call(
    vfs: VirtualFileSystem,
    call: ToolCall,
    selected_file: Optional[str] = None,
) -> ToolOutcome:
    """Apply *call* to *vfs* and describe what happened.

    Args:
        vfs: File system to operate on.
        call: Tool name and arguments.
        selected_file: Currently selected path, retargeted when it is renamed
            or deleted.

    Returns:
        A :class:`ToolOutcome`; ``changed`` is ``True`` only for successful
        mutating commands.
    """
    command = call.command
    required = _REQUIRED_ARGS.get((call.tool_name, command or ""))
    if required is None:
        if call.tool_name not in (STR_REPLACE_EDITOR, FILE_MANAGER):
            status = f"Error: Unknown tool: {call.tool_name}"
        else:
            status = f"Error: Unknown command: {command}"
        return ToolOutcome(status=status, selected_file=selected_file)

    missing = [name for name in required if call.args.get(name) is None]
    if missing:
        return ToolOutcome(
            status=f"Error: Missing required argument(s) for {command}: {', '.join(missing)}",
            selected_file=selected_file,
        )

    try:
        if call.tool_name == STR_REPLACE_EDITOR:
            status = _run_editor(vfs, command, call.args)
        else:
            status, selected_file = _run_file_manager(vfs, command, call.args, selected_file)
    except VFSError as exc:
        status = f"Error: {exc}"

    changed = not status.startswith("Error:") and command not in _READ_ONLY_COMMANDS
    return ToolOutcome(status=status, changed=changed, selected_file=selected_file)


def _is_line_range(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(isinstance(n, int) and not isinstance(n, bool) for n in value)
    )


def _run_editor(vfs: VirtualFileSystem, command: str, args: dict[str, Any]) -> str:
    path = args["path"]
    if command == "view":
        view_range = args.get("view_range")
        if not view_range:
            return vfs.view_file(path)
        if not _is_line_range(view_range):
            return f"Error: Invalid view_range: {view_range!r}"
        return vfs.view_file(path, (view_range[0], view_range[1]))
    if command == "create":
        return vfs.create_file_with_parents(path, args["file_text"])
    if command == "str_replace":
        return vfs.replace_in_file(path, args["old_str"], args["new_str"])
    try:
        insert_line = int(args["insert_line"])
    except (TypeError, ValueError):
        return f"Error: Invalid line number: {args['insert_line']}"
    return vfs.insert_in_file(path, insert_line, args["new_str"])


def _run_file_manager(
    vfs: VirtualFileSystem,
    command: str,
    args: dict[str, Any],
    selected_file: Optional[str],
) -> tuple[str, Optional[str]]:
    path = args["path"]
    if command == "rename":
        new_path = args["new_path"]
        if not vfs.rename(path, new_path):
            return f"Error: Failed to rename {path} to {new_path}", selected_file
        return f"Successfully renamed {path} to {new_path}", retarget_selection(
            selected_file, path, new_path
        )

    if not vfs.delete_file(path):
        return f"Error: Failed to delete {path}", selected_file
    return f"Successfully deleted {path}", retarget_selection(selected_file, path, None)


def retarget_selection(
    selected_file: Optional[str], old_path: str, new_path: Optional[str]
) -> Optional[str]:
    """Follow *selected_file* through a rename (or drop it on delete)."""
    if selected_file is None:
        return None
    old = paths.normalize(old_path)
    current = paths.normalize(selected_file)
    if current != old and not paths.is_descendant(current, old):
        return selected_file
    if new_path is None:
        return None
    return paths.normalize(new_path) + current[len(old):]
