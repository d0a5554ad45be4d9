"""Shared utility functions for the UIGen preview core.

Provides JSON I/O, identifier helpers, and Rich-based console reporting.
Components never print on their own; they call these helpers only when
constructed with ``verbose=True``.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def pascal_case(value: str) -> str:
    """Convert ``some-thing``, ``some_thing`` or ``some.thing`` to ``SomeThing``.

    Characters that cannot appear in a JavaScript identifier act as word
    separators. Existing capitals inside a word are preserved, so
    ``userCard`` becomes ``UserCard``.
    """
    parts = re.split(r"[^A-Za-z0-9_$]+|_", value)
    return "".join(word[0].upper() + word[1:] for word in parts if word)


def component_identifier(value: str, fallback: str = "Placeholder") -> str:
    """Return a PascalCase JavaScript identifier derived from *value*.

    Examples::

        component_identifier("missing")     -> "Missing"
        component_identifier("user-card")   -> "UserCard"
        component_identifier("404")         -> "Placeholder404"
        component_identifier("---")         -> "Placeholder"
    """
    name = pascal_case(value)
    if not name:
        return fallback
    if name[0].isdigit():
        return fallback + name
    return name


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed dictionary. A top-level array is wrapped as ``{"_root": [...]}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> Path:
    """Save data as pretty-printed JSON, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False, default=str), encoding="utf-8"
    )
    return file_path


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_bytes(size: float) -> str:
    """Format a byte count for humans.

    Examples::

        format_bytes(512)        -> "512 B"
        format_bytes(2048)       -> "2.0 KiB"
        format_bytes(5242880)    -> "5.0 MiB"
    """
    if size < 1024:
        return f"{int(size)} B"
    for unit in ("KiB", "MiB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} GiB"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str, color: str = "bright_cyan") -> None:
    """Print a full-width rule with a bold title."""
    console.print()
    console.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")
