"""Path algebra for the virtual file system.

Every function here is pure: paths are plain ``/``-separated strings and no
real file system is ever consulted.
"""

from __future__ import annotations

import re

ROOT = "/"

_REPEATED_SEPARATORS = re.compile(r"/+")


def is_valid_path(path: object) -> bool:
    """Return ``True`` for a non-empty string without embedded NUL bytes."""
    return isinstance(path, str) and len(path) > 0 and "\0" not in path


def normalize(path: str) -> str:
    """Return the canonical form of *path*.

    * Ensures a leading separator.
    * Collapses repeated separators.
    * Strips the trailing separator (except for the root).

    Examples::

        normalize("App.jsx")        -> "/App.jsx"
        normalize("//a///b/")       -> "/a/b"
        normalize("/")              -> "/"
    """
    collapsed = _REPEATED_SEPARATORS.sub("/", "/" + path)
    if collapsed != ROOT and collapsed.endswith("/"):
        collapsed = collapsed[:-1]
    return collapsed


def parent(path: str) -> str:
    """Return the parent directory of *path*. The root is its own parent."""
    normalized = normalize(path)
    if normalized == ROOT:
        return ROOT
    head = normalized.rsplit("/", 1)[0]
    return head or ROOT


def basename(path: str) -> str:
    """Return the last segment of *path* (``"/"`` for the root)."""
    normalized = normalize(path)
    if normalized == ROOT:
        return ROOT
    return normalized.rsplit("/", 1)[1]


def join(directory: str, name: str) -> str:
    """Join a directory path and a child name."""
    return normalize(f"{directory}/{name}")


def ancestor_chain(path: str) -> list[str]:
    """Return every ancestor directory of *path*, shallowest first.

    The root and *path* itself are excluded::

        ancestor_chain("/a/b/c.jsx") -> ["/a", "/a/b"]
    """
    parts = [p for p in normalize(path).split("/") if p]
    chain: list[str] = []
    current = ""
    for part in parts[:-1]:
        current += "/" + part
        chain.append(current)
    return chain


def resolve_relative(from_dir: str, specifier: str) -> str:
    """Apply the ``.``/``..`` segments of *specifier* against *from_dir*.

    Walking above the root stays at the root.
    """
    parts = [p for p in from_dir.split("/") if p]
    for part in specifier.split("/"):
        if part == "..":
            if parts:
                parts.pop()
        elif part and part != ".":
            parts.append(part)
    return "/" + "/".join(parts)


def is_descendant(path: str, ancestor: str) -> bool:
    """Return ``True`` if *path* lies strictly below *ancestor*."""
    ancestor = normalize(ancestor)
    if ancestor == ROOT:
        return normalize(path) != ROOT
    return normalize(path).startswith(ancestor + "/")


def strip_extension(path: str, extensions: tuple[str, ...]) -> str:
    """Remove the first matching extension from *path*, if any."""
    for ext in extensions:
        if path.endswith(ext):
            return path[: -len(ext)]
    return path
