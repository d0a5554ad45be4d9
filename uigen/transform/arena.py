"""Per-rebuild arena of loadable module handles.

Every transformed file and every placeholder is materialised as a
self-contained ``data:`` URL. The arena records each handle it issues so
that the orchestrating layer can release a whole rebuild at once when a
newer one supersedes it; a released arena issues no more handles and no
longer vouches for the URLs it issued.
"""

from __future__ import annotations

import base64
import re
import time
from dataclasses import dataclass, field

from uigen.config import SecuritySettings

DEFAULT_MIME_TYPE = "application/javascript"


class ArenaError(Exception):
    """Raised when a module cannot be materialised."""

    def __init__(self, message: str, mime_type: str = ""):
        self.mime_type = mime_type
        super().__init__(message)


@dataclass(frozen=True)
class ModuleHandle:
    """A loadable location issued by a :class:`ModuleArena`."""

    url: str
    mime_type: str
    size: int
    created_at: float = field(default_factory=time.monotonic)


class ModuleArena:
    """Issues and tracks module handles for a single rebuild."""

    def __init__(self, security: SecuritySettings | None = None, generation: int = 0) -> None:
        self.security = security or SecuritySettings()
        self.generation = generation
        self._handles: dict[str, ModuleHandle] = {}
        self._released = False
        self._blocked = [re.compile(p, re.IGNORECASE) for p in self.security.blocked_patterns]

    def materialize(self, code: str, mime_type: str = DEFAULT_MIME_TYPE) -> ModuleHandle:
        """Turn *code* into a loadable handle.

        Raises:
            ArenaError: If the arena was released, the MIME type is not on the
                allow-list, the code matches a blocked pattern, or the code
                cannot be encoded as UTF-8.
        """
        if self._released:
            raise ArenaError("Module arena has been released", mime_type=mime_type)
        if mime_type not in self.security.allowed_mime_types:
            raise ArenaError(f"Unsafe MIME type: {mime_type}", mime_type=mime_type)
        for pattern in self._blocked:
            if pattern.search(code):
                raise ArenaError(
                    f"Code contains potentially dangerous patterns: {pattern.pattern}",
                    mime_type=mime_type,
                )

        try:
            payload = code.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ArenaError(
                f"Code is not valid UTF-8: unpaired surrogate at offset {exc.start}",
                mime_type=mime_type,
            ) from exc
        encoded = base64.b64encode(payload).decode("ascii")
        handle = ModuleHandle(
            url=f"data:{mime_type};base64,{encoded}",
            mime_type=mime_type,
            size=len(code),
        )
        self._handles[handle.url] = handle
        return handle

    def is_valid(self, url: str) -> bool:
        """Return ``True`` if *url* was issued by this arena and not yet released."""
        return not self._released and url in self._handles

    def release(self) -> int:
        """Drop every handle. Returns how many were released."""
        count = len(self._handles)
        self._handles.clear()
        self._released = True
        return count

    @property
    def released(self) -> bool:
        return self._released

    def stats(self) -> dict[str, float]:
        """Return ``{count, total_bytes, oldest_age}`` for debugging output."""
        now = time.monotonic()
        handles = list(self._handles.values())
        return {
            "count": len(handles),
            "total_bytes": sum(h.size for h in handles),
            "oldest_age": max((now - h.created_at for h in handles), default=0.0),
        }

    def __len__(self) -> int:
        return len(self._handles)


def decode_data_url(url: str) -> str:
    """Return the source text embedded in a ``data:...;base64,`` URL."""
    _, _, payload = url.partition(";base64,")
    return base64.b64decode(payload).decode("utf-8")
