"""Preview document rendering.

Provides the PreviewRenderer class, which loads Jinja2 templates from the
``uigen/transform/templates/`` directory and renders the self-contained HTML
document hosted in the sandboxed preview frame: import map, stylesheets,
Tailwind runtime and the module bootstrap, or an error report when any file
failed to transform.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from uigen.config import DEFAULT_CONFIG, PreviewConfig
from uigen.transform.models import BuildResult, TransformError

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

_LOCATION = re.compile(r"\((\d+:\d+)\)")

WELCOME_TITLE = "Welcome to UI Generator"
NO_PREVIEW_TITLE = "No Preview Available"


def split_error_location(error: str) -> tuple[str, str]:
    """Split ``"msg (3:7)"`` into ``("3:7", "msg")``.

    Only the first ``(line:column)`` group is extracted; errors without one
    return an empty location.
    """
    match = _LOCATION.search(error)
    if match is None:
        return "", error.strip()
    return match.group(1), (error[: match.start()] + error[match.end():]).strip()


class PreviewRenderer:
    """Renders preview documents and the host-side frame markup."""

    def __init__(
        self,
        config: PreviewConfig | None = None,
        template_dir: str | Path | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.template_dir = Path(template_dir or _DEFAULT_TEMPLATE_DIR)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html.j2"]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    # -- Documents ---------------------------------------------------------

    def render(self, entry_point: str, build: BuildResult) -> str:
        """Render the full preview document for *entry_point*.

        When the build carries any transform error the document contains the
        error report and no bootstrap script, so nothing executes.
        """
        import_map = build.table.to_import_map()
        entry_url = build.table.url_for(entry_point) or entry_point
        return self._render(
            "preview.html.j2",
            {
                "title": self.config.preview.title,
                "tailwind_url": self.config.runtime.tailwind_url,
                "styles": _guard_style(build.styles),
                "import_map": import_map,
                "errors": self.error_items(build.errors),
                "entry_point": entry_point,
                "entry_url": entry_url,
                "allowed_prefixes": ["data:", self.config.runtime.cdn_base + "/"],
            },
        )

    def render_errors(self, errors: list[TransformError]) -> str:
        """Render only the error report fragment."""
        return self._render("_errors.html.j2", {"errors": self.error_items(errors)})

    @staticmethod
    def error_items(errors: list[TransformError]) -> list[dict[str, str]]:
        items = []
        for error in errors:
            location, message = split_error_location(error.error)
            items.append({"path": error.path, "location": location, "message": message})
        return items

    # -- Host surface ------------------------------------------------------

    def render_frame(self, document: str) -> str:
        """Wrap *document* in a sandboxed ``<iframe srcdoc>`` element."""
        return self._render(
            "frame.html.j2",
            {
                "document": document,
                "sandbox": self.config.sandbox_attribute,
                "title": self.config.preview.title,
            },
        )

    def render_empty_state(self, first_load: bool, message: Optional[str] = None) -> str:
        """Render the placeholder surface shown instead of a frame.

        Args:
            first_load: Show the welcome state (nothing was ever created).
            message: Reason shown in the "No Preview Available" state.
        """
        return self._render(
            "empty_state.html.j2",
            {
                "first_load": first_load,
                "message": message,
                "welcome_title": WELCOME_TITLE,
                "no_preview_title": NO_PREVIEW_TITLE,
            },
        )

    def _render(self, template_name: str, context: dict[str, Any]) -> str:
        template = self.env.get_template(template_name)
        return template.render(**context)


def _guard_style(styles: str) -> str:
    """Keep user stylesheets from closing the surrounding ``<style>`` element."""
    return re.sub(r"</(style)", r"<\\/\1", styles, flags=re.IGNORECASE)
