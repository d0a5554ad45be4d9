"""UIGen preview pipeline.

Turns a flat ``{path: content}`` snapshot into a self-contained HTML
document that runs the project in a sandboxed frame.

Key classes:
    ModuleTransformer  - JSX/TypeScript to executable ES module (tree-sitter)
    ModuleArena        - Per-rebuild issuer of loadable module URLs
    ImportGraphBuilder - Resolution table, stylesheet aggregation, placeholders
    PreviewRenderer    - Jinja2 rendering of the preview document and frame
"""

from .arena import ArenaError, ModuleArena, ModuleHandle
from .graph import ImportGraphBuilder, placeholder_source
from .html import PreviewRenderer, split_error_location
from .jsx import ModuleTransformer, clean_jsx_text, code_frame
from .models import (
    BuildResult,
    LocationKind,
    ModuleLocation,
    ModuleRecord,
    ResolutionTable,
    TransformError,
    TransformResult,
)

__all__ = [
    # Pipeline
    "ModuleTransformer",
    "ImportGraphBuilder",
    "PreviewRenderer",
    "ModuleArena",
    "ModuleHandle",
    "ArenaError",
    # Models
    "BuildResult",
    "LocationKind",
    "ModuleLocation",
    "ModuleRecord",
    "ResolutionTable",
    "TransformError",
    "TransformResult",
    # Helpers
    "clean_jsx_text",
    "code_frame",
    "placeholder_source",
    "split_error_location",
]
