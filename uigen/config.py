"""UIGen preview configuration.

Centralised, typed configuration for the file system and the preview
pipeline. All settings use Pydantic v2 models so they can be validated at
construction time and serialised to/from JSON or environment variables
without boiler-plate. A ``PreviewConfig`` is immutable and is passed
explicitly into every component constructor, so tests can run with
alternate limits side by side.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileSystemLimits(BaseModel):
    """Hard limits enforced by the virtual file system."""

    model_config = ConfigDict(frozen=True)

    max_file_size: int = Field(
        default=10 * 1024 * 1024, ge=1, description="Maximum file content length in characters"
    )
    max_path_length: int = Field(default=4096, ge=1, description="Maximum path length")
    max_files: int = Field(default=1000, ge=1, description="Maximum number of file nodes")


class RuntimeSettings(BaseModel):
    """Where modules are loaded from and which files count as sources."""

    model_config = ConfigDict(frozen=True)

    cdn_base: str = Field(default="https://esm.sh")
    react_version: str = Field(default="19")
    tailwind_url: str = Field(default="https://cdn.tailwindcss.com")
    alias_prefix: str = Field(default="@/", description="Import alias for the project root")
    source_extensions: tuple[str, ...] = Field(default=(".jsx", ".tsx", ".js", ".ts"))
    component_extensions: tuple[str, ...] = Field(
        default=(".jsx", ".tsx"), description="Extensions eligible as fallback entry points"
    )
    stylesheet_extensions: tuple[str, ...] = Field(default=(".css",))

    @field_validator("cdn_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class PreviewSettings(BaseModel):
    """Entry point policy and hosting-frame options."""

    model_config = ConfigDict(frozen=True)

    default_entry_point: str = Field(default="/App.jsx")
    entry_point_candidates: tuple[str, ...] = Field(
        default=(
            "/App.jsx",
            "/App.tsx",
            "/index.jsx",
            "/index.tsx",
            "/src/App.jsx",
            "/src/App.tsx",
        )
    )
    sandbox_permissions: tuple[str, ...] = Field(
        default=("allow-scripts", "allow-same-origin", "allow-forms")
    )
    title: str = Field(default="Preview")

    @field_validator("sandbox_permissions")
    @classmethod
    def _no_navigation(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        forbidden = [
            p for p in value
            if p.startswith("allow-top-navigation") or p == "allow-popups-to-escape-sandbox"
        ]
        if forbidden:
            raise ValueError(f"Sandbox must not permit navigation: {', '.join(forbidden)}")
        return value


class SecuritySettings(BaseModel):
    """Rules applied when module bodies are materialised as loadable URLs."""

    model_config = ConfigDict(frozen=True)

    allowed_mime_types: tuple[str, ...] = Field(
        default=(
            "application/javascript",
            "text/javascript",
            "application/json",
            "text/css",
        )
    )
    blocked_patterns: tuple[str, ...] = Field(
        default=(),
        description="Case-insensitive regexes rejected in materialised modules",
    )


class PreviewConfig(BaseModel):
    """Global UIGen preview configuration.

    Instances are typically created once by ``PreviewSession`` or by the CLI
    entry point and then passed through the rest of the system.
    """

    model_config = ConfigDict(frozen=True)

    limits: FileSystemLimits = Field(default_factory=FileSystemLimits)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    preview: PreviewSettings = Field(default_factory=PreviewSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    transform_cache_size: int = Field(
        default=256, ge=0, description="Transformed modules memoised by content hash"
    )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def default_imports(self) -> dict[str, str]:
        """Pinned framework specifiers that are always present in the import map."""
        base = self.runtime.cdn_base
        version = self.runtime.react_version
        return {
            "react": f"{base}/react@{version}",
            "react-dom": f"{base}/react-dom@{version}",
            "react-dom/client": f"{base}/react-dom@{version}/client",
            "react/jsx-runtime": f"{base}/react@{version}/jsx-runtime",
            "react/jsx-dev-runtime": f"{base}/react@{version}/jsx-dev-runtime",
        }

    @property
    def sandbox_attribute(self) -> str:
        """Value of the ``sandbox`` attribute on the hosting frame."""
        return " ".join(self.preview.sandbox_permissions)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "PreviewConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "PreviewConfig":
        """Build a ``PreviewConfig`` from environment variables.

        Recognised variables (all optional):
            UIGEN_MAX_FILE_SIZE, UIGEN_MAX_PATH_LENGTH, UIGEN_MAX_FILES,
            UIGEN_CDN_BASE, UIGEN_REACT_VERSION, UIGEN_DEFAULT_ENTRY.
        """
        limits_kwargs: dict[str, Any] = {}
        if os.environ.get("UIGEN_MAX_FILE_SIZE"):
            limits_kwargs["max_file_size"] = int(os.environ["UIGEN_MAX_FILE_SIZE"])
        if os.environ.get("UIGEN_MAX_PATH_LENGTH"):
            limits_kwargs["max_path_length"] = int(os.environ["UIGEN_MAX_PATH_LENGTH"])
        if os.environ.get("UIGEN_MAX_FILES"):
            limits_kwargs["max_files"] = int(os.environ["UIGEN_MAX_FILES"])

        runtime_kwargs: dict[str, Any] = {}
        if os.environ.get("UIGEN_CDN_BASE"):
            runtime_kwargs["cdn_base"] = os.environ["UIGEN_CDN_BASE"]
        if os.environ.get("UIGEN_REACT_VERSION"):
            runtime_kwargs["react_version"] = os.environ["UIGEN_REACT_VERSION"]

        preview_kwargs: dict[str, Any] = {}
        if os.environ.get("UIGEN_DEFAULT_ENTRY"):
            preview_kwargs["default_entry_point"] = os.environ["UIGEN_DEFAULT_ENTRY"]

        return cls(
            limits=FileSystemLimits(**limits_kwargs),
            runtime=RuntimeSettings(**runtime_kwargs),
            preview=PreviewSettings(**preview_kwargs),
        )


DEFAULT_CONFIG = PreviewConfig()
