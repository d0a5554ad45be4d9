"""Pydantic v2 models for the module transformation pipeline.

Defines per-file transform output, the tagged module-location variant and the
resolution table produced by the import graph builder.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Per-file transform output
# ---------------------------------------------------------------------------

class TransformResult(BaseModel):
    """Output of a single ``ModuleTransformer.transform`` call.

    Exactly one of ``code`` (on success) or ``error`` (on failure) is
    meaningful; on failure ``code`` is empty and both specifier sets are empty.
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(default="", description="Executable module body")
    imports: frozenset[str] = Field(
        default_factory=frozenset, description="Executable module specifiers referenced"
    )
    css_imports: frozenset[str] = Field(
        default_factory=frozenset, description="Stylesheet specifiers stripped from the body"
    )
    error: Optional[str] = Field(default=None, description="Parser message with line:column")

    @property
    def ok(self) -> bool:
        return self.error is None


class TransformError(BaseModel):
    """A per-file failure collected by the import graph builder."""

    path: str
    error: str


class ModuleRecord(BaseModel):
    """Transient pipeline record for one source file."""

    path: str
    result: TransformResult
    url: Optional[str] = Field(default=None, description="Materialised module URL")

    @property
    def ok(self) -> bool:
        return self.result.ok and self.url is not None


# ---------------------------------------------------------------------------
# Module locations
# ---------------------------------------------------------------------------

class LocationKind(str, Enum):
    """Where a specifier resolves to."""
    LOCAL = "local"
    EXTERNAL = "external"
    PLACEHOLDER = "placeholder"


class ModuleLocation(BaseModel):
    """Tagged variant describing a loadable module.

    * ``LOCAL``: a transformed project file (``source_path``).
    * ``EXTERNAL``: a package served by the CDN (``package``).
    * ``PLACEHOLDER``: a synthesised stub (``component_name``).
    """

    model_config = ConfigDict(frozen=True)

    kind: LocationKind
    url: str
    source_path: Optional[str] = None
    package: Optional[str] = None
    component_name: Optional[str] = None

    @classmethod
    def local(cls, source_path: str, url: str) -> "ModuleLocation":
        return cls(kind=LocationKind.LOCAL, url=url, source_path=source_path)

    @classmethod
    def external(cls, package: str, url: str) -> "ModuleLocation":
        return cls(kind=LocationKind.EXTERNAL, url=url, package=package)

    @classmethod
    def placeholder(cls, component_name: str, url: str) -> "ModuleLocation":
        return cls(kind=LocationKind.PLACEHOLDER, url=url, component_name=component_name)


class ResolutionTable(BaseModel):
    """Mapping from every specifier form to a module location."""

    entries: dict[str, ModuleLocation] = Field(default_factory=dict)

    def register(self, specifier: str, location: ModuleLocation, *, replace: bool = True) -> None:
        if replace or specifier not in self.entries:
            self.entries[specifier] = location

    def resolve(self, specifier: str) -> Optional[ModuleLocation]:
        return self.entries.get(specifier)

    def url_for(self, specifier: str) -> Optional[str]:
        location = self.entries.get(specifier)
        return location.url if location is not None else None

    def of_kind(self, kind: LocationKind) -> dict[str, ModuleLocation]:
        return {spec: loc for spec, loc in self.entries.items() if loc.kind is kind}

    def to_import_map(self) -> dict[str, Any]:
        """Return the declarative ``{"imports": {specifier: url}}`` manifest."""
        return {"imports": {spec: loc.url for spec, loc in self.entries.items()}}

    def __contains__(self, specifier: object) -> bool:
        return specifier in self.entries

    def __len__(self) -> int:
        return len(self.entries)


# ---------------------------------------------------------------------------
# Build output
# ---------------------------------------------------------------------------

class BuildResult(BaseModel):
    """Everything the renderer needs from one pipeline run."""

    table: ResolutionTable = Field(default_factory=ResolutionTable)
    styles: str = Field(default="", description="Aggregated stylesheet text")
    errors: list[TransformError] = Field(default_factory=list)
    records: dict[str, ModuleRecord] = Field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def placeholders(self) -> dict[str, ModuleLocation]:
        return self.table.of_kind(LocationKind.PLACEHOLDER)

    def import_map_json(self) -> str:
        return json.dumps(self.table.to_import_map(), indent=2)
