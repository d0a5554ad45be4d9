"""Import graph builder: turns a file snapshot into a resolution table.

Every transformable file is compiled and materialised as a loadable module,
stylesheets are aggregated, bare package specifiers are pointed at the CDN,
and local references that match no project file get an inert placeholder
module so a half-finished project still renders.

Resolution policy:

1. The pinned framework specifiers are registered first and never replaced.
2. Transformed project files are registered under every equivalent form
   (``/p.jsx``, ``p.jsx``, ``@/p.jsx``, ``/p``, ``p``, ``@/p``); later
   files win over earlier ones for a shared extensionless form.
3. Placeholders are synthesised only after every real file is indexed and
   never displace an existing entry. A file that exists but failed to
   transform also suppresses its placeholder.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

from uigen.config import DEFAULT_CONFIG, PreviewConfig
from uigen.transform.arena import ArenaError, ModuleArena
from uigen.transform.jsx import ModuleTransformer
from uigen.transform.models import (
    BuildResult,
    ModuleLocation,
    ModuleRecord,
    ResolutionTable,
    TransformError,
)
from uigen.utils import component_identifier, print_warning
from uigen.vfs import paths

_PLACEHOLDER_TEMPLATE = """import React from 'react';
const {name} = function() {{
  return React.createElement('div', {{}}, null);
}}
export default {name};
export {{ {name} }};
"""


def placeholder_source(component_name: str) -> str:
    """Return the module body of an inert placeholder component."""
    return _PLACEHOLDER_TEMPLATE.format(name=component_name)


class ImportGraphBuilder:
    """Builds a :class:`BuildResult` from a ``{path: content}`` snapshot.

    Args:
        files: Flat mapping of absolute file paths to content.
        config: Preview configuration (CDN base, extensions, alias).
        arena: Arena that issues module URLs for this build. A fresh one is
            created when omitted.
        transformer: Shared transformer, so its memo survives rebuilds.
        verbose: Report errors and placeholders on the console.
    """

    def __init__(
        self,
        files: Mapping[str, str],
        config: PreviewConfig | None = None,
        arena: ModuleArena | None = None,
        transformer: ModuleTransformer | None = None,
        verbose: bool = False,
    ) -> None:
        self.files = dict(files)
        self.config = config or DEFAULT_CONFIG
        self.arena = arena or ModuleArena(self.config.security)
        self.transformer = transformer or ModuleTransformer(self.config)
        self.verbose = verbose

        runtime = self.config.runtime
        self._cdn_base = runtime.cdn_base
        self._alias = runtime.alias_prefix
        self._source_exts = runtime.source_extensions
        self._style_exts = runtime.stylesheet_extensions
        self._pinned = self.config.default_imports()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self) -> BuildResult:
        """Run the full pipeline and return the resolution table and styles."""
        result = BuildResult()
        for specifier, url in self._pinned.items():
            result.table.register(specifier, ModuleLocation.external(specifier, url))

        local_refs: set[str] = set()
        css_refs: list[tuple[str, str]] = []
        style_chunks: list[str] = []

        for path, content in self.files.items():
            if self._is_source(path):
                refs, css = self._process_source(path, content, result)
                local_refs.update(refs)
                css_refs.extend(css)
            elif self._is_stylesheet(path):
                style_chunks.append(f"/* {path} */\n{content}\n\n")

        for importer, specifier in css_refs:
            if self._resolve_stylesheet(importer, specifier) not in self.files:
                style_chunks.append(f"/* {specifier} not found */\n")

        result.styles = "".join(style_chunks)

        for specifier in sorted(local_refs):
            self._ensure_resolvable(specifier, result)

        if self.verbose:
            for error in result.errors:
                print_warning(f"Transform failed for {error.path}")
            for specifier in result.placeholders:
                print_warning(f"Placeholder module for {specifier}")
        return result

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _is_source(self, path: str) -> bool:
        return path.endswith(self._source_exts)

    def _is_stylesheet(self, path: str) -> bool:
        return path.endswith(self._style_exts)

    def is_package(self, specifier: str) -> bool:
        """Return ``True`` for bare package specifiers served by the CDN."""
        return not (
            specifier.startswith(".")
            or specifier.startswith("/")
            or specifier.startswith(self._alias)
        )

    # ------------------------------------------------------------------
    # Step 1: transform and register project files
    # ------------------------------------------------------------------

    def _process_source(
        self, path: str, content: str, result: BuildResult
    ) -> tuple[set[str], list[tuple[str, str]]]:
        transformed = self.transformer.transform(content, path, self.files.keys())
        record = ModuleRecord(path=path, result=transformed)
        result.records[path] = record
        if not transformed.ok:
            result.errors.append(TransformError(path=path, error=transformed.error))
            return set(), []

        try:
            handle = self.arena.materialize(transformed.code)
        except ArenaError as exc:
            result.errors.append(TransformError(path=path, error=f"{path}: {exc}"))
            return set(), []

        record.url = handle.url
        location = ModuleLocation.local(path, handle.url)
        for form in self.equivalent_forms(path):
            # Pinned runtime imports outrank same-named project files.
            result.table.register(form, location, replace=form not in self._pinned)

        local_refs: set[str] = set()
        for specifier in transformed.imports:
            if self.is_package(specifier):
                result.table.register(
                    specifier,
                    ModuleLocation.external(specifier, f"{self._cdn_base}/{specifier}"),
                    replace=False,
                )
            else:
                local_refs.add(specifier)
        css_refs = [(path, spec) for spec in sorted(transformed.css_imports)]
        return local_refs, css_refs

    def equivalent_forms(self, path: str) -> list[str]:
        """Return every specifier under which *path* is importable."""
        forms: list[str] = []
        stem = paths.strip_extension(path, self._source_exts)
        for base in (path, stem):
            relative = base[1:] if base.startswith("/") else base
            for form in (base, relative, self._alias + relative):
                if form and form not in forms:
                    forms.append(form)
        return forms

    # ------------------------------------------------------------------
    # Step 2: stylesheets
    # ------------------------------------------------------------------

    def _resolve_stylesheet(self, importer: str, specifier: str) -> str:
        if specifier.startswith(self._alias):
            return "/" + specifier[len(self._alias):]
        if specifier.startswith(("./", "../")):
            return paths.resolve_relative(paths.parent(importer), specifier)
        return specifier

    # ------------------------------------------------------------------
    # Step 3: local resolution and placeholders
    # ------------------------------------------------------------------

    def candidates(self, specifier: str) -> list[str]:
        """Return the lookups tried before a local specifier is declared missing."""
        bases = [specifier]
        if specifier.startswith(self._alias):
            bases.append("/" + specifier[len(self._alias):])
        elif not specifier.startswith("/"):
            bases.append("/" + specifier)

        found: list[str] = []
        for base in bases:
            found.append(base)
            found.extend(base + ext for ext in self._source_exts)
            found.extend(f"{base.rstrip('/')}/index{ext}" for ext in self._source_exts)
        return found

    def _existing_target(self, specifier: str, table: ResolutionTable) -> Optional[str]:
        for candidate in self.candidates(specifier):
            if candidate in table or candidate in self.files:
                return candidate
        return None

    def _ensure_resolvable(self, specifier: str, result: BuildResult) -> None:
        table = result.table
        if specifier in table:
            return

        target = self._existing_target(specifier, table)
        if target is not None:
            # Reachable through an extension or index lookup the browser will
            # not perform on its own.
            location = table.resolve(target)
            if location is not None:
                table.register(specifier, location, replace=False)
            return

        name = component_identifier(paths.basename(paths.strip_extension(specifier, self._source_exts)))
        try:
            handle = self.arena.materialize(placeholder_source(name))
        except ArenaError as exc:
            result.errors.append(TransformError(path=specifier, error=f"{specifier}: {exc}"))
            return

        location = ModuleLocation.placeholder(name, handle.url)
        table.register(specifier, location, replace=False)
        if specifier.startswith(self._alias):
            canonical = "/" + specifier[len(self._alias):]
        else:
            canonical = paths.normalize(specifier)
        for form in self.equivalent_forms(canonical):
            table.register(form, location, replace=False)
