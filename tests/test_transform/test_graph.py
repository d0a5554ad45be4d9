"""Unit tests for the ImportGraphBuilder (uigen.transform.graph).

Tests cover:
- pinned framework specifiers and CDN packages
- registration of every equivalent specifier form
- resolution precedence (real files over placeholders)
- placeholder synthesis
- stylesheet aggregation
- error collection
"""

from __future__ import annotations

import pytest

from uigen.config import PreviewConfig, SecuritySettings
from uigen.transform import (
    ImportGraphBuilder,
    LocationKind,
    ModuleArena,
    placeholder_source,
)
from uigen.transform.arena import decode_data_url


def _build(files, config=None, arena=None):
    return ImportGraphBuilder(files, config=config, arena=arena).build()


# ---------------------------------------------------------------------------
# External specifiers
# ---------------------------------------------------------------------------


class TestExternal:
    @pytest.mark.unit
    def test_pinned_framework_specifiers(self):
        build = _build({})
        for spec, url in PreviewConfig().default_imports().items():
            location = build.table.resolve(spec)
            assert location.kind is LocationKind.EXTERNAL
            assert location.url == url

    @pytest.mark.unit
    def test_pinned_react_not_overridden(self):
        build = _build({"/App.jsx": "import React from 'react';\nexport default () => null;"})
        assert build.table.url_for("react") == "https://esm.sh/react@19"

    @pytest.mark.unit
    def test_project_file_cannot_shadow_pinned_specifier(self):
        build = _build({
            "/react.js": "export default 1;",
            "/App.jsx": "import React from 'react';\nexport default () => null;",
        })
        assert not build.errors
        location = build.table.resolve("react")
        assert location.kind is LocationKind.EXTERNAL
        assert location.url == "https://esm.sh/react@19"
        assert build.table.resolve("/react").source_path == "/react.js"

    @pytest.mark.unit
    def test_package_goes_to_cdn(self):
        build = _build({"/App.jsx": "import { motion } from 'framer-motion';\nexport default 1;"})
        location = build.table.resolve("framer-motion")
        assert location.kind is LocationKind.EXTERNAL
        assert location.url == "https://esm.sh/framer-motion"

    @pytest.mark.unit
    def test_is_package(self):
        builder = ImportGraphBuilder({})
        assert builder.is_package("lodash/debounce")
        assert not builder.is_package("./x")
        assert not builder.is_package("/x")
        assert not builder.is_package("@/x")


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------


class TestLocal:
    @pytest.mark.unit
    def test_equivalent_forms(self):
        builder = ImportGraphBuilder({})
        assert builder.equivalent_forms("/App.jsx") == [
            "/App.jsx", "App.jsx", "@/App.jsx", "/App", "App", "@/App",
        ]

    @pytest.mark.unit
    def test_all_forms_registered(self):
        build = _build({"/App.jsx": "export default function App() { return <div />; }"})
        urls = {
            build.table.url_for(form)
            for form in ("/App.jsx", "App.jsx", "@/App.jsx", "/App", "App", "@/App")
        }
        assert len(urls) == 1
        url = urls.pop()
        assert url.startswith("data:application/javascript;base64,")
        assert build.table.resolve("/App").kind is LocationKind.LOCAL
        assert build.table.resolve("/App").source_path == "/App.jsx"
        assert build.records["/App.jsx"].ok

    @pytest.mark.unit
    def test_transformed_body_is_materialised(self):
        build = _build({"/App.jsx": "export default () => <p>Hi</p>;"})
        body = decode_data_url(build.table.url_for("/App.jsx"))
        assert '_jsx("p", { children: "Hi" })' in body

    @pytest.mark.unit
    def test_real_file_beats_placeholder(self, sample_project):
        sample_project["/App.jsx"] = (
            "import Button from '@/components/Button';\n"
            "export default () => <Button />;"
        )
        build = _build(sample_project)
        location = build.table.resolve("@/components/Button")
        assert location.kind is LocationKind.LOCAL
        assert location.source_path == "/components/Button.jsx"
        assert build.placeholders == {}

    @pytest.mark.unit
    def test_index_resolution(self):
        build = _build({
            "/App.jsx": "import Nav from './nav';\nexport default Nav;",
            "/nav/index.jsx": "export default () => <nav />;",
        })
        location = build.table.resolve("/nav")
        assert location.kind is LocationKind.LOCAL
        assert location.source_path == "/nav/index.jsx"


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------


class TestPlaceholders:
    @pytest.mark.unit
    def test_missing_relative_import(self):
        build = _build({"/App.jsx": "import Missing from './missing';\nexport default Missing;"})
        assert not build.has_errors
        location = build.table.resolve("/missing")
        assert location.kind is LocationKind.PLACEHOLDER
        assert location.component_name == "Missing"
        body = decode_data_url(location.url)
        assert body == placeholder_source("Missing")
        assert "export default Missing;" in body
        assert "export { Missing };" in body

    @pytest.mark.unit
    def test_alias_placeholder_forms(self):
        build = _build({
            "/App.jsx": "import Ghost from '@/components/user-card';\nexport default Ghost;",
        })
        url = build.table.url_for("@/components/user-card")
        assert url is not None
        assert build.table.url_for("/components/user-card") == url
        assert build.table.url_for("components/user-card") == url
        assert build.table.resolve("@/components/user-card").component_name == "UserCard"

    @pytest.mark.unit
    def test_failed_file_suppresses_placeholder(self):
        build = _build({
            "/App.jsx": "import Broken from './Broken';\nexport default Broken;",
            "/Broken.jsx": "export default function Broken() { return <div>; }",
        })
        assert [e.path for e in build.errors] == ["/Broken.jsx"]
        assert build.placeholders == {}
        assert "/Broken" not in build.table

    @pytest.mark.unit
    def test_candidates(self):
        builder = ImportGraphBuilder({})
        candidates = builder.candidates("@/ui/Card")
        assert candidates[0] == "@/ui/Card"
        assert "/ui/Card.tsx" in candidates
        assert "/ui/Card/index.jsx" in candidates


# ---------------------------------------------------------------------------
# Stylesheets
# ---------------------------------------------------------------------------


class TestStyles:
    @pytest.mark.unit
    def test_plain_stylesheets_aggregated(self):
        build = _build({"/a.css": "a{}", "/b.css": "b{}"})
        assert build.styles == "/* /a.css */\na{}\n\n/* /b.css */\nb{}\n\n"

    @pytest.mark.unit
    def test_resolved_import_adds_nothing(self, sample_project):
        build = _build(sample_project)
        assert "not found" not in build.styles
        assert "/* /styles.css */\n.app { padding: 1rem; }" in build.styles

    @pytest.mark.unit
    def test_missing_stylesheet_comment(self):
        build = _build({
            "/components/Card.jsx": "import './card.css';\nimport '@/theme.css';\nexport default 1;",
            "/components/card.css": ".card{}",
        })
        assert "/* @/theme.css not found */\n" in build.styles
        assert "./card.css not found" not in build.styles


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.unit
    def test_errors_collected_and_build_continues(self):
        build = _build({
            "/Bad.jsx": "const = ;",
            "/Good.jsx": "export default 1;",
        })
        assert len(build.errors) == 1
        assert build.errors[0].path == "/Bad.jsx"
        assert build.errors[0].error.startswith("/Bad.jsx: ")
        assert "/Good.jsx" in build.table
        assert "/Bad.jsx" not in build.table

    @pytest.mark.unit
    def test_unpaired_surrogate_is_an_error(self):
        build = _build({
            "/B.jsx": "export default () => <p>\ud800</p>;",
            "/App.jsx": "export default function App() { return <div />; }",
        })
        assert [error.path for error in build.errors] == ["/B.jsx"]
        assert "U+D800" in build.errors[0].error
        assert build.records["/App.jsx"].ok
        assert build.table.url_for("/App.jsx").startswith("data:application/javascript;base64,")

    @pytest.mark.unit
    def test_arena_rejection_is_an_error(self):
        config = PreviewConfig(security=SecuritySettings(blocked_patterns=(r"document\.cookie",)))
        arena = ModuleArena(config.security)
        build = _build(
            {"/App.jsx": "export default () => document.cookie;"}, config=config, arena=arena
        )
        assert len(build.errors) == 1
        assert "dangerous patterns" in build.errors[0].error

    @pytest.mark.unit
    def test_import_map_json(self):
        build = _build({"/App.jsx": "export default 1;"})
        assert '"imports": {' in build.import_map_json()
        assert build.table.to_import_map()["imports"]["react"] == "https://esm.sh/react@19"
