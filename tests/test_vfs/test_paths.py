"""Unit tests for the path algebra (uigen.vfs.paths)."""

from __future__ import annotations

import pytest

from uigen.vfs import paths


class TestNormalize:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("App.jsx", "/App.jsx"),
            ("/App.jsx", "/App.jsx"),
            ("//a///b/", "/a/b"),
            ("/components/", "/components"),
            ("/", "/"),
            ("///", "/"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert paths.normalize(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ["a", "/a/b/", "x//y", "/", "a/b/c.jsx"])
    def test_idempotent(self, raw):
        once = paths.normalize(raw)
        assert paths.normalize(once) == once

    @pytest.mark.unit
    def test_is_valid_path(self):
        assert paths.is_valid_path("/a")
        assert not paths.is_valid_path("")
        assert not paths.is_valid_path(None)
        assert not paths.is_valid_path(42)
        assert not paths.is_valid_path("/a\0b")


class TestSegments:
    @pytest.mark.unit
    def test_parent(self):
        assert paths.parent("/a/b/c.jsx") == "/a/b"
        assert paths.parent("/App.jsx") == "/"
        assert paths.parent("/") == "/"

    @pytest.mark.unit
    def test_basename(self):
        assert paths.basename("/a/b/c.jsx") == "c.jsx"
        assert paths.basename("/") == "/"

    @pytest.mark.unit
    def test_join(self):
        assert paths.join("/", "App.jsx") == "/App.jsx"
        assert paths.join("/a/", "b") == "/a/b"

    @pytest.mark.unit
    def test_ancestor_chain(self):
        assert paths.ancestor_chain("/a/b/c.jsx") == ["/a", "/a/b"]
        assert paths.ancestor_chain("/App.jsx") == []

    @pytest.mark.unit
    def test_is_descendant(self):
        assert paths.is_descendant("/a/b", "/a")
        assert not paths.is_descendant("/a", "/a")
        assert not paths.is_descendant("/ab", "/a")
        assert paths.is_descendant("/x", "/")

    @pytest.mark.unit
    def test_strip_extension(self):
        exts = (".jsx", ".tsx", ".js", ".ts")
        assert paths.strip_extension("/a/Button.tsx", exts) == "/a/Button"
        assert paths.strip_extension("/styles.css", exts) == "/styles.css"


class TestResolveRelative:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "from_dir, spec, expected",
        [
            ("/components", "./Button", "/components/Button"),
            ("/components/ui", "../Button", "/components/Button"),
            ("/", "./App", "/App"),
            ("/a", "../../../x", "/x"),
            ("/a/b", "./c/../d", "/a/b/d"),
            ("/a", ".", "/a"),
        ],
    )
    def test_resolve(self, from_dir, spec, expected):
        assert paths.resolve_relative(from_dir, spec) == expected
