"""Shared pytest fixtures for the UIGen preview test suite.

Provides reusable fixtures for:
- Default and tightened configurations
- Empty and pre-populated virtual file systems
- Sample React projects (flat ``{path: content}`` snapshots)
- Transformer, arena and renderer instances
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from uigen.config import FileSystemLimits, PreviewConfig
from uigen.session import PreviewSession
from uigen.transform import ModuleArena, ModuleTransformer, PreviewRenderer
from uigen.vfs import VirtualFileSystem


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> PreviewConfig:
    """Default configuration."""
    return PreviewConfig()


@pytest.fixture
def small_limits() -> FileSystemLimits:
    """Tight limits so boundary tests stay small."""
    return FileSystemLimits(max_file_size=64, max_path_length=32, max_files=3)


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------

@pytest.fixture
def vfs() -> VirtualFileSystem:
    """Empty file system with default limits."""
    return VirtualFileSystem()


@pytest.fixture
def populated_vfs(vfs: VirtualFileSystem, sample_project: dict[str, str]) -> VirtualFileSystem:
    """File system loaded with ``sample_project``."""
    vfs.deserialize(sample_project)
    return vfs


# ---------------------------------------------------------------------------
# Sample projects
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_project() -> dict[str, str]:
    """A small React project: entry, a component, a hook and a stylesheet."""
    return {
        "/App.jsx": textwrap.dedent(
            """\
            import React from 'react';
            import Button from './components/Button';
            import './styles.css';

            export default function App() {
              return (
                <div className="app">
                  <h1>Hello</h1>
                  <Button label="Click" />
                </div>
              );
            }
            """
        ),
        "/components/Button.jsx": textwrap.dedent(
            """\
            export default function Button({ label }) {
              return <button className="btn">{label}</button>;
            }
            """
        ),
        "/styles.css": ".app { padding: 1rem; }",
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, sample_project: dict[str, str]) -> Path:
    """``sample_project`` written to disk as a flat JSON snapshot."""
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(sample_project), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Pipeline components
# ---------------------------------------------------------------------------

@pytest.fixture
def transformer(config: PreviewConfig) -> ModuleTransformer:
    return ModuleTransformer(config)


@pytest.fixture
def arena(config: PreviewConfig) -> ModuleArena:
    return ModuleArena(config.security)


@pytest.fixture
def renderer(config: PreviewConfig) -> PreviewRenderer:
    return PreviewRenderer(config)


@pytest.fixture
def session(config: PreviewConfig) -> PreviewSession:
    """Fresh, empty preview session."""
    return PreviewSession(config)
