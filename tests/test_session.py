"""Unit tests for the PreviewSession orchestrator (uigen.session).

Tests cover:
- entry point selection and empty-state decisions
- epoch-driven refresh caching and arena release
- tool-call handling and selection tracking
- snapshot loading
"""

from __future__ import annotations

import pytest

from uigen.session import (
    FIRST_LOAD,
    NO_ENTRY_POINT_MESSAGE,
    NO_FILES_MESSAGE,
    PreviewSession,
    SessionError,
    find_entry_point,
    get_preview_error,
    should_show_first_load_state,
)

CANDIDATES = ("/App.jsx", "/App.tsx", "/index.jsx", "/index.tsx", "/src/App.jsx", "/src/App.tsx")


# ---------------------------------------------------------------------------
# Preview utilities
# ---------------------------------------------------------------------------


class TestFindEntryPoint:
    @pytest.mark.unit
    def test_current_wins_while_it_exists(self):
        files = {"/App.jsx": "", "/Other.jsx": ""}
        assert find_entry_point(files, "/Other.jsx", CANDIDATES) == "/Other.jsx"

    @pytest.mark.unit
    def test_first_existing_candidate(self):
        files = {"/src/App.tsx": "", "/index.jsx": ""}
        assert find_entry_point(files, "/App.jsx", CANDIDATES) == "/index.jsx"

    @pytest.mark.unit
    def test_first_component_file(self):
        files = {"/utils.js": "", "/widgets/Card.tsx": "", "/widgets/List.jsx": ""}
        assert find_entry_point(files, "/App.jsx", CANDIDATES) == "/widgets/Card.tsx"

    @pytest.mark.unit
    def test_nothing_matches(self):
        assert find_entry_point({"/a.css": ""}, "/App.jsx", CANDIDATES) == "/App.jsx"


class TestPreviewErrors:
    @pytest.mark.unit
    def test_first_load(self):
        assert should_show_first_load_state(0, True)
        assert not should_show_first_load_state(1, True)
        assert get_preview_error(0, "/App.jsx", {}, True) == FIRST_LOAD

    @pytest.mark.unit
    def test_no_files_after_first_load(self):
        assert get_preview_error(0, "/App.jsx", {}, False) == NO_FILES_MESSAGE

    @pytest.mark.unit
    def test_missing_entry(self):
        assert get_preview_error(1, "/App.jsx", {"/a.css": ""}, True) == NO_ENTRY_POINT_MESSAGE

    @pytest.mark.unit
    def test_ok(self):
        assert get_preview_error(1, "/App.jsx", {"/App.jsx": ""}, True) is None


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    @pytest.mark.unit
    def test_welcome_on_first_load(self, session):
        outcome = session.refresh()
        assert outcome.status == "welcome"
        assert "Welcome to UI Generator" in outcome.html
        assert session.render_frame(outcome) == outcome.html

    @pytest.mark.unit
    def test_ready(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        outcome = session.refresh()
        assert outcome.status == "ready"
        assert outcome.runnable
        assert outcome.entry_point == "/App.jsx"
        assert outcome.build is not None and not outcome.build.has_errors
        assert '<script type="module">' in outcome.html
        assert session.render_frame(outcome).startswith("<iframe")

    @pytest.mark.unit
    def test_no_files_after_delete(self, config):
        session = PreviewSession(config, initial_data={"/App.jsx": "export default () => null;"})
        assert session.refresh().status == "ready"
        session.delete_file("/App.jsx")
        outcome = session.refresh()
        assert outcome.status == "empty"
        assert outcome.message == NO_FILES_MESSAGE

    @pytest.mark.unit
    def test_no_entry_point(self, session):
        session.create_file("/styles.css", "a{}")
        outcome = session.refresh()
        assert outcome.status == "empty"
        assert outcome.message == NO_ENTRY_POINT_MESSAGE

    @pytest.mark.unit
    def test_errors(self, session):
        session.create_file("/App.jsx", "export default function App() { return <div>; }")
        outcome = session.refresh()
        assert outcome.status == "errors"
        assert not outcome.runnable
        assert "Syntax Error (1)" in outcome.html
        assert 'type="module"' not in outcome.html

    @pytest.mark.unit
    def test_cached_until_epoch_moves(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        first = session.refresh()
        assert session.refresh() is first

        session.update_file("/styles.css", "body { margin: 0; }")
        second = session.refresh()
        assert second is not first
        assert second.epoch == session.epoch
        assert "body { margin: 0; }" in second.html

    @pytest.mark.unit
    def test_direct_vfs_mutation_invalidates(self, session):
        session.create_file("/App.jsx", "export default function App() { return null; }")
        assert session.refresh().status == "ready"

        assert session.vfs.update_file("/App.jsx", "export default function App( {")
        outcome = session.refresh()
        assert outcome.status == "errors"
        assert outcome.epoch == session.vfs.epoch

    @pytest.mark.unit
    def test_entry_point_change_rebuilds(self, config):
        session = PreviewSession(config, initial_data={
            "/App.jsx": "export default () => null;",
            "/Other.jsx": "export default () => null;",
        })
        first = session.refresh()
        session.entry_point = "/Other.jsx"
        second = session.refresh()
        assert second is not first
        assert second.entry_point == "/Other.jsx"

    @pytest.mark.unit
    def test_force(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        first = session.refresh()
        assert session.refresh(force=True) is not first

    @pytest.mark.unit
    def test_superseded_arena_released(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        session.refresh()
        old_arena = session.arena
        entry_url = session.last_outcome.build.table.url_for("/App.jsx")
        assert old_arena.is_valid(entry_url)

        session.update_file("/styles.css", "")
        session.refresh()
        assert old_arena.released
        assert not old_arena.is_valid(entry_url)
        assert session.arena is not old_arena
        assert not session.arena.released

    @pytest.mark.unit
    def test_entry_point_follows_rename(self, config):
        session = PreviewSession(config, initial_data={"/App.jsx": "export default () => null;"})
        session.refresh()
        session.rename_file("/App.jsx", "/Main.jsx")
        outcome = session.refresh()
        assert outcome.entry_point == "/Main.jsx"
        assert outcome.status == "ready"


# ---------------------------------------------------------------------------
# Mutations and tool calls
# ---------------------------------------------------------------------------


class TestMutations:
    @pytest.mark.unit
    def test_failed_mutations_keep_epoch(self, session):
        assert not session.update_file("/missing.jsx", "x")
        assert not session.delete_file("/missing.jsx")
        assert session.epoch == 0

    @pytest.mark.unit
    def test_tool_call_dict(self, session):
        status = session.handle_tool_call({
            "tool_name": "str_replace_editor",
            "args": {"command": "create", "path": "/App.jsx", "file_text": "export default 1;"},
        })
        assert status == "File created: /App.jsx"
        assert session.epoch == 1

        session.handle_tool_call({
            "tool_name": "str_replace_editor",
            "args": {"command": "view", "path": "/App.jsx"},
        })
        assert session.epoch == 1

    @pytest.mark.unit
    def test_tool_call_rename_moves_selection(self, session):
        session.create_file("/a.jsx", "x")
        session.selected_file = "/a.jsx"
        session.handle_tool_call({
            "tool_name": "file_manager",
            "args": {"command": "rename", "path": "/a.jsx", "new_path": "/b.jsx"},
        })
        assert session.selected_file == "/b.jsx"

    @pytest.mark.unit
    def test_auto_select_prefers_app(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        assert session.auto_select_file() == "/App.jsx"

    @pytest.mark.unit
    def test_auto_select_root_level_file(self, config):
        session = PreviewSession(config, initial_data={"/lib/x.js": "", "/main.jsx": ""})
        assert session.auto_select_file() == "/main.jsx"

    @pytest.mark.unit
    def test_reset(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        session.selected_file = "/App.jsx"
        session.reset()
        assert session.vfs.file_count == 0
        assert session.selected_file is None
        assert session.transformer.cache_size == 0


class TestSnapshots:
    @pytest.mark.unit
    def test_serialize_round_trip(self, config, sample_project):
        session = PreviewSession(config, initial_data=sample_project)
        restored = PreviewSession(config, initial_data=session.serialize())
        assert restored.vfs.get_all_files() == session.vfs.get_all_files()

    @pytest.mark.unit
    def test_not_an_object(self, session):
        with pytest.raises(SessionError, match="JSON object"):
            session.load_snapshot(["/App.jsx"])

    @pytest.mark.unit
    def test_malformed_nodes(self, session):
        with pytest.raises(SessionError, match="Malformed snapshot"):
            session.load_snapshot({"/App.jsx": {"type": "socket"}})
