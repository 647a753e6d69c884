"""
Editing session tests.

Tests cover:
- Loading both files (missing files yield defaults)
- Saving edits through the managers
- External changes with and without pending edits
- Reload and shutdown
"""

import stat
from unittest.mock import AsyncMock, MagicMock

import pytest

from yabai_config_manager.editor import ConfigEditor
from yabai_config_manager.errors import IoFailure
from yabai_config_manager.models import PROTECTED_RULE_ID, ShortcutCategory


@pytest.fixture
def editor(settings, backup_store):
    return ConfigEditor(settings, backup_store=backup_store)


@pytest.fixture
def loaded_editor(editor, yabai_path, skhd_path, sample_yabairc, sample_skhdrc):
    yabai_path.write_text(sample_yabairc)
    skhd_path.write_text(sample_skhdrc)
    editor.load()
    return editor


class TestLoad:
    """Test loading from disk."""

    def test_missing_files_yield_defaults(self, editor):
        editor.load()

        assert [r.id for r in editor.yabai_config.rules] == [PROTECTED_RULE_ID]
        assert editor.skhd_config.shortcuts == []
        assert editor.has_unsaved_changes is False

    def test_loads_sample_files(self, loaded_editor):
        assert loaded_editor.yabai_config.window_gap == 6
        assert len(loaded_editor.rules.rules) == 4
        assert len(loaded_editor.shortcuts.shortcuts) == 5

    def test_managers_follow_loaded_models(self, loaded_editor):
        assert loaded_editor.options.config is loaded_editor.yabai_config
        assert loaded_editor.rules.config is loaded_editor.yabai_config
        assert loaded_editor.shortcuts.config is loaded_editor.skhd_config

    def test_parse_issues_are_recorded(self, editor, yabai_path):
        yabai_path.write_text("yabai -m config window_gap lots\nyabai -m config layout stack\n")

        editor.load()

        assert editor.yabai_config.layout.value == "stack"
        assert len(editor.parse_issues[yabai_path]) == 1


    def test_non_utf8_bytes_do_not_stop_a_load(self, editor, yabai_path, skhd_path):
        yabai_path.write_bytes(b"# caf\xe9\nyabai -m config window_gap 9\n")
        skhd_path.write_bytes(b"# r\xe9glages\nalt - h : yabai -m window --focus west\n")

        editor.load()

        assert editor.yabai_config.window_gap == 9
        assert [s.key for s in editor.skhd_config.shortcuts] == ["h"]

    def test_loads_space_overrides(self, loaded_editor):
        assert [space.index for space in loaded_editor.yabai_config.spaces] == [1, 2]
        assert loaded_editor.options.spaces is loaded_editor.yabai_config.spaces


class TestSave:
    """Test committing edits."""

    @pytest.mark.asyncio
    async def test_save_all(self, loaded_editor, yabai_path, skhd_path):
        loaded_editor.set_option("window_gap", 14)
        loaded_editor.rules.add_rule(app="Slack", manage=False)
        loaded_editor.shortcuts.add_from_hotkey("alt - r", "yabai -m space --rotate 90")
        assert loaded_editor.has_unsaved_changes is True

        assert await loaded_editor.save_all() is True

        yabai_lines = yabai_path.read_text().splitlines()
        assert "yabai -m config window_gap 14" in yabai_lines
        assert yabai_path.stat().st_mode & stat.S_IXUSR
        assert "alt - r : yabai -m space --rotate 90" in skhd_path.read_text().splitlines()
        assert loaded_editor.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_saved_files_load_back(self, loaded_editor, settings, backup_store):
        loaded_editor.set_option("layout", "float")
        loaded_editor.shortcuts.toggle_shortcut("shortcut_1")
        await loaded_editor.save_all()

        fresh = ConfigEditor(settings, backup_store=backup_store)
        fresh.load()

        assert fresh.yabai_config.layout.value == "float"
        assert fresh.shortcuts.get_shortcut("shortcut_1").enabled is False
        assert fresh.shortcuts.get_shortcut("shortcut_1").category == ShortcutCategory.FOCUS

    @pytest.mark.asyncio
    async def test_save_all_reports_failure(self, settings, backup_store, yabai_path, tmp_path):
        settings.skhd_config_path = str(tmp_path / "missing" / ".skhdrc")
        editor = ConfigEditor(settings, backup_store=backup_store)
        editor.load()

        with pytest.raises(IoFailure):
            await editor.save_all()

        assert yabai_path.exists()

    @pytest.mark.asyncio
    async def test_reload_after_save(self, settings, backup_store):
        settings.auto_apply = True
        reloader = MagicMock()
        reloader.reload_yabai = AsyncMock(return_value=True)
        reloader.reload_skhd = AsyncMock(return_value=True)
        editor = ConfigEditor(settings, backup_store=backup_store, reloader=reloader)
        editor.load()

        editor.set_option("window_gap", 8)
        await editor.save_yabai()

        reloader.reload_yabai.assert_awaited_once()
        reloader.reload_skhd.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_flushes_pending_edits(self, loaded_editor, yabai_path):
        loaded_editor.set_option("window_gap", 22)

        await loaded_editor.close()

        assert "yabai -m config window_gap 22" in yabai_path.read_text().splitlines()


class TestExternalChanges:
    """Test reactions to files changing on disk."""

    @pytest.mark.asyncio
    async def test_reloads_clean_model(self, loaded_editor, yabai_path):
        yabai_path.write_text("yabai -m config window_gap 30\n")

        assert await loaded_editor.handle_external_change(yabai_path) is True

        assert loaded_editor.yabai_config.window_gap == 30
        assert loaded_editor.options.get_option("window_gap") == 30

    @pytest.mark.asyncio
    async def test_pending_edits_win(self, loaded_editor, yabai_path):
        loaded_editor.set_option("window_gap", 12)
        yabai_path.write_text("yabai -m config window_gap 30\n")

        assert await loaded_editor.handle_external_change(yabai_path) is False

        assert loaded_editor.yabai_config.window_gap == 12
        await loaded_editor.save_yabai()
        assert "yabai -m config window_gap 12" in yabai_path.read_text().splitlines()

    @pytest.mark.asyncio
    async def test_own_write_is_ignored(self, loaded_editor, skhd_path):
        loaded_editor.shortcuts.delete_shortcut("shortcut_1")
        await loaded_editor.save_skhd()

        assert await loaded_editor.handle_external_change(skhd_path) is False
        assert len(loaded_editor.shortcuts.shortcuts) == 4

    @pytest.mark.asyncio
    async def test_untracked_path(self, loaded_editor, tmp_path):
        other = tmp_path / "other"
        other.write_text("x")

        assert await loaded_editor.handle_external_change(other) is False

    @pytest.mark.asyncio
    async def test_reload_discards_edits(self, loaded_editor):
        loaded_editor.set_option("window_gap", 40)

        await loaded_editor.reload()

        assert loaded_editor.yabai_config.window_gap == 6
        assert loaded_editor.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_watching_disabled(self, loaded_editor):
        loaded_editor.start_watching()

        assert loaded_editor.file_watcher is None


class TestStatus:
    """Test status reporting."""

    def test_status(self, loaded_editor, yabai_path):
        status = loaded_editor.status()

        assert status["unsaved_changes"] is False
        assert status["yabai"]["file_path"] == str(yabai_path)
        assert status["skhd"]["telemetry"]["write_count"] == 0
