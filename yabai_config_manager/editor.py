"""
Editing session for the yabai and skhd configuration files.

Owns both structured models and keeps them synchronized with disk: edits go
through the managers, each mutation feeds the file's auto-save controller,
and external edits are picked up by the file watcher.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config.autosave import AutoSaveController
from .config.backup_store import BackupStore
from .config.file_watcher import FileWatcher
from .config.reload_manager import ServiceReloader
from .config.skhd_codec import SkhdConfigCodec
from .config.validator import ConfigValidator
from .config.writer import read_config_file
from .config.yabai_codec import YabaiConfigCodec
from .errors import ParseDegradation
from .models import EditorSettings, SkhdConfig, YabaiConfig
from .rules import OptionManager, RuleManager, ShortcutManager
from .state import SyncState

logger = logging.getLogger(__name__)

# Watcher events within this window after an own commit are ignored
OWN_WRITE_GRACE_SECONDS = 2.0


class ConfigEditor:
    """Editing session for .yabairc and .skhdrc."""

    def __init__(
        self,
        settings: EditorSettings,
        backup_store: Optional[BackupStore] = None,
        reloader: Optional[ServiceReloader] = None
    ):
        """
        Initialize editor.

        Args:
            settings: Editor settings (paths, auto-save, backups, reload)
            backup_store: Snapshot store (created from settings if None)
            reloader: Daemon reload service (created if None)
        """
        self.settings = settings
        self.backup_store = backup_store or BackupStore(settings)
        self.reloader = reloader or ServiceReloader()
        self.validator = ConfigValidator()

        self.yabai_codec = YabaiConfigCodec()
        self.skhd_codec = SkhdConfigCodec()
        self.yabai_config = YabaiConfig()
        self.skhd_config = SkhdConfig()
        self.parse_issues: Dict[Path, List[ParseDegradation]] = {}

        self.yabai_state = SyncState(self.yabai_path)
        self.skhd_state = SyncState(self.skhd_path)
        self._own_writes: Dict[Path, float] = {}

        self.yabai_autosave = AutoSaveController(
            file_path=self.yabai_path,
            serialize=lambda: self.yabai_codec.serialize(self.yabai_config),
            settings=settings,
            backup_store=self.backup_store,
            executable=True,
            reload_callback=self.reloader.reload_yabai,
            on_write=self._record_own_write,
            sync_state=self.yabai_state
        )
        self.skhd_autosave = AutoSaveController(
            file_path=self.skhd_path,
            serialize=lambda: self.skhd_codec.serialize(self.skhd_config),
            settings=settings,
            backup_store=self.backup_store,
            reload_callback=self.reloader.reload_skhd,
            on_write=self._record_own_write,
            sync_state=self.skhd_state
        )

        self.options = OptionManager(self.yabai_config, on_change=self.yabai_autosave.notify_changed)
        self.rules = RuleManager(
            self.yabai_config,
            on_change=self.yabai_autosave.notify_changed,
            validator=self.validator
        )
        self.shortcuts = ShortcutManager(
            self.skhd_config,
            on_change=self.skhd_autosave.notify_changed,
            validator=self.validator
        )

        self.file_watcher: Optional[FileWatcher] = None

    @property
    def yabai_path(self) -> Path:
        return self.settings.yabai_path

    @property
    def skhd_path(self) -> Path:
        return self.settings.skhd_path

    @property
    def has_unsaved_changes(self) -> bool:
        return self.yabai_autosave.has_unsaved_changes or self.skhd_autosave.has_unsaved_changes

    # Loading

    def load(self):
        """
        Load both files into the models.

        A missing file yields defaults; malformed lines are skipped.

        Raises:
            IoFailure: If a file exists but cannot be read
        """
        self.load_yabai()
        self.load_skhd()

    def load_yabai(self):
        if self.yabai_path.exists():
            config, issues = self.yabai_codec.parse_with_issues(read_config_file(self.yabai_path))
        else:
            logger.info(f"{self.yabai_path} not found, using defaults")
            config, issues = YabaiConfig(), []
        self._set_yabai_config(config)
        self.parse_issues[self.yabai_path] = issues
        self.yabai_state.reset()

    def load_skhd(self):
        if self.skhd_path.exists():
            config, issues = self.skhd_codec.parse_with_issues(read_config_file(self.skhd_path))
        else:
            logger.info(f"{self.skhd_path} not found, starting with no shortcuts")
            config, issues = SkhdConfig(), []
        self._set_skhd_config(config)
        self.parse_issues[self.skhd_path] = issues
        self.skhd_state.reset()

    def _set_yabai_config(self, config: YabaiConfig):
        self.yabai_config = config
        self.options.config = config
        self.rules.config = config

    def _set_skhd_config(self, config: SkhdConfig):
        self.skhd_config = config
        self.shortcuts.config = config

    async def reload(self):
        """Discard in-memory edits and re-read both files."""
        self.yabai_autosave.cancel()
        self.skhd_autosave.cancel()
        await self.yabai_autosave.wait_idle()
        await self.skhd_autosave.wait_idle()
        await asyncio.to_thread(self.load)
        logger.info("Reloaded configuration from disk")

    # Editing

    def set_option(self, key: str, value: Any) -> Any:
        """
        Set a scalar yabai option.

        Raises:
            ValidationFailure: If the key is unknown or the value is invalid
        """
        return self.options.set_option(key, value)

    async def save_all(self) -> bool:
        """
        Commit both files now.

        Returns:
            True when both files were written

        Raises:
            ConfigError: If a write fails (the other file is still attempted)
        """
        results = await asyncio.gather(
            self.yabai_autosave.save_now(),
            self.skhd_autosave.save_now(),
            return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return all(results)

    async def save_yabai(self) -> bool:
        return await self.yabai_autosave.save_now()

    async def save_skhd(self) -> bool:
        return await self.skhd_autosave.save_now()

    # External changes

    def start_watching(self):
        """Start the external-change watcher. Must be called from within the running event loop."""
        if not self.settings.watch_external_changes or self.file_watcher:
            return
        self.file_watcher = FileWatcher(
            tracked_files=[self.yabai_path, self.skhd_path],
            change_callback=self._on_files_changed
        )
        self.file_watcher.start()

    def _record_own_write(self, path: Path):
        self._own_writes[Path(path).resolve()] = time.monotonic()

    def _is_own_write(self, path: Path) -> bool:
        written_at = self._own_writes.get(Path(path).resolve())
        return written_at is not None and time.monotonic() - written_at < OWN_WRITE_GRACE_SECONDS

    async def _on_files_changed(self, files: List[Path]):
        for path in files:
            await self.handle_external_change(path)

    async def handle_external_change(self, path: Path) -> bool:
        """
        React to a tracked file changing on disk.

        The model is reloaded only when it has no unsaved edits; otherwise
        the editor's version overwrites the file on the next commit.

        Returns:
            True if the model was reloaded
        """
        path = Path(path).resolve()
        if self._is_own_write(path):
            logger.debug(f"Ignoring own write to {path}")
            return False

        if path == self.yabai_path.resolve():
            autosave, loader = self.yabai_autosave, self.load_yabai
        elif path == self.skhd_path.resolve():
            autosave, loader = self.skhd_autosave, self.load_skhd
        else:
            return False

        if autosave.has_unsaved_changes:
            logger.warning(f"{path.name} changed on disk while edits are pending; keeping editor version")
            return False

        await autosave.wait_idle()
        await asyncio.to_thread(loader)
        logger.info(f"Reloaded {path.name} after external change")
        return True

    # Shutdown

    async def close(self):
        """Flush pending commits and stop the watcher."""
        if self.file_watcher:
            self.file_watcher.stop()
            self.file_watcher = None
        await self.yabai_autosave.flush()
        await self.skhd_autosave.flush()
        logger.info("Editor closed")

    def status(self) -> Dict[str, Any]:
        """Sync state of both files."""
        return {
            "yabai": self.yabai_state.to_dict(),
            "skhd": self.skhd_state.to_dict(),
            "unsaved_changes": self.has_unsaved_changes,
        }
