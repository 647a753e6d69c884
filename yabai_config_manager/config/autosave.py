"""
Debounced auto-save for one tracked configuration file.

Edits arrive as change notifications. The controller coalesces bursts into a
single commit: snapshot the live file, write the serialized model atomically,
mark it executable when required, then ask the daemon to reload.

States:
- IDLE: nothing pending
- PENDING_COMMIT: a debounce timer is armed
- COMMITTING: a write is in flight; new edits are queued for a fresh timer
"""

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from ..errors import ConfigError
from ..models import EditorSettings
from ..state import SyncState
from .backup_store import BackupStore
from .writer import make_executable, write_config_file

logger = logging.getLogger(__name__)

AUTO_SAVE_DESCRIPTION = "Auto-save backup"


class AutoSaveState(str, Enum):
    """Commit lifecycle of a tracked file."""
    IDLE = "idle"
    PENDING_COMMIT = "pending_commit"
    COMMITTING = "committing"


class AutoSaveController:
    """Debounces model changes into single atomic writes."""

    def __init__(
        self,
        file_path: Path,
        serialize: Callable[[], str],
        settings: EditorSettings,
        backup_store: BackupStore,
        executable: bool = False,
        reload_callback: Optional[Callable[[], Awaitable[bool]]] = None,
        on_write: Optional[Callable[[Path], None]] = None,
        sync_state: Optional[SyncState] = None
    ):
        """
        Initialize auto-save controller.

        Args:
            file_path: Live file to write
            serialize: Returns the current model rendered as file text
            settings: Editor settings (auto_save, delay, backup, auto_apply)
            backup_store: Store used for pre-write snapshots
            executable: chmod +x the file after each write
            reload_callback: Async daemon reload, called after a successful write
            on_write: Called with the path after each write (used to ignore own watcher events)
            sync_state: State tracker (created if None)
        """
        self.file_path = Path(file_path)
        self.serialize = serialize
        self.settings = settings
        self.backup_store = backup_store
        self.executable = executable
        self.reload_callback = reload_callback
        self.on_write = on_write
        self.sync_state = sync_state or SyncState(self.file_path)

        self.status = AutoSaveState.IDLE
        self._timer: Optional[asyncio.Task] = None
        self._queued = False
        self._generation = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def has_unsaved_changes(self) -> bool:
        return self.sync_state.has_unsaved_changes

    @property
    def delay_seconds(self) -> float:
        return self.settings.auto_save_delay_ms / 1000.0

    def notify_changed(self):
        """
        Record a model mutation and (re)arm the debounce timer.

        Must be called from within the running event loop.
        """
        self._generation += 1
        self.sync_state.record_mutation()

        if not self.settings.auto_save:
            return

        if self.status == AutoSaveState.COMMITTING:
            self._queued = True
            logger.debug(f"Change to {self.file_path.name} queued behind in-flight commit")
            return

        self._arm_timer()

    async def save_now(self) -> bool:
        """
        Commit immediately, cancelling any pending timer.

        Waits for an in-flight commit to finish first so writes never overlap.

        Returns:
            True if the file was written

        Raises:
            ConfigError: If snapshot, write, or chmod fails
        """
        self._cancel_timer()
        while self.status == AutoSaveState.COMMITTING:
            await self._idle.wait()
        self._cancel_timer()
        self._queued = False
        return await self._commit()

    async def flush(self):
        """Commit pending changes now, if any."""
        if self.status == AutoSaveState.PENDING_COMMIT:
            await self.save_now()
        else:
            await self.wait_idle()

    async def wait_idle(self):
        """Wait until no timer is armed and no commit is in flight."""
        while True:
            if self._timer and not self._timer.done():
                await asyncio.wait({self._timer})
                continue
            if self.status == AutoSaveState.COMMITTING:
                await self._idle.wait()
                continue
            return

    def cancel(self):
        """Drop a pending commit without writing."""
        self._cancel_timer()
        self._queued = False

    def _arm_timer(self):
        self._cancel_timer()
        self.status = AutoSaveState.PENDING_COMMIT
        self._timer = asyncio.get_running_loop().create_task(self._debounced_commit())
        logger.debug(f"Auto-save of {self.file_path.name} armed ({self.settings.auto_save_delay_ms}ms)")

    def _cancel_timer(self):
        # Only a sleeping timer is cancelled; an in-flight write always completes
        if self._timer and self.status == AutoSaveState.PENDING_COMMIT:
            self._timer.cancel()
            self.status = AutoSaveState.IDLE
        self._timer = None

    async def _debounced_commit(self):
        """Commit after the debounce delay unless re-armed first."""
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            # Debounce was cancelled - another change came in
            return

        self._timer = None
        try:
            await self._commit()
        except ConfigError as e:
            logger.error(f"Auto-save of {self.file_path} failed: {e.message}")
        except Exception as e:
            logger.exception(f"Unexpected error auto-saving {self.file_path}: {e}")

    async def _commit(self) -> bool:
        """Snapshot, write, chmod, and reload; always returns to IDLE."""
        self.status = AutoSaveState.COMMITTING
        self._idle.clear()
        generation = self._generation
        start = time.time()

        try:
            text = self.serialize()

            if self.settings.create_backup_on_save and self.file_path.exists():
                await asyncio.to_thread(self.backup_store.create, self.file_path, AUTO_SAVE_DESCRIPTION)
                self.sync_state.record_backup()

            await asyncio.to_thread(write_config_file, self.file_path, text)
            self.sync_state.record_write()
            if self.on_write:
                self.on_write(self.file_path)

            if self.executable:
                await asyncio.to_thread(make_executable, self.file_path)

            if generation == self._generation:
                self.sync_state.has_unsaved_changes = False

            duration_ms = int((time.time() - start) * 1000)
            self.sync_state.record_commit(True, duration_ms, time.time())
            logger.info(f"Saved {self.file_path} ({duration_ms}ms)")

            if self.settings.auto_apply and self.reload_callback:
                await self._reload()

        except ConfigError as e:
            duration_ms = int((time.time() - start) * 1000)
            self.sync_state.record_commit(False, duration_ms, time.time(), error=e)
            raise

        except Exception:
            duration_ms = int((time.time() - start) * 1000)
            self.sync_state.record_commit(False, duration_ms, time.time())
            raise

        finally:
            self.status = AutoSaveState.IDLE
            self._idle.set()
            if self._queued:
                self._queued = False
                self._arm_timer()

        return True

    async def _reload(self):
        """Best-effort daemon reload; a failure never rolls back the write."""
        try:
            reloaded = await self.reload_callback()
        except ConfigError as e:
            logger.warning(f"Reload after saving {self.file_path.name} failed: {e.message}")
            reloaded = False
        self.sync_state.record_reload(reloaded)
        if not reloaded:
            logger.warning(f"Saved {self.file_path.name} but daemon reload failed")
