"""
File watcher for tracked configuration files.

Detects edits made outside the editor (another text editor, dotfile sync) and
triggers a debounced reload of the affected models.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .writer import is_temp_file

logger = logging.getLogger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Handles file system events for tracked configuration files."""

    def __init__(
        self,
        tracked_files: Iterable[Path],
        callback: Callable[[List[Path]], Awaitable[None]],
        loop: asyncio.AbstractEventLoop,
        debounce_ms: int = 500
    ):
        """
        Initialize file handler.

        Args:
            tracked_files: Files whose changes are reported
            callback: Async function called with the changed files
            loop: Event loop the callback runs on
            debounce_ms: Debounce delay in milliseconds
        """
        super().__init__()
        self.tracked_files = {Path(p).resolve() for p in tracked_files}
        self.callback = callback
        self.loop = loop
        self.debounce_ms = debounce_ms
        self.pending_events: Set[Path] = set()
        self.debounce_task: Optional[asyncio.Task] = None

    def on_modified(self, event: FileSystemEvent):
        """Handle file modification event."""
        if not event.is_directory:
            self._record(event.src_path)

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self._record(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        """Handle rename into place (atomic saves by most editors)."""
        if not event.is_directory:
            self._record(event.dest_path)

    def _record(self, raw_path):
        path = Path(raw_path)

        # Exclude backup snapshots and writer temp files
        if ".backup." in path.name or is_temp_file(path):
            return

        if path.resolve() not in self.tracked_files:
            return

        logger.debug(f"File modified: {path}")
        # watchdog delivers events on its own thread
        self.loop.call_soon_threadsafe(self._schedule, path.resolve())

    def _schedule(self, path: Path):
        self.pending_events.add(path)

        if self.debounce_task:
            self.debounce_task.cancel()

        self.debounce_task = self.loop.create_task(self._debounced_reload())

    async def _debounced_reload(self):
        """Execute debounced callback after delay."""
        try:
            # Wait for debounce period
            await asyncio.sleep(self.debounce_ms / 1000.0)

            if self.pending_events:
                files = sorted(self.pending_events)
                self.pending_events.clear()

                logger.info(f"Detected external changes to {len(files)} files")
                await self.callback(files)

        except asyncio.CancelledError:
            # Debounce was cancelled - another event came in
            pass
        except Exception as e:
            logger.error(f"Error handling external change: {e}")


class FileWatcher:
    """Watches tracked files and reports external changes."""

    def __init__(
        self,
        tracked_files: Iterable[Path],
        change_callback: Callable[[List[Path]], Awaitable[None]],
        debounce_ms: int = 500
    ):
        """
        Initialize file watcher.

        Args:
            tracked_files: Files to watch (their parent directories are observed)
            change_callback: Async function called with the changed files
            debounce_ms: Debounce delay in milliseconds
        """
        self.tracked_files = [Path(p) for p in tracked_files]
        self.change_callback = change_callback
        self.debounce_ms = debounce_ms

        self.observer: Optional[Observer] = None
        self.handler: Optional[ConfigFileHandler] = None
        self.running = False

    def start(self):
        """Start file watcher. Must be called from within the running event loop."""
        if self.running:
            logger.warning("File watcher already running")
            return

        self.handler = ConfigFileHandler(
            tracked_files=self.tracked_files,
            callback=self.change_callback,
            loop=asyncio.get_running_loop(),
            debounce_ms=self.debounce_ms
        )

        self.observer = Observer()
        scheduled: Set[Path] = set()
        for path in self.tracked_files:
            directory = path.parent.resolve()
            if directory in scheduled or not directory.is_dir():
                continue
            self.observer.schedule(self.handler, path=str(directory), recursive=False)
            scheduled.add(directory)
            logger.info(f"Watching {directory} for changes")

        self.observer.start()
        self.running = True

        logger.info("File watcher started")

    def stop(self):
        """Stop file watcher."""
        if not self.running:
            return

        logger.info("Stopping file watcher")

        if self.observer:
            self.observer.stop()
            self.observer.join()

        if self.handler and self.handler.debounce_task:
            self.handler.debounce_task.cancel()

        self.running = False
        logger.info("File watcher stopped")

    def is_running(self) -> bool:
        """
        Check if file watcher is running.

        Returns:
            True if running, False otherwise
        """
        return self.running
