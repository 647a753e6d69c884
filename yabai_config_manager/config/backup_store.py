"""
Timestamped snapshot store for tracked configuration files.

Snapshots live next to the file they protect as
`<dir>/.<filename>.backup.<YYYYMMDD_HHMMSS>`. The filename is the only
identity: two snapshots of the same file within one second collide and the
later one wins. Retention is count-based and enforced on every create.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Any, List, Optional

from ..errors import BackupNotFound, IoFailure
from ..models import BackupInfo, DiffResult, EditorSettings
from .diff_engine import DiffEngine
from .writer import copy_config_file, read_config_bytes, read_config_file, write_config_bytes

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
PRE_RESTORE_DESCRIPTION = "Pre-restore backup"


def backup_pattern(file_path: Path) -> re.Pattern:
    """Regex matching snapshot names for a tracked file."""
    return re.compile(rf'^\.{re.escape(Path(file_path).name)}\.backup\.(\d{{8}}_\d{{6}})$')


class BackupStore:
    """Creates, lists, restores, and evicts snapshots of tracked files."""

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        diff_engine: Optional[DiffEngine] = None
    ):
        """
        Initialize backup store.

        Args:
            settings: Editor settings providing max_backups (defaults if None)
            clock: Source of snapshot timestamps (datetime.now if None)
            diff_engine: Engine used by compare_with_current
        """
        self.settings = settings or EditorSettings()
        self.clock = clock or datetime.now
        self.diff_engine = diff_engine or DiffEngine()

    @property
    def max_backups(self) -> int:
        return self.settings.max_backups

    def snapshot_path(self, file_path: Path, timestamp: datetime) -> Path:
        file_path = Path(file_path)
        return file_path.parent / f".{file_path.name}.backup.{timestamp.strftime(TIMESTAMP_FORMAT)}"

    def create(self, file_path: Path, description: Optional[str] = None) -> BackupInfo:
        """
        Copy a file byte for byte into a new snapshot and apply retention.

        Args:
            file_path: Live file to snapshot
            description: Optional note carried on the returned BackupInfo

        Returns:
            BackupInfo for the new snapshot

        Raises:
            IoFailure: If the file does not exist or the snapshot cannot be written
        """
        file_path = Path(file_path)
        created_at = self.clock().replace(microsecond=0)
        backup_path = self.snapshot_path(file_path, created_at)
        copy_config_file(file_path, backup_path)

        info = BackupInfo(
            original_path=file_path,
            backup_path=backup_path,
            created_at=created_at,
            description=description,
            size_bytes=backup_path.stat().st_size,
        )
        logger.info(f"Created backup {backup_path.name} ({info.size_string})")

        self._evict(file_path)
        return info

    def list(self, file_path: Path) -> List[BackupInfo]:
        """
        List snapshots of a file.

        Args:
            file_path: Live file whose snapshots to list

        Returns:
            BackupInfo entries sorted newest first
        """
        file_path = Path(file_path)
        directory = file_path.parent
        if not directory.is_dir():
            return []

        pattern = backup_pattern(file_path)
        backups = []
        for candidate in directory.iterdir():
            match = pattern.match(candidate.name)
            if not match or not candidate.is_file():
                continue
            try:
                created_at = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
                size = candidate.stat().st_size
            except (ValueError, OSError) as e:
                logger.debug(f"Ignoring unreadable backup {candidate.name}: {e}")
                continue
            backups.append(BackupInfo(
                original_path=file_path,
                backup_path=candidate,
                created_at=created_at,
                size_bytes=size,
            ))

        backups.sort(key=lambda b: b.created_at, reverse=True)
        return backups

    def latest(self, file_path: Path) -> Optional[BackupInfo]:
        backups = self.list(file_path)
        return backups[0] if backups else None

    def read(self, backup: BackupInfo) -> str:
        """
        Read snapshot content.

        Raises:
            BackupNotFound: If the snapshot was deleted
        """
        if not backup.backup_path.is_file():
            raise BackupNotFound(str(backup.backup_path))
        return read_config_file(backup.backup_path)

    def restore(self, backup: BackupInfo, create_backup_first: bool = True) -> Optional[BackupInfo]:
        """
        Overwrite the live file with a snapshot.

        Args:
            backup: Snapshot to restore
            create_backup_first: Snapshot the live file first so the restore can be undone

        Returns:
            BackupInfo of the pre-restore snapshot, if one was taken

        Raises:
            BackupNotFound: If the snapshot no longer exists
            IoFailure: If the live file cannot be written
        """
        # Read first: the pre-restore snapshot may evict or overwrite this one
        if not backup.backup_path.is_file():
            raise BackupNotFound(str(backup.backup_path))
        data = read_config_bytes(backup.backup_path)

        pre_restore = None
        if create_backup_first and backup.original_path.exists():
            pre_restore = self.create(backup.original_path, PRE_RESTORE_DESCRIPTION)

        write_config_bytes(backup.original_path, data)
        logger.info(f"Restored {backup.original_path} from {backup.backup_path.name}")
        return pre_restore

    def delete(self, backup: BackupInfo) -> None:
        """
        Delete a snapshot. The live file is not touched.

        Raises:
            BackupNotFound: If the snapshot no longer exists
            IoFailure: If the snapshot cannot be removed
        """
        if not backup.backup_path.is_file():
            raise BackupNotFound(str(backup.backup_path))
        try:
            backup.backup_path.unlink()
        except OSError as e:
            raise IoFailure(str(backup.backup_path), "delete", e) from e
        logger.info(f"Deleted backup {backup.backup_path.name}")

    def delete_all(self, file_path: Path) -> int:
        """
        Delete every snapshot of a file.

        Returns:
            Number of snapshots removed
        """
        backups = self.list(file_path)
        for backup in backups:
            self.delete(backup)
        return len(backups)

    def compare_with_current(self, backup: BackupInfo) -> DiffResult:
        """
        Diff a snapshot (old) against the live file (new).

        A missing live file counts as empty: every snapshot line is removed
        and the result is never identical.

        Raises:
            BackupNotFound: If the snapshot no longer exists
            IoFailure: If the live file cannot be read
        """
        old_text = self.read(backup)
        if not backup.original_path.exists():
            return self.diff_engine.against_missing(old_text)
        new_text = read_config_file(backup.original_path)
        return self.diff_engine.compare(old_text, new_text)

    def summary(self, file_path: Path) -> Dict[str, Any]:
        """
        Summarize snapshots of a file.

        Returns:
            Dict with count, total_bytes, and newest timestamp (or None)
        """
        backups = self.list(file_path)
        return {
            "count": len(backups),
            "total_bytes": sum(b.size_bytes for b in backups),
            "newest": backups[0].timestamp_string if backups else None,
        }

    def _evict(self, file_path: Path):
        """Delete snapshots beyond max_backups, oldest first."""
        backups = self.list(file_path)
        excess = backups[self.max_backups:]
        for backup in reversed(excess):
            try:
                backup.backup_path.unlink()
                logger.debug(f"Evicted backup {backup.backup_path.name}")
            except FileNotFoundError:
                continue
            except OSError as e:
                raise IoFailure(str(backup.backup_path), "delete", e) from e
