"""
Synchronization state tracking for Yabai Configuration Manager.

Tracks unsaved changes, commit outcomes, and timing for one tracked file.
"""

from pathlib import Path
from typing import Optional

from .errors import ConfigError


class SyncState:
    """
    Tracks the save state of a tracked file with telemetry.
    """

    def __init__(self, file_path: Path):
        """
        Initialize sync state.

        Args:
            file_path: Tracked configuration file
        """
        self.file_path = file_path
        self.has_unsaved_changes: bool = False
        self.last_commit_timestamp: Optional[float] = None
        self.last_error: Optional[ConfigError] = None

        self.telemetry = {
            "mutation_count": 0,
            "commit_attempts": 0,
            "successful_commits": 0,
            "failed_commits": 0,
            "write_count": 0,
            "backup_count": 0,
            "reload_count": 0,
            "reload_failures": 0,
            "last_commit_duration_ms": 0,
        }

    def reset(self):
        """Reset state after a fresh load from disk."""
        self.has_unsaved_changes = False
        self.last_error = None

    def record_mutation(self):
        self.has_unsaved_changes = True
        self.telemetry["mutation_count"] += 1

    def record_commit(self, success: bool, duration_ms: int, timestamp: float, error: Optional[ConfigError] = None):
        """
        Record the outcome of a commit.

        Args:
            success: Whether the file was written
            duration_ms: Commit duration in milliseconds
            timestamp: Completion time (epoch seconds)
            error: Failure that aborted the commit
        """
        self.telemetry["commit_attempts"] += 1
        self.telemetry["last_commit_duration_ms"] = duration_ms

        if success:
            self.telemetry["successful_commits"] += 1
            self.last_commit_timestamp = timestamp
            self.last_error = None
        else:
            self.telemetry["failed_commits"] += 1
            self.last_error = error

    def record_write(self):
        self.telemetry["write_count"] += 1

    def record_backup(self):
        self.telemetry["backup_count"] += 1

    def record_reload(self, success: bool):
        self.telemetry["reload_count"] += 1
        if not success:
            self.telemetry["reload_failures"] += 1

    @property
    def write_count(self) -> int:
        return self.telemetry["write_count"]

    def to_dict(self) -> dict:
        """
        Convert state to dictionary.

        Returns:
            State as dictionary with telemetry
        """
        return {
            "file_path": str(self.file_path),
            "has_unsaved_changes": self.has_unsaved_changes,
            "last_commit_timestamp": self.last_commit_timestamp,
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "telemetry": self.telemetry,
        }
