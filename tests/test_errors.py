"""
Error taxonomy tests.

Tests cover:
- Error code ranges
- OSError classification for IoFailure
- Structured output via to_dict
- Conversion of pydantic errors
"""

import errno

import pytest
from pydantic import ValidationError

from yabai_config_manager.errors import (
    BackupNotFound,
    ErrorCode,
    IoFailure,
    ReloadError,
    validation_failure_from,
)
from yabai_config_manager.models import EditorSettings


class TestErrorCodes:
    """Test the code table."""

    def test_codes_are_unique(self):
        values = [code.value for code in ErrorCode]

        assert len(values) == len(set(values))

    def test_codes_fall_in_documented_ranges(self):
        for code in ErrorCode:
            assert 1000 <= code.value < 1500

    @pytest.mark.parametrize("name", [
        "CONFIG_LOAD_FAILED",
        "BACKUP_FAILED",
        "SERVICE_NOT_FOUND",
        "AUTOSAVE_FAILED",
    ])
    def test_codes_nothing_raises_are_gone(self, name):
        assert name not in ErrorCode.__members__


class TestIoFailure:
    """Test OSError classification."""

    @pytest.mark.parametrize("cause,operation,expected", [
        (FileNotFoundError(errno.ENOENT, "No such file"), "read", ErrorCode.FILE_NOT_FOUND),
        (PermissionError(errno.EACCES, "Permission denied"), "write", ErrorCode.PERMISSION_DENIED),
        (NotADirectoryError(errno.ENOTDIR, "Not a directory"), "write", ErrorCode.DIRECTORY_NOT_FOUND),
        (OSError(errno.ENOSPC, "No space left on device"), "write", ErrorCode.DISK_FULL),
        (OSError(errno.EIO, "I/O error"), "read", ErrorCode.FILE_READ_ERROR),
        (OSError(errno.EIO, "I/O error"), "write", ErrorCode.FILE_WRITE_ERROR),
    ])
    def test_classification(self, cause, operation, expected):
        failure = IoFailure("/tmp/.yabairc", operation, cause)

        assert failure.code == expected
        assert failure.cause is cause

    def test_to_dict(self):
        failure = IoFailure("/tmp/.yabairc", "read", FileNotFoundError(errno.ENOENT, "No such file"))

        result = failure.to_dict()

        assert result["code"] == ErrorCode.FILE_NOT_FOUND.value
        assert result["message"] == "Failed to read /tmp/.yabairc: No such file"
        assert result["context"]["errno"] == errno.ENOENT
        assert "suggestion" in result


class TestOtherFailures:
    """Test the remaining failure types."""

    def test_backup_not_found(self):
        error = BackupNotFound("/tmp/.yabairc.backup.20250101_120000")

        assert error.code == ErrorCode.BACKUP_NOT_FOUND
        assert error.context == {"backup_path": "/tmp/.yabairc.backup.20250101_120000"}

    def test_reload_error(self):
        error = ReloadError("skhd", "timed out")

        assert error.code == ErrorCode.SERVICE_RELOAD_FAILED
        assert str(error) == "Failed to reload skhd: timed out"

    def test_validation_failure_from_pydantic(self):
        with pytest.raises(ValidationError) as exc_info:
            EditorSettings(max_backups="many")

        failure = validation_failure_from(exc_info.value)

        assert failure.code == ErrorCode.VALIDATION_FAILED
        assert failure.field == "max_backups"
        assert failure.message.startswith("Invalid max_backups")
