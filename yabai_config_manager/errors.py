"""
Error handling for Yabai Configuration Manager.

Structured error codes and typed failures for load, save, backup, and reload
operations. Parse-time anomalies are recorded as ParseDegradation entries and
never raised.
"""

import errno
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for Yabai Configuration Manager.

    Custom codes (1000-1999):
    - 1000-1099: Validation errors
    - 1100-1199: Configuration errors
    - 1200-1299: File system errors
    - 1400-1499: External service errors
    """

    # Validation errors (1000-1099)
    VALIDATION_FAILED = 1000
    SYNTAX_ERROR = 1001
    INVALID_REGEX = 1004
    MISSING_REQUIRED_FIELD = 1005
    INVALID_MODIFIER = 1006
    INVALID_KEY = 1007
    VALUE_OUT_OF_RANGE = 1008
    INVALID_COLOR = 1009

    # Configuration errors (1100-1199)
    UNKNOWN_OPTION = 1101
    RULE_NOT_FOUND = 1106
    SIGNAL_NOT_FOUND = 1107
    SHORTCUT_NOT_FOUND = 1108
    PRESET_NOT_FOUND = 1109
    SPACE_NOT_FOUND = 1110

    # File system errors (1200-1299)
    FILE_NOT_FOUND = 1200
    FILE_READ_ERROR = 1201
    FILE_WRITE_ERROR = 1202
    DIRECTORY_NOT_FOUND = 1203
    PERMISSION_DENIED = 1204
    BACKUP_NOT_FOUND = 1206
    DISK_FULL = 1207

    # External service errors (1400-1499)
    SERVICE_RELOAD_FAILED = 1402


class ConfigError(Exception):
    """Base exception for configuration management errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for structured output.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ValidationFailure(ConfigError):
    """User input rejected before it reaches a model."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        suggestion: Optional[str] = None
    ):
        """
        Initialize validation failure.

        Args:
            message: Error message
            field: Name of the field being edited
            value: Rejected value
            code: Specific validation error code
            suggestion: Suggested fix
        """
        context = {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)

        self.field = field
        super().__init__(
            code=code,
            message=message,
            suggestion=suggestion,
            context=context
        )


class IoFailure(ConfigError):
    """File system failure with the underlying OSError preserved."""

    def __init__(self, path: str, operation: str, cause: OSError):
        """
        Initialize I/O failure.

        Args:
            path: File the operation targeted
            operation: Operation that failed ("read", "write", "chmod", ...)
            cause: Original OSError
        """
        code, suggestion = _classify_os_error(cause, operation)
        self.path = path
        self.operation = operation
        self.cause = cause
        super().__init__(
            code=code,
            message=f"Failed to {operation} {path}: {cause.strerror or cause}",
            suggestion=suggestion,
            context={"path": path, "operation": operation, "errno": cause.errno}
        )


class BackupNotFound(ConfigError):
    """Snapshot no longer exists on disk."""

    def __init__(self, backup_path: str):
        """
        Initialize backup-not-found error.

        Args:
            backup_path: Path of the missing snapshot
        """
        self.backup_path = backup_path
        super().__init__(
            code=ErrorCode.BACKUP_NOT_FOUND,
            message=f"Backup not found: {backup_path}",
            suggestion="Refresh the backup list and pick an existing snapshot",
            context={"backup_path": backup_path}
        )


class ReloadError(ConfigError):
    """External service reload failure."""

    def __init__(self, service: str, reason: str):
        """
        Initialize reload error.

        Args:
            service: Service that failed to reload ("yabai" or "skhd")
            reason: Reason for failure
        """
        super().__init__(
            code=ErrorCode.SERVICE_RELOAD_FAILED,
            message=f"Failed to reload {service}: {reason}",
            suggestion=f"Check that {service} is installed and running",
            context={"service": service, "reason": reason}
        )


@dataclass
class ParseDegradation:
    """A directive or value that was skipped while parsing."""

    line_number: int
    line: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.reason} ({self.line})"


def _classify_os_error(error: OSError, operation: str):
    """Map an OSError to an error code and recovery suggestion."""
    if isinstance(error, FileNotFoundError):
        return ErrorCode.FILE_NOT_FOUND, "Check that the file and its directory exist"
    if isinstance(error, PermissionError):
        return ErrorCode.PERMISSION_DENIED, "Check file permissions"
    if isinstance(error, NotADirectoryError):
        return ErrorCode.DIRECTORY_NOT_FOUND, "Check the configured path"
    if error.errno == errno.ENOSPC:
        return ErrorCode.DISK_FULL, "Free up disk space and save again"
    if operation == "read":
        return ErrorCode.FILE_READ_ERROR, None
    return ErrorCode.FILE_WRITE_ERROR, None


def validation_failure_from(error) -> ValidationFailure:
    """
    Convert a pydantic ValidationError into a ValidationFailure.

    Args:
        error: pydantic.ValidationError raised by a model

    Returns:
        ValidationFailure describing the first error
    """
    details = error.errors()
    first = details[0] if details else {}
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", str(error))
    if field:
        message = f"Invalid {field}: {message}"
    return ValidationFailure(message, field=field, value=first.get("input"))
