"""
Atomic reads and writes of tracked configuration files.

Writes go to a temp file in the target directory and are renamed into place,
so a failed write never leaves a truncated live file behind. Symlinked
targets are resolved first, so the link survives and its target is updated.
"""

import errno
import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import IoFailure

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".yabai-config-"
TEMP_SUFFIX = ".tmp"

_EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def resolve_target(path: Path) -> Path:
    """Follow symlinks to the file that actually holds the content."""
    return Path(os.path.realpath(path))


def read_config_file(path: Path) -> str:
    """
    Read a tracked file.

    Bytes that are not valid UTF-8 are replaced with U+FFFD so a stray
    latin-1 byte in a hand-edited comment never stops a load.

    Args:
        path: File to read

    Returns:
        File content

    Raises:
        IoFailure: If the file is missing or unreadable
    """
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise IoFailure(str(path), "read", e) from e


def read_config_bytes(path: Path) -> bytes:
    """
    Read a file's raw bytes.

    Raises:
        IoFailure: If the file is missing or unreadable
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise IoFailure(str(path), "read", e) from e


def write_config_file(path: Path, content: str) -> None:
    """
    Atomically replace a file's content, keeping its permission bits.

    Args:
        path: Target file (its directory must exist)
        content: New content

    Raises:
        IoFailure: If the temp file cannot be written or renamed
    """
    try:
        data = content.encode("utf-8")
    except UnicodeError as e:
        raise IoFailure(str(path), "write", OSError(errno.EILSEQ, str(e))) from e
    write_config_bytes(path, data)


def write_config_bytes(path: Path, data: bytes) -> None:
    """
    Atomically replace a file with raw bytes, keeping its permission bits.

    Args:
        path: Target file or a symlink to it (its directory must exist)
        data: New content

    Raises:
        IoFailure: If the temp file cannot be written or renamed
    """
    path = Path(path)
    target = resolve_target(path)
    mode = _current_mode(path, target)
    if mode is None:
        mode = 0o644
    temp_path = _make_temp(path, target)

    try:
        with open(temp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())  # Ensure data is written to disk

        os.chmod(temp_path, mode)

        # Atomic rename
        os.rename(temp_path, target)
        logger.debug(f"Wrote {len(data)} bytes to {target}")

    except OSError as e:
        _discard(temp_path)
        raise IoFailure(str(path), "write", e) from e


def copy_config_file(source: Path, target: Path) -> None:
    """
    Atomically replace target with a byte-for-byte copy of source.

    Content, line endings, and encoding are preserved exactly; the copy
    carries the source's permission bits and timestamps.

    Args:
        source: File to copy
        target: Destination file (its directory must exist)

    Raises:
        IoFailure: If the source is unreadable or the copy cannot be placed
    """
    source = Path(source)
    target = Path(target)
    if not source.is_file():
        raise IoFailure(
            str(source), "read",
            FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(source))
        )

    resolved = resolve_target(target)
    temp_path = _make_temp(target, resolved)

    try:
        shutil.copy2(source, temp_path)
        os.rename(temp_path, resolved)
        logger.debug(f"Copied {source} to {resolved}")

    except OSError as e:
        _discard(temp_path)
        raise IoFailure(str(target), "write", e) from e


def make_executable(path: Path) -> None:
    """
    Add execute permission (chmod +x) to a file.

    Raises:
        IoFailure: If the mode cannot be changed
    """
    path = Path(path)
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
        if mode & _EXECUTE_BITS != _EXECUTE_BITS:
            os.chmod(path, mode | _EXECUTE_BITS)
    except OSError as e:
        raise IoFailure(str(path), "chmod", e) from e


def is_temp_file(path: Path) -> bool:
    """Check if a path is a writer temp file."""
    name = Path(path).name
    return name.startswith(TEMP_PREFIX) and name.endswith(TEMP_SUFFIX)


def _current_mode(path: Path, target: Path) -> Optional[int]:
    """Permission bits of an existing target, or None for a new file."""
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        return None
    except OSError as e:
        raise IoFailure(str(path), "write", e) from e


def _make_temp(path: Path, target: Path) -> str:
    try:
        fd, temp_path = tempfile.mkstemp(dir=target.parent, prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX)
    except OSError as e:
        raise IoFailure(str(path), "write", e) from e
    os.close(fd)
    return temp_path


def _discard(temp_path: str):
    # Clean up temp file on error
    if Path(temp_path).exists():
        os.unlink(temp_path)
