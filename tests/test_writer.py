"""
Atomic writer tests.

Tests cover:
- Atomic replacement without leftover temp files
- Permission bit preservation and chmod +x
- Error classification for missing directories and failed renames
- Symlinked targets and byte-exact copies
"""

import os
import stat

import pytest

from yabai_config_manager.config.writer import (
    TEMP_PREFIX,
    TEMP_SUFFIX,
    copy_config_file,
    is_temp_file,
    make_executable,
    read_config_bytes,
    read_config_file,
    write_config_bytes,
    write_config_file,
)
from yabai_config_manager.errors import ErrorCode, IoFailure


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


class TestWrite:
    """Test atomic writes."""

    def test_creates_new_file(self, tmp_path):
        target = tmp_path / ".skhdrc"

        write_config_file(target, "alt - h : echo hi\n")

        assert target.read_text() == "alt - h : echo hi\n"
        assert _mode(target) == 0o644

    def test_replaces_content_without_temp_files(self, tmp_path):
        target = tmp_path / ".yabairc"
        target.write_text("old\n")

        write_config_file(target, "new\n")

        assert target.read_text() == "new\n"
        assert [p.name for p in tmp_path.iterdir()] == [".yabairc"]

    def test_preserves_mode(self, tmp_path):
        target = tmp_path / ".yabairc"
        target.write_text("old\n")
        os.chmod(target, 0o750)

        write_config_file(target, "new\n")

        assert _mode(target) == 0o750

    def test_missing_directory(self, tmp_path):
        target = tmp_path / "missing" / ".yabairc"

        with pytest.raises(IoFailure) as exc_info:
            write_config_file(target, "content")

        assert exc_info.value.code == ErrorCode.FILE_NOT_FOUND
        assert exc_info.value.operation == "write"
        assert exc_info.value.path == str(target)

    def test_failed_rename_keeps_original(self, tmp_path, monkeypatch):
        """A failed rename leaves the live file intact and removes the temp file."""
        target = tmp_path / ".yabairc"
        target.write_text("original\n")

        def fail_rename(src, dst):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("yabai_config_manager.config.writer.os.rename", fail_rename)

        with pytest.raises(IoFailure) as exc_info:
            write_config_file(target, "replacement\n")

        assert exc_info.value.code == ErrorCode.PERMISSION_DENIED
        assert target.read_text() == "original\n"
        assert not any(is_temp_file(p) for p in tmp_path.iterdir())


class TestRead:
    """Test reads."""

    def test_reads_content(self, tmp_path):
        target = tmp_path / ".skhdrc"
        target.write_text("cmd - return : open -na Terminal\n")

        assert read_config_file(target) == "cmd - return : open -na Terminal\n"

    def test_missing_file(self, tmp_path):
        with pytest.raises(IoFailure) as exc_info:
            read_config_file(tmp_path / "nope")

        assert exc_info.value.code == ErrorCode.FILE_NOT_FOUND
        assert exc_info.value.operation == "read"
        assert "suggestion" in exc_info.value.to_dict()


class TestHelpers:
    """Test chmod and temp file helpers."""

    def test_make_executable(self, tmp_path):
        target = tmp_path / ".yabairc"
        target.write_text("#!/usr/bin/env sh\n")
        os.chmod(target, 0o644)

        make_executable(target)

        assert _mode(target) == 0o755

    def test_make_executable_missing_file(self, tmp_path):
        with pytest.raises(IoFailure) as exc_info:
            make_executable(tmp_path / "nope")

        assert exc_info.value.operation == "chmod"

    def test_is_temp_file(self, tmp_path):
        assert is_temp_file(tmp_path / f"{TEMP_PREFIX}abc123{TEMP_SUFFIX}")
        assert not is_temp_file(tmp_path / ".yabairc")
        assert not is_temp_file(tmp_path / f"{TEMP_PREFIX}abc123")


class TestSymlinks:
    """Writes go through symlinked dotfiles to their targets."""

    def test_write_keeps_symlink(self, tmp_path):
        real = tmp_path / "dotfiles" / "yabairc"
        real.parent.mkdir()
        real.write_text("old\n")
        os.chmod(real, 0o755)
        link = tmp_path / ".yabairc"
        link.symlink_to(real)

        write_config_file(link, "new\n")

        assert link.is_symlink()
        assert real.read_text() == "new\n"
        assert _mode(real) == 0o755
        assert not any(is_temp_file(p) for p in tmp_path.iterdir())
        assert not any(is_temp_file(p) for p in real.parent.iterdir())

    def test_copy_into_symlink(self, tmp_path):
        real = tmp_path / "dotfiles" / "skhdrc"
        real.parent.mkdir()
        real.write_text("old\n")
        link = tmp_path / ".skhdrc"
        link.symlink_to(real)
        source = tmp_path / "snapshot"
        source.write_bytes(b"alt - h : echo hi\r\n")

        copy_config_file(source, link)

        assert link.is_symlink()
        assert real.read_bytes() == b"alt - h : echo hi\r\n"


class TestEncoding:
    """Non-UTF-8 bytes never stop a read, and copies are exact."""

    def test_read_replaces_invalid_bytes(self, tmp_path):
        target = tmp_path / ".yabairc"
        target.write_bytes(b"# caf\xe9\nyabai -m config window_gap 9\n")

        text = read_config_file(target)

        assert text.splitlines() == ["# caf\ufffd", "yabai -m config window_gap 9"]

    def test_copy_is_byte_exact(self, tmp_path):
        source = tmp_path / ".yabairc"
        data = b"# caf\xe9\r\nyabai -m config window_gap 6\r\n"
        source.write_bytes(data)
        target = tmp_path / "copy"

        copy_config_file(source, target)

        assert target.read_bytes() == data
        assert read_config_bytes(target) == data

    def test_copy_missing_source(self, tmp_path):
        with pytest.raises(IoFailure) as exc_info:
            copy_config_file(tmp_path / "nope", tmp_path / "copy")

        assert exc_info.value.code == ErrorCode.FILE_NOT_FOUND
        assert not (tmp_path / "copy").exists()

    def test_write_bytes(self, tmp_path):
        target = tmp_path / ".skhdrc"

        write_config_bytes(target, b"cmd - return : open -na Terminal\r\n")

        assert target.read_bytes() == b"cmd - return : open -na Terminal\r\n"
