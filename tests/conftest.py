"""
Pytest configuration and fixtures for Yabai Configuration Manager tests.
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from yabai_config_manager.config.backup_store import BackupStore
from yabai_config_manager.models import EditorSettings


SAMPLE_YABAIRC = """#!/usr/bin/env sh

# my yabai setup
yabai -m config layout bsp
yabai -m config window_gap 6
yabai -m config top_padding 10
yabai -m config auto_balance on
yabai -m config split_ratio 0.6
yabai -m config external_bar all:32:0
yabai -m config mouse_modifier fn
yabai -m config active_window_border_color 0xff00ff00

yabai -m space 1 --label "main"
yabai -m config --space 2 layout float
yabai -m config --space 2 window_gap 12

yabai -m rule --add app="^System Settings$" manage=off
yabai -m rule --add app="^Finder$" title="(Copy|Move|Trash)" manage=off layer=above
yabai -m rule --add app="^Slack$" space=3 sticky=on

yabai -m signal --add label="refresh" event=window_focused action="sketchybar --trigger window_focus"
yabai -m signal --add event=space_changed action='echo "space changed"'

echo "yabai configuration loaded..."
"""

SAMPLE_SKHDRC = """# my skhd setup

# === Focus ===
# Focus left
alt - h : yabai -m window --focus west
alt - l : yabai -m window --focus east

# === Move ===
shift + alt - h : yabai -m window --swap west

# === Custom ===
# launch terminal
cmd - return : open -na Terminal
# [DISABLED] alt - f : yabai -m window --toggle zoom-fullscreen
"""


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = datetime(2026, 3, 14, 9, 30, 0)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def sample_yabairc() -> str:
    return SAMPLE_YABAIRC


@pytest.fixture
def sample_skhdrc() -> str:
    return SAMPLE_SKHDRC


@pytest.fixture
def yabai_path(tmp_path) -> Path:
    return tmp_path / ".yabairc"


@pytest.fixture
def skhd_path(tmp_path) -> Path:
    return tmp_path / ".skhdrc"


@pytest.fixture
def settings(yabai_path, skhd_path) -> EditorSettings:
    """Settings pointing at temp files with a short debounce and no daemon reload."""
    return EditorSettings(
        yabai_config_path=str(yabai_path),
        skhd_config_path=str(skhd_path),
        auto_save_delay_ms=100,
        auto_apply=False,
        watch_external_changes=False,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backup_store(settings, fake_clock) -> BackupStore:
    return BackupStore(settings, clock=fake_clock)
