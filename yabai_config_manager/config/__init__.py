"""
Configuration subsystem for yabai configuration management.

Modules:
- scanner: Line classification and directive matching
- yabai_codec: Parse and serialize .yabairc
- skhd_codec: Parse and serialize .skhdrc
- validator: Validate user input and hand-edited config text
- writer: Atomic file writes and executable bits
- backup_store: Timestamped snapshots with retention
- diff_engine: Line comparison of snapshots and live files
- autosave: Debounced commit of model changes
- reload_manager: Reload the yabai and skhd daemons
- file_watcher: Monitor configuration files for external changes
- settings: Editor settings persistence
"""

from .scanner import ConfigTextScanner
from .yabai_codec import YabaiConfigCodec
from .skhd_codec import SkhdConfigCodec
from .validator import ConfigValidator
from .backup_store import BackupStore
from .diff_engine import DiffEngine
from .autosave import AutoSaveController
from .reload_manager import ServiceReloader
from .file_watcher import FileWatcher
from .settings import SettingsStore

__all__ = [
    "ConfigTextScanner",
    "YabaiConfigCodec",
    "SkhdConfigCodec",
    "ConfigValidator",
    "BackupStore",
    "DiffEngine",
    "AutoSaveController",
    "ServiceReloader",
    "FileWatcher",
    "SettingsStore",
]
