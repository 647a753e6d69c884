"""
Yabai Configuration Manager

Configuration synchronization engine for the yabai window manager and the
skhd hotkey daemon. Parses .yabairc/.skhdrc into structured models, writes
them back with debounced auto-save, and keeps timestamped backups.
"""

__version__ = "1.0.0"
__author__ = "Yabai Config Team"
