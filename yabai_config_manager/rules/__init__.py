"""
Editing layer for yabai and skhd configuration.

Modules:
- option_manager: Validated edits of scalar yabai settings
- rule_manager: Window rules, exclusions, and signals
- shortcut_manager: skhd shortcuts, conflicts, and presets
"""

from .option_manager import OptionManager
from .rule_manager import RuleManager
from .shortcut_manager import ShortcutManager

__all__ = [
    "OptionManager",
    "RuleManager",
    "ShortcutManager",
]
