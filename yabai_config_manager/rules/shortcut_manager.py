"""
Shortcut manager for skhd.

Edits the bindings of a SkhdConfig, reports chord conflicts, and installs
preset binding sets.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..errors import ConfigError, ErrorCode, validation_failure_from
from ..models import CATEGORY_ORDER, Shortcut, ShortcutCategory, SkhdConfig
from ..config.skhd_codec import infer_category
from ..config.validator import ConfigValidator
from .rule_manager import next_id

logger = logging.getLogger(__name__)

# (modifiers, key, action, description)
PresetBinding = Tuple[Sequence[str], str, str, str]

_DIRECTIONS = [("west", "h", "left"), ("south", "j", "down"), ("north", "k", "up"), ("east", "l", "right")]


def _directional(vim: bool) -> List[PresetBinding]:
    bindings: List[PresetBinding] = []
    for direction, vim_key, arrow_key in _DIRECTIONS:
        key = vim_key if vim else arrow_key
        bindings.append((["alt"], key, f"yabai -m window --focus {direction}", f"Focus window {direction}"))
        bindings.append((["alt", "shift"], key, f"yabai -m window --swap {direction}", f"Swap window {direction}"))
        bindings.append((["ctrl", "alt"], key, f"yabai -m window --warp {direction}", f"Warp window {direction}"))
    return bindings


def _spaces(count: int = 9) -> List[PresetBinding]:
    bindings: List[PresetBinding] = []
    for index in range(1, count + 1):
        bindings.append((["alt"], str(index), f"yabai -m space --focus {index}", f"Focus space {index}"))
        bindings.append((["alt", "shift"], str(index), f"yabai -m window --space {index}", f"Send window to space {index}"))
    return bindings


_LAYOUT: List[PresetBinding] = [
    (["alt", "shift"], "space", "yabai -m window --toggle float", "Toggle float"),
    (["alt"], "f", "yabai -m window --toggle zoom-fullscreen", "Toggle fullscreen"),
    (["alt", "shift"], "0", "yabai -m space --balance", "Balance windows"),
    (["alt"], "r", "yabai -m space --rotate 90", "Rotate layout"),
]

_RESIZE_VIM: List[PresetBinding] = [
    (["alt", "cmd"], "h", "yabai -m window --resize left:-50:0", "Grow left"),
    (["alt", "cmd"], "j", "yabai -m window --resize bottom:0:50", "Grow down"),
    (["alt", "cmd"], "k", "yabai -m window --resize top:0:-50", "Grow up"),
    (["alt", "cmd"], "l", "yabai -m window --resize right:50:0", "Grow right"),
]

PRESETS: Dict[str, List[PresetBinding]] = {
    "vim": _directional(vim=True) + _RESIZE_VIM + _spaces() + _LAYOUT,
    "arrows": _directional(vim=False) + _spaces() + _LAYOUT,
    "minimal": [
        (["alt"], "h", "yabai -m window --focus west", "Focus window west"),
        (["alt"], "j", "yabai -m window --focus south", "Focus window south"),
        (["alt"], "k", "yabai -m window --focus north", "Focus window north"),
        (["alt"], "l", "yabai -m window --focus east", "Focus window east"),
        (["alt", "shift"], "space", "yabai -m window --toggle float", "Toggle float"),
    ],
}


class ShortcutManager:
    """Manages skhd shortcuts."""

    def __init__(
        self,
        config: SkhdConfig,
        on_change: Optional[Callable[[], None]] = None,
        validator: Optional[ConfigValidator] = None
    ):
        """
        Initialize shortcut manager.

        Args:
            config: Configuration to edit (replaceable via the config attribute)
            on_change: Called after every successful mutation
            validator: Input validator (created if None)
        """
        self.config = config
        self.on_change = on_change
        self.validator = validator or ConfigValidator()

    def _changed(self):
        if self.on_change:
            self.on_change()

    @property
    def shortcuts(self) -> List[Shortcut]:
        return self.config.shortcuts

    def get_shortcut(self, shortcut_id: str) -> Optional[Shortcut]:
        return self.config.get_shortcut(shortcut_id)

    def _require_shortcut(self, shortcut_id: str) -> Shortcut:
        shortcut = self.get_shortcut(shortcut_id)
        if shortcut is None:
            raise ConfigError(
                code=ErrorCode.SHORTCUT_NOT_FOUND,
                message=f"Shortcut not found: {shortcut_id}",
                context={"shortcut_id": shortcut_id}
            )
        return shortcut

    def add_shortcut(
        self,
        modifiers: Sequence[str],
        key: str,
        action: str,
        description: Optional[str] = None,
        category: Optional[ShortcutCategory] = None
    ) -> Shortcut:
        """
        Append a shortcut.

        Conflicting chords are allowed; use find_conflicts to report them.

        Args:
            modifiers: Modifier tokens (alt, shift, ...)
            key: Key token
            action: Command to run
            description: Optional free text, written as a comment above the binding
            category: Section heading (inferred from the action if None)

        Returns:
            The new shortcut

        Raises:
            ValidationFailure: If a modifier, the key, or the action is invalid
        """
        modifiers = self.validator.validate_modifiers(modifiers)
        key = self.validator.validate_key(key)

        try:
            shortcut = Shortcut(
                id=next_id("shortcut", [s.id for s in self.shortcuts]),
                modifiers=modifiers,
                key=key,
                action=action,
                description=description,
                category=category or infer_category(action),
            )
        except ValidationError as e:
            raise validation_failure_from(e) from e

        self.shortcuts.append(shortcut)
        logger.info(f"Added shortcut {shortcut.id}: {shortcut.chord} -> {shortcut.action}")
        self._changed()
        return shortcut

    def add_from_hotkey(self, hotkey: str, action: str, description: Optional[str] = None) -> Shortcut:
        """Add a shortcut from a chord string such as "alt + shift - h"."""
        modifiers, key = self.validator.validate_hotkey(hotkey)
        return self.add_shortcut(modifiers, key, action, description=description)

    def update_shortcut(self, shortcut_id: str, **changes) -> Shortcut:
        """
        Update fields of a shortcut.

        Changing the action re-infers the category unless one is given.

        Raises:
            ConfigError: If the shortcut does not exist
            ValidationFailure: If a new value is invalid
        """
        shortcut = self._require_shortcut(shortcut_id)
        changes.pop("id", None)
        if "modifiers" in changes:
            changes["modifiers"] = self.validator.validate_modifiers(changes["modifiers"])
        if "key" in changes:
            changes["key"] = self.validator.validate_key(changes["key"])
        if "action" in changes and "category" not in changes:
            changes["category"] = infer_category(changes["action"] or "")

        try:
            updated = Shortcut.model_validate({**shortcut.model_dump(), **changes})
        except ValidationError as e:
            raise validation_failure_from(e) from e

        self.shortcuts[self.shortcuts.index(shortcut)] = updated
        logger.info(f"Updated shortcut {shortcut_id}")
        self._changed()
        return updated

    def delete_shortcut(self, shortcut_id: str) -> bool:
        shortcut = self.get_shortcut(shortcut_id)
        if shortcut is None:
            return False
        self.shortcuts.remove(shortcut)
        logger.info(f"Deleted shortcut {shortcut_id}")
        self._changed()
        return True

    def toggle_shortcut(self, shortcut_id: str) -> bool:
        """
        Flip a shortcut's enabled flag.

        Returns:
            The shortcut's enabled state afterwards
        """
        shortcut = self._require_shortcut(shortcut_id)
        shortcut.enabled = not shortcut.enabled
        logger.info(f"Shortcut {shortcut_id} {'enabled' if shortcut.enabled else 'disabled'}")
        self._changed()
        return shortcut.enabled

    def find_conflicts(self) -> List[List[Shortcut]]:
        return self.config.find_conflicts()

    def shortcuts_by_category(self) -> Dict[ShortcutCategory, List[Shortcut]]:
        """Shortcuts grouped by category in display order (empty groups omitted)."""
        grouped: Dict[ShortcutCategory, List[Shortcut]] = {}
        for category in CATEGORY_ORDER:
            members = [s for s in self.shortcuts if s.category == category]
            if members:
                grouped[category] = members
        return grouped

    @staticmethod
    def list_presets() -> List[str]:
        return sorted(PRESETS)

    def apply_preset(self, name: str, replace: bool = False) -> List[Shortcut]:
        """
        Install a preset binding set.

        Args:
            name: Preset name (see list_presets)
            replace: Remove all existing shortcuts first

        Returns:
            Shortcuts that were added; chords already bound are skipped

        Raises:
            ConfigError: If the preset does not exist
        """
        bindings = PRESETS.get(name)
        if bindings is None:
            raise ConfigError(
                code=ErrorCode.PRESET_NOT_FOUND,
                message=f"Unknown preset: {name}",
                suggestion=f"Available presets: {', '.join(self.list_presets())}"
            )

        if replace:
            self.config.shortcuts = []

        bound = {s.hotkey for s in self.shortcuts if s.enabled}
        added: List[Shortcut] = []
        for modifiers, key, action, description in bindings:
            shortcut = Shortcut(
                id=next_id("shortcut", [s.id for s in self.shortcuts]),
                modifiers=list(modifiers),
                key=key,
                action=action,
                description=description,
                category=infer_category(action),
            )
            if shortcut.hotkey in bound:
                logger.debug(f"Preset {name}: {shortcut.chord} already bound, skipping")
                continue
            self.shortcuts.append(shortcut)
            bound.add(shortcut.hotkey)
            added.append(shortcut)

        logger.info(f"Applied preset {name}: {len(added)} shortcuts added")
        if added or replace:
            self._changed()
        return added
