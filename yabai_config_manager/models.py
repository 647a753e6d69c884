"""
Pydantic data models for yabai and skhd configuration management.

Defines the structured view of .yabairc and .skhdrc, backup metadata, diff
results, and editor settings. All models validate on assignment so a bad
edit is rejected before it reaches the configuration.
"""

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# The editor's own process; its window must never be tiled
PROTECTED_APP_NAME = "yabai_config"
PROTECTED_RULE_ID = "system_yabai_config"

HEX_COLOR_PATTERN = re.compile(r'^0x[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$')

VALID_MODIFIERS = frozenset([
    "alt", "lalt", "ralt",
    "shift", "lshift", "rshift",
    "cmd", "lcmd", "rcmd",
    "ctrl", "lctrl", "rctrl",
    "fn", "hyper", "meh",
])

SPECIAL_KEYS = frozenset([
    "space", "tab", "return", "escape", "delete", "forwarddelete",
    "home", "end", "pageup", "pagedown", "left", "right", "up", "down",
    "caps_lock", "help", "insert", "backspace",
])

_KEY_PATTERNS = [
    re.compile(r'^[a-z0-9]$'),
    re.compile(r'^f([1-9]|1[0-9]|20)$'),
    re.compile(r'^kp_?\w+$'),
    re.compile(r'^0x[0-9a-f]{1,2}$'),
]


def is_valid_modifier(token: str) -> bool:
    """Check if token belongs to the skhd modifier vocabulary."""
    return token.strip().lower() in VALID_MODIFIERS


def is_valid_key(token: str) -> bool:
    """Check if token is a letter, digit, function, keypad, or named special key."""
    normalized = token.strip().lower()
    if normalized in SPECIAL_KEYS:
        return True
    return any(pattern.match(normalized) for pattern in _KEY_PATTERNS)


def _check_single_line(value: Optional[str], quoted: bool = False) -> Optional[str]:
    """Reject values that cannot be written back on one directive line."""
    if value is None:
        return None
    if "\n" in value or "\r" in value:
        raise ValueError("Value must fit on a single line")
    if quoted and '"' in value and "'" in value:
        raise ValueError("Value cannot contain both single and double quotes")
    return value


def _check_regex(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    _check_single_line(value, quoted=True)
    try:
        re.compile(value)
    except re.error as e:
        raise ValueError(f"Invalid regex pattern: {e}")
    return value


# Enumerations

class Layout(str, Enum):
    """Space tiling layout."""
    BSP = "bsp"
    FLOAT = "float"
    STACK = "stack"


class WindowPlacement(str, Enum):
    """Where new windows are inserted in the bsp tree."""
    FIRST_CHILD = "first_child"
    SECOND_CHILD = "second_child"


class SplitType(str, Enum):
    """Split orientation for new windows."""
    AUTO = "auto"
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class FocusFollowsMouse(str, Enum):
    """Focus-follows-mouse mode."""
    OFF = "off"
    AUTORAISE = "autoraise"
    AUTOFOCUS = "autofocus"


class MouseModifier(str, Enum):
    """Modifier held for mouse actions."""
    ALT = "alt"
    CMD = "cmd"
    CTRL = "ctrl"
    SHIFT = "shift"
    FN = "fn"


class MouseAction(str, Enum):
    """Action bound to a mouse button."""
    MOVE = "move"
    RESIZE = "resize"


class MouseDropAction(str, Enum):
    """Action performed when a window is dropped onto another."""
    SWAP = "swap"
    STACK = "stack"


class WindowShadow(str, Enum):
    """Window shadow mode."""
    ON = "on"
    OFF = "off"
    FLOAT = "float"


class RuleLayer(str, Enum):
    """Window layer assigned by a rule."""
    ABOVE = "above"
    NORMAL = "normal"
    BELOW = "below"


class ExternalBarMode(str, Enum):
    """Displays on which the external bar padding applies."""
    MAIN = "main"
    ALL = "all"


class SignalEvent(str, Enum):
    """Events a yabai signal can subscribe to."""
    APPLICATION_LAUNCHED = "application_launched"
    APPLICATION_TERMINATED = "application_terminated"
    APPLICATION_FRONT_SWITCHED = "application_front_switched"
    APPLICATION_ACTIVATED = "application_activated"
    APPLICATION_DEACTIVATED = "application_deactivated"
    APPLICATION_VISIBLE = "application_visible"
    APPLICATION_HIDDEN = "application_hidden"
    WINDOW_CREATED = "window_created"
    WINDOW_DESTROYED = "window_destroyed"
    WINDOW_FOCUSED = "window_focused"
    WINDOW_MOVED = "window_moved"
    WINDOW_RESIZED = "window_resized"
    WINDOW_MINIMIZED = "window_minimized"
    WINDOW_DEMINIMIZED = "window_deminimized"
    WINDOW_TITLE_CHANGED = "window_title_changed"
    SPACE_CREATED = "space_created"
    SPACE_DESTROYED = "space_destroyed"
    SPACE_CHANGED = "space_changed"
    DISPLAY_ADDED = "display_added"
    DISPLAY_REMOVED = "display_removed"
    DISPLAY_MOVED = "display_moved"
    DISPLAY_RESIZED = "display_resized"
    DISPLAY_CHANGED = "display_changed"
    MISSION_CONTROL_ENTER = "mission_control_enter"
    MISSION_CONTROL_EXIT = "mission_control_exit"
    DOCK_DID_RESTART = "dock_did_restart"
    MENU_BAR_HIDDEN_CHANGED = "menu_bar_hidden_changed"
    SYSTEM_WOKE = "system_woke"

    @property
    def display_name(self) -> str:
        """Title-cased event name (e.g. "Window Focused")."""
        return " ".join(word.capitalize() for word in self.value.split("_"))


class ShortcutCategory(str, Enum):
    """Grouping used for skhd section headings."""
    FOCUS = "focus"
    MOVE = "move"
    RESIZE = "resize"
    LAYOUT = "layout"
    SPACES = "spaces"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


# Serialization order of skhd sections
CATEGORY_ORDER = [
    ShortcutCategory.FOCUS,
    ShortcutCategory.MOVE,
    ShortcutCategory.RESIZE,
    ShortcutCategory.LAYOUT,
    ShortcutCategory.SPACES,
    ShortcutCategory.CUSTOM,
]


# yabai configuration

class ExternalBar(BaseModel):
    """Screen padding reserved for a status bar, encoded as mode:top:bottom."""

    mode: ExternalBarMode = Field(ExternalBarMode.ALL, description="Displays the padding applies to")
    top: int = Field(0, ge=0, le=500, description="Top padding in pixels")
    bottom: int = Field(0, ge=0, le=500, description="Bottom padding in pixels")

    @classmethod
    def from_directive(cls, value: str) -> "ExternalBar":
        """Parse a mode:top:bottom directive value."""
        parts = value.strip().split(":")
        if len(parts) != 3:
            raise ValueError(f"External bar must be mode:top:bottom, got {value!r}")
        mode, top, bottom = parts
        return cls(mode=mode, top=int(top), bottom=int(bottom))

    def to_directive(self) -> str:
        return f"{self.mode.value}:{self.top}:{self.bottom}"


class WindowRule(BaseModel):
    """A `yabai -m rule --add` directive."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Stable rule identifier")
    app: Optional[str] = Field(None, description="Application name pattern (anchors stripped)")
    title: Optional[str] = Field(None, description="Window title regex")
    manage: bool = Field(True, description="Whether yabai tiles matching windows")
    sticky: Optional[bool] = Field(None, description="Show on all spaces")
    layer: Optional[RuleLayer] = Field(None, description="Window layer")
    space: Optional[int] = Field(None, ge=1, description="Space index to send windows to")
    enabled: bool = Field(True, description="Disabled rules are not written to .yabairc")

    @field_validator('app', 'title')
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Validate app and title are compilable regex patterns."""
        return _check_regex(v)

    @model_validator(mode='after')
    def validate_has_selector(self):
        """A rule must match on app or title."""
        if not self.app and not self.title:
            raise ValueError("Rule requires an app or title pattern")
        return self

    @property
    def is_protected(self) -> bool:
        return self.id == PROTECTED_RULE_ID


class Signal(BaseModel):
    """A `yabai -m signal --add` directive."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Stable signal identifier")
    event: SignalEvent = Field(..., description="Event that triggers the action")
    action: str = Field(..., description="Shell command to run")
    label: Optional[str] = Field(None, description="Optional signal label")
    enabled: bool = Field(True, description="Disabled signals are not written to .yabairc")

    @field_validator('action')
    @classmethod
    def validate_action(cls, v: str) -> str:
        """Validate action is not empty."""
        if not v.strip():
            raise ValueError("Signal action cannot be empty")
        return _check_single_line(v.strip(), quoted=True)

    @field_validator('label')
    @classmethod
    def validate_label(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _check_single_line(v.strip(), quoted=True)


class SpaceConfig(BaseModel):
    """Per-space overrides written as `yabai -m space N --label` and `yabai -m config --space N` directives."""

    model_config = ConfigDict(validate_assignment=True)

    index: int = Field(..., ge=1, description="1-based macOS space index")
    label: Optional[str] = Field(None, description="Space label")
    layout: Optional[Layout] = Field(None, description="Layout override")
    gap: Optional[int] = Field(None, ge=0, le=100, description="window_gap override")

    @field_validator('label')
    @classmethod
    def validate_label(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _check_single_line(v.strip(), quoted=True)

    @property
    def has_customization(self) -> bool:
        return self.label is not None or self.layout is not None or self.gap is not None

    @property
    def display_name(self) -> str:
        return self.label or f"Space {self.index}"


def protected_rule() -> WindowRule:
    """Rule that keeps the editor's own window out of tiling."""
    return WindowRule(id=PROTECTED_RULE_ID, app=PROTECTED_APP_NAME, manage=False)


class YabaiConfig(BaseModel):
    """
    Structured view of .yabairc.

    Scalar settings mirror `yabai -m config <key> <value>` directives; rules and
    signals keep file order. Per-space overrides are kept ordered by index.
    """

    model_config = ConfigDict(validate_assignment=True)

    # Layout
    layout: Layout = Layout.BSP
    window_placement: WindowPlacement = WindowPlacement.SECOND_CHILD
    auto_balance: bool = False
    split_ratio: float = Field(0.5, ge=0.0, le=1.0)
    split_type: SplitType = SplitType.AUTO

    # Gaps and padding
    window_gap: int = Field(6, ge=0, le=100)
    top_padding: int = Field(6, ge=0, le=100)
    bottom_padding: int = Field(6, ge=0, le=100)
    left_padding: int = Field(6, ge=0, le=100)
    right_padding: int = Field(6, ge=0, le=100)
    external_bar: Optional[ExternalBar] = None

    # Mouse
    mouse_follows_focus: bool = False
    focus_follows_mouse: FocusFollowsMouse = FocusFollowsMouse.OFF
    mouse_modifier: MouseModifier = MouseModifier.ALT
    mouse_action1: MouseAction = MouseAction.MOVE
    mouse_action2: MouseAction = MouseAction.RESIZE
    mouse_drop_action: MouseDropAction = MouseDropAction.SWAP

    # Appearance
    window_opacity: bool = False
    active_window_opacity: float = Field(1.0, ge=0.0, le=1.0)
    normal_window_opacity: float = Field(0.9, ge=0.0, le=1.0)
    window_shadow: WindowShadow = WindowShadow.ON
    window_animation_duration: float = Field(0.0, ge=0.0, le=10.0)

    # Borders
    window_border: bool = False
    window_border_width: int = Field(4, ge=1, le=20)
    active_window_border_color: str = "0xff775759"
    normal_window_border_color: str = "0xff555555"
    insert_feedback_color: str = "0xffd75f5f"

    rules: List[WindowRule] = Field(default_factory=list)
    signals: List[Signal] = Field(default_factory=list)
    spaces: List[SpaceConfig] = Field(default_factory=list)

    @field_validator('active_window_border_color', 'normal_window_border_color', 'insert_feedback_color')
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Validate 0xRRGGBB or 0xAARRGGBB colours."""
        v = v.strip()
        if not HEX_COLOR_PATTERN.match(v):
            raise ValueError(f"Invalid colour {v!r}, expected 0xAARRGGBB")
        return v

    @field_validator('external_bar', mode='before')
    @classmethod
    def parse_external_bar(cls, v: Any) -> Any:
        if isinstance(v, str):
            return ExternalBar.from_directive(v)
        return v

    @field_validator('spaces')
    @classmethod
    def validate_spaces(cls, v: List[SpaceConfig]) -> List[SpaceConfig]:
        """Keep one entry per space index, ordered by index."""
        indexes = [space.index for space in v]
        if len(set(indexes)) != len(indexes):
            raise ValueError(f"Duplicate space index in {sorted(indexes)}")
        return sorted(v, key=lambda space: space.index)

    @model_validator(mode='after')
    def ensure_protected_rule(self):
        """Keep exactly one enabled, unmanaged rule for the editor itself."""
        existing = [rule for rule in self.rules if rule.is_protected or rule.app == PROTECTED_APP_NAME]
        if not existing:
            self.rules.insert(0, protected_rule())
            return self

        keeper = existing[0]
        index = self.rules.index(keeper)
        if not (keeper.is_protected and keeper.enabled and not keeper.manage and keeper.app == PROTECTED_APP_NAME):
            self.rules[index] = keeper.model_copy(update={
                "id": PROTECTED_RULE_ID,
                "app": PROTECTED_APP_NAME,
                "manage": False,
                "enabled": True,
            })
        for duplicate in existing[1:]:
            self.rules.remove(duplicate)
        return self

    @classmethod
    def scalar_fields(cls) -> List[str]:
        """Names of every `yabai -m config` backed field, in declaration order."""
        return [name for name in cls.model_fields if name not in ("rules", "signals", "spaces")]

    def get_rule(self, rule_id: str) -> Optional[WindowRule]:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    def get_signal(self, signal_id: str) -> Optional[Signal]:
        return next((signal for signal in self.signals if signal.id == signal_id), None)

    def get_space(self, index: int) -> Optional[SpaceConfig]:
        return next((space for space in self.spaces if space.index == index), None)


# skhd configuration

class Shortcut(BaseModel):
    """A single skhd hotkey binding."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Stable shortcut identifier")
    modifiers: List[str] = Field(default_factory=list, description="Modifier tokens")
    key: str = Field(..., description="Key token")
    action: str = Field(..., description="Command executed by skhd")
    description: Optional[str] = Field(None, description="Free-text description")
    category: ShortcutCategory = Field(ShortcutCategory.CUSTOM, description="Section heading")
    enabled: bool = Field(True, description="Disabled shortcuts are written commented out")

    @field_validator('modifiers')
    @classmethod
    def validate_modifiers(cls, v: List[str]) -> List[str]:
        """Validate modifiers against the skhd vocabulary and reject duplicates."""
        normalized = [m.strip().lower() for m in v if m.strip()]
        for modifier in normalized:
            if modifier not in VALID_MODIFIERS:
                raise ValueError(f"Invalid modifier: {modifier}")
        if len(set(normalized)) != len(normalized):
            raise ValueError(f"Duplicate modifier in {normalized}")
        return normalized

    @field_validator('key')
    @classmethod
    def validate_key(cls, v: str) -> str:
        normalized = v.strip().lower()
        if not is_valid_key(normalized):
            raise ValueError(f"Invalid key: {v}")
        return normalized

    @field_validator('action')
    @classmethod
    def validate_action(cls, v: str) -> str:
        """Validate action is not empty."""
        if not v.strip():
            raise ValueError("Shortcut action cannot be empty")
        return _check_single_line(v.strip())

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _check_single_line(v.strip())

    @property
    def hotkey(self) -> str:
        """Canonical chord used for conflict detection (e.g. "alt+shift-h")."""
        if not self.modifiers:
            return self.key
        return f"{'+'.join(sorted(self.modifiers))}-{self.key}"

    @property
    def chord(self) -> str:
        """Chord as written to .skhdrc (e.g. "alt + shift - h")."""
        if not self.modifiers:
            return self.key
        return f"{' + '.join(self.modifiers)} - {self.key}"

    @property
    def is_yabai_shortcut(self) -> bool:
        return "yabai" in self.action


class SkhdConfig(BaseModel):
    """Structured view of .skhdrc."""

    shortcuts: List[Shortcut] = Field(default_factory=list)

    def get_shortcut(self, shortcut_id: str) -> Optional[Shortcut]:
        return next((s for s in self.shortcuts if s.id == shortcut_id), None)

    def find_conflicts(self) -> List[List[Shortcut]]:
        """
        Group enabled shortcuts bound to the same chord.

        Returns:
            Every group with more than one member, in first-seen order
        """
        groups: Dict[str, List[Shortcut]] = {}
        for shortcut in self.shortcuts:
            if shortcut.enabled:
                groups.setdefault(shortcut.hotkey, []).append(shortcut)
        return [group for group in groups.values() if len(group) > 1]


# Backups and diffs

class BackupInfo(BaseModel):
    """Metadata for one snapshot of a tracked file."""

    original_path: Path = Field(..., description="Live file the snapshot was taken from")
    backup_path: Path = Field(..., description="Snapshot location")
    created_at: datetime = Field(..., description="Snapshot time (second precision)")
    description: Optional[str] = Field(None, description="Note attached at creation")
    size_bytes: int = Field(0, ge=0, description="Snapshot size")

    @property
    def timestamp_string(self) -> str:
        return self.created_at.strftime("%Y-%m-%d %H:%M:%S")

    @property
    def size_string(self) -> str:
        """Human-readable size (B, KB, MB)."""
        if self.size_bytes < 1024:
            return f"{self.size_bytes} B"
        if self.size_bytes < 1024 * 1024:
            return f"{self.size_bytes / 1024:.1f} KB"
        return f"{self.size_bytes / (1024 * 1024):.1f} MB"

    def relative_time(self, now: Optional[datetime] = None) -> str:
        """
        Describe snapshot age relative to now (e.g. "2 hours ago").

        Args:
            now: Reference time (defaults to current time)
        """
        now = now or datetime.now()
        seconds = int((now - self.created_at).total_seconds())
        if seconds < 60:
            return "just now"

        for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
            if seconds >= size:
                count = seconds // size
                return f"{count} {unit}{'s' if count != 1 else ''} ago"
        return "just now"


class DiffLineKind(str, Enum):
    """Classification of a line in a diff."""
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class DiffLine(BaseModel):
    """One line of a diff."""

    content: str
    kind: DiffLineKind


class DiffResult(BaseModel):
    """Line-level comparison of an old (backup) text and a new (live) text."""

    identical: bool
    lines: List[DiffLine] = Field(default_factory=list)

    def _count(self, kind: DiffLineKind) -> int:
        return sum(1 for line in self.lines if line.kind == kind)

    @property
    def added_count(self) -> int:
        return self._count(DiffLineKind.ADDED)

    @property
    def removed_count(self) -> int:
        return self._count(DiffLineKind.REMOVED)

    @property
    def unchanged_count(self) -> int:
        return self._count(DiffLineKind.UNCHANGED)


class ValidationIssue(BaseModel):
    """Problem found while checking raw config text."""

    line_number: int = Field(..., ge=1, description="1-based line number")
    message: str = Field(..., description="What is wrong")
    line: str = Field("", description="Offending line")


# Editor settings

class EditorSettings(BaseModel):
    """User preferences shared by the auto-save controller and backup store."""

    model_config = ConfigDict(validate_assignment=True, extra='ignore')

    yabai_config_path: str = Field("", description="Custom .yabairc path (empty for ~/.yabairc)")
    skhd_config_path: str = Field("", description="Custom .skhdrc path (empty for ~/.skhdrc)")
    auto_save: bool = Field(True, description="Commit edits automatically after a delay")
    auto_save_delay_ms: int = Field(1500, ge=100, le=10000, description="Debounce delay")
    create_backup_on_save: bool = Field(True, description="Snapshot the live file before each write")
    auto_apply: bool = Field(True, description="Reload the daemon after each write")
    max_backups: int = Field(20, ge=1, le=100, description="Snapshots kept per file")
    watch_external_changes: bool = Field(True, description="Reload when files change on disk")

    @property
    def yabai_path(self) -> Path:
        if self.yabai_config_path:
            return Path(self.yabai_config_path).expanduser()
        return Path.home() / ".yabairc"

    @property
    def skhd_path(self) -> Path:
        if self.skhd_config_path:
            return Path(self.skhd_config_path).expanduser()
        return Path.home() / ".skhdrc"
