"""
Codec for .yabairc.

Parses `yabai -m config|rule|signal|space` directives into a YabaiConfig and writes
a canonical, executable shell script back. Parsing is deliberately lossy:
comments, ordering, and foreign commands are not preserved.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from ..errors import ParseDegradation
from ..models import (
    ExternalBar,
    Signal,
    SpaceConfig,
    WindowRule,
    YabaiConfig,
)
from .scanner import (
    CONFIG_DIRECTIVE,
    RULE_DIRECTIVE,
    SIGNAL_DIRECTIVE,
    SPACE_CONFIG_DIRECTIVE,
    SPACE_LABEL_DIRECTIVE,
    ConfigTextScanner,
    LineKind,
    coerce_value,
    quote,
    unquote,
)

logger = logging.getLogger(__name__)

SHEBANG = "#!/usr/bin/env sh"
FOOTER = 'echo "yabai configuration loaded..."'

# Section heading -> config keys, in serialization order
SECTIONS: List[Tuple[str, List[str]]] = [
    ("Layout", ["layout", "window_placement", "auto_balance", "split_ratio", "split_type"]),
    ("Gaps and Padding", ["window_gap", "top_padding", "bottom_padding", "left_padding", "right_padding"]),
    ("External Bar", ["external_bar"]),
    ("Mouse", [
        "mouse_follows_focus", "focus_follows_mouse", "mouse_modifier",
        "mouse_action1", "mouse_action2", "mouse_drop_action",
    ]),
    ("Window Appearance", [
        "window_opacity", "active_window_opacity", "normal_window_opacity",
        "window_shadow", "window_animation_duration",
    ]),
    ("Window Borders", [
        "window_border", "window_border_width", "active_window_border_color",
        "normal_window_border_color", "insert_feedback_color",
    ]),
]

CONFIG_KEYS = frozenset(key for _, keys in SECTIONS for key in keys)

# `yabai -m config --space N <key>` -> SpaceConfig field
SPACE_OPTIONS = {"layout": "layout", "window_gap": "gap"}


def format_value(value: Any) -> str:
    """Render a scalar the way yabai expects it on the command line."""
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ExternalBar):
        return value.to_directive()
    return str(value)


def strip_anchors(pattern: str) -> str:
    """Remove ^ and $ anchors from an app pattern."""
    if pattern.startswith("^"):
        pattern = pattern[1:]
    if pattern.endswith("$") and not pattern.endswith("\\$"):
        pattern = pattern[:-1]
    return pattern


class YabaiConfigCodec:
    """Parses and serializes .yabairc text."""

    def __init__(self, scanner: ConfigTextScanner = None):
        """
        Initialize codec.

        Args:
            scanner: Line scanner (created if None)
        """
        self.scanner = scanner or ConfigTextScanner()

    def parse(self, text: str) -> YabaiConfig:
        """Parse .yabairc text, degrading malformed directives to defaults."""
        config, _ = self.parse_with_issues(text)
        return config

    def parse_with_issues(self, text: str) -> Tuple[YabaiConfig, List[ParseDegradation]]:
        """
        Parse .yabairc text and report every skipped directive or value.

        Args:
            text: Raw file content

        Returns:
            Tuple of (YabaiConfig, degradations). Never raises on bad input.
        """
        config = YabaiConfig()
        rules: List[WindowRule] = []
        signals: List[Signal] = []
        spaces: Dict[int, SpaceConfig] = {}
        issues: List[ParseDegradation] = []

        for line in self.scanner.scan(text):
            if line.kind != LineKind.CONTENT:
                continue

            match = self.scanner.match_directive(line.text, SPACE_CONFIG_DIRECTIVE)
            if match:
                index, key, raw_value = match.groups()
                if key not in SPACE_OPTIONS:
                    issues.append(ParseDegradation(line.number, line.text, f"unknown space option {key}"))
                else:
                    self._apply_space_field(spaces, index, SPACE_OPTIONS[key], raw_value, line, issues)
                continue

            match = self.scanner.match_directive(line.text, SPACE_LABEL_DIRECTIVE)
            if match:
                self._apply_space_field(spaces, match.group(1), "label", match.group(2), line, issues)
                continue

            match = self.scanner.match_directive(line.text, CONFIG_DIRECTIVE)
            if match:
                self._apply_option(config, match.group(1), match.group(2), line, issues)
                continue

            match = self.scanner.match_directive(line.text, RULE_DIRECTIVE)
            if match:
                rule = self._parse_rule(match.group(1), f"rule_{len(rules) + 1}", line, issues)
                if rule:
                    rules.append(rule)
                continue

            match = self.scanner.match_directive(line.text, SIGNAL_DIRECTIVE)
            if match:
                signal = self._parse_signal(match.group(1), f"signal_{len(signals) + 1}", line, issues)
                if signal:
                    signals.append(signal)

        config.rules = rules
        config.signals = signals
        config.spaces = list(spaces.values())
        config.ensure_protected_rule()

        for issue in issues:
            logger.debug(f"Skipped yabai directive at {issue}")
        logger.info(f"Parsed yabai config: {len(rules)} rules, {len(signals)} signals, "
                    f"{len(spaces)} spaces, {len(issues)} skipped")

        return config, issues

    def _apply_option(self, config: YabaiConfig, key: str, raw_value: str, line, issues: List[ParseDegradation]):
        """Assign a config directive value, keeping the default if it does not validate."""
        if key not in CONFIG_KEYS:
            issues.append(ParseDegradation(line.number, line.text, f"unknown option {key}"))
            return

        try:
            setattr(config, key, unquote(raw_value))
        except (ValidationError, ValueError) as e:
            issues.append(ParseDegradation(line.number, line.text, f"invalid value for {key}: {_first_error(e)}"))

    def _apply_space_field(self, spaces: Dict[int, SpaceConfig], index: str, field: str, raw_value: str, line,
                           issues: List[ParseDegradation]):
        """Set one per-space override; a bad index or value is skipped."""
        try:
            number = int(index)
            space = spaces.get(number) or SpaceConfig(index=number)
            setattr(space, field, unquote(raw_value))
        except (ValidationError, ValueError) as e:
            issues.append(ParseDegradation(line.number, line.text, f"invalid space {field}: {_first_error(e)}"))
            return
        spaces[space.index] = space

    def _parse_rule(self, arguments: str, rule_id: str, line, issues: List[ParseDegradation]):
        properties = self.scanner.parse_properties(arguments)
        app = properties.get("app")
        title = properties.get("title")
        if not app and not title:
            issues.append(ParseDegradation(line.number, line.text, "rule without app or title"))
            return None

        fields = {
            "id": rule_id,
            "app": strip_anchors(app) if app else None,
            "title": title,
        }
        for key in ("manage", "sticky"):
            if key in properties:
                value = coerce_value(properties[key])
                if isinstance(value, bool):
                    fields[key] = value
        if "layer" in properties:
            fields["layer"] = properties["layer"]
        if "space" in properties:
            fields["space"] = coerce_value(properties["space"])

        try:
            return WindowRule(**fields)
        except ValidationError as e:
            issues.append(ParseDegradation(line.number, line.text, f"invalid rule: {_first_error(e)}"))
            return None

    def _parse_signal(self, arguments: str, signal_id: str, line, issues: List[ParseDegradation]):
        properties = self.scanner.parse_properties(arguments)
        event = properties.get("event")
        action = properties.get("action")
        if not event or not action:
            issues.append(ParseDegradation(line.number, line.text, "signal without event or action"))
            return None

        try:
            return Signal(id=signal_id, event=event, action=action, label=properties.get("label"))
        except ValidationError as e:
            issues.append(ParseDegradation(line.number, line.text, f"invalid signal: {_first_error(e)}"))
            return None

    def serialize(self, config: YabaiConfig) -> str:
        """
        Render a YabaiConfig as canonical .yabairc text.

        Every scalar is written (external_bar only when set), then per-space
        overrides, then enabled rules, then enabled signals.

        Args:
            config: Configuration to render

        Returns:
            Executable shell script text ending with a newline
        """
        lines = [
            SHEBANG,
            "",
            "# yabai configuration",
            "# Generated by yabai-config-manager",
            "",
        ]

        for heading, keys in SECTIONS:
            section = []
            for key in keys:
                value = getattr(config, key)
                if value is None:
                    continue
                section.append(f"yabai -m config {key} {format_value(value)}")
            if section:
                lines.append(f"# === {heading} ===")
                lines.extend(section)
                lines.append("")

        spaces = [command for space in config.spaces for command in self.format_space(space)]
        if spaces:
            lines.append("# === Space Configurations ===")
            lines.extend(spaces)
            lines.append("")

        rules = [self.format_rule(rule) for rule in config.rules if rule.enabled]
        if rules:
            lines.append("# === Window Rules ===")
            lines.extend(rules)
            lines.append("")

        signals = [self.format_signal(signal) for signal in config.signals if signal.enabled]
        if signals:
            lines.append("# === Signals ===")
            lines.extend(signals)
            lines.append("")

        lines.append(FOOTER)
        return "\n".join(lines) + "\n"

    @staticmethod
    def format_space(space: SpaceConfig) -> List[str]:
        commands = []
        if space.label:
            commands.append(f"yabai -m space {space.index} --label {quote(space.label)}")
        if space.layout is not None:
            commands.append(f"yabai -m config --space {space.index} layout {space.layout.value}")
        if space.gap is not None:
            commands.append(f"yabai -m config --space {space.index} window_gap {space.gap}")
        return commands

    @staticmethod
    def format_rule(rule: WindowRule) -> str:
        parts = ["yabai -m rule --add"]
        if rule.app:
            parts.append(f"app={quote('^' + rule.app + '$')}")
        if rule.title:
            parts.append(f"title={quote(rule.title)}")
        parts.append(f"manage={format_value(rule.manage)}")
        if rule.sticky is not None:
            parts.append(f"sticky={format_value(rule.sticky)}")
        if rule.layer is not None:
            parts.append(f"layer={rule.layer.value}")
        if rule.space is not None:
            parts.append(f"space={rule.space}")
        return " ".join(parts)

    @staticmethod
    def format_signal(signal: Signal) -> str:
        parts = ["yabai -m signal --add"]
        if signal.label:
            parts.append(f"label={quote(signal.label)}")
        parts.append(f"event={signal.event.value}")
        parts.append(f"action={quote(signal.action)}")
        return " ".join(parts)


def _first_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        errors = error.errors()
        if errors:
            return errors[0].get("msg", str(error))
    return str(error)
