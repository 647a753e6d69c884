"""
Codec for .skhdrc.

Parses `<mods> - <key> : <action>` bindings into a SkhdConfig and writes them
back grouped under `# === Category ===` headings. Disabled bindings survive as
`# [DISABLED]` comment lines.
"""

import logging
import re
from typing import List, Optional, Tuple

from pydantic import ValidationError

from ..errors import ParseDegradation
from ..models import (
    CATEGORY_ORDER,
    Shortcut,
    ShortcutCategory,
    SkhdConfig,
    is_valid_key,
    is_valid_modifier,
)
from .scanner import ConfigTextScanner, LineKind

logger = logging.getLogger(__name__)

DISABLED_MARKER = "[DISABLED]"

HEADING_PATTERN = re.compile(r'^#\s*===\s*(.+?)\s*===')
CHORD_PATTERN = re.compile(r'^(?:(.+?)\s*-\s*)?(\S+)$')

# Heading names accepted for each category
_HEADING_ALIASES = {
    "focus": ShortcutCategory.FOCUS,
    "move": ShortcutCategory.MOVE,
    "resize": ShortcutCategory.RESIZE,
    "layout": ShortcutCategory.LAYOUT,
    "spaces": ShortcutCategory.SPACES,
    "space": ShortcutCategory.SPACES,
    "display": ShortcutCategory.SPACES,
    "custom": ShortcutCategory.CUSTOM,
}


def infer_category(action: str) -> ShortcutCategory:
    """
    Infer a shortcut category from its action command.

    Only yabai commands are classified; first matching rule wins.

    Args:
        action: Command executed by the shortcut

    Returns:
        Inferred category, CUSTOM when nothing matches
    """
    command = action.lower()
    if "yabai" not in command:
        return ShortcutCategory.CUSTOM

    window = "-m window" in command
    if window and "--focus" in command:
        return ShortcutCategory.FOCUS
    if window and any(flag in command for flag in ("--swap", "--warp", "--move")):
        return ShortcutCategory.MOVE
    if window and any(flag in command for flag in ("--resize", "--ratio", "--toggle zoom")):
        return ShortcutCategory.RESIZE
    if window and "--toggle" in command:
        return ShortcutCategory.LAYOUT
    if any(domain in command for domain in ("-m space", "-m window --space", "-m display", "-m window --display")):
        return ShortcutCategory.SPACES
    if any(flag in command for flag in ("-m config layout", "--balance", "--rotate", "--mirror")):
        return ShortcutCategory.LAYOUT
    return ShortcutCategory.CUSTOM


def split_binding(line: str) -> Optional[Tuple[str, str]]:
    """
    Split a binding at its first single ':' into (chord, action).

    A '::' pair (skhd mode syntax) is not a separator.
    """
    for index, char in enumerate(line):
        if char != ":":
            continue
        before = line[index - 1] if index > 0 else ""
        after = line[index + 1] if index + 1 < len(line) else ""
        if before == ":" or after == ":":
            continue
        chord = line[:index].strip()
        action = line[index + 1:].strip()
        if chord and action:
            return chord, action
        return None
    return None


def parse_chord(chord: str) -> Optional[Tuple[List[str], str]]:
    """
    Tokenize "alt + shift - h" into (["alt", "shift"], "h").

    Returns None if any modifier or the key is outside the skhd vocabulary.
    """
    match = CHORD_PATTERN.match(chord.strip())
    if not match:
        return None

    modifier_part, key = match.groups()
    modifiers = []
    if modifier_part:
        modifiers = [m.strip().lower() for m in modifier_part.split("+")]
        if any(not m or not is_valid_modifier(m) for m in modifiers):
            return None
        if len(set(modifiers)) != len(modifiers):
            return None

    if not is_valid_key(key):
        return None
    return modifiers, key.lower()


class SkhdConfigCodec:
    """Parses and serializes .skhdrc text."""

    def __init__(self, scanner: ConfigTextScanner = None):
        self.scanner = scanner or ConfigTextScanner()

    def parse(self, text: str) -> SkhdConfig:
        """Parse .skhdrc text, skipping bindings whose chord does not validate."""
        config, _ = self.parse_with_issues(text)
        return config

    def parse_with_issues(self, text: str) -> Tuple[SkhdConfig, List[ParseDegradation]]:
        """
        Parse .skhdrc text and report skipped lines.

        A `# === Name ===` heading assigns its category to the bindings that
        follow; bindings outside a known heading get an inferred category. A
        plain comment directly above a binding becomes its description.

        Args:
            text: Raw file content

        Returns:
            Tuple of (SkhdConfig, degradations). Never raises on bad input.
        """
        shortcuts: List[Shortcut] = []
        issues: List[ParseDegradation] = []
        current_category: Optional[ShortcutCategory] = None
        pending_description: Optional[str] = None

        for line in self.scanner.scan(text):
            if line.kind == LineKind.BLANK:
                pending_description = None
                continue

            enabled = True
            body = line.text
            if line.kind == LineKind.COMMENT:
                heading = HEADING_PATTERN.match(line.text)
                if heading:
                    current_category = _HEADING_ALIASES.get(heading.group(1).strip().lower())
                    pending_description = None
                    continue

                comment = line.comment_body
                if not comment.startswith(DISABLED_MARKER):
                    pending_description = comment or None
                    continue

                enabled = False
                body = comment[len(DISABLED_MARKER):].strip()

            shortcut = self._parse_binding(
                body,
                shortcut_id=f"shortcut_{len(shortcuts) + 1}",
                enabled=enabled,
                description=pending_description,
                category=current_category,
                line=line,
                issues=issues,
            )
            if shortcut:
                shortcuts.append(shortcut)
            pending_description = None

        for issue in issues:
            logger.debug(f"Skipped skhd binding at {issue}")
        logger.info(f"Parsed skhd config: {len(shortcuts)} shortcuts, {len(issues)} skipped")

        return SkhdConfig(shortcuts=shortcuts), issues

    def _parse_binding(
        self,
        body: str,
        shortcut_id: str,
        enabled: bool,
        description: Optional[str],
        category: Optional[ShortcutCategory],
        line,
        issues: List[ParseDegradation],
    ) -> Optional[Shortcut]:
        parts = split_binding(body)
        if parts is None:
            issues.append(ParseDegradation(line.number, line.text, "no ':' separator"))
            return None

        chord, action = parts
        tokens = parse_chord(chord)
        if tokens is None:
            issues.append(ParseDegradation(line.number, line.text, f"invalid hotkey {chord!r}"))
            return None

        modifiers, key = tokens
        try:
            return Shortcut(
                id=shortcut_id,
                modifiers=modifiers,
                key=key,
                action=action,
                description=description,
                category=category or infer_category(action),
                enabled=enabled,
            )
        except ValidationError as e:
            issues.append(ParseDegradation(line.number, line.text, f"invalid shortcut: {e.errors()[0]['msg']}"))
            return None

    def serialize(self, config: SkhdConfig) -> str:
        """
        Render a SkhdConfig as .skhdrc text grouped by category.

        Args:
            config: Configuration to render

        Returns:
            skhd config text ending with a newline
        """
        lines = [
            "# skhd configuration",
            "# Generated by yabai-config-manager",
            "",
        ]

        for category in CATEGORY_ORDER:
            group = [s for s in config.shortcuts if s.category == category]
            if not group:
                continue
            lines.append(f"# === {category.display_name} ===")
            for shortcut in group:
                lines.extend(self.format_shortcut(shortcut))
            lines.append("")

        return "\n".join(lines) + "\n"

    @staticmethod
    def format_shortcut(shortcut: Shortcut) -> List[str]:
        """Lines for one binding: optional description comment, then the binding."""
        lines = []
        if shortcut.description:
            lines.append(f"# {shortcut.description}")
        binding = f"{shortcut.chord} : {shortcut.action}"
        if not shortcut.enabled:
            binding = f"# {DISABLED_MARKER} {binding}"
        lines.append(binding)
        return lines
