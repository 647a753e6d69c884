"""
Input and raw-text validation for yabai and skhd configuration.

Provides:
- Field validators for user input (modifiers, keys, regex, ranges, colours)
- Line-level checks for hand-edited .yabairc and .skhdrc text
"""

import logging
import re
from typing import Iterable, List, Optional, Union

from ..errors import ErrorCode, ValidationFailure
from ..models import (
    HEX_COLOR_PATTERN,
    ValidationIssue,
    is_valid_key,
    is_valid_modifier,
)
from .scanner import CONFIG_DIRECTIVE, ConfigTextScanner, LineKind, strip_inline_comment
from .skhd_codec import DISABLED_MARKER, CHORD_PATTERN, split_binding

logger = logging.getLogger(__name__)

APP_NAME_PATTERN = re.compile(r'^[\w\s.\-+&()]+$')
LABEL_PATTERN = re.compile(r'^[\w\-]+$')
MAX_LABEL_LENGTH = 50

Number = Union[int, float]


class ConfigValidator:
    """Validates user input and raw configuration text."""

    def __init__(self, scanner: Optional[ConfigTextScanner] = None):
        self.scanner = scanner or ConfigTextScanner()

    # Field validation

    def validate_modifier(self, modifier: str) -> str:
        """
        Validate a single skhd modifier.

        Returns:
            Normalized (lowercase) modifier

        Raises:
            ValidationFailure: If the modifier is not in the skhd vocabulary
        """
        if not modifier or not is_valid_modifier(modifier):
            raise ValidationFailure(
                f"Invalid modifier: {modifier}",
                field="modifiers",
                value=modifier,
                code=ErrorCode.INVALID_MODIFIER,
                suggestion="Use alt, cmd, ctrl, shift, fn, hyper, meh or an l/r variant"
            )
        return modifier.strip().lower()

    def validate_modifiers(self, modifiers: Iterable[str]) -> List[str]:
        """Validate a modifier set and reject duplicates."""
        normalized = [self.validate_modifier(m) for m in modifiers]
        if len(set(normalized)) != len(normalized):
            raise ValidationFailure(
                f"Duplicate modifier in {' + '.join(normalized)}",
                field="modifiers",
                code=ErrorCode.INVALID_MODIFIER
            )
        return normalized

    def validate_key(self, key: str) -> str:
        """
        Validate a key token.

        Raises:
            ValidationFailure: If the key is not a letter, digit, function, keypad, or special key
        """
        if not key or not is_valid_key(key):
            raise ValidationFailure(
                f"Invalid key: {key}",
                field="key",
                value=key,
                code=ErrorCode.INVALID_KEY,
                suggestion="Use a-z, 0-9, f1-f20, or a named key such as return or space"
            )
        return key.strip().lower()

    def validate_hotkey(self, hotkey: str):
        """
        Validate a chord string such as "alt + shift - h".

        Returns:
            Tuple of (modifiers, key)
        """
        match = CHORD_PATTERN.match((hotkey or "").strip())
        if not match:
            raise ValidationFailure(
                "Invalid shortcut format",
                field="hotkey",
                value=hotkey,
                code=ErrorCode.SYNTAX_ERROR,
                suggestion="Use: modifier + modifier - key"
            )
        modifier_part, key = match.groups()
        modifiers = modifier_part.split("+") if modifier_part else []
        return self.validate_modifiers(modifiers), self.validate_key(key)

    def validate_regex(self, pattern: str, field: str = "pattern") -> str:
        """
        Validate a regular expression.

        Raises:
            ValidationFailure: If the pattern is empty or does not compile
        """
        if not pattern or not pattern.strip():
            raise ValidationFailure("Pattern is required", field=field, code=ErrorCode.MISSING_REQUIRED_FIELD)
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValidationFailure(
                f"Invalid regex: {e}",
                field=field,
                value=pattern,
                code=ErrorCode.INVALID_REGEX
            ) from e
        return pattern

    def validate_app_pattern(self, app: str) -> str:
        """
        Validate an application name.

        Plain names may contain word characters, spaces, dots, and hyphens;
        a name starting with ^ is treated as a regex.
        """
        if not app or not app.strip():
            raise ValidationFailure("App name is required", field="app", code=ErrorCode.MISSING_REQUIRED_FIELD)
        app = app.strip()
        if app.startswith("^"):
            return self.validate_regex(app, field="app")
        if not APP_NAME_PATTERN.match(app):
            raise ValidationFailure(f"Invalid app name format: {app}", field="app", value=app)
        return self.validate_regex(app, field="app")

    def validate_range(self, value: Number, minimum: Number, maximum: Number, field: str = "value") -> Number:
        """
        Validate a number lies within [minimum, maximum].

        Raises:
            ValidationFailure: If the value is outside the range
        """
        if value < minimum or value > maximum:
            raise ValidationFailure(
                f"{field} must be between {minimum} and {maximum}",
                field=field,
                value=value,
                code=ErrorCode.VALUE_OUT_OF_RANGE
            )
        return value

    def validate_hex_color(self, color: str, field: str = "color") -> str:
        """Validate a 0xRRGGBB or 0xAARRGGBB colour."""
        if not color or not HEX_COLOR_PATTERN.match(color.strip()):
            raise ValidationFailure(
                f"Invalid colour: {color}",
                field=field,
                value=color,
                code=ErrorCode.INVALID_COLOR,
                suggestion="Use 0xAARRGGBB, e.g. 0xff775759"
            )
        return color.strip()

    def validate_label(self, label: str) -> str:
        """Validate a signal or rule label."""
        if not label or not label.strip():
            raise ValidationFailure("Label is required", field="label", code=ErrorCode.MISSING_REQUIRED_FIELD)
        label = label.strip()
        if not LABEL_PATTERN.match(label):
            raise ValidationFailure(
                "Label can only contain letters, numbers, hyphens, and underscores",
                field="label",
                value=label
            )
        if len(label) > MAX_LABEL_LENGTH:
            raise ValidationFailure(f"Label is too long (max {MAX_LABEL_LENGTH} characters)", field="label")
        return label

    # Raw text validation

    def validate_yabai_text(self, text: str) -> List[ValidationIssue]:
        """
        Check hand-edited .yabairc text line by line.

        Args:
            text: Raw file content

        Returns:
            Issues found (empty if the text looks valid)
        """
        issues = []
        for line in self.scanner.scan(text):
            if line.kind != LineKind.CONTENT:
                continue

            content = strip_inline_comment(line.text)
            if content.startswith("yabai "):
                message = self._check_yabai_command(content)
                if message:
                    issues.append(ValidationIssue(line_number=line.number, message=message, line=line.text))
            elif not content.startswith("echo ") and "=" not in content:
                issues.append(ValidationIssue(line_number=line.number, message="Unrecognized command", line=line.text))

        logger.debug(f"yabai text validation found {len(issues)} issues")
        return issues

    def _check_yabai_command(self, line: str) -> Optional[str]:
        if "-m" not in line.split():
            if any(flag in line for flag in ("--start-service", "--stop-service", "--restart-service")):
                return None
            return "Missing -m flag in yabai command"

        if "-m config" in line and not CONFIG_DIRECTIVE.match(line):
            return "Invalid config command format"

        for domain in ("rule", "signal"):
            if f"-m {domain}" in line and "--add" not in line and "--remove" not in line:
                return f"{domain.capitalize()} command missing --add or --remove"

        if "-m signal" in line and "--add" in line and "event=" not in line:
            return "Signal --add missing event parameter"
        return None

    def validate_skhd_text(self, text: str) -> List[ValidationIssue]:
        """
        Check hand-edited .skhdrc text line by line.

        Disabled bindings are checked like active ones.

        Args:
            text: Raw file content

        Returns:
            Issues found (empty if the text looks valid)
        """
        issues = []
        for line in self.scanner.scan(text):
            body = line.text
            if line.kind == LineKind.COMMENT:
                if not line.comment_body.startswith(DISABLED_MARKER):
                    continue
                body = line.comment_body[len(DISABLED_MARKER):].strip()
            elif line.kind == LineKind.BLANK:
                continue

            # skhd mode declarations and .load/.blacklist directives
            if body.startswith("::") or body.startswith("."):
                continue

            message = self._check_binding(body)
            if message:
                issues.append(ValidationIssue(line_number=line.number, message=message, line=line.text))

        logger.debug(f"skhd text validation found {len(issues)} issues")
        return issues

    def _check_binding(self, body: str) -> Optional[str]:
        parts = split_binding(body)
        if parts is None:
            return 'Missing command separator ":"'
        chord, _ = parts
        try:
            self.validate_hotkey(chord)
        except ValidationFailure as e:
            return e.message
        return None
