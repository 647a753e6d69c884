"""
Validator tests.

Tests cover:
- Field validation of modifiers, keys, hotkeys, regexes, ranges, colours, labels
- Line checks of hand-edited .yabairc and .skhdrc text
"""

import pytest

from yabai_config_manager.config.validator import ConfigValidator
from yabai_config_manager.errors import ErrorCode, ValidationFailure


@pytest.fixture
def validator():
    return ConfigValidator()


class TestShortcutFields:
    """Test modifier, key, and hotkey validation."""

    def test_modifiers_are_normalized(self, validator):
        assert validator.validate_modifier(" Alt ") == "alt"
        assert validator.validate_modifiers(["cmd", "LSHIFT"]) == ["cmd", "lshift"]

    def test_invalid_modifier(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_modifier("super")

        assert exc_info.value.code == ErrorCode.INVALID_MODIFIER
        assert exc_info.value.field == "modifiers"

    def test_duplicate_modifier(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_modifiers(["alt", "Alt"])

        assert exc_info.value.code == ErrorCode.INVALID_MODIFIER

    @pytest.mark.parametrize("key", ["h", "7", "F12", "return", "space", "kp_enter", "0x32"])
    def test_valid_keys(self, validator, key):
        assert validator.validate_key(key) == key.lower()

    @pytest.mark.parametrize("key", ["", "notakey", "f21", "ab"])
    def test_invalid_keys(self, validator, key):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_key(key)

        assert exc_info.value.code == ErrorCode.INVALID_KEY

    def test_hotkey(self, validator):
        assert validator.validate_hotkey("alt + shift - h") == (["alt", "shift"], "h")
        assert validator.validate_hotkey("f5") == ([], "f5")

    def test_empty_hotkey(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_hotkey("")

        assert exc_info.value.code == ErrorCode.SYNTAX_ERROR


class TestPatternFields:
    """Test regex and app name validation."""

    def test_regex(self, validator):
        assert validator.validate_regex("(Copy|Move)") == "(Copy|Move)"

    def test_invalid_regex(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_regex("(unclosed", field="title")

        assert exc_info.value.code == ErrorCode.INVALID_REGEX
        assert exc_info.value.field == "title"

    def test_missing_regex(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_regex("  ")

        assert exc_info.value.code == ErrorCode.MISSING_REQUIRED_FIELD

    @pytest.mark.parametrize("app", ["Google Chrome", "Visual Studio Code", "1Password 7", "^Safari$", "^(Mail|Notes)$"])
    def test_valid_app_names(self, validator, app):
        assert validator.validate_app_pattern(app) == app

    def test_plain_name_with_regex_syntax(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_app_pattern("Mail|Notes")

        assert exc_info.value.code == ErrorCode.VALIDATION_FAILED

    def test_missing_app(self, validator):
        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_app_pattern("")

        assert exc_info.value.code == ErrorCode.MISSING_REQUIRED_FIELD


class TestValueFields:
    """Test range, colour, and label validation."""

    def test_range(self, validator):
        assert validator.validate_range(5, 1, 99) == 5

        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_range(0, 1, 99, field="space")

        assert exc_info.value.code == ErrorCode.VALUE_OUT_OF_RANGE
        assert exc_info.value.context == {"field": "space", "value": "0"}

    def test_hex_color(self, validator):
        assert validator.validate_hex_color("0xff00ff00") == "0xff00ff00"
        assert validator.validate_hex_color("0x00ff00") == "0x00ff00"

        with pytest.raises(ValidationFailure) as exc_info:
            validator.validate_hex_color("red")

        assert exc_info.value.code == ErrorCode.INVALID_COLOR

    def test_label(self, validator):
        assert validator.validate_label(" focus-bar_1 ") == "focus-bar_1"

    @pytest.mark.parametrize("label", ["has space", "semi;colon", "x" * 51])
    def test_invalid_label(self, validator, label):
        with pytest.raises(ValidationFailure):
            validator.validate_label(label)


class TestYabaiText:
    """Test raw .yabairc checks."""

    def test_sample_is_valid(self, validator, sample_yabairc):
        assert validator.validate_yabai_text(sample_yabairc) == []

    def test_service_commands_are_valid(self, validator):
        assert validator.validate_yabai_text("yabai --restart-service\n") == []

    def test_reports_problems(self, validator):
        text = "\n".join([
            "yabai config layout bsp",
            "yabai -m config window_gap",
            "yabai -m rule app=Slack",
            "yabai -m signal --add action=\"echo hi\"",
            "launch_everything",
            "export BAR=1",
        ])

        issues = validator.validate_yabai_text(text)

        assert [(i.line_number, i.message) for i in issues] == [
            (1, "Missing -m flag in yabai command"),
            (2, "Invalid config command format"),
            (3, "Rule command missing --add or --remove"),
            (4, "Signal --add missing event parameter"),
            (5, "Unrecognized command"),
        ]


class TestSkhdText:
    """Test raw .skhdrc checks."""

    def test_sample_is_valid(self, validator, sample_skhdrc):
        assert validator.validate_skhd_text(sample_skhdrc) == []

    def test_mode_declarations_are_skipped(self, validator):
        assert validator.validate_skhd_text(":: default : echo\n.load \"extra\"\n") == []

    def test_reports_problems(self, validator):
        text = "\n".join([
            "super - h : echo bad",
            "alt - h echo missing",
            "# [DISABLED] alt - notakey : echo disabled",
            "# plain comment",
        ])

        issues = validator.validate_skhd_text(text)

        assert [(i.line_number, i.message) for i in issues] == [
            (1, "Invalid modifier: super"),
            (2, 'Missing command separator ":"'),
            (3, "Invalid key: notakey"),
        ]
