"""
.skhdrc codec tests.

Tests cover:
- Chord tokenizing and binding splitting
- Category headings, inference, and descriptions
- Disabled bindings surviving a round-trip
- Conflict detection over enabled shortcuts
"""

import pytest

from yabai_config_manager.config.skhd_codec import (
    SkhdConfigCodec,
    infer_category,
    parse_chord,
    split_binding,
)
from yabai_config_manager.models import Shortcut, ShortcutCategory, SkhdConfig


@pytest.fixture
def codec():
    return SkhdConfigCodec()


class TestChords:
    """Test chord and binding tokenizing."""

    def test_parse_chord(self):
        assert parse_chord("alt + shift - h") == (["alt", "shift"], "h")
        assert parse_chord("cmd - return") == (["cmd"], "return")
        assert parse_chord("f1") == ([], "f1")
        assert parse_chord("HYPER - K") == (["hyper"], "k")

    @pytest.mark.parametrize("chord", [
        "super - h",
        "alt + alt - h",
        "alt - notakey",
        "alt + - h",
    ])
    def test_invalid_chord(self, chord):
        assert parse_chord(chord) is None

    def test_split_binding(self):
        assert split_binding("alt - h : yabai -m window --focus west") == (
            "alt - h", "yabai -m window --focus west"
        )
        assert split_binding("alt - x : echo a::b") == ("alt - x", "echo a::b")
        assert split_binding("alt - h yabai -m window --focus west") is None
        assert split_binding("alt - h :") is None


class TestCategoryInference:
    """Test ordered category inference from actions."""

    @pytest.mark.parametrize("action,category", [
        ("yabai -m window --focus west", ShortcutCategory.FOCUS),
        ("yabai -m window --swap east", ShortcutCategory.MOVE),
        ("yabai -m window --warp north", ShortcutCategory.MOVE),
        ("yabai -m window --resize left:-20:0", ShortcutCategory.RESIZE),
        ("yabai -m window --toggle zoom-fullscreen", ShortcutCategory.RESIZE),
        ("yabai -m window --toggle float", ShortcutCategory.LAYOUT),
        ("yabai -m space --focus 2", ShortcutCategory.SPACES),
        ("yabai -m window --space 3", ShortcutCategory.SPACES),
        ("yabai -m display --focus next", ShortcutCategory.SPACES),
        ("yabai -m config layout bsp", ShortcutCategory.LAYOUT),
        ("open -na Terminal", ShortcutCategory.CUSTOM),
    ])
    def test_infer_category(self, action, category):
        assert infer_category(action) == category


class TestParse:
    """Test parsing of .skhdrc text."""

    def test_bindings(self, codec, sample_skhdrc):
        config = codec.parse(sample_skhdrc)

        assert [s.id for s in config.shortcuts] == [
            "shortcut_1", "shortcut_2", "shortcut_3", "shortcut_4", "shortcut_5"
        ]
        focus_left = config.shortcuts[0]
        assert focus_left.modifiers == ["alt"]
        assert focus_left.key == "h"
        assert focus_left.action == "yabai -m window --focus west"
        assert focus_left.hotkey == "alt-h"

        swap = config.shortcuts[2]
        assert swap.modifiers == ["shift", "alt"]
        assert swap.hotkey == "alt+shift-h"

    def test_headings_assign_categories(self, codec, sample_skhdrc):
        config = codec.parse(sample_skhdrc)

        assert [s.category for s in config.shortcuts] == [
            ShortcutCategory.FOCUS,
            ShortcutCategory.FOCUS,
            ShortcutCategory.MOVE,
            ShortcutCategory.CUSTOM,
            ShortcutCategory.CUSTOM,
        ]

    def test_heading_overrides_inference(self, codec):
        config = codec.parse("# === Custom ===\nalt - h : yabai -m window --focus west\n")

        assert config.shortcuts[0].category == ShortcutCategory.CUSTOM

    def test_bindings_without_heading_are_inferred(self, codec):
        config = codec.parse("alt - 1 : yabai -m space --focus 1\nalt - r : yabai -m window --resize right:20:0\n")

        assert [s.category for s in config.shortcuts] == [ShortcutCategory.SPACES, ShortcutCategory.RESIZE]

    def test_descriptions(self, codec, sample_skhdrc):
        config = codec.parse(sample_skhdrc)

        assert config.shortcuts[0].description == "Focus left"
        assert config.shortcuts[1].description is None
        assert config.shortcuts[3].description == "launch terminal"

    def test_blank_line_resets_description(self, codec):
        config = codec.parse("# orphan comment\n\nalt - h : echo hi\n")

        assert config.shortcuts[0].description is None

    def test_disabled_binding(self, codec, sample_skhdrc):
        config = codec.parse(sample_skhdrc)

        disabled = config.shortcuts[4]
        assert disabled.enabled is False
        assert disabled.key == "f"
        assert disabled.action == "yabai -m window --toggle zoom-fullscreen"

    def test_invalid_lines_are_skipped(self, codec):
        text = "\n".join([
            "super - h : echo bad modifier",
            "alt - notakey : echo bad key",
            "alt - h echo missing separator",
            "alt - j : echo fine",
        ])

        config, issues = codec.parse_with_issues(text)

        assert [s.key for s in config.shortcuts] == ["j"]
        assert [issue.line_number for issue in issues] == [1, 2, 3]

    def test_colon_without_spaces(self, codec):
        config = codec.parse("alt - h:echo hi\n")

        assert config.shortcuts[0].action == "echo hi"


class TestSerialize:
    """Test grouped serialization."""

    def test_categories_in_fixed_order(self, codec):
        config = SkhdConfig(shortcuts=[
            Shortcut(id="shortcut_1", modifiers=["alt"], key="1", action="yabai -m space --focus 1",
                     category=ShortcutCategory.SPACES),
            Shortcut(id="shortcut_2", modifiers=["alt"], key="h", action="yabai -m window --focus west",
                     category=ShortcutCategory.FOCUS),
        ])

        lines = codec.serialize(config).splitlines()

        assert lines.index("# === Focus ===") < lines.index("# === Spaces ===")
        assert "# === Move ===" not in lines

    def test_binding_format(self, codec):
        shortcut = Shortcut(id="shortcut_1", modifiers=["alt", "shift"], key="h",
                            action="yabai -m window --swap west", description="Swap left")

        assert codec.format_shortcut(shortcut) == [
            "# Swap left",
            "alt + shift - h : yabai -m window --swap west",
        ]

    def test_disabled_binding_is_commented(self, codec):
        shortcut = Shortcut(id="shortcut_1", key="f1", action="open -a Mail", enabled=False)

        assert codec.format_shortcut(shortcut) == ["# [DISABLED] f1 : open -a Mail"]

    def test_round_trip_keeps_disabled_state(self, codec, sample_skhdrc):
        config = codec.parse(sample_skhdrc)

        reparsed = codec.parse(codec.serialize(config))

        assert [s.model_dump() for s in reparsed.shortcuts] == [s.model_dump() for s in config.shortcuts]
        assert reparsed.shortcuts[4].enabled is False

    def test_serialization_is_idempotent(self, codec, sample_skhdrc):
        once = codec.serialize(codec.parse(sample_skhdrc))

        assert codec.serialize(codec.parse(once)) == once


class TestConflicts:
    """Conflict detection groups enabled shortcuts by hotkey."""

    def _shortcut(self, shortcut_id, action, modifiers=("alt",), enabled=True):
        return Shortcut(id=shortcut_id, modifiers=list(modifiers), key="h", action=action, enabled=enabled)

    def test_conflict_reported(self):
        config = SkhdConfig(shortcuts=[self._shortcut("a", "echo X"), self._shortcut("b", "echo Y")])

        conflicts = config.find_conflicts()

        assert len(conflicts) == 1
        assert [s.id for s in conflicts[0]] == ["a", "b"]

    def test_disabled_shortcut_is_not_a_conflict(self):
        config = SkhdConfig(shortcuts=[
            self._shortcut("a", "echo X"),
            self._shortcut("b", "echo Y", enabled=False),
        ])

        assert config.find_conflicts() == []

    def test_modifier_order_does_not_matter(self):
        config = SkhdConfig(shortcuts=[
            self._shortcut("a", "echo X", modifiers=("alt", "shift")),
            self._shortcut("b", "echo Y", modifiers=("shift", "alt")),
        ])

        assert len(config.find_conflicts()) == 1

    def test_every_group_is_reported(self):
        config = SkhdConfig(shortcuts=[
            self._shortcut("a", "echo 1"),
            self._shortcut("b", "echo 2"),
            self._shortcut("c", "echo 3", modifiers=("cmd",)),
            self._shortcut("d", "echo 4", modifiers=("cmd",)),
            self._shortcut("e", "echo 5", modifiers=("cmd",)),
        ])

        conflicts = config.find_conflicts()

        assert [len(group) for group in conflicts] == [2, 3]
