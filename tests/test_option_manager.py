"""
Option manager tests.
"""

from unittest.mock import MagicMock

import pytest

from yabai_config_manager.errors import ErrorCode, ValidationFailure
from yabai_config_manager.models import ExternalBarMode, Layout, YabaiConfig
from yabai_config_manager.rules.option_manager import OptionManager


@pytest.fixture
def config():
    return YabaiConfig()


@pytest.fixture
def on_change():
    return MagicMock()


@pytest.fixture
def manager(config, on_change):
    return OptionManager(config, on_change=on_change)


class TestSetOption:
    """Test scalar edits."""

    def test_string_input_is_coerced(self, manager, config, on_change):
        assert manager.set_option("window_gap", "12") == 12
        assert manager.set_option("auto_balance", "on") is True
        assert manager.set_option("layout", "stack") == Layout.STACK
        assert manager.set_option("split_ratio", "0.3") == 0.3

        assert config.window_gap == 12
        assert on_change.call_count == 4

    def test_external_bar(self, manager, config):
        bar = manager.set_option("external_bar", "main:20:0")

        assert bar.mode == ExternalBarMode.MAIN
        assert bar.top == 20

        assert manager.set_option("external_bar", "none") is None
        assert config.external_bar is None

    @pytest.mark.parametrize("key,value", [
        ("window_gap", 500),
        ("window_gap", "wide"),
        ("layout", "spiral"),
        ("split_ratio", 1.5),
        ("active_window_border_color", "red"),
        ("external_bar", "top:10"),
    ])
    def test_rejected_value_is_unchanged(self, manager, config, on_change, key, value):
        before = getattr(config, key)

        with pytest.raises(ValidationFailure) as exc_info:
            manager.set_option(key, value)

        assert exc_info.value.code == ErrorCode.VALUE_OUT_OF_RANGE
        assert exc_info.value.field == key
        assert getattr(config, key) == before
        on_change.assert_not_called()

    def test_unknown_option(self, manager):
        with pytest.raises(ValidationFailure) as exc_info:
            manager.set_option("rules", [])

        assert exc_info.value.code == ErrorCode.UNKNOWN_OPTION


class TestGetOption:
    """Test reads."""

    def test_options(self, manager):
        options = manager.options()

        assert options["layout"] == Layout.BSP
        assert "rules" not in options
        assert "spaces" not in options
        assert list(options) == YabaiConfig.scalar_fields()

    def test_get_option(self, manager):
        assert manager.get_option("window_gap") == 6

        with pytest.raises(ValidationFailure):
            manager.get_option("not_an_option")


class TestSpaces:
    """Test per-space overrides."""

    def test_set_space(self, manager, config, on_change):
        space = manager.set_space(2, label="web", layout="float", gap="10")

        assert space.label == "web"
        assert space.layout == Layout.FLOAT
        assert space.gap == 10
        assert config.get_space(2) == space
        on_change.assert_called_once()

    def test_partial_update_keeps_other_fields(self, manager, config):
        manager.set_space(2, label="web", gap=10)

        manager.set_space(2, layout="stack")

        space = config.get_space(2)
        assert (space.label, space.layout, space.gap) == ("web", Layout.STACK, 10)

    def test_spaces_stay_ordered(self, manager, config):
        manager.set_space(3, gap=4)
        manager.set_space(1, label="main")

        assert [space.index for space in config.spaces] == [1, 3]

    def test_unset_last_override_drops_space(self, manager, config):
        manager.set_space(2, layout="float")

        manager.set_space(2, layout="unset")

        assert config.spaces == []

    @pytest.mark.parametrize("index,overrides", [
        (0, {"label": "zero"}),
        (2, {"layout": "spiral"}),
        (2, {"gap": -1}),
        (2, {"label": "say \"hi\" it's me"}),
    ])
    def test_invalid_override(self, manager, config, on_change, index, overrides):
        manager.set_space(2, label="keep")
        on_change.reset_mock()

        with pytest.raises(ValidationFailure) as exc_info:
            manager.set_space(index, **overrides)

        assert exc_info.value.code == ErrorCode.VALUE_OUT_OF_RANGE
        assert config.get_space(2).label == "keep"
        on_change.assert_not_called()

    def test_unknown_space_option(self, manager):
        with pytest.raises(ValidationFailure) as exc_info:
            manager.set_space(1, top_padding=4)

        assert exc_info.value.code == ErrorCode.UNKNOWN_OPTION

    def test_remove_space(self, manager, config, on_change):
        manager.set_space(2, gap=8)

        removed = manager.remove_space(2)

        assert removed.gap == 8
        assert config.spaces == []
        assert on_change.call_count == 2

    def test_remove_missing_space(self, manager):
        with pytest.raises(ValidationFailure) as exc_info:
            manager.remove_space(7)

        assert exc_info.value.code == ErrorCode.SPACE_NOT_FOUND
