"""Option manager for yabai.

Validated edits of the scalar `yabai -m config` settings and per-space overrides.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..errors import ErrorCode, ValidationFailure
from ..models import SpaceConfig, YabaiConfig
from ..config.yabai_codec import format_value

logger = logging.getLogger(__name__)

# Values that clear an optional setting
UNSET_VALUES = frozenset(["", "none", "unset"])

SPACE_FIELDS = ("label", "layout", "gap")


class OptionManager:
    """Handles scalar settings (layout, gaps, mouse, appearance, borders)."""

    def __init__(self, config: YabaiConfig, on_change: Optional[Callable[[], None]] = None):
        self.config = config
        self.on_change = on_change

    def options(self) -> Dict[str, Any]:
        """Current scalar settings keyed by directive name."""
        return {key: getattr(self.config, key) for key in YabaiConfig.scalar_fields()}

    def get_option(self, key: str) -> Any:
        self._require_known(key)
        return getattr(self.config, key)

    def set_option(self, key: str, value: Any) -> Any:
        """
        Assign a scalar setting.

        String input is coerced the way yabai reads it ("on"/"off", numbers,
        enum names, mode:top:bottom for external_bar). A rejected value leaves
        the setting unchanged.

        Args:
            key: Setting name, e.g. window_gap
            value: New value

        Returns:
            The stored value

        Raises:
            ValidationFailure: If the key is unknown or the value is out of range
        """
        self._require_known(key)

        if key == "external_bar" and isinstance(value, str) and value.strip().lower() in UNSET_VALUES:
            value = None

        try:
            setattr(self.config, key, value)
        except (ValidationError, ValueError) as e:
            reason = e.errors()[0]["msg"] if isinstance(e, ValidationError) and e.errors() else str(e)
            raise ValidationFailure(
                f"Invalid value for {key}: {reason}",
                field=key,
                value=value,
                code=ErrorCode.VALUE_OUT_OF_RANGE
            ) from e

        stored = getattr(self.config, key)
        logger.info(f"Set {key} = {format_value(stored) if stored is not None else 'unset'}")
        if self.on_change:
            self.on_change()
        return stored

    # Spaces

    @property
    def spaces(self) -> List[SpaceConfig]:
        return self.config.spaces

    def set_space(self, index: int, **overrides: Any) -> SpaceConfig:
        """
        Create or update the overrides of one space.

        Only the given fields change. A field set to None or "unset" falls back
        to the global setting, and a space left without overrides is dropped.

        Args:
            index: 1-based space index
            **overrides: label, layout, and/or gap

        Returns:
            The resulting SpaceConfig

        Raises:
            ValidationFailure: If a field is unknown or a value is out of range
        """
        unknown = sorted(set(overrides) - set(SPACE_FIELDS))
        if unknown:
            raise ValidationFailure(
                f"Unknown space option: {', '.join(unknown)}",
                field=unknown[0],
                code=ErrorCode.UNKNOWN_OPTION,
                suggestion=f"Use one of: {', '.join(SPACE_FIELDS)}"
            )

        existing = self.config.get_space(index)
        data = existing.model_dump() if existing else {"index": index}
        for field, value in overrides.items():
            if isinstance(value, str) and value.strip().lower() in UNSET_VALUES:
                value = None
            data[field] = value

        try:
            space = SpaceConfig(**data)
        except ValidationError as e:
            raise ValidationFailure(
                f"Invalid override for space {index}: {e.errors()[0]['msg']}",
                field=".".join(str(part) for part in e.errors()[0]["loc"]) or None,
                code=ErrorCode.VALUE_OUT_OF_RANGE
            ) from e

        others = [s for s in self.config.spaces if s.index != space.index]
        self.config.spaces = others + ([space] if space.has_customization else [])
        logger.info(f"Set overrides for space {index}: {space.model_dump(exclude={'index'}, mode='json')}")
        if self.on_change:
            self.on_change()
        return space

    def remove_space(self, index: int) -> SpaceConfig:
        """
        Drop every override of a space.

        Raises:
            ValidationFailure: If the space has no overrides
        """
        space = self.config.get_space(index)
        if space is None:
            raise ValidationFailure(
                f"Space {index} has no overrides",
                field="index",
                value=index,
                code=ErrorCode.SPACE_NOT_FOUND
            )
        self.config.spaces = [s for s in self.config.spaces if s.index != index]
        logger.info(f"Removed overrides for space {index}")
        if self.on_change:
            self.on_change()
        return space

    @staticmethod
    def _require_known(key: str):
        if key not in YabaiConfig.scalar_fields():
            raise ValidationFailure(
                f"Unknown option: {key}",
                field=key,
                code=ErrorCode.UNKNOWN_OPTION,
                suggestion="Run 'yabai-config show' to list available options"
            )
