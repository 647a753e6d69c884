"""
Persistence for editor settings.

Settings are stored as JSON and written atomically. A missing or corrupt file
yields defaults.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import ErrorCode, ValidationFailure
from ..models import EditorSettings
from .writer import read_config_file, write_config_file

logger = logging.getLogger(__name__)


def default_settings_path() -> Path:
    return Path.home() / ".config" / "yabai-config-manager" / "settings.json"


class SettingsStore:
    """Loads and saves EditorSettings."""

    def __init__(self, settings_file: Optional[Path] = None):
        """
        Initialize settings store.

        Args:
            settings_file: JSON file (defaults to ~/.config/yabai-config-manager/settings.json)
        """
        self.settings_file = settings_file or default_settings_path()

    def load(self) -> EditorSettings:
        """
        Load settings, falling back to defaults.

        Returns:
            EditorSettings instance
        """
        if not self.settings_file.exists():
            logger.debug(f"No settings file at {self.settings_file}, using defaults")
            return EditorSettings()

        try:
            data = json.loads(read_config_file(self.settings_file))
            return EditorSettings.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Invalid settings file {self.settings_file}, using defaults: {e}")
            return EditorSettings()

    def save(self, settings: EditorSettings) -> None:
        """
        Save settings (atomic write).

        Raises:
            IoFailure: If the file cannot be written
        """
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        write_config_file(self.settings_file, json.dumps(settings.model_dump(mode='json'), indent=2) + "\n")
        logger.info(f"Saved settings to {self.settings_file}")


def update_setting(settings: EditorSettings, key: str, value: Any) -> EditorSettings:
    """
    Assign one setting with validation.

    Raises:
        ValidationFailure: If the key is unknown or the value is invalid
    """
    if key not in EditorSettings.model_fields:
        raise ValidationFailure(
            f"Unknown setting: {key}",
            field=key,
            code=ErrorCode.UNKNOWN_OPTION,
            suggestion=f"Valid settings: {', '.join(EditorSettings.model_fields)}"
        )
    try:
        setattr(settings, key, value)
    except ValidationError as e:
        raise ValidationFailure(
            f"Invalid value for {key}: {e.errors()[0]['msg']}",
            field=key,
            value=value,
            code=ErrorCode.VALUE_OUT_OF_RANGE
        ) from e
    return settings
