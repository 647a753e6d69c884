"""
Window rule and signal management for yabai.

Applies user edits to the rules and signals of a YabaiConfig. The rule that
keeps the editor's own window unmanaged cannot be deleted, disabled, or
edited here; only reset_to_defaults rebuilds it.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..errors import ConfigError, ErrorCode, ValidationFailure, validation_failure_from
from ..models import (
    PROTECTED_APP_NAME,
    Signal,
    SignalEvent,
    WindowRule,
    YabaiConfig,
    protected_rule,
)
from ..config.validator import ConfigValidator
from ..config.yabai_codec import strip_anchors

logger = logging.getLogger(__name__)

# (app, title) pairs excluded from tiling by default
DEFAULT_EXCLUSIONS = [
    ("System Preferences", None),
    ("System Settings", None),
    ("Calculator", None),
    ("Archive Utility", None),
    ("Finder", "(Copy|Move|Trash)"),
]


def next_id(prefix: str, existing_ids: List[str]) -> str:
    """Next `<prefix>_<n>` id, one past the highest existing ordinal."""
    pattern = re.compile(rf'^{re.escape(prefix)}_(\d+)$')
    highest = 0
    for existing in existing_ids:
        match = pattern.match(existing)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}_{highest + 1}"


def default_rules() -> List[WindowRule]:
    """Protected rule followed by the default exclusion set."""
    rules = [protected_rule()]
    for index, (app, title) in enumerate(DEFAULT_EXCLUSIONS, start=1):
        rules.append(WindowRule(id=f"rule_{index}", app=app, title=title, manage=False))
    return rules


class RuleManager:
    """Manages window rules and signals of a YabaiConfig."""

    def __init__(
        self,
        config: YabaiConfig,
        on_change: Optional[Callable[[], None]] = None,
        validator: Optional[ConfigValidator] = None
    ):
        """
        Initialize rule manager.

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

    # Window rules

    @property
    def rules(self) -> List[WindowRule]:
        return self.config.rules

    def get_rule(self, rule_id: str) -> Optional[WindowRule]:
        return self.config.get_rule(rule_id)

    def _require_rule(self, rule_id: str) -> WindowRule:
        rule = self.get_rule(rule_id)
        if rule is None:
            raise ConfigError(
                code=ErrorCode.RULE_NOT_FOUND,
                message=f"Rule not found: {rule_id}",
                context={"rule_id": rule_id}
            )
        return rule

    def _validate_rule_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Validate user-supplied rule fields before they reach the model."""
        app = fields.get("app")
        if app:
            self.validator.validate_app_pattern(app)
            app = strip_anchors(app.strip())
            if app == PROTECTED_APP_NAME:
                raise ValidationFailure(
                    f"{PROTECTED_APP_NAME} is reserved for the editor's own rule",
                    field="app",
                    value=app
                )
            fields["app"] = app
        if fields.get("title"):
            self.validator.validate_regex(fields["title"], field="title")
        if fields.get("space") is not None:
            self.validator.validate_range(fields["space"], 1, 99, field="space")
        return fields

    def add_rule(
        self,
        app: Optional[str] = None,
        title: Optional[str] = None,
        manage: bool = True,
        sticky: Optional[bool] = None,
        layer: Optional[str] = None,
        space: Optional[int] = None
    ) -> WindowRule:
        """
        Append a window rule.

        Args:
            app: Application name or ^regex
            title: Window title regex
            manage: Whether yabai tiles matching windows
            sticky: Show on all spaces
            layer: above, normal, or below
            space: Space index to send windows to

        Returns:
            The new rule

        Raises:
            ValidationFailure: If a field is invalid or neither app nor title is given
        """
        fields = self._validate_rule_fields({
            "app": app,
            "title": title,
            "manage": manage,
            "sticky": sticky,
            "layer": layer,
            "space": space,
        })
        fields["id"] = next_id("rule", [r.id for r in self.rules])

        try:
            rule = WindowRule(**fields)
        except ValidationError as e:
            raise validation_failure_from(e) from e

        self.rules.append(rule)
        logger.info(f"Added rule {rule.id} (app={rule.app}, title={rule.title})")
        self._changed()
        return rule

    def add_exclusion(self, app_name: str) -> WindowRule:
        """Exclude an application from tiling (manage=off)."""
        return self.add_rule(app=app_name, manage=False)

    def update_rule(self, rule_id: str, **changes) -> WindowRule:
        """
        Update fields of a rule.

        The protected rule is returned unchanged.

        Raises:
            ConfigError: If the rule does not exist
            ValidationFailure: If a new value is invalid
        """
        rule = self._require_rule(rule_id)
        if rule.is_protected:
            logger.warning(f"Ignoring update of protected rule {rule_id}")
            return rule

        changes.pop("id", None)
        changes = self._validate_rule_fields(changes)
        try:
            updated = WindowRule.model_validate({**rule.model_dump(), **changes})
        except ValidationError as e:
            raise validation_failure_from(e) from e

        self.rules[self.rules.index(rule)] = updated
        logger.info(f"Updated rule {rule_id}")
        self._changed()
        return updated

    def delete_rule(self, rule_id: str) -> bool:
        """
        Delete a rule.

        Returns:
            True if a rule was removed; False for unknown ids and the protected rule
        """
        rule = self.get_rule(rule_id)
        if rule is None:
            return False
        if rule.is_protected:
            logger.warning(f"Refusing to delete protected rule {rule_id}")
            return False

        self.rules.remove(rule)
        logger.info(f"Deleted rule {rule_id}")
        self._changed()
        return True

    def toggle_rule(self, rule_id: str) -> bool:
        """
        Flip a rule's enabled flag.

        Returns:
            The rule's enabled state afterwards (always True for the protected rule)

        Raises:
            ConfigError: If the rule does not exist
        """
        rule = self._require_rule(rule_id)
        if rule.is_protected:
            logger.warning(f"Refusing to disable protected rule {rule_id}")
            return rule.enabled

        rule.enabled = not rule.enabled
        logger.info(f"Rule {rule_id} {'enabled' if rule.enabled else 'disabled'}")
        self._changed()
        return rule.enabled

    def reorder_rule(self, old_index: int, new_index: int):
        """Move a rule to a new position."""
        if not (0 <= old_index < len(self.rules)) or not (0 <= new_index < len(self.rules)):
            raise ValidationFailure(
                f"Rule index out of range (0-{len(self.rules) - 1})",
                field="index",
                code=ErrorCode.VALUE_OUT_OF_RANGE
            )
        if old_index == new_index:
            return
        rule = self.rules.pop(old_index)
        self.rules.insert(new_index, rule)
        self._changed()

    def reset_to_defaults(self):
        """Replace all rules with the protected rule and default exclusions."""
        self.config.rules = default_rules()
        logger.info(f"Reset rules to {len(self.config.rules)} defaults")
        self._changed()

    # Signals

    @property
    def signals(self) -> List[Signal]:
        return self.config.signals

    def get_signal(self, signal_id: str) -> Optional[Signal]:
        return self.config.get_signal(signal_id)

    def _require_signal(self, signal_id: str) -> Signal:
        signal = self.get_signal(signal_id)
        if signal is None:
            raise ConfigError(
                code=ErrorCode.SIGNAL_NOT_FOUND,
                message=f"Signal not found: {signal_id}",
                context={"signal_id": signal_id}
            )
        return signal

    def _validate_signal_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        event = fields.get("event")
        if event is not None and event not in {e.value for e in SignalEvent} and not isinstance(event, SignalEvent):
            raise ValidationFailure(
                f"Unknown signal event: {event}",
                field="event",
                value=event,
                suggestion="Run 'yabai-config signals events' for the list of events"
            )
        if "action" in fields and not (fields["action"] or "").strip():
            raise ValidationFailure("Signal action is required", field="action", code=ErrorCode.MISSING_REQUIRED_FIELD)
        if fields.get("label"):
            fields["label"] = self.validator.validate_label(fields["label"])
        return fields

    def add_signal(self, event: str, action: str, label: Optional[str] = None) -> Signal:
        """
        Append a signal.

        Raises:
            ValidationFailure: If the event is unknown or the action is empty
        """
        fields = self._validate_signal_fields({"event": event, "action": action, "label": label})
        fields["id"] = next_id("signal", [s.id for s in self.signals])

        try:
            signal = Signal(**fields)
        except ValidationError as e:
            raise validation_failure_from(e) from e

        self.signals.append(signal)
        logger.info(f"Added signal {signal.id} on {signal.event.value}")
        self._changed()
        return signal

    def update_signal(self, signal_id: str, **changes) -> Signal:
        """
        Update fields of a signal.

        Raises:
            ConfigError: If the signal does not exist
            ValidationFailure: If a new value is invalid
        """
        signal = self._require_signal(signal_id)
        changes.pop("id", None)
        changes = self._validate_signal_fields(changes)
        try:
            updated = Signal.model_validate({**signal.model_dump(), **changes})
        except ValidationError as e:
            raise validation_failure_from(e) from e

        self.signals[self.signals.index(signal)] = updated
        self._changed()
        return updated

    def delete_signal(self, signal_id: str) -> bool:
        signal = self.get_signal(signal_id)
        if signal is None:
            return False
        self.signals.remove(signal)
        logger.info(f"Deleted signal {signal_id}")
        self._changed()
        return True

    def toggle_signal(self, signal_id: str) -> bool:
        """
        Flip a signal's enabled flag.

        Returns:
            The signal's enabled state afterwards
        """
        signal = self._require_signal(signal_id)
        signal.enabled = not signal.enabled
        self._changed()
        return signal.enabled
