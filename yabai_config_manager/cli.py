#!/usr/bin/env python3
"""
Yabai Configuration Manager CLI

Command-line interface for editing .yabairc and .skhdrc.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config.backup_store import BackupStore
from .config.settings import SettingsStore, update_setting
from .config.validator import ConfigValidator
from .config.writer import read_config_file
from .config.yabai_codec import format_value
from .editor import ConfigEditor
from .errors import BackupNotFound, ConfigError
from .models import BackupInfo, DiffLineKind, EditorSettings, SignalEvent, YabaiConfig
from .rules.shortcut_manager import ShortcutManager

logger = logging.getLogger(__name__)

RULE_SEPARATOR = "═══════════════════════════════════════════════════════"

_DIFF_PREFIX = {
    DiffLineKind.ADDED: "+",
    DiffLineKind.REMOVED: "-",
    DiffLineKind.UNCHANGED: " ",
}


def _on_off(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value == "on"


def _heading(title: str):
    print(f"\n{RULE_SEPARATOR}")
    print(f"  {title}")
    print(RULE_SEPARATOR)


class YabaiConfigCLI:
    """CLI client for Yabai Configuration Manager."""

    def __init__(self):
        self.settings_store: Optional[SettingsStore] = None
        self.settings: Optional[EditorSettings] = None

    def _load_settings(self, args) -> EditorSettings:
        self.settings_store = SettingsStore(Path(args.settings_file) if args.settings_file else None)
        settings = self.settings_store.load()
        if args.yabairc:
            settings.yabai_config_path = args.yabairc
        if args.skhdrc:
            settings.skhd_config_path = args.skhdrc
        if args.no_apply:
            settings.auto_apply = False
        self.settings = settings
        return settings

    def _open_editor(self, args) -> ConfigEditor:
        editor = ConfigEditor(self._load_settings(args))
        editor.load()
        return editor

    def _emit_json(self, payload: Any):
        print(json.dumps(payload, indent=2, default=str))

    def _target_path(self, args) -> Path:
        settings = self.settings or self._load_settings(args)
        return settings.skhd_path if args.target == "skhd" else settings.yabai_path

    # Show / set

    async def cmd_show(self, args):
        """Show yabai settings, rules, and signals."""
        editor = self._open_editor(args)
        config = editor.yabai_config

        if args.json:
            self._emit_json(config.model_dump(mode="json"))
            return 0

        _heading("SETTINGS")
        for key in YabaiConfig.scalar_fields():
            value = getattr(config, key)
            print(f"{key:28} {format_value(value) if value is not None else '(unset)'}")

        self._print_spaces(config)
        self._print_rules(config)
        self._print_signals(config)

        issues = editor.parse_issues.get(editor.yabai_path, [])
        if issues:
            print(f"\n⚠️  {len(issues)} lines were skipped while parsing")
            for issue in issues:
                print(f"  {issue}")
        return 0

    async def cmd_set(self, args):
        """Set a yabai option and save."""
        editor = self._open_editor(args)
        stored = editor.set_option(args.key, args.value)
        await editor.save_yabai()
        await editor.close()
        print(f"✅ {args.key} = {format_value(stored) if stored is not None else '(unset)'}")
        return 0

    # Spaces

    def _print_spaces(self, config: YabaiConfig):
        _heading("SPACES")
        for space in config.spaces:
            overrides = " ".join(filter(None, [
                f"layout={space.layout.value}" if space.layout else None,
                f"window_gap={space.gap}" if space.gap is not None else None,
            ]))
            print(f"{space.index:>3}  {space.display_name:20} {overrides}")

    async def cmd_spaces(self, args):
        """Manage per-space overrides."""
        editor = self._open_editor(args)
        manager = editor.options

        if args.action == "list":
            if args.json:
                self._emit_json([space.model_dump(mode="json") for space in manager.spaces])
            else:
                self._print_spaces(editor.yabai_config)
            return 0

        if args.action == "set":
            overrides = {
                field: value for field, value in
                (("label", args.label), ("layout", args.layout), ("gap", args.gap))
                if value is not None
            }
            if not overrides:
                print("❌ Nothing to set: pass --label, --layout, or --gap")
                return 1
            space = manager.set_space(args.index, **overrides)
            message = f"✅ Space {space.index} updated"
        else:
            manager.remove_space(args.index)
            message = f"✅ Removed overrides for space {args.index}"

        await editor.save_yabai()
        await editor.close()
        print(message)
        return 0

    # Rules

    def _print_rules(self, config: YabaiConfig):
        _heading("WINDOW RULES")
        for rule in config.rules:
            marker = "🔒" if rule.is_protected else ("✓" if rule.enabled else "✗")
            selector = " ".join(filter(None, [
                f"app={rule.app}" if rule.app else None,
                f"title={rule.title}" if rule.title else None,
            ]))
            extras = " ".join(filter(None, [
                f"manage={format_value(rule.manage)}",
                f"sticky={format_value(rule.sticky)}" if rule.sticky is not None else None,
                f"layer={rule.layer.value}" if rule.layer else None,
                f"space={rule.space}" if rule.space else None,
            ]))
            print(f"{marker} {rule.id:22} {selector}  {extras}")

    async def cmd_rules(self, args):
        """Manage window rules."""
        editor = self._open_editor(args)
        manager = editor.rules

        if args.action == "list":
            if args.json:
                self._emit_json([rule.model_dump(mode="json") for rule in manager.rules])
            else:
                self._print_rules(editor.yabai_config)
            return 0

        if args.action == "add":
            rule = manager.add_rule(
                app=args.app,
                title=args.title,
                manage=args.manage != "off",
                sticky=_on_off(args.sticky),
                layer=args.layer,
                space=args.space
            )
            message = f"✅ Added rule {rule.id}"
        elif args.action == "remove":
            if not manager.delete_rule(args.id):
                print(f"❌ Rule {args.id} not found or protected")
                return 1
            message = f"✅ Removed rule {args.id}"
        elif args.action == "toggle":
            enabled = manager.toggle_rule(args.id)
            message = f"✅ Rule {args.id} {'enabled' if enabled else 'disabled'}"
        else:
            manager.reset_to_defaults()
            message = f"✅ Reset to {len(manager.rules)} default rules"

        await editor.save_yabai()
        await editor.close()
        print(message)
        return 0

    # Signals

    def _print_signals(self, config: YabaiConfig):
        _heading("SIGNALS")
        for signal in config.signals:
            marker = "✓" if signal.enabled else "✗"
            label = f" [{signal.label}]" if signal.label else ""
            print(f"{marker} {signal.id:12} {signal.event.display_name}{label} → {signal.action}")

    async def cmd_signals(self, args):
        """Manage signals."""
        if args.action == "events":
            for event in SignalEvent:
                print(f"{event.value:28} {event.display_name}")
            return 0

        editor = self._open_editor(args)
        manager = editor.rules

        if args.action == "list":
            if args.json:
                self._emit_json([signal.model_dump(mode="json") for signal in manager.signals])
            else:
                self._print_signals(editor.yabai_config)
            return 0

        if args.action == "add":
            signal = manager.add_signal(event=args.event, action=args.run, label=args.label)
            message = f"✅ Added signal {signal.id}"
        elif args.action == "remove":
            if not manager.delete_signal(args.id):
                print(f"❌ Signal {args.id} not found")
                return 1
            message = f"✅ Removed signal {args.id}"
        else:
            enabled = manager.toggle_signal(args.id)
            message = f"✅ Signal {args.id} {'enabled' if enabled else 'disabled'}"

        await editor.save_yabai()
        await editor.close()
        print(message)
        return 0

    # Shortcuts

    async def cmd_shortcuts(self, args):
        """Manage skhd shortcuts."""
        if args.action == "presets":
            for name in ShortcutManager.list_presets():
                print(name)
            return 0

        editor = self._open_editor(args)
        manager = editor.shortcuts

        if args.action == "list":
            if args.json:
                self._emit_json([s.model_dump(mode="json") for s in manager.shortcuts])
                return 0
            for category, members in manager.shortcuts_by_category().items():
                _heading(category.display_name.upper())
                for shortcut in members:
                    marker = "✓" if shortcut.enabled else "✗"
                    print(f"{marker} {shortcut.id:14} {shortcut.chord:24} → {shortcut.action}")
                    if shortcut.description:
                        print(f"{'':17}{shortcut.description}")
            return 0

        if args.action == "conflicts":
            conflicts = manager.find_conflicts()
            if args.json:
                self._emit_json([[s.model_dump(mode="json") for s in group] for group in conflicts])
                return 1 if conflicts else 0
            if not conflicts:
                print("✅ No shortcut conflicts")
                return 0
            print(f"\n⚠️  {len(conflicts)} SHORTCUT CONFLICTS\n")
            for group in conflicts:
                print(f"Hotkey: {group[0].chord}")
                for shortcut in group:
                    print(f"  {shortcut.id}: {shortcut.action}")
                print()
            return 1

        if args.action == "add":
            shortcut = manager.add_from_hotkey(args.hotkey, args.run, description=args.description)
            message = f"✅ Added shortcut {shortcut.id} ({shortcut.chord})"
        elif args.action == "remove":
            if not manager.delete_shortcut(args.id):
                print(f"❌ Shortcut {args.id} not found")
                return 1
            message = f"✅ Removed shortcut {args.id}"
        elif args.action == "toggle":
            enabled = manager.toggle_shortcut(args.id)
            message = f"✅ Shortcut {args.id} {'enabled' if enabled else 'disabled'}"
        else:
            added = manager.apply_preset(args.name, replace=args.replace)
            message = f"✅ Preset {args.name}: {len(added)} shortcuts added"

        await editor.save_skhd()
        await editor.close()
        print(message)

        conflicts = manager.find_conflicts()
        if conflicts:
            print(f"⚠️  {len(conflicts)} shortcut conflicts (run 'yabai-config shortcuts conflicts')")
        return 0

    # Backups

    def _backup_by_index(self, store: BackupStore, path: Path, index: int) -> BackupInfo:
        backups = store.list(path)
        if index < 1 or index > len(backups):
            raise BackupNotFound(f"{path} backup #{index}")
        return backups[index - 1]

    async def cmd_backup(self, args):
        """Manage backups."""
        settings = self._load_settings(args)
        store = BackupStore(settings)
        path = self._target_path(args)

        if args.action == "create":
            info = await asyncio.to_thread(store.create, path, args.description)
            print(f"✅ Created backup {info.backup_path.name} ({info.size_string})")
            return 0

        if args.action == "list":
            backups = store.list(path)
            if args.json:
                self._emit_json([b.model_dump(mode="json") for b in backups])
                return 0
            if not backups:
                print(f"No backups found for {path}")
                return 0
            _heading(f"BACKUPS OF {path.name}")
            for index, backup in enumerate(backups, start=1):
                print(f"{index:3}  {backup.timestamp_string}  {backup.size_string:>9}  {backup.relative_time()}")
            return 0

        if args.action == "clean":
            removed = await asyncio.to_thread(store.delete_all, path)
            print(f"✅ Removed {removed} backups")
            return 0

        backup = self._backup_by_index(store, path, args.index)

        if args.action == "restore":
            await asyncio.to_thread(store.restore, backup, not args.no_backup)
            print(f"✅ Restored {path.name} from {backup.timestamp_string}")
            return 0

        if args.action == "delete":
            await asyncio.to_thread(store.delete, backup)
            print(f"✅ Deleted backup {backup.backup_path.name}")
            return 0

        diff = await asyncio.to_thread(store.compare_with_current, backup)
        if args.json:
            self._emit_json(diff.model_dump(mode="json"))
            return 0
        if diff.identical:
            print("✅ Backup is identical to the current file")
            return 0
        for line in diff.lines:
            print(f"{_DIFF_PREFIX[line.kind]} {line.content}")
        print(f"\n{diff.added_count} added, {diff.removed_count} removed")
        return 0

    # Validation

    async def cmd_validate(self, args):
        """Validate raw config text."""
        settings = self._load_settings(args)
        validator = ConfigValidator()
        checks = [
            (settings.yabai_path, validator.validate_yabai_text),
            (settings.skhd_path, validator.validate_skhd_text),
        ]

        results = {}
        for path, check in checks:
            if not path.exists():
                continue
            results[str(path)] = check(read_config_file(path))

        if args.json:
            self._emit_json({p: [i.model_dump() for i in issues] for p, issues in results.items()})
        else:
            for path, issues in results.items():
                if not issues:
                    print(f"✅ {path}: valid")
                    continue
                print(f"❌ {path}: {len(issues)} issues")
                for issue in issues:
                    print(f"  line {issue.line_number}: {issue.message}")
                    print(f"    {issue.line}")

        return 1 if any(results.values()) else 0

    # Settings

    async def cmd_settings(self, args):
        """Show or change editor settings."""
        settings = self._load_settings(args)
        if args.action == "show":
            if args.json:
                self._emit_json(settings.model_dump(mode="json"))
            else:
                for key, value in settings.model_dump(mode="json").items():
                    print(f"{key:26} {value}")
            return 0

        # Stored settings must not pick up one-off command-line overrides
        stored = self.settings_store.load()
        update_setting(stored, args.key, args.value)
        await asyncio.to_thread(self.settings_store.save, stored)
        print(f"✅ {args.key} = {getattr(stored, args.key)}")
        return 0

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Yabai Configuration Manager CLI",
            prog="yabai-config"
        )
        parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
        parser.add_argument("--json", action="store_true", help="Output as JSON")
        parser.add_argument("--yabairc", help="Path to .yabairc (overrides settings)")
        parser.add_argument("--skhdrc", help="Path to .skhdrc (overrides settings)")
        parser.add_argument("--settings-file", help="Path to settings.json")
        parser.add_argument("--no-apply", action="store_true", help="Don't reload daemons after saving")

        subparsers = parser.add_subparsers(dest="command", help="Command to execute")

        # Show / set
        subparsers.add_parser("show", help="Show yabai configuration")
        set_parser = subparsers.add_parser("set", help="Set a yabai option")
        set_parser.add_argument("key", help="Option name, e.g. window_gap")
        set_parser.add_argument("value", help="New value")

        # Spaces
        spaces_parser = subparsers.add_parser("spaces", help="Manage per-space overrides")
        spaces_sub = spaces_parser.add_subparsers(dest="action", required=True)
        spaces_sub.add_parser("list", help="List space overrides")
        set_space = spaces_sub.add_parser("set", help="Set overrides for a space")
        set_space.add_argument("index", type=int, help="1-based space index")
        set_space.add_argument("--label", help="Space label (\"unset\" clears it)")
        set_space.add_argument("--layout", help="bsp, float, stack, or unset")
        set_space.add_argument("--gap", help="window_gap for this space, or unset")
        spaces_sub.add_parser("remove", help="Remove all overrides of a space").add_argument("index", type=int)

        # Rules
        rules_parser = subparsers.add_parser("rules", help="Manage window rules")
        rules_sub = rules_parser.add_subparsers(dest="action", required=True)
        rules_sub.add_parser("list", help="List rules")
        add_rule = rules_sub.add_parser("add", help="Add a rule")
        add_rule.add_argument("--app", help="Application name or ^regex")
        add_rule.add_argument("--title", help="Window title regex")
        add_rule.add_argument("--manage", choices=["on", "off"], default="on")
        add_rule.add_argument("--sticky", choices=["on", "off"])
        add_rule.add_argument("--layer", choices=["above", "normal", "below"])
        add_rule.add_argument("--space", type=int)
        for name in ("remove", "toggle"):
            rules_sub.add_parser(name, help=f"{name.capitalize()} a rule").add_argument("id")
        rules_sub.add_parser("reset", help="Restore the default exclusions")

        # Signals
        signals_parser = subparsers.add_parser("signals", help="Manage signals")
        signals_sub = signals_parser.add_subparsers(dest="action", required=True)
        signals_sub.add_parser("list", help="List signals")
        signals_sub.add_parser("events", help="List signal events")
        add_signal = signals_sub.add_parser("add", help="Add a signal")
        add_signal.add_argument("--event", required=True)
        add_signal.add_argument("--command", dest="run", required=True, help="Command to run")
        add_signal.add_argument("--label")
        for name in ("remove", "toggle"):
            signals_sub.add_parser(name, help=f"{name.capitalize()} a signal").add_argument("id")

        # Shortcuts
        shortcuts_parser = subparsers.add_parser("shortcuts", help="Manage skhd shortcuts")
        shortcuts_sub = shortcuts_parser.add_subparsers(dest="action", required=True)
        shortcuts_sub.add_parser("list", help="List shortcuts by category")
        shortcuts_sub.add_parser("conflicts", help="Show conflicting hotkeys")
        shortcuts_sub.add_parser("presets", help="List presets")
        add_shortcut = shortcuts_sub.add_parser("add", help="Add a shortcut")
        add_shortcut.add_argument("hotkey", help='Chord, e.g. "alt + shift - h"')
        add_shortcut.add_argument("run", metavar="COMMAND", help="Command to run")
        add_shortcut.add_argument("--description")
        for name in ("remove", "toggle"):
            shortcuts_sub.add_parser(name, help=f"{name.capitalize()} a shortcut").add_argument("id")
        preset = shortcuts_sub.add_parser("preset", help="Apply a preset")
        preset.add_argument("name")
        preset.add_argument("--replace", action="store_true", help="Remove existing shortcuts first")

        # Backups
        backup_parser = subparsers.add_parser("backup", help="Manage backups")
        backup_parser.add_argument("--target", choices=["yabai", "skhd"], default="yabai")
        backup_sub = backup_parser.add_subparsers(dest="action", required=True)
        create = backup_sub.add_parser("create", help="Snapshot the current file")
        create.add_argument("--description")
        backup_sub.add_parser("list", help="List backups, newest first")
        backup_sub.add_parser("clean", help="Delete all backups")
        restore = backup_sub.add_parser("restore", help="Restore a backup")
        restore.add_argument("index", type=int, help="Backup number from 'backup list'")
        restore.add_argument("--no-backup", action="store_true", help="Don't snapshot the current file first")
        for name in ("delete", "diff"):
            backup_sub.add_parser(name, help=f"{name.capitalize()} a backup").add_argument(
                "index", type=int, help="Backup number from 'backup list'"
            )

        # Validate
        subparsers.add_parser("validate", help="Check both files for malformed lines")

        # Settings
        settings_parser = subparsers.add_parser("settings", help="Show or change editor settings")
        settings_sub = settings_parser.add_subparsers(dest="action", required=True)
        settings_sub.add_parser("show")
        set_setting = settings_sub.add_parser("set")
        set_setting.add_argument("key")
        set_setting.add_argument("value")

        return parser

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run CLI."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        if not args.command:
            parser.print_help()
            return 1

        # Route to command handler
        cmd_map = {
            "show": self.cmd_show,
            "set": self.cmd_set,
            "spaces": self.cmd_spaces,
            "rules": self.cmd_rules,
            "signals": self.cmd_signals,
            "shortcuts": self.cmd_shortcuts,
            "backup": self.cmd_backup,
            "validate": self.cmd_validate,
            "settings": self.cmd_settings,
        }

        handler = cmd_map[args.command]
        logger.debug(f"Running {args.command} command")
        try:
            return asyncio.run(handler(args))
        except KeyboardInterrupt:
            print("\nInterrupted")
            return 130
        except ConfigError as e:
            if args.json:
                self._emit_json({"error": e.to_dict()})
            else:
                print(f"❌ {e.message}")
                if e.suggestion:
                    print(f"  → {e.suggestion}")
            return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    cli = YabaiConfigCLI()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
