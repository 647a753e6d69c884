"""
Line scanner shared by the .yabairc and .skhdrc codecs.

Splits text into trimmed logical lines and extracts yabai directives with
their key=value properties. Unknown directives and unknown keys are left for
the caller to skip.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Pattern, Union


CONFIG_DIRECTIVE = re.compile(r'^yabai\s+-m\s+config\s+(\S+)\s+(.+)$')
RULE_DIRECTIVE = re.compile(r'^yabai\s+-m\s+rule\s+--add\s+(.+)$')
SIGNAL_DIRECTIVE = re.compile(r'^yabai\s+-m\s+signal\s+--add\s+(.+)$')
SPACE_CONFIG_DIRECTIVE = re.compile(r'^yabai\s+-m\s+config\s+--space\s+(\S+)\s+(\S+)\s+(.+)$')
SPACE_LABEL_DIRECTIVE = re.compile(r'^yabai\s+-m\s+space\s+(\S+)\s+--label\s+(.+)$')

# key=value, key="value", or key='value'
PROPERTY_PATTERN = re.compile(r'''(\w+)=(?:"([^"]*)"|'([^']*)'|(\S+))''')

_TRUE_WORDS = ("on", "yes", "true")
_FALSE_WORDS = ("off", "no", "false")


class LineKind(str, Enum):
    """Classification of a scanned line."""
    BLANK = "blank"
    COMMENT = "comment"
    CONTENT = "content"


@dataclass
class ScannedLine:
    """A trimmed line with its 1-based position."""

    number: int
    text: str
    kind: LineKind

    @property
    def comment_body(self) -> str:
        """Comment text without the leading '#'."""
        return self.text[1:].strip() if self.kind == LineKind.COMMENT else ""


class ConfigTextScanner:
    """Tokenizes config files into lines and directive properties."""

    def scan(self, text: str) -> List[ScannedLine]:
        """
        Split text into classified, trimmed lines.

        Args:
            text: Raw file content

        Returns:
            One ScannedLine per physical line
        """
        lines = []
        for number, raw in enumerate(text.splitlines(), start=1):
            stripped = raw.strip()
            if not stripped:
                kind = LineKind.BLANK
            elif stripped.startswith("#"):
                kind = LineKind.COMMENT
            else:
                kind = LineKind.CONTENT
            lines.append(ScannedLine(number=number, text=stripped, kind=kind))
        return lines

    def match_directive(self, line: str, directive: Pattern) -> Optional[re.Match]:
        """
        Match a content line against a directive pattern.

        Trailing shell comments outside quotes are removed first.

        Args:
            line: Trimmed content line
            directive: One of the *_DIRECTIVE patterns

        Returns:
            Match object, or None if the line is not that directive
        """
        return directive.match(strip_inline_comment(line))

    def parse_properties(self, arguments: str) -> Dict[str, str]:
        """
        Extract key=value pairs from directive arguments.

        Quoted values have their quotes removed. Later duplicates win.
        """
        properties = {}
        for match in PROPERTY_PATTERN.finditer(arguments):
            key, double_quoted, single_quoted, bare = match.groups()
            if double_quoted is not None:
                properties[key] = double_quoted
            elif single_quoted is not None:
                properties[key] = single_quoted
            else:
                properties[key] = bare
        return properties


def strip_inline_comment(line: str) -> str:
    """Remove a ` #` comment that is not inside quotes."""
    quote = None
    for index, char in enumerate(line):
        if quote:
            if char == quote:
                quote = None
        elif char in ('"', "'"):
            quote = char
        elif char == "#" and index > 0 and line[index - 1].isspace():
            return line[:index].rstrip()
    return line


def unquote(value: str) -> str:
    """Strip one layer of matching surrounding quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def coerce_value(raw: str) -> Union[bool, int, float, str]:
    """
    Convert a directive value to bool, int, float, or string, in that order.

    on/yes/true and off/no/false become booleans.
    """
    value = unquote(raw)
    lowered = value.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def quote(value: str) -> str:
    """
    Quote a property value, preferring double quotes.

    Raises:
        ValueError: If the value holds both quote characters
    """
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    raise ValueError(f"Cannot quote a value containing both quote characters: {value}")
