"""
Line-level diff between a backup snapshot and the live file.

Lines are compared position by position. The result is meant for review in
the editor, not as a minimal edit script.
"""

from typing import List

from ..models import DiffLine, DiffLineKind, DiffResult


class DiffEngine:
    """Compares two texts line by line."""

    def compare(self, old_text: str, new_text: str) -> DiffResult:
        """
        Compare backup content (old) with live content (new).

        Matching lines at the same position are unchanged; a mismatch yields
        the old line as removed followed by the new line as added.

        Args:
            old_text: Snapshot content
            new_text: Live file content

        Returns:
            DiffResult with identical set iff the texts are byte-equal
        """
        old_lines = old_text.splitlines()
        new_lines = new_text.splitlines()
        lines: List[DiffLine] = []

        for index in range(max(len(old_lines), len(new_lines))):
            old = old_lines[index] if index < len(old_lines) else None
            new = new_lines[index] if index < len(new_lines) else None

            if old is not None and old == new:
                lines.append(DiffLine(content=old, kind=DiffLineKind.UNCHANGED))
                continue
            if old is not None:
                lines.append(DiffLine(content=old, kind=DiffLineKind.REMOVED))
            if new is not None:
                lines.append(DiffLine(content=new, kind=DiffLineKind.ADDED))

        return DiffResult(identical=old_text == new_text, lines=lines)

    def against_missing(self, old_text: str) -> DiffResult:
        """Compare a snapshot with a live file that no longer exists."""
        lines = [DiffLine(content=line, kind=DiffLineKind.REMOVED) for line in old_text.splitlines()]
        return DiffResult(identical=False, lines=lines)
