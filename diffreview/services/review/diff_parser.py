import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from diffreview.core.exceptions import InvalidInputError


class LineType(str, Enum):
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"


@dataclass(frozen=True)
class HunkHeader:
    """Line-number bases taken from an @@ header."""

    old_start: int
    new_start: int

    def to_dict(self) -> dict[str, int]:
        return {"oldStart": self.old_start, "newStart": self.new_start}


@dataclass(frozen=True)
class Change:
    """A single line in a hunk, marker included."""

    content: str
    type: LineType
    line_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "type": self.type.value,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True)
class Hunk:
    """A hunk (section) of changes in a diff."""

    filename: str
    changes: tuple[Change, ...] = field(default_factory=tuple)
    hunk_header: HunkHeader | None = None

    @property
    def additions(self) -> int:
        """Count of added lines."""
        return sum(1 for change in self.changes if change.type == LineType.ADDITION)

    @property
    def deletions(self) -> int:
        """Count of deleted lines."""
        return sum(1 for change in self.changes if change.type == LineType.DELETION)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "changes": [change.to_dict() for change in self.changes],
            "hunkHeader": self.hunk_header.to_dict() if self.hunk_header else None,
        }


class _LineCounters:
    """Old/new line counters for the hunk being scanned."""

    def __init__(self, header: HunkHeader) -> None:
        self.old_line = header.old_start
        self.new_line = header.new_start

    def advance(self, line: str) -> int:
        if line.startswith("+"):
            line_no = self.new_line
            self.new_line += 1
        elif line.startswith("-"):
            line_no = self.old_line
            self.old_line += 1
        else:
            self.old_line += 1
            line_no = self.new_line
            self.new_line += 1
        return line_no


class DiffParser:
    """Parser for unified diff format."""

    # Regex patterns
    FILE_HEADER_PREFIX = "diff --git"
    HUNK_HEADER_PATTERN = re.compile(r"@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@")
    METADATA_PREFIXES = ("index", "---", "+++")

    def parse(self, diff_text: str) -> list[Hunk]:
        """
        Parse a unified diff into an ordered list of hunks.

        Args:
            diff_text: Raw unified diff.

        Returns:
            Hunks in input order; one per @@ header, or one per file for
            header-less bodies such as binary markers.

        Raises:
            InvalidInputError: If diff_text is not a non-empty string.
        """
        if not isinstance(diff_text, str) or not diff_text:
            raise InvalidInputError("Invalid diff input: expected non-empty string")

        hunks: list[Hunk] = []
        current_changes: list[Change] = []
        current_file = ""
        current_header: HunkHeader | None = None
        counters: _LineCounters | None = None

        def flush() -> None:
            if current_changes:
                hunks.append(
                    Hunk(
                        filename=current_file,
                        changes=tuple(current_changes),
                        hunk_header=current_header,
                    )
                )
                current_changes.clear()

        lines = diff_text.split("\n")
        # A terminating newline is not an extra (empty) line
        if lines[-1] == "":
            lines.pop()

        for line in lines:
            # New file diff starting
            if line.startswith(self.FILE_HEADER_PREFIX):
                flush()
                current_file = self._extract_filename(line)
                current_header = None
                counters = None
                continue

            # Hunk header
            if line.startswith("@@"):
                flush()
                current_header = self._parse_hunk_header(line)
                counters = _LineCounters(current_header) if current_header else None
                continue

            if line.startswith(self.METADATA_PREFIXES):
                continue

            current_changes.append(
                Change(
                    content=line,
                    type=self._classify(line),
                    line_number=counters.advance(line) if counters else None,
                )
            )

        flush()
        return hunks

    def _extract_filename(self, line: str) -> str:
        """Take the first path token after the marker and drop its a/ prefix."""
        tokens = line[len(self.FILE_HEADER_PREFIX) :].split()
        if not tokens:
            return ""
        path = tokens[0]
        return path[2:] if path.startswith("a/") else path

    def _parse_hunk_header(self, line: str) -> HunkHeader | None:
        match = self.HUNK_HEADER_PATTERN.search(line)
        if not match:
            return None
        return HunkHeader(old_start=int(match.group(1)), new_start=int(match.group(2)))

    @staticmethod
    def _classify(line: str) -> LineType:
        if line.startswith("+"):
            return LineType.ADDITION
        if line.startswith("-"):
            return LineType.DELETION
        return LineType.CONTEXT


def parse_diff(diff_text: str) -> list[Hunk]:
    """Parse diff text with a fresh parser."""
    return DiffParser().parse(diff_text)
