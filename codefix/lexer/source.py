"""
Source text and location types for the codefix lexer.

A SourceText wraps the cart code once and answers offset -> (line, column)
queries for diagnostics and occurrence records. It is never edited in place;
the pre-fix and the rewriter each produce a new SourceText.

Offsets are indices into the str. Carts may contain non-ASCII glyphs, so a
location also carries the UTF-8 byte offset of the same position.

Author: xwest
"""

import bisect
from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Used for error reporting and for locating dialect extensions.
    """
    filename: str
    line: int
    column: int
    offset: int  # Character offset from start of the text
    byte_offset: Optional[int] = None  # UTF-8 byte offset of the same position

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"

    def __repr__(self) -> str:
        return (f"SourceLocation({self.filename!r}, {self.line}, {self.column}, "
                f"{self.offset}, {self.byte_offset})")


class SourceText:
    """
    Immutable source buffer with a line index.

    Lines are 1-based, columns are 1-based and count characters, offsets are
    indices into the underlying str.
    """

    def __init__(self, text: str, filename: str = "<cart>"):
        self._text = text
        self.filename = filename
        self._ascii = text.isascii()
        self._line_starts: List[int] = [0]
        for index, char in enumerate(text):
            if char == '\n':
                self._line_starts.append(index + 1)
        self._line_byte_starts: Optional[List[int]] = None

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"SourceText({self.filename!r}, {len(self._text)} chars, {self.line_count} lines)"

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_and_column(self, offset: int) -> Tuple[int, int]:
        """Map an offset to a (line, column) pair. Offsets past the end clamp."""
        offset = max(0, min(offset, len(self._text)))
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        return line_index + 1, offset - self._line_starts[line_index] + 1

    def byte_offset(self, offset: int) -> int:
        """UTF-8 byte offset of a character offset. Offsets past the end clamp."""
        offset = max(0, min(offset, len(self._text)))
        if self._ascii:
            return offset
        if self._line_byte_starts is None:
            starts = [0]
            for index in range(1, len(self._line_starts)):
                line = self._text[self._line_starts[index - 1]:self._line_starts[index]]
                starts.append(starts[-1] + len(line.encode("utf-8")))
            self._line_byte_starts = starts
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        prefix = self._text[self._line_starts[line_index]:offset]
        return self._line_byte_starts[line_index] + len(prefix.encode("utf-8"))

    def location(self, offset: int) -> SourceLocation:
        line, column = self.line_and_column(offset)
        return SourceLocation(self.filename, line, column, offset, self.byte_offset(offset))

    def offset_of(self, line: int, column: int) -> int:
        """Inverse of line_and_column, clamped to the end of the text."""
        if line < 1 or line > len(self._line_starts):
            raise ValueError(f"line {line} out of range 1..{len(self._line_starts)}")
        return min(self._line_starts[line - 1] + column - 1, len(self._text))

    def line_text(self, line: int) -> str:
        """Return the text of a 1-based line without its terminator."""
        start = self._line_starts[line - 1]
        end = self._text.find('\n', start)
        return self._text[start:] if end < 0 else self._text[start:end]

    def replaced(self, text: str) -> "SourceText":
        """Create the next generation of the source with the same filename."""
        return SourceText(text, self.filename)
