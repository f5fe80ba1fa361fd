"""Split document text into lines and map offsets to line/column pairs.

Columns are code point indices into the line. Converting them to the
position encoding agreed with the client is left to the server.
"""

from __future__ import annotations

import bisect
import re

from .symbols import Range

_NEWLINE = re.compile('\n')


def split_lines(text: str) -> list[str]:
    """Split text on newlines, dropping the terminators."""
    return text.split('\n')


def span_range(lineno: int, start: int, end: int) -> Range:
    """Range of the column span [start, end) within one line."""
    return Range(lineno, start, lineno, end)


class LineIndex:
    """Offset to (line, column) lookup over one text snapshot."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._starts = [0] + [m.end() for m in _NEWLINE.finditer(text)]

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def position_at(self, offset: int) -> tuple[int, int]:
        offset = max(0, min(offset, len(self.text)))
        line = bisect.bisect_right(self._starts, offset) - 1
        return line, offset - self._starts[line]

    def range_at(self, start: int, end: int) -> Range:
        start_line, start_col = self.position_at(start)
        end_line, end_col = self.position_at(end)
        return Range(start_line, start_col, end_line, end_col)
