# Span extraction: map byte spans back to 1-based file positions and source text.

from __future__ import annotations

import logging
from bisect import bisect_right
from pathlib import Path
from typing import TYPE_CHECKING, Union

from anchorscan.dsl.node import AstNode, Span
from anchorscan.findings.models import Location

if TYPE_CHECKING:
    from anchorscan.context import FileContext

logger = logging.getLogger(__name__)


class SpanExtractor:
    """
    Resolve spans against one file's source text.

    The extractor keeps its own copy of the source and a table of line-start
    offsets so every lookup is a binary search. Offsets outside the buffer
    (a tree that does not match the text) are clamped to the file bounds
    rather than raising; the result is a valid, if degraded, position.
    """

    def __init__(self, source: Union[str, bytes], file_path: Union[str, Path]) -> None:
        self.source = source.encode("utf-8") if isinstance(source, str) else bytes(source)
        self.file_path = str(file_path)
        self._line_starts = [0]
        for index, byte in enumerate(self.source):
            if byte == 0x0A:
                self._line_starts.append(index + 1)
        self._lines = self.source.decode("utf-8", errors="replace").split("\n")

    @classmethod
    def from_context(cls, context: "FileContext") -> "SpanExtractor":
        return cls(context.source, context.path)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def _clamp(self, offset: int) -> int:
        if offset < 0 or offset > len(self.source):
            logger.debug("Offset %d outside source of %d bytes in %s; clamping", offset, len(self.source), self.file_path)
        return min(max(offset, 0), len(self.source))

    def offset_to_position(self, offset: int) -> tuple[int, int]:
        """Return the 1-based (line, column) of a byte offset; columns count characters."""
        offset = self._clamp(offset)
        index = bisect_right(self._line_starts, offset) - 1
        line_start = self._line_starts[index]
        column = len(self.source[line_start:offset].decode("utf-8", errors="replace"))
        return index + 1, column + 1

    def span_to_location(self, span: Span) -> Location:
        start_line, start_col = self.offset_to_position(span.start_byte)
        end_line, end_col = self.offset_to_position(max(span.end_byte, span.start_byte))
        if (end_line, end_col) < (start_line, start_col):
            end_line, end_col = start_line, start_col
        return Location(
            file=self.file_path,
            start_line=start_line,
            start_col=start_col,
            end_line=end_line,
            end_col=end_col,
        )

    def extract_location(self, node: AstNode) -> Location:
        span = node.span
        if span is None:
            return Location(file=self.file_path, start_line=1, start_col=1, end_line=1, end_col=1)
        return self.span_to_location(span)

    def span_to_snippet(self, span: Span) -> str:
        """
        Source text of the span, cut to its first non-blank line.

        For a function this is the signature line, for a struct its header.
        Returns "" when the span (after clamping) covers no text.
        """
        start = self._clamp(span.start_byte)
        end = self._clamp(max(span.end_byte, span.start_byte))
        text = self.source[start:end].decode("utf-8", errors="replace")
        for line in text.split("\n"):
            if line.strip():
                return line.rstrip()
        return ""

    def extract_snippet(self, node: AstNode) -> str:
        span = node.span
        snippet = self.span_to_snippet(span) if span is not None else ""
        return snippet or node.snippet()

    def extract_context(self, span: Span, context_lines: int) -> str:
        """
        Lines around the span with line numbers; lines inside the span are
        marked with '>'.
        """
        start_line, _ = self.offset_to_position(span.start_byte)
        end_line, _ = self.offset_to_position(max(span.end_byte, span.start_byte))
        first = max(1, start_line - context_lines)
        last = min(len(self._lines), end_line + context_lines)
        out: list[str] = []
        for number in range(first, last + 1):
            marker = ">" if start_line <= number <= end_line else " "
            out.append(f"{marker} {number:>4} | {self._lines[number - 1].rstrip()}")
        return "\n".join(out)
