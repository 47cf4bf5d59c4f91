"""Tests for SpanExtractor: offsets to positions, snippets, clamping, context."""

import logging
from pathlib import Path

from anchorscan.context import FileContext
from anchorscan.dsl.node import AstNode, Span
from anchorscan.dsl.query import AstQuery
from anchorscan.parser import parse_bytes
from anchorscan.span_utils import SpanExtractor

SOURCE = "use std::fmt;\n\npub fn first() {}\n\n    fn second(a: u64) -> u64 {\n        a / 2\n    }\n"


def _manual_position(text: str, offset: int) -> tuple[int, int]:
    """Line/column of a character offset computed by scanning the text."""
    line, col = 1, 1
    for ch in text[:offset]:
        if ch == "\n":
            line += 1
            col = 1
        else:
            col += 1
    return line, col


def test_location_matches_manual_scan():
    """Every item's start position agrees with a manual scan of the text."""
    extractor = SpanExtractor(SOURCE, "lib.rs")
    for node in AstQuery.new(parse_bytes(SOURCE.encode())):
        span = node.span
        location = extractor.span_to_location(span)
        assert (location.start_line, location.start_col) == _manual_position(SOURCE, span.start_byte)
        assert (location.end_line, location.end_col) == _manual_position(SOURCE, span.end_byte)
        assert extractor.extract_snippet(node)


def test_indented_function_location():
    extractor = SpanExtractor(SOURCE, "lib.rs")
    node = AstQuery.new(parse_bytes(SOURCE.encode())).with_name("second").collect()[0]
    location = extractor.extract_location(node)
    assert location.file == "lib.rs"
    assert (location.start_line, location.start_col) == (5, 5)
    assert (location.end_line, location.end_col) == (7, 6)
    assert extractor.extract_snippet(node) == "    fn second(a: u64) -> u64 {"


def test_columns_count_characters_not_bytes():
    source = 'fn a() { let s = "héllo"; }\nfn b() {}\n'
    extractor = SpanExtractor(source, "lib.rs")
    encoded = source.encode("utf-8")
    end_of_first = encoded.index(b"}\n") + 1
    assert extractor.offset_to_position(end_of_first) == (1, 28)
    assert extractor.offset_to_position(len(encoded)) == (3, 1)


def test_offset_beyond_source_is_clamped(caplog):
    extractor = SpanExtractor("fn a() {}\n", "lib.rs")
    with caplog.at_level(logging.DEBUG):
        location = extractor.span_to_location(Span(500, 900))
    assert location.start_line == 2
    assert location.start_col == 1
    assert location.end_line == 2
    assert "clamping" in caplog.text


def test_negative_and_reversed_spans_are_valid():
    extractor = SpanExtractor("fn a() {}\n", "lib.rs")
    location = extractor.span_to_location(Span(-5, 3))
    assert (location.start_line, location.start_col) == (1, 1)
    location = extractor.span_to_location(Span(6, 2))
    assert (location.end_line, location.end_col) >= (location.start_line, location.start_col)


def test_snippet_of_empty_or_blank_span():
    extractor = SpanExtractor("fn a() {}\n\n\n", "lib.rs")
    assert extractor.span_to_snippet(Span(100, 200)) == ""
    assert extractor.span_to_snippet(Span(10, 12)) == ""


def test_snippet_falls_back_for_spanless_nodes():
    extractor = SpanExtractor("fn a() {}\n", "lib.rs")
    other = AstNode.other()
    assert extractor.extract_snippet(other) == "..."
    location = extractor.extract_location(other)
    assert (location.start_line, location.start_col, location.end_line, location.end_col) == (1, 1, 1, 1)


def test_empty_source():
    extractor = SpanExtractor(b"", "empty.rs")
    assert extractor.line_count == 1
    assert extractor.offset_to_position(0) == (1, 1)
    assert extractor.offset_to_position(10) == (1, 1)


def test_context_marks_span_lines():
    extractor = SpanExtractor(SOURCE, "lib.rs")
    node = AstQuery.new(parse_bytes(SOURCE.encode())).with_name("second").collect()[0]
    lines = extractor.extract_context(node.span, 1).splitlines()
    assert lines[0] == "     4 | "
    assert lines[1].startswith(">    5 |")
    assert lines[3] == ">    7 |     }"
    assert lines[-1] == "     8 | "


def test_from_context_uses_context_source():
    source = b"fn a() {}\n"
    ctx = FileContext(path=Path("prog/lib.rs"), source=source, tree=parse_bytes(source))
    extractor = SpanExtractor.from_context(ctx)
    assert extractor.source == source
    assert extractor.file_path == str(Path("prog/lib.rs"))
