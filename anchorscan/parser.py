# tree-sitter-rust wiring: one Language object, parsers created on demand.

import logging
from pathlib import Path
from typing import Optional

from tree_sitter import Language, Parser, Tree
from tree_sitter_rust import language as _rust_language

logger = logging.getLogger(__name__)

RUST = Language(_rust_language())


def get_rust_language() -> Language:
    return RUST


def create_parser() -> Parser:
    return Parser(RUST)


def parse_bytes(source: bytes, parser: Optional[Parser] = None) -> Tree:
    """
    Parse source into a tree.

    tree-sitter recovers from syntax errors, so this never fails; a tree
    with ERROR/MISSING nodes is logged as a warning and returned as is.
    """
    tree = (parser or create_parser()).parse(source)
    root = tree.root_node
    if root.has_error:
        logger.warning("Parse completed with errors: %d byte(s), root=%s", len(source), root.type)
    else:
        logger.debug("Parse succeeded: %d byte(s)", len(source))
    return tree


def parse_file(path: Path, parser: Optional[Parser] = None) -> Optional[Tree]:
    """Read and parse path; None (with an error logged) if it cannot be read."""
    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None
    return parse_bytes(source, parser=parser)
