# One parsed .rs file: the bytes rules see and the tree built from them.

import logging
from pathlib import Path
from typing import Iterable, Optional

from tree_sitter import Node as TSNode
from tree_sitter import Parser, Tree

from anchorscan.parser import create_parser, parse_bytes

logger = logging.getLogger(__name__)


def count_tree_stats(root: TSNode) -> tuple[int, int]:
    """(nodes, function_items) under root, root included; impl and trait methods count as functions."""
    nodes = 0
    functions = 0
    stack = [root]
    while stack:
        node = stack.pop()
        nodes += 1
        if node.type == "function_item":
            functions += 1
        stack.extend(node.children)
    return nodes, functions


class FileContext:
    """
    Source bytes and their tree for one file.

    SpanExtractor is built from source, so source and tree must come from
    the same read of the file.
    """

    def __init__(
        self,
        path: Path,
        source: bytes,
        tree: Tree,
        *,
        has_parse_errors: bool = False,
    ) -> None:
        self.path = path
        self.source = source
        self.tree = tree
        self.has_parse_errors = has_parse_errors

    @property
    def root_node(self) -> TSNode:
        return self.tree.root_node

    def __repr__(self) -> str:
        return f"FileContext({str(self.path)!r}, {len(self.source)} bytes)"


def create_context(path: Path, parser: Optional[Parser] = None) -> Optional[FileContext]:
    """
    Read and parse path.

    Returns None if the file cannot be read. A file with syntax errors
    still gets a context (partial tree, has_parse_errors=True); the engine
    decides whether to analyze it.
    """
    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None

    tree = parse_bytes(source, parser=parser)
    has_errors = tree.root_node.has_error
    if has_errors:
        logger.warning("File %s has syntax errors; analyzing the recovered tree", path)

    nodes, functions = count_tree_stats(tree.root_node)
    logger.info("Parsed %s: %d nodes, %d function(s)", path, nodes, functions)
    return FileContext(path, source, tree, has_parse_errors=has_errors)


def load_contexts(paths: Iterable[Path], parser: Optional[Parser] = None) -> list[FileContext]:
    """Contexts for paths in order; unreadable files are left out."""
    parser = parser or create_parser()
    contexts = []
    for path in paths:
        ctx = create_context(path, parser=parser)
        if ctx is not None:
            contexts.append(ctx)
    return contexts
