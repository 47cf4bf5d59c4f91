# Syntax tree export: serialize a parsed file to JSON for inspection.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from tree_sitter import Node as TSNode
from tree_sitter import Tree

from anchorscan.context import FileContext

logger = logging.getLogger(__name__)


class Position(BaseModel):
    row: int
    column: int


class SyntaxNode(BaseModel):
    type: str
    start_byte: int
    end_byte: int
    start_point: Position
    end_point: Position
    text: Optional[str] = None
    children: Optional[list["SyntaxNode"]] = None


def tree_to_model(node: TSNode) -> SyntaxNode:
    """Convert a tree-sitter node (recursively) into a SyntaxNode; leaves keep their text."""
    children = None
    text = None
    if node.child_count > 0:
        children = [tree_to_model(child) for child in node.children]
    elif node.text is not None:
        text = node.text.decode("utf-8", errors="replace")
    return SyntaxNode(
        type=node.type,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        start_point=Position(row=node.start_point[0], column=node.start_point[1]),
        end_point=Position(row=node.end_point[0], column=node.end_point[1]),
        text=text,
        children=children,
    )


def ast_to_json(tree: Tree) -> str:
    logger.debug("Converting syntax tree to JSON")
    return tree_to_model(tree.root_node).model_dump_json(indent=2, exclude_none=True)


def write_ast_json(context: FileContext) -> Path:
    """Write the tree of context next to its source as <name>.json and return that path."""
    out = context.path.with_suffix(".json")
    out.write_text(ast_to_json(context.tree), encoding="utf-8")
    logger.info("AST JSON generated for %s", context.path)
    return out
