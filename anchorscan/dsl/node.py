"""
AST node model: a uniform wrapper over the tree-sitter-rust items rules query.

Every raw tree-sitter node is classified into one of a closed set of kinds
(NodeKind). Item kinds carry a typed payload (FunctionInfo, StructInfo,
EnumInfo) so detectors can inspect visibility, attributes, fields and
bodies without re-walking the grammar themselves.

Typical usage:
    from anchorscan.dsl.node import AstNode, NodeKind

    node = AstNode.from_ts(function_item)
    if node.kind is NodeKind.IMPL_FUNCTION and node.payload.is_public:
        ...
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, NamedTuple, Optional, Union

from tree_sitter import Node as TSNode

logger = logging.getLogger(__name__)

UNNAMED = "unnamed"

# Nodes that sit between attributes and the item they decorate
_TRIVIA_TYPES = frozenset({"line_comment", "block_comment"})

_BLOCK_TYPES = frozenset({"block", "unsafe_block"})

_EXPRESSION_TYPES = frozenset(
    {
        "identifier",
        "integer_literal",
        "float_literal",
        "string_literal",
        "boolean_literal",
        "char_literal",
        "macro_invocation",
        "scoped_identifier",
        "self",
    }
)

_ATTRIBUTE_RE = re.compile(r"^#!?\[\s*(?P<path>[A-Za-z_][\w:]*)\s*(?P<rest>.*)\]\s*$", re.S)


class NodeKind(Enum):
    FILE = "File"
    FUNCTION = "Function"
    IMPL_FUNCTION = "ImplFunction"
    STRUCT = "Struct"
    ENUM = "Enum"
    BLOCK = "Block"
    EXPRESSION = "Expression"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value


FUNCTION_KINDS = frozenset({NodeKind.FUNCTION, NodeKind.IMPL_FUNCTION})


class Span(NamedTuple):
    """Byte range [start_byte, end_byte) into the original source."""

    start_byte: int
    end_byte: int


def node_text(node: Optional[TSNode]) -> str:
    """Return the source text of a tree-sitter node ("" for None)."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def iter_descendants(node: TSNode) -> Iterator[TSNode]:
    """Yield node and every descendant in document order (DFS)."""
    yield node
    for child in node.children:
        yield from iter_descendants(child)


@dataclass(frozen=True)
class Attribute:
    """A Rust attribute such as #[account(mut, signer)] split into name and args."""

    name: str
    args: str = ""

    @classmethod
    def parse(cls, attribute_item: TSNode) -> Optional["Attribute"]:
        match = _ATTRIBUTE_RE.match(node_text(attribute_item).strip())
        if match is None:
            return None
        rest = match.group("rest").strip()
        if rest.startswith("(") and rest.endswith(")"):
            rest = rest[1:-1]
        elif rest.startswith("="):
            rest = rest[1:]
        return cls(name=match.group("path"), args=rest.strip())

    def has_word(self, word: str) -> bool:
        """True if word appears as a whole token inside the arguments."""
        return re.search(rf"\b{re.escape(word)}\b", self.args) is not None


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type_text: str
    attributes: tuple[Attribute, ...] = ()
    is_public: bool = False

    def attribute_args(self, name: str) -> list[str]:
        return [a.args for a in self.attributes if a.name == name]


@dataclass(frozen=True)
class FunctionInfo:
    is_public: bool
    is_unsafe: bool
    parameters: tuple[tuple[str, str], ...]
    return_type: Optional[str]
    attributes: tuple[Attribute, ...] = ()
    body: Optional[TSNode] = field(default=None, compare=False)


@dataclass(frozen=True)
class StructInfo:
    attributes: tuple[Attribute, ...]
    fields: tuple[FieldInfo, ...]


@dataclass(frozen=True)
class EnumInfo:
    attributes: tuple[Attribute, ...]
    variants: tuple[str, ...]


Payload = Union[FunctionInfo, StructInfo, EnumInfo, None]


def outer_attributes(node: TSNode) -> tuple[Attribute, ...]:
    """
    Collect the attributes decorating an item or field.

    tree-sitter-rust emits #[...] as attribute_item siblings preceding the
    item, so walk backwards over them (skipping comments) and restore
    source order.
    """
    attrs: list[Attribute] = []
    sibling = node.prev_sibling
    while sibling is not None and (sibling.type == "attribute_item" or sibling.type in _TRIVIA_TYPES):
        if sibling.type == "attribute_item":
            attr = Attribute.parse(sibling)
            if attr is not None:
                attrs.append(attr)
        sibling = sibling.prev_sibling
    attrs.reverse()
    # Some grammar revisions nest attributes inside the item instead
    for child in node.named_children:
        if child.type == "attribute_item":
            attr = Attribute.parse(child)
            if attr is not None:
                attrs.append(attr)
    return tuple(attrs)


def _is_public(node: TSNode) -> bool:
    # Only a bare `pub` counts; pub(crate) and friends are restricted.
    for child in node.named_children:
        if child.type == "visibility_modifier":
            return node_text(child).strip() == "pub"
    return False


def _is_unsafe(function_item: TSNode) -> bool:
    for child in function_item.children:
        if child.type == "function_modifiers":
            return any(c.type == "unsafe" for c in child.children) or "unsafe" in node_text(child).split()
    return False


def _parameters(function_item: TSNode) -> tuple[tuple[str, str], ...]:
    params_node = function_item.child_by_field_name("parameters")
    if params_node is None:
        return ()
    params: list[tuple[str, str]] = []
    for child in params_node.named_children:
        if child.type == "self_parameter":
            params.append(("self", node_text(child)))
        elif child.type == "parameter":
            pattern = child.child_by_field_name("pattern")
            type_node = child.child_by_field_name("type")
            params.append((node_text(pattern), node_text(type_node)))
    return tuple(params)


def _function_info(function_item: TSNode) -> FunctionInfo:
    return_type = function_item.child_by_field_name("return_type")
    return FunctionInfo(
        is_public=_is_public(function_item),
        is_unsafe=_is_unsafe(function_item),
        parameters=_parameters(function_item),
        return_type=node_text(return_type) if return_type is not None else None,
        attributes=outer_attributes(function_item),
        body=function_item.child_by_field_name("body"),
    )


def _struct_info(struct_item: TSNode) -> StructInfo:
    fields: list[FieldInfo] = []
    body = struct_item.child_by_field_name("body")
    if body is not None and body.type == "field_declaration_list":
        for child in body.named_children:
            if child.type != "field_declaration":
                continue
            fields.append(
                FieldInfo(
                    name=node_text(child.child_by_field_name("name")),
                    type_text=node_text(child.child_by_field_name("type")),
                    attributes=outer_attributes(child),
                    is_public=_is_public(child),
                )
            )
    return StructInfo(attributes=outer_attributes(struct_item), fields=tuple(fields))


def _enum_info(enum_item: TSNode) -> EnumInfo:
    variants: list[str] = []
    body = enum_item.child_by_field_name("body")
    if body is not None:
        for child in body.named_children:
            if child.type == "enum_variant":
                variants.append(node_text(child.child_by_field_name("name")))
    return EnumInfo(attributes=outer_attributes(enum_item), variants=tuple(variants))


def _is_impl_scoped(function_item: TSNode) -> bool:
    parent = function_item.parent
    return (
        parent is not None
        and parent.type == "declaration_list"
        and parent.parent is not None
        and parent.parent.type in ("impl_item", "trait_item")
    )


def _is_expression(node: TSNode) -> bool:
    return node.type.endswith("_expression") or node.type in _EXPRESSION_TYPES


@dataclass(frozen=True, eq=False)
class AstNode:
    """
    One classified node of the tree.

    ts_node is a borrowed reference into the tree and must not outlive it.
    Two AstNodes are equal when they wrap the same underlying tree item.
    """

    kind: NodeKind
    ts_node: Optional[TSNode] = None
    raw_name: Optional[str] = None
    payload: Payload = None

    @classmethod
    def from_ts(cls, node: TSNode) -> "AstNode":
        """Classify a raw tree-sitter node."""
        t = node.type
        if t == "source_file":
            return cls(NodeKind.FILE, node)
        if t == "function_item":
            kind = NodeKind.IMPL_FUNCTION if _is_impl_scoped(node) else NodeKind.FUNCTION
            return cls(kind, node, node_text(node.child_by_field_name("name")) or None, _function_info(node))
        if t == "struct_item":
            return cls(NodeKind.STRUCT, node, node_text(node.child_by_field_name("name")) or None, _struct_info(node))
        if t == "enum_item":
            return cls(NodeKind.ENUM, node, node_text(node.child_by_field_name("name")) or None, _enum_info(node))
        if t in _BLOCK_TYPES:
            return cls(NodeKind.BLOCK, node)
        if _is_expression(node):
            return cls(NodeKind.EXPRESSION, node)
        return cls(NodeKind.OTHER, node)

    @classmethod
    def other(cls) -> "AstNode":
        """A synthetic node with no backing tree item and no span."""
        return cls(NodeKind.OTHER)

    @property
    def name(self) -> str:
        return self.raw_name if self.raw_name else UNNAMED

    @property
    def span(self) -> Optional[Span]:
        if self.kind is NodeKind.OTHER or self.ts_node is None:
            return None
        return Span(self.ts_node.start_byte, self.ts_node.end_byte)

    @property
    def key(self) -> tuple:
        if self.ts_node is None:
            return (self.kind.value, id(self))
        return (self.ts_node.type, self.ts_node.start_byte, self.ts_node.end_byte)

    @property
    def is_function(self) -> bool:
        return self.kind in FUNCTION_KINDS

    def snippet(self) -> str:
        """Short single-line form used when no source text is available."""
        if self.kind in FUNCTION_KINDS:
            return f"fn {self.name}(...)"
        if self.kind is NodeKind.STRUCT:
            return f"struct {self.name}"
        if self.kind is NodeKind.ENUM:
            return f"enum {self.name}"
        if self.kind is NodeKind.BLOCK:
            return "{ ... }"
        return "..."

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AstNode):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"AstNode({self.kind}, {self.name!r})"
