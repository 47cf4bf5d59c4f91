"""
Query DSL over the classified nodes of one file.

AstQuery.new(tree) descends once through the file (into inline modules and
impl blocks) and captures every function, struct and enum as the query's
universe. Every operator returns a new AstQuery over the same universe, so
rules compose small steps:

    q = AstQuery.new(tree)
    risky = q.functions().where("calls_to", "try_borrow_data")
    unchecked = risky & ~q.where("has_owner_check")

not_() complements against the universe captured at construction, not
against the current subset; that is what makes "functions that never
compare an owner" expressible after other filters have already run.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, Optional, Union

from tree_sitter import Node as TSNode
from tree_sitter import Tree

import anchorscan.dsl.detectors  # noqa: F401  (registers the built-in filters)
from anchorscan.dsl.filters import bind
from anchorscan.dsl.node import FUNCTION_KINDS, AstNode, NodeKind, node_text
from anchorscan.findings.models import Finding, Severity

logger = logging.getLogger(__name__)

Predicate = Callable[[AstNode], bool]


def _dedupe(nodes: Iterable[AstNode]) -> tuple[AstNode, ...]:
    seen: set[tuple] = set()
    unique: list[AstNode] = []
    for node in nodes:
        if node.key in seen:
            continue
        seen.add(node.key)
        unique.append(node)
    return tuple(unique)


def collect_items(container: TSNode, out: list[AstNode]) -> None:
    """Append functions, structs and enums under container in depth-first order."""
    for child in container.named_children:
        t = child.type
        if t in ("function_item", "struct_item", "enum_item"):
            out.append(AstNode.from_ts(child))
        elif t == "mod_item":
            body = child.child_by_field_name("body")
            if body is not None:
                logger.debug("Searching in module: %s", node_text(child.child_by_field_name("name")))
                collect_items(body, out)
        elif t == "impl_item":
            body = child.child_by_field_name("body")
            if body is None:
                continue
            for item in body.named_children:
                if item.type == "function_item":
                    out.append(AstNode.from_ts(item))


class AstQuery:
    """An ordered, de-duplicated set of AstNodes plus the universe it was drawn from."""

    def __init__(self, nodes: Iterable[AstNode], universe: Optional[Iterable[AstNode]] = None) -> None:
        self._results = _dedupe(nodes)
        self._universe = self._results if universe is None else _dedupe(universe)

    @classmethod
    def new(cls, tree: Union[Tree, TSNode]) -> "AstQuery":
        """Build the candidate universe for a whole file."""
        root = tree.root_node if isinstance(tree, Tree) else tree
        nodes: list[AstNode] = []
        collect_items(root, nodes)
        logger.debug("Query universe: %d node(s)", len(nodes))
        return cls(nodes, nodes)

    @classmethod
    def from_nodes(cls, nodes: Iterable[AstNode]) -> "AstQuery":
        """A query whose universe is exactly the given nodes."""
        return cls(nodes)

    def _derive(self, nodes: Iterable[AstNode]) -> "AstQuery":
        return AstQuery(nodes, self._universe)

    # -- selectors ---------------------------------------------------------

    def filter(self, predicate: Predicate) -> "AstQuery":
        """Keep nodes for which predicate(node) is true."""
        kept = [node for node in self._results if predicate(node)]
        logger.debug("filter: %d -> %d", len(self._results), len(kept))
        return self._derive(kept)

    def where(self, filter_name: str, *args: object) -> "AstQuery":
        """Apply a registered filter by name, e.g. where("calls_to", "invoke")."""
        logger.debug("where %s%r", filter_name, args)
        return self.filter(bind(filter_name, *args))

    def of_kind(self, *kinds: NodeKind) -> "AstQuery":
        return self._derive(node for node in self._results if node.kind in kinds)

    def functions(self) -> "AstQuery":
        """Free and impl-scoped functions."""
        return self.of_kind(*FUNCTION_KINDS)

    def structs(self) -> "AstQuery":
        return self.of_kind(NodeKind.STRUCT)

    def enums(self) -> "AstQuery":
        return self.of_kind(NodeKind.ENUM)

    def with_name(self, name: str) -> "AstQuery":
        return self._derive(node for node in self._results if node.raw_name == name)

    # -- set algebra -------------------------------------------------------

    def and_(self, other: "AstQuery") -> "AstQuery":
        keys = other.keys()
        return self._derive(node for node in self._results if node.key in keys)

    def or_(self, other: "AstQuery") -> "AstQuery":
        universe = self._universe + other._universe
        return AstQuery(self._results + other._results, universe)

    def not_(self) -> "AstQuery":
        keys = self.keys()
        return self._derive(node for node in self._universe if node.key not in keys)

    __and__ = and_
    __or__ = or_

    def __invert__(self) -> "AstQuery":
        return self.not_()

    # -- terminals ---------------------------------------------------------

    def exists(self) -> bool:
        return bool(self._results)

    def count(self) -> int:
        return len(self._results)

    def collect(self) -> list[AstNode]:
        return list(self._results)

    def results(self) -> tuple[AstNode, ...]:
        return self._results

    nodes = results

    @property
    def universe(self) -> tuple[AstNode, ...]:
        return self._universe

    def keys(self) -> frozenset:
        return frozenset(node.key for node in self._results)

    def names(self) -> list[str]:
        return [node.name for node in self._results]

    def __iter__(self) -> Iterator[AstNode]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AstQuery):
            return NotImplemented
        return self.keys() == other.keys()

    def __repr__(self) -> str:
        return f"AstQuery({self.names()!r})"

    # -- finding assembly --------------------------------------------------

    def to_findings(
        self,
        rule_id: str,
        severity: Severity,
        title: str,
        description: str,
        span_extractor,
        context_lines: int = 0,
    ) -> list[Finding]:
        """Turn every result node into a Finding located via span_extractor."""
        logger.debug("Converting %d result(s) to findings for %s", len(self._results), rule_id)
        findings: list[Finding] = []
        for node in self._results:
            if node.raw_name:
                message = f"{title} in '{node.name}'. {description}"
            else:
                message = f"{title}: {description}"
            context = None
            if context_lines > 0 and node.span is not None:
                context = span_extractor.extract_context(node.span, context_lines)
            findings.append(
                Finding(
                    rule_id=rule_id,
                    severity=severity,
                    title=title,
                    description=message,
                    location=span_extractor.extract_location(node),
                    snippet=span_extractor.extract_snippet(node),
                    context=context,
                )
            )
        return findings
