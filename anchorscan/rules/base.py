# Rule interface: the contract every built-in rule implements.
# Query-based rules subclass QueryRule and only describe their AstQuery.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from tree_sitter import Tree

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Finding, Severity
from anchorscan.span_utils import SpanExtractor

logger = logging.getLogger(__name__)


class Rule(ABC):
    """
    Abstract base class for all static analysis rules.

    Subclasses must define:
    - id: str: unique rule identifier (e.g. "missing-signer-check")
    - title: str: human-readable rule name
    - description: str: what the finding means
    - severity: Severity
    - check(tree, file_path, span_extractor) -> list[Finding]

    check() must be a pure function of its arguments: no I/O and no shared
    state, so one rule instance can serve any number of files.
    """

    id: str
    title: str
    description: str
    severity: Severity
    recommendations: tuple[str, ...] = ()
    enabled: bool = True

    @abstractmethod
    def check(
        self,
        tree: Tree,
        file_path: str,
        span_extractor: SpanExtractor,
        context_lines: int = 0,
    ) -> list[Finding]:
        """Analyze one parsed file and return its findings (empty list if none)."""
        ...

    def run(self, context: Any, config: Any) -> list[Finding]:
        """
        Engine-facing adapter: analyze one FileContext under config.

        Builds the SpanExtractor from the context's own source bytes so
        locations always match the tree being queried.
        """
        context_lines = getattr(config, "context_lines", 0) if config is not None else 0
        extractor = SpanExtractor.from_context(context)
        return self.check(context.tree, str(context.path), extractor, context_lines=context_lines)


class QueryRule(Rule):
    """A rule whose findings are exactly the nodes selected by query()."""

    @abstractmethod
    def query(self, tree: Tree, file_path: str, span_extractor: SpanExtractor) -> AstQuery:
        ...

    def check(
        self,
        tree: Tree,
        file_path: str,
        span_extractor: SpanExtractor,
        context_lines: int = 0,
    ) -> list[Finding]:
        logger.debug("Executing rule %s in %s", self.id, file_path)
        results = self.query(tree, file_path, span_extractor)
        findings = results.to_findings(
            self.id,
            self.severity,
            self.title,
            self.description,
            span_extractor,
            context_lines=context_lines,
        )
        logger.debug("Rule %s found %d issue(s) in %s", self.id, len(findings), file_path)
        return findings
