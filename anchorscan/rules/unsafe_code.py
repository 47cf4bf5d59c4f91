# Unsafe code usage: functions declared unsafe or containing unsafe blocks

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class UnsafeCodeRule(QueryRule):
    """Flags unsafe fns and functions with `unsafe { ... }` blocks."""

    id = "solana-unsafe-code"
    title = "Unsafe Code Usage"
    description = "Using unsafe code in Solana programs can lead to security vulnerabilities."
    severity = Severity.HIGH
    recommendations = (
        "Avoid using unsafe code in Solana programs unless absolutely necessary.",
        "If unsafe is required, document why and which invariants the block relies on.",
        "Consider safe alternatives such as checked arithmetic and bytemuck casts.",
    )

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).functions().where("uses_unsafe")
