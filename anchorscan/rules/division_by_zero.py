# Division without zero check: / and % whose divisor is not known to be non-zero

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class DivisionByZeroRule(QueryRule):
    """Flags functions dividing by a value that is not a non-zero literal or a variable bound to one."""

    id = "solana-division-by-zero"
    title = "Division Without Zero Check"
    description = "A division or remainder operation uses a divisor that may be zero, which panics at runtime."
    severity = Severity.MEDIUM
    recommendations = (
        "Use checked_div / checked_rem and handle the None case.",
        "Validate the divisor with require!(divisor != 0, ErrorCode::...) before dividing.",
    )

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).functions().where("has_unsafe_divisions")
