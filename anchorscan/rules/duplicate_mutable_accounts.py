# Duplicate mutable accounts: several mutable accounts that may alias each other

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class DuplicateMutableAccountsRule(QueryRule):
    """Flags accounts structs with 2+ mutable accounts not kept distinct by constraints."""

    id = "duplicate-mutable-accounts"
    title = "Duplicate Mutable Accounts"
    description = (
        "Multiple mutable accounts are accepted without a constraint keeping them distinct; "
        "passing the same account twice can lead to unexpected state changes."
    )
    severity = Severity.MEDIUM
    recommendations = (
        "Add constraints to ensure accounts differ: #[account(constraint = a.key() != b.key())].",
        "Use a single mutable account reference instead of several when possible.",
        "Validate in the instruction handler that the same account is not passed twice.",
    )

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).structs().where("derives_accounts").where("has_duplicate_mutable_accounts")
