# Missing owner check: raw accounts in Anchor structs with no owner validation

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class MissingOwnerCheckRule(QueryRule):
    """Flags accounts structs holding AccountInfo/UncheckedAccount fields without owner or address constraints."""

    id = "solana-missing-owner-check"
    title = "Missing owner check in Anchor accounts"
    description = (
        "An Accounts structure does not verify the owner of a raw account, "
        "which could allow malicious accounts to be passed."
    )
    severity = Severity.HIGH
    recommendations = (
        "Use Account<'info, T>, which checks the owning program on deserialization.",
        "Or add #[account(owner = <program id>)] / #[account(address = <key>)] to the field.",
    )

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).structs().where("has_unchecked_account_without_owner")
