# Missing signer check: authority-like accounts that are never required to sign

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class MissingSignerCheckRule(QueryRule):
    """
    Flags #[derive(Accounts)] structs where a raw account (AccountInfo,
    UncheckedAccount, SystemAccount) named like an authority (authority,
    user, owner, admin, payer, signer) is not annotated #[account(signer)].
    """

    id = "missing-signer-check"
    title = "Missing Signer Check"
    description = (
        "An account that acts as an authority is not required to sign the transaction, "
        "so anyone can pass it and act on its behalf."
    )
    severity = Severity.HIGH
    recommendations = (
        "Type the field as Signer<'info>.",
        "Or add the constraint #[account(signer)] to the field.",
    )

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).structs().where("derives_accounts").where("has_missing_signer_checks")
