# Owner check: functions reading raw account data without comparing its owner

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule

# Calls that read or deserialize account data straight from an AccountInfo
RAW_DATA_READERS = (
    "try_borrow_data",
    "try_borrow_mut_data",
    "try_from_slice",
    "deserialize",
    "unpack",
)


class OwnerCheckRule(QueryRule):
    """
    Flags functions that read raw account data but never compare an
    account owner (no `x.owner == ...` and no require!/assert! naming owner).
    """

    id = "owner-check"
    title = "Owner Check Validation"
    description = (
        "Account data is read without validating the account owner; "
        "an attacker can supply an account owned by another program with forged data."
    )
    severity = Severity.MEDIUM
    recommendations = (
        "Compare account.owner against the expected program id before reading its data.",
        "Prefer Anchor's Account<'info, T>, which performs the owner check for you.",
    )

    def query(self, tree, file_path, span_extractor):
        q = AstQuery.new(tree)
        readers = AstQuery.from_nodes([])
        for name in RAW_DATA_READERS:
            readers = readers | q.functions().where("calls_to", name)
        return readers & ~q.where("has_owner_check")
