# Naming convention: snake_case functions, PascalCase types

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class NamingConventionRule(QueryRule):
    id = "solana-naming-convention"
    title = "Naming Convention"
    description = (
        "Functions should be snake_case and structs/enums PascalCase; "
        "following naming conventions improves readability and maintainability."
    )
    severity = Severity.LOW
    recommendations = ("Rename the item; `cargo clippy` reports the same issue as non_snake_case / non_camel_case_types.",)

    def query(self, tree, file_path, span_extractor):
        q = AstQuery.new(tree)
        return (q.functions() | q.structs() | q.enums()).where("violates_naming_convention")
