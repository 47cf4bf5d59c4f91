# Missing error handling: public functions that do not return a Result

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class MissingErrorHandlingRule(QueryRule):
    """Flags public functions whose return type is not Result-shaped."""

    id = "solana-missing-error-handling"
    title = "Missing Error Handling in Public Functions"
    description = (
        "Public functions that don't return Result<T> may fail silently. "
        "In Solana programs, proper error handling is essential for security and debugging."
    )
    severity = Severity.LOW
    recommendations = (
        "Change the return type to Result<T, YourErrorType> to surface failures.",
        "Use Anchor's Result<()> for instruction handlers so errors propagate.",
        "Define custom errors with #[error_code] and return them with the ? operator.",
    )

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).functions().where("missing_error_handling")
