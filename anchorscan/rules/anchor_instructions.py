# Anchor instructions: inventory of public handlers taking a Context

from __future__ import annotations

from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.rules.base import QueryRule


class AnchorInstructionsRule(QueryRule):
    """Lists Anchor program instructions (public functions with a Context<...> parameter)."""

    id = "anchor-instructions"
    title = "Anchor Instructions Detection"
    description = "Public instruction handler; every account it receives should be reviewed for validation."
    severity = Severity.LOW

    def query(self, tree, file_path, span_extractor):
        return AstQuery.new(tree).functions().where("is_anchor_instruction")
